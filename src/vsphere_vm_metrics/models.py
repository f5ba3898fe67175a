"""
vSphere VM Metrics Data Model

Immutable value types passed between the pipeline stages.

Author: uldyssian-sh
License: MIT
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple, Union

from .exceptions import QueryError


@dataclass(frozen=True)
class VirtualMachineRef:
    """One virtual machine from the inventory snapshot"""
    moid: str
    name: str
    moref: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class CounterDescriptor:
    """Performance counter as exposed by the PerformanceManager"""
    key: int
    name: str
    unit: str
    rollup_type: str
    stats_type: Optional[str] = None
    level: Optional[int] = None


@dataclass(frozen=True)
class IntegerSeries:
    """Numeric value series returned for one counter"""
    counter_id: int
    instance: str
    values: Tuple[int, ...]


@dataclass(frozen=True)
class OtherSeries:
    """Any series kind that does not carry integer values"""
    counter_id: Optional[int]
    kind: str


ValueSeries = Union[IntegerSeries, OtherSeries]


@dataclass(frozen=True)
class MetricSample:
    """Values extracted for one entity and one counter"""
    entity_name: str
    counter_id: int
    series: Tuple[Tuple[int, ...], ...] = ()

    @property
    def values(self) -> List[int]:
        return [value for values in self.series for value in values]

    @property
    def is_empty(self) -> bool:
        return not any(self.series)


@dataclass(frozen=True)
class QueryOutcome:
    """Per-entity result: a sample on success, the error otherwise"""
    entity: VirtualMachineRef
    sample: Optional[MetricSample] = None
    error: Optional[QueryError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RunResult:
    """Result of one collection pass"""
    counter: CounterDescriptor
    outcomes: List[QueryOutcome] = field(default_factory=list)

    @property
    def samples(self) -> List[MetricSample]:
        return [outcome.sample for outcome in self.outcomes if outcome.ok and outcome.sample]

    @property
    def failures(self) -> List[QueryOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    def summary(self) -> dict:
        return {
            "vms": len(self.outcomes),
            "succeeded": len(self.outcomes) - len(self.failures),
            "failed": len(self.failures),
            "empty": sum(1 for sample in self.samples if sample.is_empty),
        }
