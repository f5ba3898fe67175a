"""
Performance Metric Queries

Issues a point-in-time PerformanceManager query for one VM and one counter
and extracts the integer series matching that counter.

QueryPerf answers with a list of per-entity envelopes whose series kind
depends on the counter data type and on the requested format. Only
``EntityMetric`` envelopes carrying ``IntSeries`` values contribute output;
every other series kind is ignored.

Author: uldyssian-sh
License: MIT
"""

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Tuple

import structlog
from pyVmomi import vim

from .exceptions import ExtractionMismatch, QueryError
from .models import IntegerSeries, MetricSample, OtherSeries, ValueSeries, VirtualMachineRef
from .session import Session

logger = structlog.get_logger(__name__)

REALTIME_INTERVAL = 20
LATEST_SAMPLE = 1


@dataclass(frozen=True)
class QuerySpec:
    """One entity, one counter, one interval"""
    entity: VirtualMachineRef
    counter_id: int
    interval_seconds: int = REALTIME_INTERVAL
    max_samples: int = LATEST_SAMPLE
    instance: str = ""

    def to_vim(self) -> vim.PerformanceManager.QuerySpec:
        return vim.PerformanceManager.QuerySpec(
            entity=self.entity.moref,
            metricId=[vim.PerformanceManager.MetricId(counterId=self.counter_id, instance=self.instance)],
            intervalId=self.interval_seconds,
            maxSample=self.max_samples
        )


def to_series(value: Any) -> ValueSeries:
    """Convert a pyVmomi metric series into the tagged variant"""
    metric_id = getattr(value, "id", None)
    counter_id = getattr(metric_id, "counterId", None)
    if isinstance(value, vim.PerformanceManager.IntSeries):
        return IntegerSeries(
            counter_id=counter_id,
            instance=getattr(metric_id, "instance", "") or "",
            values=tuple(int(v) for v in value.value or ())
        )
    return OtherSeries(counter_id=counter_id, kind=type(value).__name__)


def extract_series(series: Iterable[ValueSeries], counter_id: int) -> List[Tuple[int, ...]]:
    """Values of every integer series whose counter id matches"""
    matched = []
    for item in series:
        if isinstance(item, IntegerSeries):
            if item.counter_id == counter_id:
                matched.append(item.values)
        else:
            logger.debug("Skipping non-integer series", kind=item.kind, counter_id=item.counter_id)
    return matched


def extract_sample(entity: VirtualMachineRef, envelopes: Optional[Iterable[Any]],
                   counter_id: int) -> MetricSample:
    """
    Build the sample for one entity from a QueryPerf response.

    No envelopes, or envelopes with no matching series, give an empty
    sample. Envelopes of an unexpected kind are skipped; if every
    envelope is of an unexpected kind the entity fails with
    ExtractionMismatch.
    """
    envelopes = list(envelopes or [])
    matched: List[Tuple[int, ...]] = []
    usable = 0

    for envelope in envelopes:
        if not isinstance(envelope, vim.PerformanceManager.EntityMetric):
            logger.warning("Unexpected metric envelope", vm=entity.name,
                           kind=type(envelope).__name__)
            continue
        usable += 1
        matched.extend(extract_series((to_series(value) for value in envelope.value or []), counter_id))

    if envelopes and not usable:
        raise ExtractionMismatch(
            entity.name, f"Error asserting metric type for VM {entity.name}"
        )

    return MetricSample(entity_name=entity.name, counter_id=counter_id, series=tuple(matched))


async def query_metric(session: Session, entity: VirtualMachineRef, counter_id: int,
                       interval_seconds: int = REALTIME_INTERVAL,
                       max_samples: int = LATEST_SAMPLE) -> MetricSample:
    """
    Query the most recent samples of one counter for one VM.

    Raises:
        QueryError: The query could not be executed
        ExtractionMismatch: The response carried no usable envelope
    """
    session.require_open()
    spec = QuerySpec(entity, counter_id, interval_seconds, max_samples)

    try:
        query_spec = spec.to_vim()
        envelopes = await session.call(session.perf_manager.QueryPerf, querySpec=[query_spec])
    except Exception as e:
        raise QueryError(
            entity.name, f"Error querying performance metrics for VM {entity.name}: {e}"
        ) from e

    sample = extract_sample(entity, envelopes, counter_id)
    if sample.is_empty:
        logger.debug("No samples returned", vm=entity.name, counter_id=counter_id)
    return sample
