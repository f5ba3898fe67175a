"""
Performance Counter Catalog

Maps human-readable counter names such as ``cpu.usagemhz.average`` to the
numeric counter ids the PerformanceManager expects in queries.

The provider exposes thousands of counters, so the catalog is fetched once
per run and shared read-only by every per-VM query.

Author: uldyssian-sh
License: MIT
"""

from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional

import structlog

from .exceptions import UnknownMetricError, VMMetricsError
from .models import CounterDescriptor
from .session import Session

logger = structlog.get_logger(__name__)


def counter_name(counter: Any) -> str:
    """Full dotted name of a PerfCounterInfo: group.counter.rollup"""
    return f"{counter.groupInfo.key}.{counter.nameInfo.key}.{counter.rollupType}"


def _describe(counter: Any) -> CounterDescriptor:
    return CounterDescriptor(
        key=int(counter.key),
        name=counter_name(counter),
        unit=str(counter.unitInfo.key),
        rollup_type=str(counter.rollupType),
        stats_type=str(counter.statsType) if getattr(counter, "statsType", None) else None,
        level=getattr(counter, "level", None)
    )


class CounterCatalog(Mapping):
    """Read-only mapping of counter name to CounterDescriptor"""

    def __init__(self, descriptors: Iterable[CounterDescriptor]):
        by_name: Dict[str, CounterDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in by_name:
                # First definition wins
                logger.debug("Duplicate counter name", name=descriptor.name, key=descriptor.key)
                continue
            by_name[descriptor.name] = descriptor
        self._by_name = MappingProxyType(by_name)

    @classmethod
    def from_perf_counters(cls, perf_counters: Iterable[Any]) -> "CounterCatalog":
        return cls(_describe(counter) for counter in perf_counters)

    @classmethod
    async def fetch(cls, session: Session) -> "CounterCatalog":
        """Download every counter definition from the PerformanceManager"""
        session.require_open()
        perf_counters = await session.call(lambda: list(session.perf_manager.perfCounter or []))
        catalog = cls.from_perf_counters(perf_counters)
        logger.info("Fetched performance counter catalog", counters=len(catalog))
        return catalog

    def resolve(self, metric_name: str) -> CounterDescriptor:
        """Exact-match lookup, raising UnknownMetricError on a miss"""
        try:
            return self._by_name[metric_name]
        except KeyError:
            raise UnknownMetricError(metric_name) from None

    def __getitem__(self, metric_name: str) -> CounterDescriptor:
        return self._by_name[metric_name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_name)

    def __len__(self) -> int:
        return len(self._by_name)


class CounterCatalogResolver:
    """Resolves metric names against a catalog fetched at most once"""

    def __init__(self, session: Session, catalog: Optional[CounterCatalog] = None):
        self.session = session
        self._catalog = catalog

    async def catalog(self) -> CounterCatalog:
        if self._catalog is None:
            self._catalog = await CounterCatalog.fetch(self.session)
        return self._catalog

    async def resolve(self, metric_name: str) -> CounterDescriptor:
        try:
            catalog = await self.catalog()
        except VMMetricsError:
            raise
        except Exception as e:
            raise UnknownMetricError(
                metric_name, f"Error retrieving counter info for {metric_name}: {e}"
            ) from e

        descriptor = catalog.resolve(metric_name)
        logger.debug("Resolved counter", metric=metric_name, counter_id=descriptor.key,
                     unit=descriptor.unit)
        return descriptor


async def resolve_counter(session: Session, metric_name: str) -> CounterDescriptor:
    """Fetch the catalog and resolve one metric name"""
    return await CounterCatalogResolver(session).resolve(metric_name)
