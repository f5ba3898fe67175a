"""
Tests for the performance counter catalog

Author: uldyssian-sh
License: MIT
"""

from unittest.mock import PropertyMock

import pytest

from vsphere_vm_metrics.counters import (
    CounterCatalog,
    CounterCatalogResolver,
    counter_name,
    resolve_counter
)
from vsphere_vm_metrics.exceptions import UnknownMetricError
from vsphere_vm_metrics.models import CounterDescriptor

from tests.conftest import DEFAULT_COUNTERS, make_counter


@pytest.fixture
def catalog():
    return CounterCatalog.from_perf_counters(DEFAULT_COUNTERS)


class TestCounterCatalog:
    """Test CounterCatalog"""

    def test_counter_name(self):
        assert counter_name(make_counter(6, "cpu", "usagemhz", "average")) == "cpu.usagemhz.average"

    def test_resolve(self, catalog):
        descriptor = catalog.resolve("cpu.usagemhz.average")

        assert descriptor == CounterDescriptor(
            key=6,
            name="cpu.usagemhz.average",
            unit="megaHertz",
            rollup_type="average",
            stats_type="rate",
            level=1
        )

    def test_resolution_is_deterministic(self, catalog):
        first = catalog.resolve("cpu.usagemhz.average")
        for _ in range(5):
            assert catalog.resolve("cpu.usagemhz.average") == first

    @pytest.mark.parametrize("name", [
        "cpu.usagemhz.maximum",
        "cpu.usagemhz",
        "CPU.USAGEMHZ.AVERAGE",
        "",
    ])
    def test_unknown_metric(self, catalog, name):
        with pytest.raises(UnknownMetricError) as exc_info:
            catalog.resolve(name)
        assert exc_info.value.metric_name == name

    def test_first_duplicate_wins(self):
        catalog = CounterCatalog.from_perf_counters([
            make_counter(6, "cpu", "usagemhz", "average"),
            make_counter(106, "cpu", "usagemhz", "average"),
        ])

        assert len(catalog) == 1
        assert catalog.resolve("cpu.usagemhz.average").key == 6

    def test_is_read_only(self, catalog):
        with pytest.raises(TypeError):
            catalog._by_name["cpu.usagemhz.average"] = None
        assert "cpu.usagemhz.average" in catalog
        assert set(catalog) == {"cpu.usage.average", "cpu.usagemhz.average", "mem.usage.average"}

    @pytest.mark.asyncio
    async def test_fetch(self, session):
        catalog = await CounterCatalog.fetch(session)
        assert len(catalog) == len(DEFAULT_COUNTERS)


class TestCounterCatalogResolver:
    """Test CounterCatalogResolver"""

    @pytest.mark.asyncio
    async def test_catalog_fetched_once(self, session, content):
        perf_counter = PropertyMock(return_value=list(DEFAULT_COUNTERS))
        type(content.perfManager).perfCounter = perf_counter
        resolver = CounterCatalogResolver(session)

        await resolver.resolve("cpu.usagemhz.average")
        await resolver.resolve("mem.usage.average")
        await resolver.resolve("cpu.usagemhz.average")

        assert perf_counter.call_count == 1

    @pytest.mark.asyncio
    async def test_uses_supplied_catalog(self, session, content, catalog):
        perf_counter = PropertyMock(return_value=[])
        type(content.perfManager).perfCounter = perf_counter

        descriptor = await CounterCatalogResolver(session, catalog).resolve("cpu.usage.average")

        assert descriptor.key == 2
        perf_counter.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_metric(self, session):
        with pytest.raises(UnknownMetricError, match="cpu.ready.summation"):
            await resolve_counter(session, "cpu.ready.summation")

    @pytest.mark.asyncio
    async def test_catalog_fetch_failure(self, session, content):
        type(content.perfManager).perfCounter = PropertyMock(side_effect=ConnectionResetError("reset"))

        with pytest.raises(UnknownMetricError, match="Error retrieving counter info") as exc_info:
            await resolve_counter(session, "cpu.usagemhz.average")

        assert isinstance(exc_info.value.__cause__, ConnectionResetError)
