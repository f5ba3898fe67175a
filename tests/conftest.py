"""
Shared fixtures for vSphere VM Metrics tests

Author: uldyssian-sh
License: MIT
"""

import os
import sys
from types import SimpleNamespace
from unittest.mock import Mock, patch

import pytest
import structlog
from pyVmomi import vim

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from vsphere_vm_metrics.models import VirtualMachineRef
from vsphere_vm_metrics.session import Session


def make_vm(name, moid):
    """VM reference backed by a real (stub-less) managed object"""
    return VirtualMachineRef(moid=moid, name=name, moref=vim.VirtualMachine(moid))


def make_counter(key, group, name, rollup, unit="megaHertz"):
    """Stand-in for vim.PerformanceManager.CounterInfo"""
    return SimpleNamespace(
        key=key,
        groupInfo=SimpleNamespace(key=group),
        nameInfo=SimpleNamespace(key=name),
        rollupType=rollup,
        unitInfo=SimpleNamespace(key=unit),
        statsType="rate",
        level=1
    )


def int_series(counter_id, values, instance=""):
    series = Mock(spec=vim.PerformanceManager.IntSeries)
    series.id = SimpleNamespace(counterId=counter_id, instance=instance)
    series.value = list(values)
    return series


def csv_series(counter_id, value):
    series = Mock(spec=vim.PerformanceManager.MetricSeriesCSV)
    series.id = SimpleNamespace(counterId=counter_id, instance="")
    series.value = value
    return series


def entity_metric(*series):
    envelope = Mock(spec=vim.PerformanceManager.EntityMetric)
    envelope.value = list(series)
    return envelope


def entity_metric_csv(*series):
    envelope = Mock(spec=vim.PerformanceManager.EntityMetricCSV)
    envelope.value = list(series)
    return envelope


DEFAULT_COUNTERS = [
    make_counter(2, "cpu", "usage", "average", unit="percent"),
    make_counter(6, "cpu", "usagemhz", "average"),
    make_counter(24, "mem", "usage", "average", unit="percent"),
]


@pytest.fixture(scope="session", autouse=True)
def stdlib_logging():
    """Send structlog output through stdlib logging instead of stdout"""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.KeyValueRenderer()
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture(autouse=True)
def no_disconnect():
    """Keep Session.close from talking to pyVim"""
    with patch("vsphere_vm_metrics.session.Disconnect") as disconnect:
        yield disconnect


@pytest.fixture
def content():
    """Mock ServiceContent with a perf manager and a counter catalog"""
    content = Mock()
    content.rootFolder = Mock(name="rootFolder")
    content.perfManager.perfCounter = list(DEFAULT_COUNTERS)
    content.perfManager.QueryPerf.return_value = []
    return content


@pytest.fixture
def session(content):
    return Session("https://vcenter.example.com/sdk", "administrator@vsphere.local", Mock(), content)


@pytest.fixture
def web01():
    return make_vm("web-01", "vm-101")


@pytest.fixture
def db01():
    return make_vm("db-01", "vm-102")
