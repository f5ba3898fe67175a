"""
vSphere VM Metrics

Connects to a VMware vCenter Server, enumerates its virtual machines and
reports the latest value of one performance counter per VM, by default
CPU usage in MHz (cpu.usagemhz.average).

Author: uldyssian-sh
License: MIT
Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "uldyssian-sh"
__license__ = "MIT"
__description__ = "Near-real-time vCenter VM performance counters via pyVmomi"

from .config import MonitorConfig, load_config
from .counters import CounterCatalog, CounterCatalogResolver, resolve_counter
from .exceptions import (
    VMMetricsError,
    ConfigurationError,
    VCenterConnectionError,
    VCenterAuthenticationError,
    InventoryError,
    UnknownMetricError,
    QueryError,
    ExtractionMismatch
)
from .inventory import list_virtual_machines
from .models import (
    CounterDescriptor,
    IntegerSeries,
    MetricSample,
    OtherSeries,
    QueryOutcome,
    RunResult,
    VirtualMachineRef
)
from .pipeline import collect_metrics, run
from .query import QuerySpec, query_metric
from .report import ReportEmitter
from .session import RemoteExecutor, Session, connect


def get_version():
    """Get the current version of vSphere VM Metrics."""
    return __version__


__all__ = [
    # Metadata
    "__version__",
    "__author__",
    "__license__",
    "__description__",
    "get_version",

    # Pipeline
    "MonitorConfig",
    "load_config",
    "Session",
    "RemoteExecutor",
    "connect",
    "list_virtual_machines",
    "CounterCatalog",
    "CounterCatalogResolver",
    "resolve_counter",
    "QuerySpec",
    "query_metric",
    "collect_metrics",
    "run",
    "ReportEmitter",

    # Models
    "CounterDescriptor",
    "IntegerSeries",
    "MetricSample",
    "OtherSeries",
    "QueryOutcome",
    "RunResult",
    "VirtualMachineRef",

    # Exceptions
    "VMMetricsError",
    "ConfigurationError",
    "VCenterConnectionError",
    "VCenterAuthenticationError",
    "InventoryError",
    "UnknownMetricError",
    "QueryError",
    "ExtractionMismatch"
]
