"""
vSphere VM Metrics Exceptions

Custom exception classes for the metrics acquisition pipeline.

Fatal errors abort the whole run; per-entity query errors are recorded
against the entity and the run continues.

Author: uldyssian-sh
License: MIT
"""

from typing import Optional


class VMMetricsError(Exception):
    """Base exception for vSphere VM metrics collection"""

    step = "run"
    fatal = True

    def __init__(self, message: str, step: Optional[str] = None):
        super().__init__(message)
        if step is not None:
            self.step = step


class ConfigurationError(VMMetricsError):
    """Raised when configuration is missing or invalid"""

    step = "configuration"


class VCenterConnectionError(VMMetricsError):
    """Raised when the vCenter endpoint cannot be reached"""

    step = "session"


class VCenterAuthenticationError(VMMetricsError):
    """Raised when vCenter rejects the credentials"""

    step = "session"


class InventoryError(VMMetricsError):
    """Raised when virtual machine enumeration fails"""

    step = "inventory"


class UnknownMetricError(VMMetricsError):
    """Raised when a metric name cannot be resolved to a counter"""

    step = "counter resolution"

    def __init__(self, metric_name: str, message: Optional[str] = None):
        super().__init__(message or f"Metric {metric_name} not found")
        self.metric_name = metric_name


class QueryError(VMMetricsError):
    """Raised when the performance query for one VM fails"""

    step = "query"
    fatal = False

    def __init__(self, entity_name: str, message: str):
        super().__init__(message)
        self.entity_name = entity_name


class ExtractionMismatch(QueryError):
    """Raised when a query response has no envelope of the expected kind"""
    pass
