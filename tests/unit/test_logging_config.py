"""
Tests for logging configuration

Author: uldyssian-sh
License: MIT
"""

import io
import json
import logging

import pytest
import structlog
from structlog.testing import capture_logs

from vsphere_vm_metrics.logging_config import setup_logging, timed_operation


@pytest.fixture
def restore_logging():
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    config = structlog.get_config()
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
    structlog.configure(**config)


class TestSetupLogging:
    """Test setup_logging()"""

    def test_json_output(self, restore_logging):
        stream = io.StringIO()
        setup_logging("INFO", "json", stream=stream)

        structlog.get_logger("vsphere_vm_metrics.test").info("Connected to vCenter", endpoint="vc")

        entry = json.loads(stream.getvalue().strip())
        assert entry["event"] == "Connected to vCenter"
        assert entry["endpoint"] == "vc"
        assert entry["level"] == "info"
        assert entry["logger"] == "vsphere_vm_metrics.test"
        assert "timestamp" in entry

    def test_level_filter(self, restore_logging):
        stream = io.StringIO()
        setup_logging("WARNING", "console", stream=stream)

        logger = structlog.get_logger("vsphere_vm_metrics.test")
        logger.info("hidden")
        logger.error("Metric query failed", vm="db-01")

        output = stream.getvalue()
        assert "hidden" not in output
        assert "Metric query failed" in output
        assert "db-01" in output


class TestTimedOperation:
    """Test timed_operation()"""

    def test_success(self):
        with capture_logs() as logs:
            with timed_operation("inventory", vms=2):
                pass

        completed = logs[-1]
        assert completed["event"] == "Operation completed"
        assert completed["operation"] == "inventory"
        assert completed["success"] is True
        assert completed["vms"] == 2
        assert completed["duration_ms"] >= 0

    def test_failure_is_recorded_and_propagated(self):
        with capture_logs() as logs:
            with pytest.raises(RuntimeError):
                with timed_operation("query"):
                    raise RuntimeError("boom")

        assert logs[-1]["success"] is False
