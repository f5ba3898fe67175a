"""
Test suite for vSphere VM Metrics.

Unit tests for each pipeline component live in tests/unit; end-to-end
runs against a mocked vCenter live at the top level.
"""
