"""Pytest configuration for the end-to-end API tests.

Run with ``pytest integration_tests``; the default test run only collects ``tests/``.
"""

import pytest


def pytest_collection_modifyitems(items):
    """Mark every test under integration_tests/ as an integration test."""
    for item in items:
        if "integration_tests" in str(item.path):
            item.add_marker(pytest.mark.integration)
