"""
Fixtures for PostgreSQL-specific integration tests.
"""
import pytest


def pytest_collection_modifyitems(items):
    for item in items:
        if 'integration/postgres' in item.nodeid:
            item.add_marker(pytest.mark.postgres)
