import logging

import pytest
from dbquery.strategy import _get_strategy

logging.getLogger('dbquery').setLevel(logging.DEBUG)


@pytest.fixture(autouse=True)
def clear_caches():
    """Clear the strategy cache before and after each test to ensure test isolation."""
    _get_strategy.cache_clear()
    yield
    _get_strategy.cache_clear()


pytest_plugins = [
    'tests.fixtures.mocks',
    'tests.fixtures.values',
    'tests.fixtures.sqlite',
    'tests.fixtures.postgres',
]
