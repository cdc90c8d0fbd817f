import pytest
from dbtable.cache import Cache


@pytest.fixture(autouse=True)
def clear_caches():
    """Clear all caches before and after each test to ensure test isolation."""
    Cache.get_instance().clear_all()
    yield
    Cache.get_instance().clear_all()


pytest_plugins = [
    'tests.fixtures.mocks',
    'tests.fixtures.tables',
    'tests.fixtures.sqlite',
]
