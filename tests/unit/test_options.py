import pytest
from dbtable import BEST_EFFORT, FAIL_FAST, DatabaseOptions
from dbtable.connection import create_url_from_options


def test_init_defaults():
    """Test default initialization"""
    options = DatabaseOptions(
        hostname='testhost',
        username='testuser',
        password='testpass',
        database='testdb',
        port=50000,
        timeout=30
    )

    assert options.drivername == 'db2'
    assert options.check_connection is True
    assert options.ddl_policy == BEST_EFFORT
    assert options.url is None

    assert options.use_pool is False
    assert options.pool_max_connections == 5
    assert options.pool_max_idle_time == 300
    assert options.pool_wait_timeout == 30


def test_pooling_options():
    """Test connection pooling options"""
    options = DatabaseOptions(
        drivername='postgresql',
        hostname='testhost',
        username='testuser',
        password='testpass',
        database='testdb',
        port=5432,
        timeout=30,
        use_pool=True,
        pool_max_connections=10,
        pool_max_idle_time=600,
        pool_wait_timeout=60
    )

    assert options.use_pool is True
    assert options.pool_max_connections == 10
    assert options.pool_max_idle_time == 600
    assert options.pool_wait_timeout == 60


def test_validation():
    """Test validation rules"""
    with pytest.raises(ValueError):
        DatabaseOptions(
            drivername='invalid',
            hostname='testhost',
            username='testuser',
            password='testpass',
            database='testdb',
            port=50000,
            timeout=30
        )

    with pytest.raises(ValueError):
        DatabaseOptions(drivername='db2', hostname='testhost')

    with pytest.raises(ValueError):
        DatabaseOptions(drivername='sqlite', database='x.db', ddl_policy='sometimes')


def test_sqlite_options():
    """Test SQLite options validation"""
    options = DatabaseOptions(
        drivername='sqlite',
        database='test.db'
    )
    assert options.drivername == 'sqlite'
    assert options.database == 'test.db'

    with pytest.raises(ValueError):
        DatabaseOptions(drivername='sqlite')


def test_url_skips_validation():
    options = DatabaseOptions(drivername='db2', url='db2+ibm_db://u:p@host:50000/SAMPLE')
    assert create_url_from_options(options) == 'db2+ibm_db://u:p@host:50000/SAMPLE'


@pytest.mark.parametrize(('options', 'expected'), [
    ({'drivername': 'db2', 'hostname': 'h', 'username': 'u', 'password': 'p',
      'database': 'SAMPLE', 'port': 50000},
     'db2+ibm_db://u:p@h:50000/SAMPLE'),
    ({'drivername': 'postgresql', 'hostname': 'h', 'username': 'u', 'password': 'p',
      'database': 'app', 'port': 5432, 'timeout': 10},
     'postgresql+psycopg://u:p@h:5432/app?connect_timeout=10'),
    ({'drivername': 'sqlite', 'database': ':memory:'},
     'sqlite:///:memory:'),
], ids=['db2', 'postgresql', 'sqlite'])
def test_connection_urls(options, expected):
    assert create_url_from_options(DatabaseOptions(**options)) == expected


class TestFromAny:

    def test_from_dict(self):
        options = DatabaseOptions.from_any({'drivername': 'sqlite', 'database': ':memory:'})
        assert options.database == ':memory:'

    def test_keywords_win(self):
        options = DatabaseOptions.from_any({'drivername': 'sqlite', 'database': 'a.db'},
                                           database='b.db', ddl_policy=FAIL_FAST)
        assert options.database == 'b.db'
        assert options.ddl_policy == FAIL_FAST

    def test_instance_passthrough(self):
        options = DatabaseOptions(drivername='sqlite', database='a.db')
        assert DatabaseOptions.from_any(options) is options
        assert DatabaseOptions.from_any(options, database='b.db').database == 'b.db'
        assert options.database == 'a.db'

    def test_unknown_keys_ignored(self):
        options = DatabaseOptions.from_any(drivername='sqlite', database='a.db', appname='x')
        assert not hasattr(options, 'appname')


if __name__ == '__main__':
    __import__('pytest').main([__file__])
