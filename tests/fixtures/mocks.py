"""
Recording fake connection for table tests.

Stands in for ConnectionWrapper so SQL generation and row lifecycle can be
checked without a database. Every executed statement is recorded; canned
results and failures are keyed by SQL prefix (the longest matching prefix
wins).

Usage:
    def test_count(fake_connection, employees):
        fake_connection.results['SELECT COUNT(*)'] = [(3,)]
        assert employees.count() == 3
        assert fake_connection.statements == ['SELECT COUNT(*) FROM HR.EMPLOYEE']
"""
import pytest
from dbtable import Database, ExecutionFailure, PrepareError


class FakeStatement:
    """Statement double mirroring dbtable.statement.Statement."""

    def __init__(self, sql, connection):
        self.sql = sql
        self.connection = connection
        self.error = None
        self._rows = None

    def execute(self, *binds):
        self.connection.executed.append((self.sql, binds))
        self.error = self.connection.lookup(self.connection.failures, self.sql)
        if self.error is not None:
            self._rows = None
            return None
        self._rows = self.connection.lookup(self.connection.results, self.sql) or []
        if self.sql.startswith('SELECT'):
            return -1
        return self.connection.rowcount

    def fetchall(self):
        if self._rows is None:
            return None
        return [tuple(row) for row in self._rows]

    @property
    def column_names(self):
        return list(self.connection.live_columns)


class FakeConnection:
    """Connection double recording prepared and executed SQL."""

    def __init__(self):
        self.executed = []
        self.results = {}
        self.failures = {}
        self.tables = []
        self.live_columns = []
        self.rowcount = 1
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    @staticmethod
    def lookup(table, sql):
        matches = [prefix for prefix in table if sql.startswith(prefix)]
        if not matches:
            return None
        return table[max(matches, key=len)]

    def fail(self, prefix, message='SQL0803N duplicate key', code=-803, state='23505'):
        self.failures[prefix] = ExecutionFailure(code=code, state=state, message=message)

    def prepare(self, sql):
        if not sql or not sql.strip():
            raise PrepareError('Cannot prepare an empty statement')
        return FakeStatement(sql, self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed = True

    def list_tables(self, schema, name):
        full_name = f'{schema}.{name}'.upper()
        return [table for table in self.tables if table.upper() == full_name]

    @property
    def statements(self):
        return [sql for sql, _ in self.executed]

    @property
    def binds(self):
        return [binds for _, binds in self.executed]


@pytest.fixture
def fake_connection():
    """Fresh recording connection."""
    return FakeConnection()


@pytest.fixture
def fake_db(fake_connection):
    """Database over the recording connection, best-effort DDL."""
    return Database(fake_connection)
