"""
Prepared statements over a DBAPI cursor.

A `Statement` keeps the SQL text handed to `ConnectionWrapper.prepare` and
runs it on demand. Execution never raises for driver errors: the failure is
recorded on the statement (`error`) and `execute` returns None, leaving the
caller to decide what to do with it.
"""
import logging
import time
from functools import wraps
from typing import TYPE_CHECKING, Any

from dbtable.exceptions import ExecutionFailure
from dbtable.sql import prepare_query

if TYPE_CHECKING:
    from dbtable.connection import ConnectionWrapper

logger = logging.getLogger(__name__)


def dumpsql(func):
    """Decorator for logging SQL statements and bind values."""
    @wraps(func)
    def wrapper(self, *binds: Any):
        start = time.time()
        logger.debug(f'SQL:\n{self.sql}\nargs: {binds}')
        try:
            return func(self, *binds)
        finally:
            elapsed = time.time() - start
            self.connwrapper.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


class Statement:
    """SQL text bound to a connection, executed with positional binds.
    """

    def __init__(self, sql: str, connection_wrapper: 'ConnectionWrapper') -> None:
        self.sql = sql
        self.connwrapper = connection_wrapper
        self.dbapi_cursor = None
        self.error: ExecutionFailure | None = None

    def __repr__(self) -> str:
        return f'Statement({self.sql!r})'

    @dumpsql
    def execute(self, *binds: Any) -> int | None:
        """Run the statement; return the affected row count, or None on failure.
        """
        self.close()
        self.error = None
        sql, args = prepare_query(self.sql, binds, self.connwrapper.paramstyle)
        cursor = self.connwrapper.dbapi_connection.cursor()
        try:
            if args:
                cursor.execute(sql, args)
            else:
                cursor.execute(sql)
        except self.connwrapper.dbapi_error as exc:
            cursor.close()
            self.error = ExecutionFailure.from_exception(exc)
            logger.error(f'Error with query:\nSQL:\n{sql}\nargs: {args}\n{self.error}')
            return None
        self.dbapi_cursor = cursor
        return cursor.rowcount

    def fetchall(self) -> list[tuple] | None:
        """All result rows as tuples; None if the statement has not run or failed.
        """
        if self.dbapi_cursor is None:
            return None
        if self.dbapi_cursor.description is None:
            return []
        return [tuple(row) for row in self.dbapi_cursor.fetchall()]

    @property
    def column_names(self) -> list[str]:
        """Column names from the cursor description of the last execution."""
        if self.dbapi_cursor is None or self.dbapi_cursor.description is None:
            return []
        return [desc[0] for desc in self.dbapi_cursor.description]

    def close(self) -> None:
        if self.dbapi_cursor is not None:
            self.dbapi_cursor.close()
            self.dbapi_cursor = None
