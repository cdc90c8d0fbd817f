"""
Table-layer exception classes.

Programming errors (bad schema declarations, rows handed to the wrong table,
SQL the connection refuses to prepare) raise. Execution failures do not: they
are captured as an `ExecutionFailure` on the table that issued the statement.
"""
import sqlite3
from dataclasses import dataclass

import psycopg


class DatabaseError(Exception):
    """Base class for all dbtable errors.
    """


class ConnectionFailure(DatabaseError):
    """Error establishing or maintaining database connection.
    """


class ConfigurationError(DatabaseError):
    """Table or schema declared or used incorrectly.
    """


class TypeMismatchError(ConfigurationError, TypeError):
    """Row handed to a table that does not own it.
    """


class UnknownTableError(ConfigurationError, LookupError):
    """Table name not registered with the database.
    """


class PrepareError(DatabaseError):
    """Connection refused to prepare a statement.
    """


class DDLError(DatabaseError):
    """CREATE/ALTER failed under the fail-fast DDL policy.
    """


@dataclass(frozen=True)
class ExecutionFailure:
    """Error details captured from a failed statement execution.
    """
    code: int | str | None
    state: str | None
    message: str

    def __str__(self) -> str:
        return f'{self.code}[{self.state}] : {self.message}'

    @classmethod
    def from_exception(cls, exc: BaseException) -> 'ExecutionFailure':
        """Pull code/state out of whatever the DBAPI driver raised.
        """
        code = getattr(exc, 'sqlite_errorcode', None)
        state = getattr(exc, 'sqlstate', None) or getattr(exc, 'sqlite_errorname', None)
        if code is None and exc.args and isinstance(exc.args[0], int):
            code = exc.args[0]
        return cls(code=code, state=state, message=str(exc))


DbConnectionError = (
    psycopg.OperationalError,
    psycopg.InterfaceError,
    sqlite3.OperationalError,
    sqlite3.InterfaceError,
    ConnectionFailure,
    )
