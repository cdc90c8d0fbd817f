"""
Table-gateway object-relational layer.

Declare a table by subclassing `Table` with a schema name and an ordered
column list, register it with a `Database`, and get row lookup, insert,
update, delete and CREATE/ALTER synchronization generated from the
declaration:

    db = Database.connect(drivername='db2', hostname=..., ...)
    employees = db.register(Employee)
    db.ensure_schema()
    row = employees.create_row()
    row['EMPNO'] = '000010'
    row.save()
    db.commit()
"""
__version__ = '0.1.0'

from dbtable.builder import Query, SQLBuilder
from dbtable.connection import ConnectionWrapper, connect
from dbtable.database import Database
from dbtable.exceptions import ConfigurationError, ConnectionFailure
from dbtable.exceptions import DatabaseError, DbConnectionError, DDLError
from dbtable.exceptions import ExecutionFailure, PrepareError
from dbtable.exceptions import TypeMismatchError, UnknownTableError
from dbtable.options import BEST_EFFORT, FAIL_FAST, DatabaseOptions
from dbtable.row import Row, RowFactory
from dbtable.schema import ColumnSchema, SchemaRegistry
from dbtable.table import CREATED, Table

__all__ = [
    'connect',
    'ConnectionWrapper',
    'Database',
    'DatabaseOptions',
    'BEST_EFFORT',
    'FAIL_FAST',
    'Table',
    'CREATED',
    'Row',
    'RowFactory',
    'ColumnSchema',
    'SchemaRegistry',
    'SQLBuilder',
    'Query',
    'ExecutionFailure',
    'DatabaseError',
    'ConfigurationError',
    'TypeMismatchError',
    'UnknownTableError',
    'PrepareError',
    'DDLError',
    'ConnectionFailure',
    'DbConnectionError',
]
