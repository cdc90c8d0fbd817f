"""
Table gateways.

Subclass `Table` once per database table, declaring the schema name and the
ordered column list; register the subclass with a `Database` and use the
registered instance for every read and write on that table.

    class Employee(Table):
        schema_name = 'HR'
        columns = [
            {'COLUMN': 'EMPNO', 'TYPE': 'CHAR', 'LENGTH': 6, 'OPTS': 'NOT NULL', 'PRIMARY': 1},
            {'COLUMN': 'NAME', 'TYPE': 'CHAR', 'LENGTH': 12},
        ]

    db = Database.connect(drivername='db2', ...)
    employees = db.register(Employee)
    row = employees.find_id('000010', single=True)

The table name defaults to the class name, upper-cased. Unless a column is
flagged PRIMARY, the last declared column is the primary column; a table
with no primary key overrides `primary_column` to return None.

Two error channels: misuse (bad declarations, a row handed to the wrong
table) raises; a statement the database rejects at execution is recorded in
`last_error` and the call returns None (or an empty result).
"""
import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any

import pandas as pd
from dbtable.builder import DEFAULT_TABLE_OPTIONS, Query, SQLBuilder
from dbtable.cache import Cache
from dbtable.database import Database
from dbtable.data import rows_to_frame
from dbtable.exceptions import ConfigurationError, DatabaseError, DDLError
from dbtable.exceptions import ExecutionFailure, TypeMismatchError
from dbtable.options import FAIL_FAST
from dbtable.row import Row, RowFactory, shape_result
from dbtable.schema import ColumnSchema, SchemaRegistry
from dbtable.statement import Statement

logger = logging.getLogger(__name__)

CREATED = 'created'


class Table:
    """Gateway to one database table.

    Class attributes a subclass may set:

    - `schema_name`: required
    - `table_name`: defaults to the class name
    - `columns`: the ordered column declarations (or override `data_order`)
    - `row_class`: row type used when the database has no factory registered
    - `table_options`: suffix of CREATE TABLE
    - `grant_to`: user granted full DML rights by the default post-create hook
    - `ddl_policy`: overrides the database's DDL failure policy
    """
    schema_name: str | None = None
    table_name: str | None = None
    columns: Sequence[ColumnSchema | Mapping[str, Any]] | None = None
    row_class: type[Row] = Row
    table_options: str | None = DEFAULT_TABLE_OPTIONS
    grant_to: str | None = None
    ddl_policy: str | None = None

    def __init__(self, db: Database) -> None:
        """Do not call this directly; tables come from `Database.register`.
        """
        if not isinstance(db, Database):
            raise ConfigurationError('Need the Database as parameter')
        if not self.schema_name:
            raise ConfigurationError(f'{type(self).__name__} must set schema_name')
        self.db = db
        self.table_name = (self.table_name or type(self).__name__).upper()
        self.full_table_name = f'{self.schema_name}.{self.table_name}'.upper()
        self.registry = SchemaRegistry(self.data_order)
        self.builder = SQLBuilder(self.registry, self.full_table_name, db.full_table_name)
        self.last_error: ExecutionFailure | None = None

    def __repr__(self) -> str:
        return f'<{type(self).__name__} {self.full_table_name}>'

    def data_order(self) -> Sequence[ColumnSchema | Mapping[str, Any]]:
        """The ordered column declarations. Override, or set `columns`.
        """
        if self.columns is None:
            raise ConfigurationError(f'{type(self).__name__} must declare columns or override data_order')
        return self.columns

    @property
    def connection(self) -> Any:
        return self.db.connection

    @property
    def rows(self) -> RowFactory:
        return RowFactory(self, self.db.row_factory_for(self))

    @property
    def effective_ddl_policy(self) -> str:
        return self.ddl_policy or self.db.ddl_policy

    # schema introspection

    def column_list(self) -> tuple[str, ...]:
        return self.registry.column_list()

    def all_data(self) -> dict[str, ColumnSchema]:
        return self.registry.all_data()

    def get_column(self, name: str, key: str | None = None) -> Any:
        return self.registry.get_column(name, key)

    def primary_column(self) -> str | None:
        return self.registry.primary_column()

    def identity_column(self) -> str | None:
        return self.registry.identity_column()

    def reset_schema(self) -> None:
        """Forget cached column data; for reinitialization and tests only."""
        self.registry.reset()

    # execution

    @property
    def error_code(self) -> int | str | None:
        return self.last_error.code if self.last_error else None

    @property
    def error_state(self) -> str | None:
        return self.last_error.state if self.last_error else None

    @property
    def error_message(self) -> str | None:
        return self.last_error.message if self.last_error else None

    def _prepare(self, sql: str) -> Statement:
        return self.connection.prepare(sql)

    def _execute(self, statement: Statement, *binds: Any) -> int | None:
        self.last_error = None
        rc = statement.execute(*binds)
        if rc is None:
            self.last_error = statement.error or ExecutionFailure(None, None, 'execution failed')
        return rc

    def _run(self, query: Query) -> tuple[Statement, int | None]:
        statement = self._prepare(query.sql)
        return statement, self._execute(statement, *query.params)

    def _fetch(self, query: Query) -> list[tuple] | None:
        statement, rc = self._run(query)
        if rc is None:
            return None
        return statement.fetchall()

    def select(self, columns: str | Sequence[str], where: str | None = None,
               *binds: Any) -> list[tuple] | None:
        """SELECT columns from this table; None if execution failed.
        """
        return self._fetch(self.builder.select(columns, where, *binds))

    def select_distinct(self, columns: str | Sequence[str], where: str | None = None,
                        *binds: Any) -> list[tuple] | None:
        return self._fetch(self.builder.select_distinct(columns, where, *binds))

    def select_join(self, columns: str | Sequence[str], tables: str,
                    where: str | None = None, *binds: Any) -> list[tuple] | None:
        """SELECT columns from a join; `!!!` and `!name!` in `tables` and
        `where` are replaced with full table names.
        """
        return self._fetch(self.builder.select_join(columns, tables, where, *binds))

    def count(self) -> int | None:
        rows = self.select('COUNT(*)')
        return rows[0][0] if rows else None

    def count_where(self, where: str, *binds: Any) -> int | None:
        rows = self.select('COUNT(*)', where, *binds)
        if rows is None:
            return None
        return rows[0][0] if rows else 0

    # finding

    def find_id(self, *ids: Any, single: bool = False) -> list[Row] | Row | None:
        """Rows whose primary column matches any of `ids`.
        """
        primary = self.primary_column()
        if not primary:
            raise ConfigurationError(f'{self.full_table_name} has no primary column')
        if not ids:
            return shape_result([], single)
        where = f"{primary} IN ({', '.join('?' for _ in ids)})"
        return self.find_where(where, *ids, single=single)

    def find_where(self, where: str | None = None, *binds: Any,
                   single: bool = False) -> list[Row] | Row | None:
        """Rows matching a WHERE condition.

        With `single=True`: None for no match, the row for one match, the
        list for more than one.
        """
        return self.find_join(self.full_table_name, where, *binds, single=single)

    def find_one(self, where: str | None = None, *binds: Any) -> Row | None:
        """First matching row, or None if nothing matches.
        """
        rows = self.find_where(where, *binds)
        return rows[0] if rows else None

    def _alias_prefix(self, tables: str) -> str:
        for name in ('!!!', self.full_table_name, self.table_name):
            match = re.search(r'(?<![\w.])' + re.escape(name) + r'\s+[Aa][Ss]\s+(\w+)', tables)
            if match:
                return match.group(1) + '.'
        return ''

    def find_join(self, tables: str, where: str | None = None, *binds: Any,
                  single: bool = False) -> list[Row] | Row | None:
        """Rows of this table selected from a join.

        If this table is aliased in `tables` (`!!! AS E`), the selected
        columns are qualified with the alias.
        """
        prefix = self._alias_prefix(tables)
        columns = [prefix + name for name in self.column_list()]
        result = self._fetch(self.builder.select_join(columns, tables, where, *binds,
                                                      distinct=True))
        return shape_result(self.rows.from_result(result), single)

    def frame_where(self, where: str | None = None, *binds: Any) -> pd.DataFrame:
        """Matching rows as a DataFrame with the declared column order.
        """
        columns = self.column_list()
        return rows_to_frame(self.select(columns, where, *binds), columns)

    # row lifecycle

    def create_row(self) -> Row:
        """New, unsaved row holding the column defaults.

        Identity values are left for the database to generate.
        """
        return self.rows.with_defaults()

    def _check_row(self, row: Any) -> None:
        if not isinstance(row, Row):
            raise TypeMismatchError(f"Got a {type(row).__name__} which isn't a Row")
        if row.table is not self:
            raise TypeMismatchError(f'Row belongs to {row.table.full_table_name}, not {self.full_table_name}')

    def exists(self, row: Row) -> int | None:
        """Number of stored rows sharing this row's primary key value.

        None if the count failed; `last_error` holds the failure.
        """
        primary = self.primary_column()
        if not primary:
            return 0
        return self.count_where(f'{primary} IN ?', row.column(primary))

    def save(self, row: Row) -> int | None:
        """Update the row if its primary key is already stored, else insert it.

        Nothing is written if the existence check fails.
        """
        self._check_row(row)
        found = self.exists(row)
        if found is None:
            return None
        if found:
            return self.update(row)
        return self.insert(row)

    def insert(self, row: Row) -> int | None:
        self._check_row(row)
        _, rc = self._run(self.builder.insert(row.as_dict()))
        if rc is not None:
            row.mark_clean()
        return rc

    def update(self, row: Row) -> int | None:
        """Write the row's modified columns; 0 when nothing but the key changed.
        """
        self._check_row(row)
        primary = self.primary_column()
        if not primary:
            raise ConfigurationError(f'{self.full_table_name} has no primary column to update by')
        query = self.builder.update(primary, row.modified_columns(), row.as_dict())
        if query is None:
            return 0
        _, rc = self._run(query)
        if rc is not None:
            row.mark_clean()
        return rc

    def delete(self, row: Row) -> int | None:
        """Delete the stored row matching this row's primary key, if any.
        """
        self._check_row(row)
        found = self.exists(row)
        if not found:
            return found
        query = self.builder.delete(self.primary_column(), row.primary_column_value())
        _, rc = self._run(query)
        return rc

    def commit(self) -> None:
        self.connection.commit()

    def rollback(self) -> None:
        self.connection.rollback()

    # provisioning

    def table_exists(self) -> bool:
        tables = self.connection.list_tables(self.schema_name, self.table_name)
        if len(tables) > 1:
            raise DatabaseError(f'More than one table named {self.full_table_name}')
        return bool(tables)

    def current_columns(self) -> list[str]:
        """Column names of the live table; empty if it does not exist.
        """
        if not self.table_exists():
            return []
        statement = self._prepare(f'SELECT * FROM {self.full_table_name} WHERE 1 = 0')
        self._execute(statement)
        return statement.column_names

    def _run_ddl(self, sql: str) -> bool:
        logger.info(sql)
        _, rc = self._run(Query(sql))
        if rc is None:
            logger.error(f'{self.last_error}')
            if self.effective_ddl_policy == FAIL_FAST:
                raise DDLError(f'{sql}: {self.last_error}')
            return False
        Cache.get_instance().clear_for_table(self.table_name)
        return True

    def ensure_schema(self) -> str | list[str] | None:
        """Create the table if it is missing, else add any missing columns.

        Returns CREATED, the list of columns added (possibly empty), or None
        if the CREATE failed under the best-effort policy. The
        `after_provision` hook runs once per successful change.
        """
        current = {name.upper() for name in self.current_columns()}
        if not current:
            query = self.builder.create_table(self.primary_column(), self.table_options)
            if not self._run_ddl(query.sql):
                return None
            self.after_provision(CREATED)
            return CREATED

        missing = [name for name in self.column_list() if name not in current]
        added = [name for name, query in zip(missing, self.builder.alter_add(missing))
                 if self._run_ddl(query.sql)]
        if added:
            self.after_provision(added)
        return added

    def after_provision(self, change: str | list[str]) -> None:
        """Hook run after `ensure_schema` changes the table.

        `change` is CREATED after a CREATE TABLE, else the list of columns
        added. The default grants full DML rights to `grant_to`, if set,
        when the table is created. Nothing is granted when `grant_to` is
        unset; set it to `'nobody'` for the classic post-create grant to NOBODY.
        """
        if change == CREATED and self.grant_to:
            self._run_ddl(f'GRANT SELECT,INSERT,UPDATE,DELETE ON TABLE {self.full_table_name} '
                          f'TO USER {self.grant_to.upper()}')
