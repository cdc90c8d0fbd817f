"""
SQL generation for a single table.

`SQLBuilder` turns a `SchemaRegistry` plus caller-supplied predicates into
parameterized statements. It never executes anything: every method returns
a `Query` (SQL text and the ordered bind values) or, where there is nothing
to do, None.

Free-text fragments (WHERE clauses, join specs, CONSTRAINT and FOREIGN KEY
text) go through table-reference substitution first:

    !!!      -> this table's SCHEMA.TABLE
    !Other!  -> SCHEMA.TABLE of the table registered as 'Other'

Primary key matches are written `PK IN ?`, binding a scalar or a tuple;
the statement layer expands the placeholder for the driver.
"""
import logging
import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any, NamedTuple

from dbtable.exceptions import UnknownTableError
from dbtable.schema import ColumnSchema, SchemaRegistry
from dbtable.utils import as_list

logger = logging.getLogger(__name__)

DEFAULT_IDENTITY = '(START WITH 0, INCREMENT BY 1, NO CACHE)'
DEFAULT_TABLE_OPTIONS = 'DATA CAPTURE NONE'

_OTHER_TABLE = re.compile(r'!(\S+?)!')


class Query(NamedTuple):
    sql: str
    params: tuple = ()


class SQLBuilder:
    """Builds the SELECT/INSERT/UPDATE/DELETE/CREATE/ALTER statements of one table.

    Args:
        registry: The table's schema registry
        full_table_name: SCHEMA.TABLE, upper case
        resolve: Maps another table's registered name to its full name;
            raises UnknownTableError for names it does not know
    """

    def __init__(self, registry: SchemaRegistry, full_table_name: str,
                 resolve: Callable[[str], str] | None = None) -> None:
        self.registry = registry
        self.full_table_name = full_table_name
        self.resolve = resolve

    def replace_table_refs(self, text: str) -> str:
        """Substitute `!!!` and `!name!` placeholders with full table names.
        """
        text = text.replace('!!!', self.full_table_name)
        return _OTHER_TABLE.sub(lambda m: self._resolve(m.group(1)), text)

    def _resolve(self, name: str) -> str:
        if self.resolve is None:
            raise UnknownTableError(f'Cannot resolve table reference !{name}!: no registry')
        return self.resolve(name)

    @staticmethod
    def _column_text(columns: str | Iterable[str]) -> str:
        if isinstance(columns, str):
            return columns
        return ', '.join(columns)

    def select(self, columns: str | Iterable[str], where: str | None = None,
               *binds: Any, distinct: bool = False) -> Query:
        """SELECT [DISTINCT] <columns> FROM <this table> [WHERE <where>]
        """
        return self.select_join(columns, self.full_table_name, where, *binds,
                                distinct=distinct)

    def select_distinct(self, columns: str | Iterable[str], where: str | None = None,
                        *binds: Any) -> Query:
        return self.select(columns, where, *binds, distinct=True)

    def select_join(self, columns: str | Iterable[str], tables: str,
                    where: str | None = None, *binds: Any,
                    distinct: bool = False) -> Query:
        """SELECT [DISTINCT] <columns> FROM <tables> [WHERE <where>]

        Both `tables` and `where` may carry table references.
        """
        keyword = 'SELECT DISTINCT ' if distinct else 'SELECT '
        sql = keyword + self._column_text(columns) + ' FROM ' + self.replace_table_refs(tables)
        if where:
            sql += ' WHERE ' + self.replace_table_refs(where)
        return Query(sql, tuple(binds))

    def insert(self, values: Mapping[str, Any]) -> Query:
        """INSERT of every column except NOCREATE ones and the identity column.
        """
        columns = self.registry.insertable_columns()
        sql = ('INSERT INTO ' + self.full_table_name + ' (' + ', '.join(columns) +
               ') VALUES(' + ', '.join('?' for _ in columns) + ')')
        return Query(sql, tuple(values.get(c) for c in columns))

    def update(self, primary: str, modified: Iterable[str],
               values: Mapping[str, Any]) -> Query | None:
        """UPDATE of the modified columns, matched on the primary column.

        The primary column itself is never rewritten. Returns None when no
        other column is modified.
        """
        modified = {name.upper() for name in modified}
        columns = [c for c in self.registry.column_list() if c in modified and c != primary]
        if not columns:
            return None
        sql = ('UPDATE ' + self.full_table_name + ' SET ' +
               ', '.join(f'{c} = ?' for c in columns) +
               ' WHERE ' + primary + ' IN ?')
        return Query(sql, tuple(values.get(c) for c in columns) + (values.get(primary),))

    def delete(self, primary: str | None, value: Any) -> Query | None:
        """DELETE matched on the primary column; None for tables without one.
        """
        if not primary:
            return None
        return Query('DELETE FROM ' + self.full_table_name + ' WHERE ' + primary + ' IN ?',
                     (value,))

    def column_definition(self, column: ColumnSchema) -> str:
        """Column clause shared by CREATE TABLE and ALTER TABLE ... ADD.

        BOOL columns are stored as CHAR restricted to 'Y'/'N'.
        """
        text = column.name + ' ' + ('CHAR' if column.is_bool else column.sql_type)
        if column.length is not None:
            text += f' ({column.length})'
        if column.options:
            text += ' ' + column.options
        if column.is_bool:
            text += f" CHECK ({column.name} IN ('Y','N'))"
        if column.generated_identity is not None and column.generated_identity is not False:
            text += ' GENERATED ALWAYS AS IDENTITY '
            if column.generated_identity is True or column.generated_identity == 'default':
                text += DEFAULT_IDENTITY
            else:
                text += column.generated_identity
        return self.replace_table_refs(text)

    def create_table(self, primary: str | None,
                     table_options: str | None = DEFAULT_TABLE_OPTIONS) -> Query:
        """CREATE TABLE with column definitions, then constraints (ending with
        the primary key), then foreign keys, then the table options.
        """
        definitions = []
        constraints = []
        foreign_keys = []
        for name in self.registry.column_list():
            column = self.registry.get_column(name)
            definitions.append(self.column_definition(column))
            constraints.extend(self.replace_table_refs('CONSTRAINT ' + text)
                               for text in as_list(column.constraint))
            foreign_keys.extend(
                self.replace_table_refs(f'FOREIGN KEY ({column.name}) REFERENCES {text}')
                for text in as_list(column.foreign_key))
        if primary:
            constraints.append(f'PRIMARY KEY ({primary})')

        sql = ('CREATE TABLE ' + self.full_table_name + ' (' +
               ', '.join(definitions + constraints + foreign_keys) + ')')
        if table_options:
            sql += ' ' + table_options
        return Query(sql)

    def alter_add(self, names: Iterable[str]) -> list[Query]:
        """One ALTER TABLE ... ADD statement per new column.
        """
        return [Query('ALTER TABLE ' + self.full_table_name + ' ADD ' +
                      self.column_definition(self.registry.get_column(name)))
                for name in names]
