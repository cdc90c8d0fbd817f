"""
The table registry.

A `Database` owns one connection and every table registered against it. It
is where `!name!` table references are resolved and where each table's row
type is looked up.
"""
import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Self

from dbtable.connection import ConnectionWrapper, connect
from dbtable.exceptions import ConfigurationError, UnknownTableError
from dbtable.options import BEST_EFFORT, DDL_POLICIES, DatabaseOptions

if TYPE_CHECKING:
    from dbtable.row import Row
    from dbtable.table import Table

logger = logging.getLogger(__name__)

RowConstructor = Callable[['Table', Mapping[str, Any]], 'Row']


class Database:
    """Registry of table gateways sharing one connection.

    Args:
        connection: Anything with the ConnectionWrapper surface
            (prepare, commit, rollback, list_tables)
        ddl_policy: `best_effort` (log DDL failures) or `fail_fast` (raise)
    """

    def __init__(self, connection: ConnectionWrapper | Any,
                 ddl_policy: str = BEST_EFFORT) -> None:
        if ddl_policy not in DDL_POLICIES:
            raise ConfigurationError(f'ddl_policy must be one of: {DDL_POLICIES}')
        self.connection = connection
        self.ddl_policy = ddl_policy
        self._tables: dict[str, 'Table'] = {}
        self._aliases: dict[str, 'Table'] = {}
        self._row_factories: dict[str, RowConstructor] = {}

    @classmethod
    def connect(cls, options: DatabaseOptions | dict[str, Any] | None = None,
                **kw: Any) -> Self:
        """Open a connection (see `dbtable.connect`) and wrap it.
        """
        cn = connect(options, **kw)
        return cls(cn, ddl_policy=cn.options.ddl_policy)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    def __contains__(self, name: str) -> bool:
        key = name.upper()
        return key in self._tables or key in self._aliases

    def register(self, table_cls: type['Table'], row_factory: RowConstructor | None = None,
                 name: str | None = None) -> 'Table':
        """Create the gateway for `table_cls` and register it.

        The table is found again by `name` (default: the class name) or by
        its table name. `row_factory` overrides the table's `row_class`.
        """
        key = (name or table_cls.__name__).upper()
        if key in self._tables:
            raise ConfigurationError(f'Table {key} already registered')
        table = table_cls(self)
        self._tables[key] = table
        self._aliases.setdefault(table.table_name, table)
        self._aliases.setdefault(table_cls.__name__.upper(), table)
        if row_factory is not None:
            self.register_row_type(key, row_factory)
        logger.debug(f'Registered {table!r} as {key}')
        return table

    def register_row_type(self, name: str, row_factory: RowConstructor) -> None:
        """Use `row_factory` to build rows of the table registered as `name`.
        """
        table = self.get_table(name)
        self._row_factories[table.full_table_name] = row_factory

    def row_factory_for(self, table: 'Table') -> RowConstructor:
        return self._row_factories.get(table.full_table_name, table.row_class)

    def get_table(self, name: str) -> 'Table':
        """Registered table by registration name or table name (any case).
        """
        key = name.upper()
        table = self._tables.get(key) or self._aliases.get(key)
        if table is None:
            raise UnknownTableError(f'No table registered as {name}')
        return table

    def full_table_name(self, name: str) -> str:
        return self.get_table(name).full_table_name

    @property
    def tables(self) -> list['Table']:
        return list(self._tables.values())

    def ensure_schema(self) -> dict[str, Any]:
        """Provision every registered table, in registration order.
        """
        return {key: table.ensure_schema() for key, table in self._tables.items()}

    def commit(self) -> None:
        self.connection.commit()

    def rollback(self) -> None:
        self.connection.rollback()

    def close(self) -> None:
        self.connection.close()
