"""
SQLite-specific strategy implementation.

SQLite has no schemas in the DB2 sense; a table's schema name must be the
name of an attached database (`MAIN` for the primary one). Catalog names
compare case-insensitively.
"""
import sqlite3
from typing import TYPE_CHECKING, Any

from dbtable.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from dbtable.options import DatabaseOptions


@register_strategy('sqlite')
class SQLiteStrategy(DatabaseStrategy):
    """SQLite-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    def build_connection_url(self, options: 'DatabaseOptions') -> str:
        """Build the SQLAlchemy connection URL for SQLite."""
        return f'sqlite:///{options.database}'

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for SQLite."""
        return {
            'connect_args': {
                'detect_types': sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES
            }
        }

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for SQLite connections."""
        return ['database']

    def fold_identifier(self, identifier: str) -> str:
        return identifier.lower()
