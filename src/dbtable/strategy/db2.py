"""
DB2-specific strategy implementation.

Reached through the `ibm_db_sa` SQLAlchemy dialect, which has to be installed
separately (the `db2` extra). DB2 stores unquoted identifiers upper case,
which is the form every table and column name takes in this package.
"""
from typing import TYPE_CHECKING

from dbtable.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from dbtable.options import DatabaseOptions


@register_strategy('db2', 'ibm_db_sa')
class DB2Strategy(DatabaseStrategy):
    """DB2-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for DB2."""
        return 'db2'

    def build_connection_url(self, options: 'DatabaseOptions') -> str:
        """Build the SQLAlchemy connection URL for DB2."""
        return (f'db2+ibm_db://{options.username}:{options.password}'
                f'@{options.hostname}:{options.port}/{options.database}')

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for DB2 connections."""
        return ['hostname', 'username', 'password', 'database', 'port']
