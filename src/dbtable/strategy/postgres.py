"""
PostgreSQL-specific strategy implementation.
"""
from typing import TYPE_CHECKING

from dbtable.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from dbtable.options import DatabaseOptions


@register_strategy('postgresql')
class PostgresStrategy(DatabaseStrategy):
    """PostgreSQL-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for PostgreSQL."""
        return 'postgresql'

    def build_connection_url(self, options: 'DatabaseOptions') -> str:
        """Build the SQLAlchemy connection URL for PostgreSQL."""
        query_parts = []
        if options.timeout:
            query_parts.append(f'connect_timeout={options.timeout}')

        url = (f'postgresql+psycopg://{options.username}:{options.password}'
               f'@{options.hostname}:{options.port}/{options.database}')

        if query_parts:
            url += '?' + '&'.join(query_parts)

        return url

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for PostgreSQL connections."""
        return ['hostname', 'username', 'password', 'database', 'port']

    def fold_identifier(self, identifier: str) -> str:
        # unquoted identifiers are stored lower case
        return identifier.lower()
