"""
Base strategy interface for dialect-specific behavior.

The table layer writes one flavor of SQL. What varies between engines is how
to reach them (URL, engine kwargs, required options) and how the catalog
stores unquoted identifiers, which matters when listing tables.
"""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from dbtable.options import DatabaseOptions

# Registry of dialect name -> strategy class
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(*dialects: str):
    """Decorator to register a strategy class for one or more dialect names.

    Usage:
        @register_strategy('db2', 'ibm_db_sa')
        class DB2Strategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        for dialect in dialects:
            _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for dialect-specific operations.
    """

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier (e.g., 'db2', 'sqlite')."""

    @abstractmethod
    def build_connection_url(self, options: 'DatabaseOptions') -> str:
        """Build the database connection URL for this dialect.

        Args:
            options: DatabaseOptions containing connection parameters

        Returns
            Connection URL string suitable for SQLAlchemy
        """

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for this dialect."""
        return {}

    @classmethod
    @abstractmethod
    def get_required_options(cls) -> list[str]:
        """Return list of required option field names for this dialect.
        """

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Validate options for this dialect.

        Raises
            ValueError: If any required field is None or 0
        """
        if options.url:
            return
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ValueError(f'field {field} cannot be None or 0')

    def fold_identifier(self, identifier: str) -> str:
        """Case an unquoted identifier the way the catalog stores it.
        """
        return identifier.upper()
