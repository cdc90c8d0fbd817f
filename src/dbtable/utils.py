"""Low-level connection utilities with no internal dependencies.
"""
import logging
from typing import Any

logger = logging.getLogger(__name__)


def get_dialect_name(obj: Any) -> str:
    """Get dialect name for a database connection or engine.
    """
    if hasattr(obj, 'dialect'):
        dialect = obj.dialect
        if isinstance(dialect, str):
            return dialect.lower()
        return str(dialect.name).lower()

    if hasattr(obj, 'engine') and hasattr(obj.engine, 'dialect'):
        return str(obj.engine.dialect.name).lower()

    if hasattr(obj, 'sa_connection') and hasattr(obj.sa_connection, 'engine'):
        return str(obj.sa_connection.engine.dialect.name).lower()

    type_name = f'{type(obj).__module__}.{type(obj).__name__}'
    if 'psycopg' in type_name:
        return 'postgresql'
    if 'sqlite3' in type_name:
        return 'sqlite'
    if 'ibm_db' in type_name:
        return 'db2'

    raise AttributeError(f'Cannot determine dialect for {type(obj)}')


def as_list(value: Any) -> list:
    """Wrap a scalar in a list; pass lists and tuples through; None -> [].
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def rstrip_value(value: Any) -> Any:
    """Strip CHAR padding from string values; leave everything else alone.
    """
    if isinstance(value, str):
        return value.rstrip()
    return value
