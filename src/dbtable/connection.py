"""
Database connection handling with SQLAlchemy.

This module provides:
1. The `connect()` function for creating new database connections
2. The `ConnectionWrapper` class, the connection the table layer talks to
3. Engine creation and management through a thread-safe registry

The ConnectionWrapper exposes only what tables need:
- prepare(sql) - Statement to execute with positional binds
- commit() / rollback()
- list_tables(schema, name) - catalog lookup used for table provisioning
"""
import atexit
import logging
import threading
import time
from collections.abc import Callable
from functools import wraps
from typing import Any, Self, TypeVar

import sqlalchemy as sa
from dbtable.cache import Cache
from dbtable.exceptions import DbConnectionError, PrepareError
from dbtable.options import DatabaseOptions
from dbtable.statement import Statement
from dbtable.strategy import DatabaseStrategy, get_strategy
from dbtable.utils import get_dialect_name
from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

__all__ = [
    'ConnectionWrapper',
    'connect',
    'check_connection',
    'create_url_from_options',
    'get_engine_for_options',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

T = TypeVar('T')
_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()


def create_url_from_options(options: DatabaseOptions) -> str:
    """Convert DatabaseOptions to a SQLAlchemy URL string.
    """
    if options.url:
        return options.url
    return get_strategy(options.drivername).build_connection_url(options)


def check_connection(func: Callable[..., T] | None = None, *, max_retries: int = 3,
                     retry_delay: float = 1, retry_errors: type | tuple[type, ...] | None = None,
                     retry_backoff: float = 1.5,
                     sleep_func: Callable[[float], None] = time.sleep) -> Callable[..., T]:
    """Connection retry decorator with backoff.

    Supports both @check_connection and @check_connection() syntax.
    """
    def decorator(f: Callable[..., T]) -> Callable[..., T]:
        @wraps(f)
        def inner(*args: Any, **kwargs: Any) -> T:
            error_types = retry_errors if retry_errors is not None else DbConnectionError

            tries = 0
            delay = retry_delay
            while tries < max_retries:
                try:
                    return f(*args, **kwargs)
                except error_types as err:
                    tries += 1
                    if tries >= max_retries:
                        logger.error(f'Maximum retries ({max_retries}) exceeded: {err}')
                        raise
                    logger.warning(f'Connection error (attempt {tries}/{max_retries}): {err}')
                    sleep_func(delay)
                    delay *= retry_backoff

        return inner

    if func is None:
        return decorator
    return decorator(func)


def get_engine_for_options(options: DatabaseOptions,
                           engine_factory: Callable[..., Engine] = sa.create_engine,
                           **kwargs: Any) -> Engine:
    """Get or create a SQLAlchemy engine for the given options.
    """
    key = str(options)

    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug(f'Using existing engine for {options.drivername}')
            return _engine_registry[key]

        strategy = get_strategy(options.drivername)
        engine_kwargs: dict[str, Any] = {'echo': False}
        engine_kwargs.update(strategy.get_engine_kwargs(options))

        if not options.use_pool:
            engine_kwargs['poolclass'] = NullPool
        else:
            engine_kwargs['pool_size'] = options.pool_max_connections
            engine_kwargs['pool_recycle'] = options.pool_max_idle_time
            engine_kwargs['pool_timeout'] = options.pool_wait_timeout
            engine_kwargs['max_overflow'] = 10
            engine_kwargs['pool_pre_ping'] = True
            engine_kwargs['pool_reset_on_return'] = 'rollback'

        engine_kwargs.update(kwargs)

        engine = engine_factory(create_url_from_options(options), **engine_kwargs)

        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {options.drivername}')

        return engine


def dispose_all_engines() -> None:
    """Dispose all engines in the registry.
    """
    with _engine_registry_lock:
        for engine in list(_engine_registry.values()):
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)


class ConnectionWrapper:
    """Wraps a SQLAlchemy connection for use by tables.

    1. Hands out prepared `Statement` objects bound to the DBAPI connection
    2. Tracks statement counts and execution time
    3. Delegates commit/rollback straight to the driver
    4. Answers catalog questions (which tables exist) with a TTL cache
    """

    def __init__(self, sa_connection: sa.engine.Connection | None = None,
                 options: DatabaseOptions | None = None) -> None:
        self.sa_connection = sa_connection
        self.engine = sa_connection.engine if sa_connection else None
        self.options = options
        self.dbapi_connection = sa_connection.connection if sa_connection else None
        self._dialect = get_dialect_name(sa_connection) if sa_connection else None
        self.calls = 0
        self.time = 0

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    @property
    def dialect(self) -> str:
        """Return the dialect name ('db2', 'postgresql' or 'sqlite')."""
        return self._dialect

    @property
    def strategy(self) -> DatabaseStrategy:
        return get_strategy(self.dialect)

    @property
    def dbapi_module(self) -> Any:
        """The DBAPI module SQLAlchemy loaded for this dialect."""
        return self.sa_connection.dialect.loaded_dbapi

    @property
    def paramstyle(self) -> str:
        return self.dbapi_module.paramstyle

    @property
    def dbapi_error(self) -> type[Exception]:
        """Base exception class of the underlying driver."""
        return self.dbapi_module.Error

    @property
    def closed(self) -> bool:
        return self.sa_connection is None or self.sa_connection.closed

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    def prepare(self, sql: str) -> Statement:
        """Prepare a statement for execution.

        Raises PrepareError for empty SQL or a closed connection.
        """
        if not sql or not sql.strip():
            raise PrepareError('Cannot prepare an empty statement')
        if self.closed:
            raise PrepareError(f"Can't prepare [{sql}]: connection is closed")
        return Statement(sql, self)

    def commit(self) -> None:
        """Commit the driver transaction.
        """
        self.dbapi_connection.commit()

    def rollback(self) -> None:
        """Roll back the driver transaction.
        """
        self.dbapi_connection.rollback()

    def close(self) -> None:
        """Close the SQLAlchemy connection, returning it to the engine.
        """
        if not self.closed:
            self.sa_connection.close()
            logger.debug(f'Connection closed: {self.calls} queries in {self.time:.2f}s (avg: {self.time/max(1,self.calls):.3f}s per query)')

    def list_tables(self, schema: str, name: str, bypass_cache: bool = False) -> list[str]:
        """Names of tables in `schema` matching `name`, compared case-insensitively.
        """
        cache = Cache.get_instance().get_catalog_cache(id(self))
        cache_key = ('tables', schema.upper(), name.upper())
        if not bypass_cache and cache_key in cache:
            return cache[cache_key]

        inspector = inspect(self.sa_connection)
        names = inspector.get_table_names(schema=self.strategy.fold_identifier(schema))
        tables = [table for table in names if table.upper() == name.upper()]
        if tables:
            cache[cache_key] = tables
        return tables


@check_connection
def _open(options: DatabaseOptions) -> sa.engine.Connection:
    engine = get_engine_for_options(options)
    return engine.connect()


def connect(options: DatabaseOptions | dict[str, Any] | None = None,
            **kw: Any) -> ConnectionWrapper:
    """Connect to a database using SQLAlchemy for connection management

    Args:
        options: DatabaseOptions object or dictionary of options
        **kw: Additional keyword arguments overriding options

    Returns
        ConnectionWrapper object for connecting to the database
    """
    options = DatabaseOptions.from_any(options, **kw)
    if options.check_connection:
        sa_connection = _open(options)
    else:
        sa_connection = get_engine_for_options(options).connect()
    return ConnectionWrapper(sa_connection, options)
