"""
Database connection handling with SQLAlchemy.

This module provides:
1. The `connect()` function for opening connections from DatabaseOptions
2. The `ConnectionWrapper` class that wraps SQLAlchemy connections
3. A thread-safe engine registry, disposed at program exit
4. The `check_connection` retry decorator

SQLAlchemy is used exclusively for connection management and pooling;
statements run on the underlying DBAPI connection. Requests and execution
contexts accept a ConnectionWrapper, a SQLAlchemy connection or a raw
sqlite3 / psycopg connection alike.
"""
import atexit
import logging
import threading
import time
from dataclasses import fields
from functools import wraps
from typing import Any, Self

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

from sqlob.config import Configuration, get_configuration
from sqlob.exceptions import DbConnectionError
from sqlob.options import DatabaseOptions
from sqlob.strategy import get_strategy
from sqlob.utils import ensure_commit

__all__ = [
    'ConnectionWrapper',
    'check_connection',
    'connect',
    'dispose_all_engines',
    'get_engine_for_options',
]

logger = logging.getLogger(__name__)

# Thread-safe engine registry
_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()


def check_connection(func=None, *, max_retries=3, retry_delay=1,
                     retry_errors=None, retry_backoff=1.5, sleep_func=time.sleep):
    """Connection retry decorator with backoff

    Supports both @check_connection and @check_connection() syntax

    Args:
        func: The function to decorate
        max_retries: Maximum number of attempts
        retry_delay: Initial delay between retries in seconds
        retry_errors: Exception types that trigger a retry (default: DbConnectionError)
        retry_backoff: Multiplier for delay between retries (exponential backoff)
        sleep_func: Function to use for delay between retries (default: time.sleep)

    Returns
        Decorated function with retry logic
    """
    def decorator(f):
        @wraps(f)
        def inner(*args, **kwargs):
            error_types = DbConnectionError if retry_errors is None else retry_errors

            tries = 0
            delay = retry_delay
            while True:
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


def get_engine_for_options(options: DatabaseOptions, engine_factory=sa.create_engine,
                           **kwargs: Any) -> Engine:
    """Get or create a SQLAlchemy engine for the given options.

    Args:
        options: DatabaseOptions object
        engine_factory: Function to create engines (defaults to sqlalchemy.create_engine)
        **kwargs: Additional arguments passed to engine factory

    Returns
        sqlalchemy.engine.Engine: SQLAlchemy engine
    """
    key = repr(options)

    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug(f'Using existing engine for {options.drivername}')
            return _engine_registry[key]

        strategy = get_strategy(options.drivername)
        url = strategy.build_connection_url(options)

        engine_kwargs = {'echo': False}
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

        engine = engine_factory(url, **engine_kwargs)
        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {options.drivername}')

        return engine


def dispose_all_engines() -> None:
    """Dispose all engines in the registry."""
    with _engine_registry_lock:
        for engine in _engine_registry.values():
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)


class ConnectionWrapper:
    """Wraps a SQLAlchemy connection and the mapping configuration it uses.

    Provides access to the underlying DBAPI connection via `dbapi_connection`
    and delegates other attribute access to the SQLAlchemy connection.
    """

    def __init__(self, sa_connection: sa.engine.Connection, options: DatabaseOptions,
                 configuration: Configuration | None = None) -> None:
        self.sa_connection = sa_connection
        self.engine = sa_connection.engine
        self.options = options
        self.dbapi_connection = sa_connection.connection
        self.configuration = configuration or get_configuration(
            options.drivername, options.type_mapping, options.primary_key)

    @property
    def dialect(self) -> str:
        return self.options.drivername

    @property
    def closed(self) -> bool:
        return bool(getattr(self.sa_connection, 'closed', False))

    @property
    def is_pooled(self) -> bool:
        """Check if this connection is using SQLAlchemy's connection pooling
        """
        return not isinstance(self.engine.pool, NullPool)

    def __getattr__(self, name: str) -> Any:
        """Delegate attribute access to the SQLAlchemy connection or the raw connection.
        """
        if name in {'sa_connection', 'dbapi_connection'}:
            raise AttributeError(name)
        if hasattr(self.sa_connection, name):
            return getattr(self.sa_connection, name)
        return getattr(self.dbapi_connection, name)

    def cursor(self) -> Any:
        """Get a DBAPI cursor, reconnecting first if the connection was closed.
        """
        if self.closed:
            self.sa_connection = self.engine.connect()
            self.dbapi_connection = self.sa_connection.connection
            configure_connection(self.sa_connection)
        return self.dbapi_connection.cursor()

    def commit(self) -> None:
        self.dbapi_connection.commit()

    def rollback(self) -> None:
        self.dbapi_connection.rollback()

    def close(self) -> None:
        """Close the SQLAlchemy connection, committing first if needed
        """
        if not self.closed:
            ensure_commit(self.dbapi_connection)
            self.sa_connection.close()
            logger.debug(f'Connection to {self.dialect} closed')

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = 'closed' if self.closed else 'open'
        return f'<ConnectionWrapper {self.dialect} {state}>'


def configure_connection(sa_connection: sa.engine.Connection) -> None:
    """Apply the dialect strategy's connection settings and type adapters.
    """
    strategy = get_strategy(sa_connection.dialect.name)
    strategy.register_type_adapters(sa_connection.connection)
    strategy.configure_connection(sa_connection.connection)


def _load_options(options: DatabaseOptions | dict[str, Any] | str | None,
                  config: Any | None, **kw: Any) -> DatabaseOptions:
    if isinstance(options, DatabaseOptions):
        for field in fields(options):
            kw.pop(field.name, None)
        return options
    if isinstance(options, str):
        if config is None:
            raise ValueError(f'A config is required to load options {options!r}')
        return DatabaseOptions.from_config(options, config, **kw)
    if isinstance(options, dict):
        return DatabaseOptions(**{**options, **kw})
    if options is None:
        return DatabaseOptions(**kw)
    raise TypeError(f'Unsupported options type: {type(options).__name__}')


def connect(options: DatabaseOptions | dict[str, Any] | str | None = None,
            config: Any | None = None, **kw: Any) -> ConnectionWrapper:
    """Connect to a database using SQLAlchemy for connection management

    Args:
        options: Can be:
                - DatabaseOptions object
                - Name of a section in `config`
                - Dictionary of options
                - None, with options given as keyword arguments
        config: Config module, object or mapping (for named sections)
        **kw: Additional keyword arguments to override options

    Returns
        ConnectionWrapper object for the database

    Examples
        >>> cn = connect(drivername='sqlite', database=':memory:')
        >>> cn.dialect
        'sqlite'
        >>> cn.close()
    """
    options = _load_options(options, config, **kw)
    engine = get_engine_for_options(options)

    def _open() -> sa.engine.Connection:
        return engine.connect()

    if options.check_connection:
        _open = check_connection(_open)

    sa_connection = _open()
    configure_connection(sa_connection)
    return ConnectionWrapper(sa_connection, options)
