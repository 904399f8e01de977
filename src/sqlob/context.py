"""
Execution contexts.

An ExecutionContext owns one connection for the span of a transaction, every
statement opened on it, and the per-request bookkeeping that makes reference
cascades terminate: identifiers already stored, inserts in progress, rows
loaded, and links waiting for their target row.

Usage:
    with ExecutionContext(cn) as ctx:
        InsertRequest([person]).execute(ctx)
        SelectRequest(Person).execute(ctx)
"""
import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Self

from sqlob.config import Configuration, get_configuration
from sqlob.exceptions import DRIVER_ERRORS, ClosedResourceError
from sqlob.exceptions import DatabaseExecutionError
from sqlob.statement import Statement
from sqlob.strategy import get_db_strategy
from sqlob.types import TypeConverter
from sqlob.utils import get_dialect_name, get_raw_connection

if TYPE_CHECKING:
    from sqlob.field import SqlobField
    from sqlob.schema import SqlobClass

logger = logging.getLogger(__name__)


class ExecutionContext:
    """Resource scope owning one connection and the statements opened on it.

    Used as a context manager the connection runs in a transaction that is
    committed on success and rolled back on error; every statement is closed
    on exit either way. Not safe for concurrent use.

    Args:
        connection: ConnectionWrapper, SQLAlchemy connection, or raw sqlite3 /
            psycopg connection
        config: Mapping configuration; defaults to the connection's own, then
            to the shared configuration of its dialect
        close_connection: Close `connection` when the context closes
    """

    def __init__(self, connection: Any, config: Configuration | None = None,
                 close_connection: bool = False) -> None:
        if connection is None:
            raise ValueError('connection cannot be None')
        self.connection = connection
        self.dialect = get_dialect_name(connection)
        self.strategy = get_db_strategy(connection)
        self.config = config or getattr(connection, 'configuration', None) or get_configuration(self.dialect)
        if self.config.dialect != self.dialect:
            raise ValueError(f'Configuration for {self.config.dialect} used with a {self.dialect} connection')
        self._close_connection = close_connection
        self._statements: list[Statement] = []
        self._closed = False
        self._restore_autocommit = False
        self._depth = 0
        self._stored: dict[int, tuple[Any, uuid.UUID]] = {}
        self._in_flight: dict[int, tuple[Any, uuid.UUID]] = {}
        self._loaded: dict[tuple[type, uuid.UUID], Any] = {}
        self._resolving: set[int] = set()
        self._links: list[tuple['SqlobField', uuid.UUID, Any]] = []

    # resources

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise ClosedResourceError('ExecutionContext is closed')

    def prepare(self, sql: str) -> Statement:
        """Open a tracked statement for SQL written with ``?`` placeholders.
        """
        self._check_open()
        try:
            cursor = get_raw_connection(self.connection).cursor()
        except DRIVER_ERRORS as err:
            raise DatabaseExecutionError(f'Could not open cursor: {err}', sql=sql) from err
        statement = Statement(cursor, self.strategy.standardize_sql(sql), on_close=self._release)
        self._statements.append(statement)
        return statement

    def _release(self, statement: Statement) -> None:
        if statement in self._statements:
            self._statements.remove(statement)

    @property
    def open_statements(self) -> int:
        return len(self._statements)

    def commit(self) -> None:
        self._check_open()
        try:
            get_raw_connection(self.connection).commit()
        except DRIVER_ERRORS as err:
            raise DatabaseExecutionError(f'Commit failed: {err}') from err

    def rollback(self) -> None:
        self._check_open()
        try:
            get_raw_connection(self.connection).rollback()
        except DRIVER_ERRORS as err:
            raise DatabaseExecutionError(f'Rollback failed: {err}') from err

    def close(self) -> None:
        """Close every open statement, then the connection if owned.
        Closing twice is a no-op.
        """
        if self._closed:
            return
        for statement in list(self._statements):
            statement.close()
        self._statements.clear()
        self._reset()
        self._closed = True
        if self._close_connection:
            self.connection.close()
        logger.debug(f'Closed execution context for {self.dialect}')

    def __enter__(self) -> Self:
        self._check_open()
        raw_conn = get_raw_connection(self.connection)
        if self.strategy.is_autocommit(raw_conn):
            self.strategy.disable_autocommit(raw_conn)
            self._restore_autocommit = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        try:
            if exc_type is None:
                self.commit()
            else:
                logger.warning(f'Rolling back after {exc_type.__name__}: {exc_val}')
                try:
                    self.rollback()
                except DatabaseExecutionError as err:
                    logger.error(f'Rollback failed: {err}')
        finally:
            if self._restore_autocommit:
                self.strategy.enable_autocommit(get_raw_connection(self.connection))
                self._restore_autocommit = False
            self.close()

    # values

    @property
    def quote(self):
        """Identifier quoting function of the connection's dialect."""
        return self.strategy.quote_identifier

    def adapt(self, value: Any) -> Any:
        """Driver-ready parameter for an application value."""
        return self.strategy.adapt_value(value)

    @staticmethod
    def normalize(value: Any) -> Any:
        """Plain Python value for comparisons (NumPy / pandas scalars unwrapped)."""
        return TypeConverter.convert_value(value)

    def describe(self, cls: type) -> 'SqlobClass':
        return self.config.describe(cls)

    # request bookkeeping

    @contextmanager
    def scope(self) -> Iterator[Self]:
        """Span of one top-level request; bookkeeping is cleared on exit.
        """
        self._check_open()
        self._depth += 1
        try:
            yield self
        finally:
            self._depth -= 1
            if self._depth == 0:
                if self._links:
                    logger.warning(f'Discarding {len(self._links)} unresolved reference link(s)')
                self._reset()

    def _reset(self) -> None:
        self._stored.clear()
        self._in_flight.clear()
        self._loaded.clear()
        self._resolving.clear()
        self._links.clear()

    def stored_id(self, obj: Any) -> uuid.UUID | None:
        """Identifier of `obj` if it was stored or loaded during this request."""
        entry = self._stored.get(id(obj))
        return entry[1] if entry is not None else None

    def remember(self, obj: Any, row_id: uuid.UUID) -> None:
        self._stored[id(obj)] = (obj, row_id)

    def in_flight_id(self, obj: Any) -> uuid.UUID | None:
        """Identifier assigned to `obj` if its insert is in progress."""
        entry = self._in_flight.get(id(obj))
        return entry[1] if entry is not None else None

    def begin_insert(self, pending: list[tuple[Any, uuid.UUID]]) -> None:
        for obj, row_id in pending:
            self._in_flight[id(obj)] = (obj, row_id)

    def finish_insert(self, pending: list[tuple[Any, uuid.UUID]]) -> None:
        """Mark inserted objects as stored and apply links now satisfiable."""
        for obj, row_id in pending:
            self._in_flight.pop(id(obj), None)
            self.remember(obj, row_id)
        self._flush_links()

    def abort_insert(self, pending: list[tuple[Any, uuid.UUID]]) -> None:
        for obj, _ in pending:
            self._in_flight.pop(id(obj), None)

    def defer_link(self, field: 'SqlobField', row_id: uuid.UUID, target: Any) -> None:
        """Queue a reference to be written once `target` is stored."""
        self._links.append((field, row_id, target))

    def _flush_links(self) -> None:
        waiting = []
        for field, row_id, target in self._links:
            target_id = self.stored_id(target)
            if target_id is None:
                waiting.append((field, row_id, target))
            else:
                field.descriptor.link(row_id, field, target_id, self)
        self._links = waiting

    @contextmanager
    def resolving(self, obj: Any) -> Iterator[None]:
        """Mark `obj` while its stored identifier is being looked up."""
        key = id(obj)
        nested = key in self._resolving
        self._resolving.add(key)
        try:
            yield
        finally:
            if not nested:
                self._resolving.discard(key)

    def is_resolving(self, obj: Any) -> bool:
        return id(obj) in self._resolving

    def loaded(self, cls: type, row_id: uuid.UUID) -> Any | None:
        """Instance already materialized for (`cls`, `row_id`) in this request."""
        return self._loaded.get((cls, row_id))

    def remember_loaded(self, cls: type, row_id: uuid.UUID, obj: Any) -> None:
        self._loaded[(cls, row_id)] = obj
        self.remember(obj, row_id)

    def __repr__(self) -> str:
        state = 'closed' if self._closed else f'{len(self._statements)} open statement(s)'
        return f'<ExecutionContext {self.dialect}: {state}>'
