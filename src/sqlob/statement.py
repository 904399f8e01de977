"""
Tracked statement handles.

A Statement wraps one DBAPI cursor opened by an ExecutionContext. SQL is
written with ``?`` placeholders and standardized to the connection's style
when the statement is prepared. Driver failures are logged with the failing
SQL and re-raised as DatabaseExecutionError.
"""
import logging
import time
from collections.abc import Callable, Sequence
from functools import wraps
from typing import Any, Self

from sqlob.exceptions import DRIVER_ERRORS, ClosedResourceError
from sqlob.exceptions import DatabaseExecutionError
from sqlob.types import TypeConverter

logger = logging.getLogger(__name__)


def dumpsql(func):
    """Decorator for logging SQL statements and parameters."""
    @wraps(func)
    def wrapper(self, params: Sequence = (), *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{self.sql}\nargs: {params}')
        try:
            return func(self, params, *args, **kwargs)
        except DRIVER_ERRORS as err:
            logger.error(f'Error with query:\nSQL:\n{self.sql}\nargs: {params}')
            raise DatabaseExecutionError(f'{type(err).__name__}: {err}', sql=self.sql) from err
        finally:
            logger.debug(f'Query time: {time.time() - start:.4f}s')
    return wrapper


def dumpsql_many(func):
    """Decorator for logging executemany operations."""
    @wraps(func)
    def wrapper(self, seq_of_parameters: Sequence, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{self.sql}\nparams: {len(seq_of_parameters)} rows')
        try:
            return func(self, seq_of_parameters, *args, **kwargs)
        except DRIVER_ERRORS as err:
            logger.error(f'Error with executemany:\nSQL:\n{self.sql}')
            raise DatabaseExecutionError(f'{type(err).__name__}: {err}', sql=self.sql) from err
        finally:
            logger.debug(f'Executemany time: {time.time() - start:.4f}s')
    return wrapper


class Statement:
    """A prepared statement bound to one cursor.

    Args:
        cursor: DBAPI cursor the statement runs on
        sql: SQL text already in the connection's placeholder style
        on_close: Called with the statement once it is closed
    """

    def __init__(self, cursor: Any, sql: str,
                 on_close: Callable[['Statement'], None] | None = None) -> None:
        self.cursor = cursor
        self.sql = sql
        self._on_close = on_close
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise ClosedResourceError(f'Statement is closed:\n{self.sql}')

    @dumpsql
    def execute(self, params: Sequence = ()) -> Self:
        """Execute once with `params` in placeholder order."""
        self._check_open()
        self.cursor.execute(self.sql, TypeConverter.convert_params(tuple(params)))
        return self

    @dumpsql_many
    def executemany(self, seq_of_parameters: Sequence[Sequence]) -> Self:
        """Execute once per parameter row as a single batch."""
        self._check_open()
        rows = [TypeConverter.convert_params(tuple(params)) for params in seq_of_parameters]
        self.cursor.executemany(self.sql, rows)
        return self

    def rows(self) -> list[dict]:
        """Fetch every remaining row as a dict keyed by column name.
        """
        self._check_open()
        if self.cursor.description is None:
            return []
        names = [column[0] for column in self.cursor.description]
        try:
            return [dict(zip(names, row)) for row in self.cursor.fetchall()]
        except DRIVER_ERRORS as err:
            raise DatabaseExecutionError(f'{type(err).__name__}: {err}', sql=self.sql) from err

    @property
    def rowcount(self) -> int:
        return self.cursor.rowcount

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the cursor. Closing twice is a no-op."""
        if self._closed:
            return
        self._closed = True
        try:
            self.cursor.close()
        except DRIVER_ERRORS as err:
            logger.warning(f'Could not close cursor: {err}')
        finally:
            if self._on_close is not None:
                self._on_close(self)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = 'closed' if self._closed else 'open'
        return f'<Statement {state}: {self.sql!r}>'
