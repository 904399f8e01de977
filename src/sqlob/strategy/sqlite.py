"""
SQLite-specific strategy implementation.

This module implements the DatabaseStrategy interface for SQLite. It handles
SQLite's loose typing:
- Dates, times and timestamps are stored as ISO 8601 text
- Booleans are stored as integers
- Decimals and UUIDs are stored as text
- Foreign keys are only enforced once enabled per connection
"""
import datetime
import logging
import sqlite3
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlob.cache import cacheable_strategy
from sqlob.strategy.base import DatabaseStrategy, Extractor, register_strategy
from sqlob.types import TypeConverter, convert_date, convert_datetime
from sqlob.types import convert_decimal, convert_time, decimal_text

if TYPE_CHECKING:
    from sqlob.options import DatabaseOptions

logger = logging.getLogger(__name__)


def _driver_connection(conn: Any) -> Any:
    """Unwrap a SQLAlchemy pool proxy to the sqlite3 connection."""
    return getattr(conn, 'driver_connection', None) or conn


@register_strategy('sqlite')
class SQLiteStrategy(DatabaseStrategy):
    """SQLite-specific operations.
    """

    allows_forward_references = True

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

    def register_type_adapters(self, connection: Any) -> None:
        """Register converters for date and time columns.

        Replaces the sqlite3 defaults, which cannot parse ISO 8601 text with a
        'T' separator or a UTC offset.
        """
        sqlite3.register_converter('date', convert_date)
        sqlite3.register_converter('timestamp', convert_datetime)
        sqlite3.register_converter('datetime', convert_datetime)
        sqlite3.register_converter('time', convert_time)

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for SQLite connections."""
        return ['database']

    def configure_connection(self, conn: Any) -> None:
        """Configure connection settings for SQLite.
        """
        sqlite_conn = _driver_connection(conn)
        sqlite_conn.execute('PRAGMA foreign_keys = ON')
        self.enable_autocommit(sqlite_conn)

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for SQLite.
        """
        _driver_connection(raw_conn).isolation_level = None

    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode for SQLite.
        """
        _driver_connection(raw_conn).isolation_level = 'DEFERRED'

    def is_autocommit(self, raw_conn: Any) -> bool:
        """Check whether the connection commits every statement on its own.
        """
        return _driver_connection(raw_conn).isolation_level is None

    def get_type_map(self) -> dict[type, str]:
        """Return SQLite column types for each value kind."""
        return {
            bool: 'BOOLEAN',
            int: 'INTEGER',
            float: 'DOUBLE',
            str: 'TEXT',
            bytes: 'BLOB',
            Decimal: 'TEXT',
            datetime.date: 'DATE',
            datetime.datetime: 'TIMESTAMP',
            datetime.time: 'TIME',
            uuid.UUID: 'CHAR(36)',
        }

    def get_extractors(self) -> dict[type, Extractor]:
        """Decode SQLite's text and integer storage back to application values."""
        return {
            bool: bool,
            Decimal: convert_decimal,
            datetime.date: convert_date,
            datetime.datetime: convert_datetime,
            datetime.time: convert_time,
            uuid.UUID: lambda val: val if isinstance(val, uuid.UUID) else uuid.UUID(str(val)),
            bytes: bytes,
        }

    def adapt_value(self, value: Any) -> Any:
        """Store temporal values as ISO 8601 text and booleans as integers.

        Decimals are stored as canonical fixed-point text so that equal values
        compare equal in SQL.
        """
        value = TypeConverter.convert_value(value)
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, datetime.datetime | datetime.date | datetime.time):
            return value.isoformat()
        if isinstance(value, Decimal):
            return decimal_text(value)
        if isinstance(value, uuid.UUID):
            return str(value)
        return value

    @cacheable_strategy('table_exists', ttl=300, maxsize=50)
    def table_exists(self, cn: Any, table: str, bypass_cache: bool = False) -> bool:
        """Check the schema catalog for a table.
        """
        sql = "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?"
        return bool(self._select_column_raw(cn, sql, (table,)))
