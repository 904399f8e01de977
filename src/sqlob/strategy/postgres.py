"""
PostgreSQL-specific strategy implementation.

This module implements the DatabaseStrategy interface for PostgreSQL through
psycopg. PostgreSQL types map closely onto Python values, so most values
bind and read back unchanged; identifiers are stored as CHAR(36) text.
"""
import datetime
import logging
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlob.cache import cacheable_strategy
from sqlob.strategy.base import DatabaseStrategy, Extractor, register_strategy
from sqlob.types import TypeConverter, convert_decimal

if TYPE_CHECKING:
    from sqlob.options import DatabaseOptions

logger = logging.getLogger(__name__)


def _driver_connection(conn: Any) -> Any:
    """Unwrap a SQLAlchemy pool proxy to the psycopg connection."""
    return getattr(conn, 'driver_connection', None) or conn


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
        if options.appname:
            query_parts.append(f'application_name={options.appname}')

        url = (f'postgresql+psycopg://{options.username}:{options.password}'
               f'@{options.hostname}:{options.port}/{options.database}')

        if query_parts:
            url += '?' + '&'.join(query_parts)

        return url

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for PostgreSQL."""
        return {}

    def register_type_adapters(self, connection: Any) -> None:
        """Register dialect-specific type adapters for PostgreSQL.

        PostgreSQL with psycopg doesn't need special adapters.
        """

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for PostgreSQL connections."""
        return ['hostname', 'username', 'password', 'database', 'port']

    def configure_connection(self, conn: Any) -> None:
        """Configure connection settings for PostgreSQL.
        """
        self.enable_autocommit(conn)

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for PostgreSQL.
        """
        _driver_connection(raw_conn).autocommit = True

    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode for PostgreSQL.
        """
        _driver_connection(raw_conn).autocommit = False

    def is_autocommit(self, raw_conn: Any) -> bool:
        """Check whether the connection commits every statement on its own.
        """
        return bool(_driver_connection(raw_conn).autocommit)

    def get_type_map(self) -> dict[type, str]:
        """Return PostgreSQL column types for each value kind."""
        return {
            bool: 'BOOLEAN',
            int: 'BIGINT',
            float: 'DOUBLE PRECISION',
            str: 'TEXT',
            bytes: 'BYTEA',
            Decimal: 'NUMERIC',
            datetime.date: 'DATE',
            datetime.datetime: 'TIMESTAMP',
            datetime.time: 'TIME',
            uuid.UUID: 'CHAR(36)',
        }

    def get_extractors(self) -> dict[type, Extractor]:
        """Decode driver values psycopg returns in a different shape."""
        return {
            bytes: bytes,
            Decimal: convert_decimal,
            uuid.UUID: lambda val: val if isinstance(val, uuid.UUID) else uuid.UUID(str(val).strip()),
        }

    def adapt_value(self, value: Any) -> Any:
        """Bind UUIDs as text to match their CHAR(36) columns.
        """
        value = TypeConverter.convert_value(value)
        if isinstance(value, uuid.UUID):
            return str(value)
        return value

    @cacheable_strategy('table_exists', ttl=300, maxsize=50)
    def table_exists(self, cn: Any, table: str, bypass_cache: bool = False) -> bool:
        """Check information_schema for a table in the current schema.
        """
        sql = """
select table_name from information_schema.tables
where table_schema = current_schema() and table_name = %s
"""
        return bool(self._select_column_raw(cn, sql, (table,)))
