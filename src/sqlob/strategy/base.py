"""
Base strategy interface for dialect-specific behavior.

Defines the abstract base class that all dialect strategy implementations
must inherit from. The strategy pattern keeps the mapping engine free of
dialect conditionals: placeholder style, identifier quoting, default column
types, parameter adaptation and value extraction all live here.

Each concrete strategy implements these with dialect-specific SQL and
techniques, while requests work with any database through this interface.
"""
from abc import ABC, abstractmethod
from collections.abc import Callable
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from sqlob.sql import quote_identifier as sql_quote_identifier
from sqlob.sql import standardize_placeholders
from sqlob.types import TypeConverter
from sqlob.utils import get_raw_connection

if TYPE_CHECKING:
    from sqlob.options import DatabaseOptions

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}

Extractor = Callable[[Any], Any]


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('postgresql')
        class PostgresStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for dialect-specific operations.
    """

    # CREATE TABLE may name tables that do not exist yet in FOREIGN KEY clauses
    allows_forward_references = False

    @contextmanager
    def _cursor(self, cn: Any, sql: str, params: tuple | None = None):
        """Context manager for cursor lifecycle with SQL standardization.

        Handles cursor creation, SQL execution, and cleanup.
        """
        sql = self.standardize_sql(sql)
        cursor = get_raw_connection(cn).cursor()
        try:
            cursor.execute(sql, params or ())
            yield cursor
        finally:
            cursor.close()

    def _select_column_raw(self, cn: Any, sql: str,
                           params: tuple | None = None) -> list:
        """Execute SQL and return first column as list.

        Used internally by strategy methods for catalog queries.
        """
        with self._cursor(cn, sql, params) as cursor:
            return [row[0] for row in cursor.fetchall()]

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier (e.g., 'postgresql', 'sqlite')."""

    @abstractmethod
    def build_connection_url(self, options: 'DatabaseOptions') -> str:
        """Build the database connection URL for this dialect.

        Args:
            options: DatabaseOptions containing connection parameters

        Returns
            Connection URL string suitable for SQLAlchemy
        """

    @abstractmethod
    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for this dialect.
        """

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
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ValueError(f'field {field} cannot be None or 0')

    @abstractmethod
    def register_type_adapters(self, connection: Any) -> None:
        """Register dialect-specific value converters on the driver.
        """

    @abstractmethod
    def configure_connection(self, conn: Any) -> None:
        """Configure connection settings.

        Args:
            conn: Raw DBAPI connection to configure with dialect-specific settings
        """

    @abstractmethod
    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode on a raw database connection.
        """

    @abstractmethod
    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode on a raw database connection.
        """

    @abstractmethod
    def is_autocommit(self, raw_conn: Any) -> bool:
        """Check whether a raw database connection is in auto-commit mode.
        """

    @abstractmethod
    def get_type_map(self) -> dict[type, str]:
        """Return the default SQL type spec for every supported value kind.
        """

    @abstractmethod
    def table_exists(self, cn: Any, table: str, bypass_cache: bool = False) -> bool:
        """Check whether a table exists.

        Args:
            cn: Database connection object
            table: Unquoted table name
            bypass_cache: If True, bypass cache and query database directly
        """

    def get_extractors(self) -> dict[type, Extractor]:
        """Return value decoders keyed by value kind.

        An extractor receives the raw value read from a row (never None) and
        returns the application value. Kinds without an extractor are used
        as returned by the driver.
        """
        return {}

    def adapt_value(self, value: Any) -> Any:
        """Convert an application value into a driver-ready parameter.
        """
        return TypeConverter.convert_value(value)

    def quote_identifier(self, identifier: str) -> str:
        """Quote a database identifier.

        Default implementation uses standard SQL double-quote escaping.
        """
        return sql_quote_identifier(identifier, self.dialect_name)

    def standardize_sql(self, sql: str) -> str:
        """Convert placeholders to this dialect's style.
        """
        return standardize_placeholders(sql, dialect=self.dialect_name)
