"""
Type vocabulary shared by the application and a SQL dialect.

This module provides:
- SqlTypeCode: Static SQL type code table (JDBC numbering)
- SqlobType: One (value kind, SQL type, type code) mapping
- TypeRegistry: Per-dialect set of SqlobTypes, read-only once frozen
- TypeConverter: Convert NumPy/pandas values to plain Python before binding
- SQLite value converters for dates and times stored as text
"""
import datetime
import logging
import math
import re
import threading
import uuid
from collections.abc import Iterator
from dataclasses import dataclass
from decimal import Decimal
from enum import IntEnum
from typing import Any, Self

import dateutil.parser
import numpy as np
import pandas as pd

from sqlob.exceptions import UnsupportedTypeError

logger = logging.getLogger(__name__)


class SqlTypeCode(IntEnum):
    """SQL type codes, numbered as in java.sql.Types."""
    BIT = -7
    TINYINT = -6
    SMALLINT = 5
    INTEGER = 4
    BIGINT = -5
    FLOAT = 6
    REAL = 7
    DOUBLE = 8
    NUMERIC = 2
    DECIMAL = 3
    CHAR = 1
    VARCHAR = 12
    LONGVARCHAR = -1
    DATE = 91
    TIME = 92
    TIMESTAMP = 93
    BINARY = -2
    VARBINARY = -3
    LONGVARBINARY = -4
    BLOB = 2004
    CLOB = 2005
    BOOLEAN = 16


# SQL type name (first token of a type spec) -> type code
SQL_TYPE_CODES: dict[str, SqlTypeCode] = {code.name: code for code in SqlTypeCode}
SQL_TYPE_CODES.update({
    'INT': SqlTypeCode.INTEGER,
    'INT2': SqlTypeCode.SMALLINT,
    'INT4': SqlTypeCode.INTEGER,
    'INT8': SqlTypeCode.BIGINT,
    'FLOAT4': SqlTypeCode.REAL,
    'FLOAT8': SqlTypeCode.DOUBLE,
    'BOOL': SqlTypeCode.BOOLEAN,
    'TEXT': SqlTypeCode.LONGVARCHAR,
    'CHARACTER': SqlTypeCode.CHAR,
    'BYTEA': SqlTypeCode.LONGVARBINARY,
    'DATETIME': SqlTypeCode.TIMESTAMP,
    'TIMESTAMPTZ': SqlTypeCode.TIMESTAMP,
    })

# Value kind name (as written in type mapping files) -> value kind
VALUE_KINDS: dict[str, type] = {
    'bool': bool,
    'int': int,
    'float': float,
    'str': str,
    'bytes': bytes,
    'decimal': Decimal,
    'date': datetime.date,
    'datetime': datetime.datetime,
    'time': datetime.time,
    'uuid': uuid.UUID,
}

_TYPE_NAME = re.compile(r'\s*([A-Za-z_][A-Za-z0-9_]*)')


def sql_type_code(sql_type: str) -> SqlTypeCode:
    """Resolve the type code of a SQL type spec such as ``VARCHAR(255)``.

    Raises
        UnsupportedTypeError: If the type name is not in the static table
    """
    match = _TYPE_NAME.match(sql_type)
    try:
        return SQL_TYPE_CODES[match.group(1).upper() if match else '']
    except KeyError:
        raise UnsupportedTypeError(f'Unsupported SQL type: {sql_type!r}') from None


def value_kind(name: str) -> type:
    """Resolve a value kind from its configuration name."""
    try:
        return VALUE_KINDS[name.lower()]
    except KeyError:
        raise UnsupportedTypeError(
            f'Unknown value kind: {name!r}. Available: {list(VALUE_KINDS)}') from None


@dataclass(frozen=True, slots=True)
class SqlobType:
    """A value kind mutually understood by the application and a dialect."""
    kind: type
    sql_type: str
    type_code: int

    def __repr__(self) -> str:
        return f'SqlobType({self.kind.__name__}, {self.sql_type!r}, {self.type_code})'


class TypeRegistry:
    """Mapping of value kinds to SQL types for one dialect.

    Populated once from dialect configuration and frozen afterwards, which
    makes a registry safe to share between threads.
    """

    def __init__(self, types: dict[type, str] | None = None) -> None:
        self._by_kind: dict[type, SqlobType] = {}
        self._by_code: dict[int, SqlobType] = {}
        self._frozen = False
        self._lock = threading.Lock()
        for kind, sql_type in (types or {}).items():
            self.register(kind, sql_type)

    def register(self, kind: type, sql_type: str, type_code: int | None = None) -> SqlobType:
        """Register the SQL type used to store values of `kind`.

        Args:
            kind: Application value type
            sql_type: SQL type spec used in column definitions
            type_code: SQL type code, derived from `sql_type` if omitted

        Returns
            The registered SqlobType
        """
        if type_code is None:
            type_code = sql_type_code(sql_type)
        sqlob_type = SqlobType(kind, sql_type, int(type_code))

        with self._lock:
            if self._frozen:
                raise RuntimeError('Cannot register types on a frozen registry')
            if kind in self._by_kind:
                raise ValueError(f'{kind.__name__} is already registered as {self._by_kind[kind]}')
            self._by_kind[kind] = sqlob_type
            self._by_code.setdefault(sqlob_type.type_code, sqlob_type)

        logger.debug(f'Registered {sqlob_type}')
        return sqlob_type

    def freeze(self) -> Self:
        """Make this registry read-only."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _find(self, key: type | int) -> SqlobType | None:
        if isinstance(key, type):
            if key in self._by_kind:
                return self._by_kind[key]
            for base in key.__mro__[1:]:
                if base in self._by_kind:
                    return self._by_kind[base]
            return None
        return self._by_code.get(int(key))

    def lookup(self, key: type | int) -> SqlobType:
        """Return the SqlobType for a value kind or SQL type code.

        Raises
            UnsupportedTypeError: If nothing is registered for `key`
        """
        found = self._find(key)
        if found is None:
            label = key.__name__ if isinstance(key, type) else f'type code {key}'
            raise UnsupportedTypeError(f'No SQL type registered for {label}')
        return found

    def contains(self, key: type | int) -> bool:
        return self._find(key) is not None

    __contains__ = contains

    def __iter__(self) -> Iterator[SqlobType]:
        return iter(self._by_kind.values())

    def __len__(self) -> int:
        return len(self._by_kind)

    def __repr__(self) -> str:
        return f'TypeRegistry({list(self)!r})'


# Type Converter - Handles Python -> Database value conversion

def _convert_numpy_value(val: Any) -> Any:
    """Convert NumPy value to Python type."""
    if isinstance(val, np.floating) and np.isnan(val):
        return None

    if isinstance(val, np.datetime64):
        if np.isnat(val):
            return None
        return pd.Timestamp(val).to_pydatetime()

    if isinstance(val, (np.bool_, np.floating, np.integer)):
        return val.item()

    return val


class TypeConverter:
    """Universal type conversion for statement parameters.

    Handles NumPy and pandas scalars so records built from data frames bind
    like plain Python values.
    """

    @staticmethod
    def convert_value(value: Any) -> Any:
        """Convert a single value to a database-compatible format."""
        if value is None:
            return None

        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None

        if value is pd.NaT:
            return None

        if isinstance(value, (np.generic, np.datetime64)):
            return _convert_numpy_value(value)

        if isinstance(value, pd.Timestamp):
            return value.to_pydatetime()

        if value is pd.NA:
            return None

        return value

    @staticmethod
    def convert_params(params: Any) -> Any:
        """Convert a collection of parameters for database operations."""
        if params is None:
            return None

        if isinstance(params, dict):
            return {k: TypeConverter.convert_value(v) for k, v in params.items()}

        if isinstance(params, list | tuple):
            if params and all(isinstance(p, (list, tuple)) for p in params):
                return type(params)(TypeConverter.convert_params(p) for p in params)
            return type(params)(TypeConverter.convert_value(v) for v in params)

        return TypeConverter.convert_value(params)


# SQLite converters - values stored as ISO 8601 text

def _text(val: str | bytes) -> str:
    return val.decode() if isinstance(val, bytes) else val


def convert_date(val: Any) -> datetime.date:
    """Convert ISO 8601 date text to a date object."""
    if isinstance(val, datetime.datetime):
        return val.date()
    if isinstance(val, datetime.date):
        return val
    return dateutil.parser.isoparse(_text(val)).date()


def convert_datetime(val: Any) -> datetime.datetime:
    """Convert ISO 8601 datetime text to a datetime object."""
    if isinstance(val, datetime.datetime):
        return val
    return dateutil.parser.isoparse(_text(val))


def convert_time(val: Any) -> datetime.time:
    """Convert ISO 8601 time text to a time object."""
    if isinstance(val, datetime.time):
        return val
    return datetime.time.fromisoformat(_text(val))


def convert_decimal(val: Any) -> Decimal:
    """Convert stored text or numbers to Decimal without float rounding."""
    if isinstance(val, Decimal):
        return val
    return Decimal(_text(val) if isinstance(val, (str, bytes)) else str(val))


def decimal_text(val: Decimal) -> str:
    """Canonical fixed-point text for a Decimal.

    Numerically equal values give the same text: trailing fractional zeros
    are dropped and no exponent is used, so Decimal('1.0') and
    Decimal('1.00') both become '1' and Decimal('1E+1') becomes '10'.
    """
    text = format(val, 'f')
    if '.' in text:
        text = text.rstrip('0').rstrip('.')
    if text == '-0':
        return '0'
    return text
