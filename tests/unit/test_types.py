import datetime
import math
import uuid
from decimal import Decimal

import numpy as np
import pandas as pd
import pytest
from sqlob import SqlTypeCode, TypeRegistry, UnsupportedTypeError
from sqlob.types import TypeConverter, convert_date, convert_datetime
from sqlob.types import convert_decimal, convert_time, decimal_text, sql_type_code
from sqlob.types import value_kind


def test_lookup_by_kind_and_code():
    """Test both lookup directions of the registry"""
    registry = TypeRegistry({str: 'TEXT', int: 'INTEGER', uuid.UUID: 'CHAR(36)'})

    text = registry.lookup(str)
    assert text.sql_type == 'TEXT'
    assert text.type_code == SqlTypeCode.LONGVARCHAR
    assert registry.lookup(SqlTypeCode.INTEGER).kind is int
    assert registry.lookup(uuid.UUID).type_code == SqlTypeCode.CHAR
    assert len(registry) == 3


def test_lookup_follows_mro():
    """Test a subclass resolves to its registered base"""
    registry = TypeRegistry({int: 'INTEGER', bool: 'BOOLEAN'})
    assert registry.lookup(bool).sql_type == 'BOOLEAN'

    class Count(int):
        pass

    assert registry.lookup(Count).sql_type == 'INTEGER'
    assert Count in registry


def test_unsupported_kind_and_code():
    registry = TypeRegistry({int: 'INTEGER'})
    with pytest.raises(UnsupportedTypeError):
        registry.lookup(complex)
    with pytest.raises(UnsupportedTypeError):
        registry.lookup(SqlTypeCode.BLOB)
    assert not registry.contains(complex)


def test_frozen_registry_rejects_registration():
    registry = TypeRegistry({int: 'INTEGER'}).freeze()
    assert registry.frozen
    with pytest.raises(RuntimeError):
        registry.register(str, 'TEXT')


def test_duplicate_registration_rejected():
    registry = TypeRegistry({int: 'INTEGER'})
    with pytest.raises(ValueError):
        registry.register(int, 'BIGINT')


def test_sql_type_code_parses_type_specs():
    assert sql_type_code('VARCHAR(255)') == SqlTypeCode.VARCHAR
    assert sql_type_code('double precision') == SqlTypeCode.DOUBLE
    assert sql_type_code('NUMERIC(18, 6)') == SqlTypeCode.NUMERIC
    assert sql_type_code('BYTEA') == SqlTypeCode.LONGVARBINARY
    with pytest.raises(UnsupportedTypeError):
        sql_type_code('GEOMETRY')


def test_value_kind_names():
    assert value_kind('decimal') is Decimal
    assert value_kind('UUID') is uuid.UUID
    with pytest.raises(UnsupportedTypeError):
        value_kind('money')


def test_type_converter_numpy_and_pandas():
    """Test NumPy and pandas scalars bind as plain Python values"""
    assert TypeConverter.convert_value(np.int64(5)) == 5
    assert type(TypeConverter.convert_value(np.int64(5))) is int
    assert TypeConverter.convert_value(np.float64('nan')) is None
    assert TypeConverter.convert_value(math.inf) is None
    assert TypeConverter.convert_value(pd.NaT) is None
    assert TypeConverter.convert_value(pd.NA) is None
    assert TypeConverter.convert_value(np.bool_(True)) is True
    stamp = TypeConverter.convert_value(pd.Timestamp('2024-01-02 03:04:05'))
    assert stamp == datetime.datetime(2024, 1, 2, 3, 4, 5)
    assert TypeConverter.convert_params((np.int64(1), 'a', None)) == (1, 'a', None)


def test_converters_parse_iso_text():
    assert convert_date(b'2024-01-02') == datetime.date(2024, 1, 2)
    assert convert_datetime('2024-01-02T03:04:05.600000') == datetime.datetime(2024, 1, 2, 3, 4, 5, 600000)
    assert convert_datetime(b'2024-01-02 03:04:05') == datetime.datetime(2024, 1, 2, 3, 4, 5)
    assert convert_time('13:45:30') == datetime.time(13, 45, 30)
    assert convert_decimal('12.50') == Decimal('12.50')
    assert convert_decimal(3) == Decimal(3)


@pytest.mark.parametrize(('value', 'expected'), [
    (Decimal('1.0'), '1'),
    (Decimal('1.00'), '1'),
    (Decimal('12.50'), '12.5'),
    (Decimal('1E+1'), '10'),
    (Decimal('0.000'), '0'),
    (Decimal('-0.0'), '0'),
    (Decimal('-3.1400'), '-3.14'),
    (Decimal('0.0001'), '0.0001'),
    (Decimal('100'), '100'),
])
def test_decimal_text_is_canonical(value, expected):
    assert decimal_text(value) == expected
