import pytest
from sqlob.sql import has_placeholders, quote_identifier, standardize_placeholders


def test_standardize_placeholders_for_postgres():
    sql = 'SELECT * FROM t WHERE a = ? AND b = ?'
    assert standardize_placeholders(sql, 'postgresql') == 'SELECT * FROM t WHERE a = %s AND b = %s'


def test_standardize_placeholders_for_sqlite():
    sql = 'SELECT * FROM t WHERE a = %s'
    assert standardize_placeholders(sql, 'sqlite') == 'SELECT * FROM t WHERE a = ?'


def test_placeholders_in_literals_untouched():
    """Test question marks inside quoted strings and identifiers are kept"""
    sql = """SELECT 'what?' AS "why?" FROM t WHERE a = ?"""
    assert standardize_placeholders(sql, 'postgresql') == """SELECT 'what?' AS "why?" FROM t WHERE a = %s"""


def test_has_placeholders():
    assert has_placeholders('a = ?')
    assert has_placeholders('a = %s')
    assert not has_placeholders('a = 1')
    assert not has_placeholders(None)


def test_quote_identifier():
    assert quote_identifier('Person') == '"Person"'
    assert quote_identifier('we"ird', 'sqlite') == '"we""ird"'
    with pytest.raises(ValueError):
        quote_identifier('t', 'oracle')
