import sqlite3

import pytest
from sqlob import ClosedResourceError, DatabaseExecutionError
from sqlob.statement import Statement


def test_execute_converts_parameters(mocker):
    import numpy as np

    cursor = mocker.Mock()
    Statement(cursor, 'SELECT ?').execute([np.int64(4)])
    cursor.execute.assert_called_once_with('SELECT ?', (4,))


def test_executemany_sends_one_batch(mocker):
    cursor = mocker.Mock()
    Statement(cursor, 'INSERT INTO t VALUES (?)').executemany([[1], [2]])
    cursor.executemany.assert_called_once_with('INSERT INTO t VALUES (?)', [(1,), (2,)])


def test_driver_errors_are_wrapped(mocker):
    """Test driver failures surface as DatabaseExecutionError with the SQL"""
    cursor = mocker.Mock()
    cursor.execute.side_effect = sqlite3.OperationalError('no such table: t')

    with pytest.raises(DatabaseExecutionError) as exc_info:
        Statement(cursor, 'SELECT * FROM t').execute()

    assert exc_info.value.sql == 'SELECT * FROM t'
    assert isinstance(exc_info.value.__cause__, sqlite3.OperationalError)


def test_rows_as_dicts(mocker):
    cursor = mocker.Mock()
    cursor.description = [('id',), ('name',)]
    cursor.fetchall.return_value = [('a', 'Ann'), ('b', 'Bob')]
    assert Statement(cursor, 'SELECT id, name FROM t').rows() == [
        {'id': 'a', 'name': 'Ann'},
        {'id': 'b', 'name': 'Bob'},
    ]


def test_rows_without_result_set(mocker):
    cursor = mocker.Mock()
    cursor.description = None
    assert Statement(cursor, 'DELETE FROM t').rows() == []


def test_close_is_idempotent_and_notifies(mocker):
    cursor = mocker.Mock()
    on_close = mocker.Mock()
    statement = Statement(cursor, 'SELECT 1', on_close=on_close)

    with statement:
        pass
    statement.close()

    assert statement.closed
    cursor.close.assert_called_once()
    on_close.assert_called_once_with(statement)


def test_closed_statement_rejects_use(mocker):
    statement = Statement(mocker.Mock(), 'SELECT 1')
    statement.close()
    with pytest.raises(ClosedResourceError):
        statement.execute()
    with pytest.raises(ClosedResourceError):
        statement.rows()
