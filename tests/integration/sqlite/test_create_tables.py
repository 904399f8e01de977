import sqlob
from sqlob import CreateRequest, ExecutionContext
from sqlob.strategy import get_strategy

from tests.fixtures.models import Account, Employee, Owner, Person
from tests.fixtures.sqlite import table_names


def test_create_table(sqlite_conn):
    result = CreateRequest(Person).execute(sqlite_conn)
    assert result.count == 1
    assert 'Person' in table_names(sqlite_conn)


def test_referenced_tables_created_first(sqlite_conn):
    """Test creating a type creates the tables it references"""
    assert CreateRequest(Owner).execute(sqlite_conn).count == 2
    assert table_names(sqlite_conn) == ['Address', 'Owner']


def test_existing_tables_skipped(sqlite_conn):
    CreateRequest(Person).execute(sqlite_conn)
    assert CreateRequest(Person).execute(sqlite_conn).count == 0
    assert CreateRequest(Owner).execute(sqlite_conn).count == 2
    assert CreateRequest(Owner).execute(sqlite_conn).count == 0


def test_mutually_referencing_tables(sqlite_conn):
    assert CreateRequest(Employee).execute(sqlite_conn).count == 2
    assert table_names(sqlite_conn) == ['Department', 'Employee']


def test_declared_column_types(sqlite_conn):
    CreateRequest(Account).execute(sqlite_conn)
    cursor = sqlite_conn.cursor()
    cursor.execute('PRAGMA table_info(accounts)')
    columns = {row[1]: row[2] for row in cursor.fetchall()}
    cursor.close()
    assert columns == {'id': 'CHAR(36)', 'user_login': 'VARCHAR(40)', 'balance': 'TEXT'}


def test_created_foreign_keys(sqlite_conn):
    CreateRequest(Owner).execute(sqlite_conn)
    cursor = sqlite_conn.cursor()
    cursor.execute('PRAGMA foreign_key_list(Owner)')
    keys = [(row[2], row[3], row[4]) for row in cursor.fetchall()]
    cursor.close()
    assert keys == [('Address', 'address', 'id')]


def test_create_in_context(raw_sqlite_conn):
    with ExecutionContext(raw_sqlite_conn) as context:
        assert CreateRequest(Owner).execute(context).count == 2
        assert context.strategy.table_exists(raw_sqlite_conn, 'Owner')


def test_create_ignores_stale_existence_cache(raw_sqlite_conn):
    """Test a cached table lookup that no longer holds does not skip creation"""
    CreateRequest(Person).execute(raw_sqlite_conn)
    assert get_strategy('sqlite').table_exists(raw_sqlite_conn, 'Person')
    raw_sqlite_conn.execute('DROP TABLE Person')
    assert get_strategy('sqlite').table_exists(raw_sqlite_conn, 'Person')

    assert CreateRequest(Person).execute(raw_sqlite_conn).count == 1
    assert 'Person' in table_names(raw_sqlite_conn)
    sqlob.put(raw_sqlite_conn, Person('Ann', 30))
    assert len(sqlob.select(raw_sqlite_conn, Person)) == 1
