"""PostgreSQL integration tests, run when SQLOB_POSTGRES_URL is set."""
import pytest
import sqlob
from sqlob import CreateRequest, DeleteRequest, InsertRequest, SelectRequest
from sqlob import Session, UpdateRequest, Where

from tests.fixtures.models import Address, Department, Employee, Node, Owner
from tests.fixtures.models import Person, Sample

pytestmark = pytest.mark.postgres


def _count(cn, table):
    cursor = cn.cursor()
    try:
        cursor.execute(f'SELECT COUNT(*) FROM "{table}"')
        return cursor.fetchone()[0]
    finally:
        cursor.close()


def test_person_requests(pg_conn):
    """Test insert, update, delete and select on PostgreSQL"""
    assert CreateRequest(Person).execute(pg_conn).count == 1

    result = InsertRequest([Person('Ann', 30), Person('Ann', 30), Person('Bob', 42)]).execute(pg_conn)
    assert result.count == 2
    assert InsertRequest([Person('Ann', 30)]).execute(pg_conn).count == 0

    assert UpdateRequest(Person, {'age': 31}, Where.eq('name', 'Ann')).execute(pg_conn).count == 1
    assert sqlob.select(pg_conn, Person, Where.eq('name', 'Ann')).one() == Person('Ann', 31)
    assert sqlob.count(pg_conn, Person) == 2

    where = Where.eq('age', 42)
    assert DeleteRequest(Person, where).execute(pg_conn).count == 1
    assert len(SelectRequest(Person, where).execute(pg_conn)) == 0


def test_value_kinds(pg_conn, sample):
    sqlob.create_table(pg_conn, Sample)
    sample_id = sqlob.put(pg_conn, sample)
    assert sqlob.get(pg_conn, Sample, sample_id) == sample
    assert sqlob.put(pg_conn, sample) == sample_id


def test_reference_cascade(pg_conn):
    sqlob.create_table(pg_conn, Owner)
    owner = Owner('Bob', Address('Main St', 'Springfield'))
    owner_id = sqlob.put(pg_conn, owner)
    assert sqlob.get(pg_conn, Owner, owner_id) == owner
    assert _count(pg_conn, 'Address') == 1


def test_mutual_references(pg_conn):
    """Test a reference cycle with foreign keys added after both tables"""
    assert sqlob.create_table(pg_conn, Employee) == 2
    eve = Employee('Eve')
    eve.department = Department('Lab', head=eve)

    eve_id = sqlob.put(pg_conn, eve)

    loaded = sqlob.get(pg_conn, Employee, eve_id)
    assert loaded.department.head is loaded


def test_self_reference(pg_conn):
    sqlob.create_table(pg_conn, Node)
    node = Node('a')
    node.next = node
    node_id = sqlob.put(pg_conn, node)
    assert sqlob.get(pg_conn, Node, node_id).next.label == 'a'


def test_session_rollback(pg_conn):
    sqlob.create_table(pg_conn, Person)
    with pytest.raises(RuntimeError):
        with Session(pg_conn) as session:
            session.put(Person('Ann', 30))
            raise RuntimeError('boom')
    assert _count(pg_conn, 'Person') == 0
