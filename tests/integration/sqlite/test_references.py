import uuid

import pytest
import sqlob
from sqlob import DatabaseExecutionError, IntegrityError, SelectRequest, Where

from tests.fixtures.models import Address, Owner
from tests.fixtures.sqlite import count_rows


@pytest.fixture
def owner_conn(sqlite_conn):
    sqlob.create_table(sqlite_conn, Owner)
    return sqlite_conn


def test_reference_cascade(owner_conn):
    """Test storing a record stores the record it references first"""
    owner = Owner('Bob', Address('Main St', 'Springfield'))

    owner_id = sqlob.put(owner_conn, owner)

    assert count_rows(owner_conn, 'Address') == 1
    loaded = sqlob.get(owner_conn, Owner, owner_id)
    assert loaded == owner
    assert isinstance(loaded.address, Address)


def test_referenced_rows_are_shared(owner_conn):
    """Test an equal referenced record is stored once"""
    sqlob.put(owner_conn, Owner('Bob', Address('Main St', 'Springfield')))
    sqlob.put(owner_conn, Owner('Carl', Address('Main St', 'Springfield')))
    sqlob.put(owner_conn, Owner('Bob', Address('Main St', 'Springfield')))

    assert count_rows(owner_conn, 'Address') == 1
    assert count_rows(owner_conn, 'Owner') == 2


def test_batch_with_shared_reference(owner_conn):
    home = Address('Main St', 'Springfield')
    result = sqlob.insert(owner_conn, Owner('Bob', home), Owner('Carl', home))
    assert result.count == 2
    assert count_rows(owner_conn, 'Address') == 1


def test_null_reference(owner_conn):
    owner_id = sqlob.put(owner_conn, Owner('Dee'))
    assert sqlob.get(owner_conn, Owner, owner_id).address is None
    assert sqlob.select(owner_conn, Owner, Where.eq('address', None)).one().name == 'Dee'
    assert count_rows(owner_conn, 'Address') == 0


def test_select_by_referenced_object(owner_conn):
    """Test criteria on a reference compare the referenced row's id"""
    sqlob.insert(owner_conn, Owner('Bob', Address('Main St', 'Springfield')),
                 Owner('Carl', Address('Elm St', 'Shelbyville')))

    result = sqlob.select(owner_conn, Owner, Where.eq('address', Address('Elm St', 'Shelbyville')))
    assert [owner.name for owner in result.objects()] == ['Carl']

    unknown = sqlob.select(owner_conn, Owner, Where.eq('address', Address('Nowhere', 'None')))
    assert len(unknown) == 0
    assert count_rows(owner_conn, 'Address') == 2


def test_select_by_referenced_id(owner_conn):
    owner = Owner('Bob', Address('Main St', 'Springfield'))
    sqlob.put(owner_conn, owner)
    address_id = sqlob.select(owner_conn, Address).keys()[0]

    assert sqlob.select(owner_conn, Owner, Where.eq('address', address_id)).one() == owner


def test_update_reference_stores_new_target(owner_conn):
    sqlob.put(owner_conn, Owner('Bob', Address('Main St', 'Springfield')))

    count = sqlob.update(owner_conn, Owner, {'address': Address('Elm St', 'Shelbyville')},
                         Where.eq('name', 'Bob'))

    assert count == 1
    assert count_rows(owner_conn, 'Address') == 2
    assert sqlob.select(owner_conn, Owner).one().address == Address('Elm St', 'Shelbyville')


def test_delete_leaves_referenced_rows(owner_conn):
    sqlob.put(owner_conn, Owner('Bob', Address('Main St', 'Springfield')))
    assert sqlob.delete(owner_conn, Owner) == 1
    assert count_rows(owner_conn, 'Address') == 1


def test_shared_reference_loads_once(owner_conn):
    """Test one request materializes a referenced row as one instance"""
    home = Address('Main St', 'Springfield')
    sqlob.insert(owner_conn, Owner('Bob', home), Owner('Carl', home))

    first, second = SelectRequest(Owner).execute(owner_conn).objects()
    assert first.address is second.address


def test_foreign_key_violation(owner_conn):
    sqlob.put(owner_conn, Owner('Bob'))

    with pytest.raises(DatabaseExecutionError) as exc_info:
        sqlob.update(owner_conn, Owner, {'address': uuid.uuid4()})

    assert isinstance(exc_info.value.__cause__, IntegrityError)
    assert sqlob.select(owner_conn, Owner).one().address is None
