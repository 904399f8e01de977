import uuid

import pytest
from sqlob import Record, Result

from tests.fixtures.models import Owner, Person, Tag


@pytest.fixture
def result():
    ids = [uuid.UUID(int=1), uuid.UUID(int=2)]
    return Result([Record(ids[0], Person('Ann', 30)), Record(ids[1], Person('Bob', 42))])


def test_ordered_records(result):
    assert result.keys() == [uuid.UUID(int=1), uuid.UUID(int=2)]
    assert result.objects() == [Person('Ann', 30), Person('Bob', 42)]
    assert result.first() == Person('Ann', 30)
    assert result.count == 2
    assert len(result) == 2
    assert [record.object.name for record in result] == ['Ann', 'Bob']


def test_lookup_by_id(result):
    assert result.get(uuid.UUID(int=2)) == Person('Bob', 42)
    assert result.get(str(uuid.UUID(int=2))) == Person('Bob', 42)
    assert result.get(uuid.UUID(int=3)) is None
    assert uuid.UUID(int=1) in result
    assert str(uuid.UUID(int=1)) in result
    assert 'not-an-id' not in result


def test_one():
    record = Record(uuid.UUID(int=1), Person('Ann', 30))
    assert Result([record]).one() == Person('Ann', 30)
    with pytest.raises(ValueError):
        Result().one()


def test_duplicate_ids_keep_first():
    key = uuid.UUID(int=1)
    result = Result([Record(key, Person('Ann', 30)), Record(key, Person('Bob', 42))])
    assert result.objects() == [Person('Ann', 30)]


def test_count_only_result():
    """Test update and delete outcomes carry a count and no records"""
    result = Result(count=3)
    assert result.count == 3
    assert len(result) == 0
    assert result.first() is None
    assert result
    assert not Result(count=0)


def test_to_frame(result):
    frame = result.to_frame()
    assert list(frame.columns) == ['id', 'name', 'age']
    assert frame['name'].tolist() == ['Ann', 'Bob']
    assert frame['id'].tolist() == [uuid.UUID(int=1), uuid.UUID(int=2)]


def test_to_frame_plain_objects_and_references():
    owner = Owner('Cid', None)
    tag = Tag('red', 2)
    assert Result([Record(uuid.UUID(int=1), tag)]).to_frame().to_dict('records') == \
        [{'id': uuid.UUID(int=1), 'label': 'red', 'weight': 2}]
    assert list(Result([Record(uuid.UUID(int=2), owner)]).to_frame().columns) == ['id', 'name', 'address']


def test_empty_frame():
    frame = Result().to_frame()
    assert frame.empty
    assert list(frame.columns) == ['id']
