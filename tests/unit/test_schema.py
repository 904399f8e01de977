import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlob import Configuration, InaccessibleFieldError, SqlobClass, get_configuration

from tests.fixtures.models import Account, Address, Employee, Node, Owner, Person


def test_person_creation_statement():
    """Test the CREATE TABLE text derived from a two-field record"""
    descriptor = get_configuration('sqlite').describe(Person)
    assert descriptor.creation_statement() == \
        'CREATE TABLE Person (id CHAR(36) PRIMARY KEY, name TEXT, age INTEGER)'


def test_person_creation_statement_postgres():
    descriptor = get_configuration('postgresql').describe(Person)
    assert descriptor.creation_statement() == \
        'CREATE TABLE Person (id CHAR(36) PRIMARY KEY, name TEXT, age BIGINT)'


def test_creation_statement_options():
    descriptor = get_configuration('sqlite').describe(Person)
    quote = get_configuration('sqlite').strategy.quote_identifier
    assert descriptor.creation_statement(primary_key_name='person_id', quote=quote, if_not_exists=True) == \
        'CREATE TABLE IF NOT EXISTS "Person" ("person_id" CHAR(36) PRIMARY KEY, "name" TEXT, "age" INTEGER)'


def test_foreign_keys_follow_columns():
    descriptor = get_configuration('sqlite').describe(Owner)
    assert descriptor.creation_statement() == (
        'CREATE TABLE Owner (id CHAR(36) PRIMARY KEY, name TEXT, address CHAR(36), '
        'FOREIGN KEY (address) REFERENCES Address(id))')
    assert descriptor.creation_statement(skip_foreign_keys=[Address]) == \
        'CREATE TABLE Owner (id CHAR(36) PRIMARY KEY, name TEXT, address CHAR(36))'
    assert descriptor.foreign_key_statement(descriptor.field('address')) == \
        'ALTER TABLE Owner ADD FOREIGN KEY (address) REFERENCES Address(id)'


def test_self_reference():
    descriptor = get_configuration('sqlite').describe(Node)
    assert descriptor.creation_statement() == (
        'CREATE TABLE Node (id CHAR(36) PRIMARY KEY, label TEXT, next CHAR(36), '
        'FOREIGN KEY (next) REFERENCES Node(id))')


def test_mutual_references_describe_lazily():
    config = get_configuration('sqlite')
    employee = config.describe(Employee)
    department = employee.field('department').referenced
    assert department.type.__name__ == 'Department'
    assert department.field('head').referenced is employee


def test_table_name_and_column_overrides():
    descriptor = get_configuration('sqlite').describe(Account)
    assert descriptor.name == 'accounts'
    assert descriptor.columns == ['id', 'user_login', 'balance']
    assert descriptor.field('login') is descriptor.field('user_login')
    assert descriptor.creation_statement() == \
        'CREATE TABLE accounts (id CHAR(36) PRIMARY KEY, user_login VARCHAR(40), balance TEXT)'


def test_insert_statement():
    descriptor = get_configuration('sqlite').describe(Person)
    assert descriptor.insert_statement() == 'INSERT INTO Person (id, name, age) VALUES (?, ?, ?)'


def test_configured_primary_key():
    config = Configuration('sqlite', primary_key='pk')
    assert config.describe(Person).columns == ['pk', 'name', 'age']


def test_primary_key_collision_rejected():
    from dataclasses import dataclass

    @dataclass
    class Clash:
        id: str

    with pytest.raises(ValueError):
        Configuration('sqlite').describe(Clash)


def test_descriptor_is_cached():
    config = Configuration('sqlite')
    assert config.describe(Person) is config.describe(Person)
    assert SqlobClass.for_type(Person, config) is config.describe(Person)


def test_unknown_field():
    descriptor = get_configuration('sqlite').describe(Person)
    with pytest.raises(ValueError):
        descriptor.field('height')


def test_inaccessible_field():
    """Test reading an attribute missing on the instance"""
    field = get_configuration('sqlite').describe(Person).field('name')
    with pytest.raises(InaccessibleFieldError):
        field.get(object())
    with pytest.raises(InaccessibleFieldError):
        field.extract({'age': 3})


def test_concurrent_describe_builds_once(mocker):
    """Test threads racing on the first describe share one descriptor"""
    config = Configuration('sqlite')
    workers = 8
    barrier = threading.Barrier(workers)

    def slow_build(cls, configuration):
        time.sleep(0.05)
        return SqlobClass(cls, configuration)

    build = mocker.patch('sqlob.config.SqlobClass', side_effect=slow_build)

    def describe():
        barrier.wait()
        return config.describe(Person)

    with ThreadPoolExecutor(max_workers=workers) as pool:
        descriptors = list(pool.map(lambda _: describe(), range(workers)))

    assert build.call_count == 1
    assert all(descriptor is descriptors[0] for descriptor in descriptors)
    assert config.describe(Person) is descriptors[0]
