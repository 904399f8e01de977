"""
Object-to-relational persistence for SQLite and PostgreSQL.

Typed records (dataclasses or annotated classes) map to tables derived from
their attributes; references between mapped types become foreign keys.

All operations can be called either as:
- Requests: SelectRequest(Person, where).execute(cn)
- Module functions: sqlob.select(cn, Person, where)
- Session methods: session.select(Person, where)

The module functions are facades over the requests.
"""
__version__ = '0.1.0'

import uuid
from collections.abc import Iterable, Mapping
from typing import Any

from sqlob.column import column, transient
from sqlob.config import Configuration, TypeMappingConfig, get_configuration
from sqlob.connection import ConnectionWrapper, check_connection, connect
from sqlob.context import ExecutionContext
from sqlob.exceptions import ClosedResourceError, DatabaseExecutionError
from sqlob.exceptions import DbConnectionError, EmptyRecordSetError
from sqlob.exceptions import InaccessibleFieldError, IntegrityError
from sqlob.exceptions import NoApplicableColumnFactoryError, ProgrammingError
from sqlob.exceptions import SqlobError, UnsupportedTypeError
from sqlob.options import DatabaseOptions
from sqlob.request import CountRequest, CreateRequest, DeleteRequest, InsertRequest
from sqlob.request import SelectRequest, UpdateRequest
from sqlob.result import Record, Result
from sqlob.schema import SqlobClass
from sqlob.session import Session
from sqlob.types import SqlobType, SqlTypeCode, TypeRegistry
from sqlob.where import Where


def create_table(cn: Any, cls: type) -> int:
    """Create the table of `cls` and of the types it references.

    Returns the number of tables created.
    """
    return CreateRequest(cls).execute(cn).count


def insert(cn: Any, *objects: Any) -> Result:
    """Store objects of one type, skipping those already stored by value.
    """
    return InsertRequest(objects).execute(cn)


def put(cn: Any, obj: Any) -> uuid.UUID:
    """Store one object and return its identifier.
    """
    return InsertRequest([obj]).execute(cn).keys()[0]


def get(cn: Any, cls: type, identifier: uuid.UUID | str) -> Any | None:
    """Load the instance stored under `identifier`, or None.
    """
    return SelectRequest.by_id(cls, identifier).execute(cn).first()


def select(cn: Any, cls: type, where: Where | None = None,
           columns: Iterable[str] | None = None) -> Result:
    """Load the instances of `cls` matching `where`.
    """
    return SelectRequest(cls, where, columns).execute(cn)


def count(cn: Any, cls: type, where: Where | None = None) -> int:
    """Number of stored rows of `cls` matching `where`.
    """
    return CountRequest(cls, where).execute(cn).count


def update(cn: Any, cls: type, values: Mapping[str, Any], where: Where | None = None) -> int:
    """Update matching rows and return the affected-row count.
    """
    return UpdateRequest(cls, values, where).execute(cn).count


def delete(cn: Any, cls: type, where: Where | None = None) -> int:
    """Delete matching rows and return the affected-row count.
    """
    return DeleteRequest(cls, where).execute(cn).count


__all__ = [
    'ClosedResourceError',
    'Configuration',
    'ConnectionWrapper',
    'CountRequest',
    'CreateRequest',
    'DatabaseExecutionError',
    'DatabaseOptions',
    'DbConnectionError',
    'DeleteRequest',
    'EmptyRecordSetError',
    'ExecutionContext',
    'InaccessibleFieldError',
    'InsertRequest',
    'IntegrityError',
    'NoApplicableColumnFactoryError',
    'ProgrammingError',
    'Record',
    'Result',
    'SelectRequest',
    'Session',
    'SqlobClass',
    'SqlobError',
    'SqlobType',
    'SqlTypeCode',
    'TypeMappingConfig',
    'TypeRegistry',
    'UnsupportedTypeError',
    'UpdateRequest',
    'Where',
    'check_connection',
    'column',
    'connect',
    'count',
    'create_table',
    'delete',
    'get',
    'get_configuration',
    'insert',
    'put',
    'select',
    'transient',
]
