"""
Session facade over one execution context.

Usage:
    with Session(connect(drivername='sqlite', database=':memory:')) as session:
        person_id = session.put(Person('Ann', 30))
        session.update(Person, {'age': 31}, Where.eq('name', 'Ann'))
        ann = session.get(Person, person_id)
"""
import logging
import uuid
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Self

from sqlob.config import Configuration
from sqlob.context import ExecutionContext
from sqlob.request import CountRequest, CreateRequest, DeleteRequest, InsertRequest
from sqlob.request import SelectRequest, UpdateRequest
from sqlob.result import Result
from sqlob.where import Where

logger = logging.getLogger(__name__)


class Session:
    """Runs requests on one connection through a single ExecutionContext.

    Used as a context manager the session is one transaction: committed on
    success and rolled back on error. Otherwise the connection's own commit
    mode applies and `commit` / `rollback` are explicit.

    Args:
        connection: Any connection accepted by ExecutionContext
        config: Mapping configuration, see ExecutionContext
        create_tables: Create the tables of each type on first use
    """

    def __init__(self, connection: Any, config: Configuration | None = None,
                 create_tables: bool = True) -> None:
        self.context = ExecutionContext(connection, config)
        self.create_tables = create_tables
        self._ready: set[type] = set()

    def _prepare(self, cls: type) -> None:
        if self.create_tables and cls not in self._ready:
            CreateRequest(cls).execute(self.context)
            self._ready.add(cls)

    def put(self, obj: Any) -> uuid.UUID:
        """Store `obj` unless an equal instance is stored, and return its id."""
        self._prepare(type(obj))
        return InsertRequest([obj]).execute(self.context).keys()[0]

    def put_all(self, objects: Iterable[Any]) -> Result:
        """Store objects of one type as one batch."""
        request = InsertRequest(objects)
        self._prepare(request.type)
        return request.execute(self.context)

    def get(self, cls: type, identifier: uuid.UUID | str) -> Any | None:
        """Load the instance stored under `identifier`, or None."""
        self._prepare(cls)
        return SelectRequest.by_id(cls, identifier).execute(self.context).first()

    def select(self, cls: type, where: Where | None = None,
               columns: Sequence[str] | None = None) -> Result:
        self._prepare(cls)
        return SelectRequest(cls, where, columns).execute(self.context)

    def count(self, cls: type, where: Where | None = None) -> int:
        """Number of stored rows of `cls` matching `where`."""
        self._prepare(cls)
        return CountRequest(cls, where).execute(self.context).count

    def update(self, cls: type, values: Mapping[str, Any], where: Where | None = None) -> int:
        """Update matching rows and return the affected-row count."""
        self._prepare(cls)
        return UpdateRequest(cls, values, where).execute(self.context).count

    def drop(self, cls: type, where: Where | None = None) -> int:
        """Delete matching rows and return the affected-row count."""
        self._prepare(cls)
        return DeleteRequest(cls, where).execute(self.context).count

    def commit(self) -> None:
        self.context.commit()

    def rollback(self) -> None:
        self.context.rollback()

    def close(self) -> None:
        self.context.close()

    def __enter__(self) -> Self:
        self.context.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.context.__exit__(exc_type, exc_val, exc_tb)

    def __repr__(self) -> str:
        return f'<Session {self.context.dialect} types={sorted(t.__name__ for t in self._ready)}>'
