"""
Insert requests.
"""
import logging
import uuid
from collections.abc import Iterable
from typing import Any, Self

from sqlob.context import ExecutionContext
from sqlob.exceptions import EmptyRecordSetError
from sqlob.field import to_identifier
from sqlob.request.base import Request
from sqlob.result import Record, Result

logger = logging.getLogger(__name__)


class InsertRequest(Request):
    """Store records of one type, skipping those already stored by value.

    One SELECT finds stored rows equal to any of the records (or holding a
    record's explicit id); the remaining records are inserted as one batch.
    Records equal to an earlier record of the same request collapse into it.

    Args:
        records: Objects or Records, all of the same type
        cls: Mapped type, defaults to the type of the first record

    Raises
        EmptyRecordSetError: If `records` is empty
        TypeError: If the records are not all of one type
    """

    def __init__(self, records: Iterable[Any], cls: type | None = None) -> None:
        entries = []
        for item in records:
            if isinstance(item, Record):
                explicit = None if item.id is None else to_identifier(item.id)
                entries.append((explicit, item.object))
            else:
                entries.append((None, item))
        if not entries:
            raise EmptyRecordSetError('InsertRequest requires at least one record')

        target = cls or type(entries[0][1])
        for _, obj in entries:
            if not isinstance(obj, target):
                raise TypeError(f'InsertRequest for {target.__name__} got a {type(obj).__name__}')
        super().__init__(target)
        self.entries = entries

    @classmethod
    def one(cls, obj: Any, id: uuid.UUID | str | None = None) -> Self:
        """Request storing a single object, optionally under an explicit id."""
        return cls([Record(id, obj)])

    def _unique(self) -> list[tuple[uuid.UUID | None, Any]]:
        unique = []
        for explicit, obj in self.entries:
            for known_id, known in unique:
                if known is obj or known == obj or (explicit is not None and explicit == known_id):
                    break
            else:
                unique.append((explicit, obj))
        return unique

    def run(self, context: ExecutionContext) -> Result:
        descriptor = context.describe(self.type)
        unique = self._unique()
        existing = descriptor.find_existing([obj for _, obj in unique], context,
                                            ids=[explicit for explicit, _ in unique])

        ids = []
        pending = []
        for (explicit, obj), found in zip(unique, existing):
            if found is not None:
                context.remember(obj, found)
                ids.append(found)
            else:
                row_id = explicit or uuid.uuid4()
                pending.append((obj, row_id))
                ids.append(row_id)

        if pending:
            context.begin_insert(pending)
            try:
                rows = [descriptor.row_values(obj, row_id, context) for obj, row_id in pending]
                with context.prepare(descriptor.insert_statement(context.quote)) as statement:
                    statement.executemany(rows)
            except Exception:
                context.abort_insert(pending)
                raise
            context.finish_insert(pending)

        skipped = len(self.entries) - len(pending)
        logger.debug(f'Inserted {len(pending)} {descriptor.name} row(s), skipped {skipped}')
        records = [Record(row_id, obj) for row_id, (_, obj) in zip(ids, unique)]
        return Result(records, count=len(pending), inserted=[row_id for _, row_id in pending])
