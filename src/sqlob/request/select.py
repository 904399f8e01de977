"""
Select requests.
"""
import logging
import uuid
from collections.abc import Sequence
from typing import Any, Self

from sqlob.context import ExecutionContext
from sqlob.field import to_identifier
from sqlob.request.base import Request
from sqlob.result import Record, Result
from sqlob.where import Where

logger = logging.getLogger(__name__)


class SelectRequest(Request):
    """Load the instances of a type matching a Where.

    Args:
        cls: Mapped type
        where: Criteria on attribute names; None or empty selects every row
        columns: Attribute names to load; the others are set to None
    """

    def __init__(self, cls: type, where: Where | None = None,
                 columns: Sequence[str] | None = None) -> None:
        super().__init__(cls)
        self.where = where or Where()
        self.columns = list(columns) if columns is not None else None
        self.identifier = None

    @classmethod
    def by_id(cls, target: type, identifier: uuid.UUID | str) -> Self:
        """Request loading the instance stored under `identifier`."""
        request = cls(target)
        request.identifier = to_identifier(identifier)
        return request

    def run(self, context: ExecutionContext) -> Result:
        descriptor = context.describe(self.type)
        fields = None
        if self.columns is not None:
            fields = [descriptor.field(name) for name in self.columns]

        where = self.where
        if self.identifier is not None:
            where = Where.and_(Where.eq(descriptor.primary_key, self.identifier), where)

        rows = descriptor.select_rows(descriptor.resolve(where, context), context, fields)
        records = [Record(to_identifier(row[descriptor.primary_key]),
                          descriptor.populate(row, context, fields))
                   for row in rows]
        logger.debug(f'Selected {len(records)} {descriptor.name} row(s)')
        return Result(records)

    def first(self, target: Any) -> Any | None:
        """Execute and return the first instance, or None."""
        return self.execute(target).first()


class CountRequest(Request):
    """Count the stored rows of a type matching a Where.

    The result carries no records; its `count` is the number of matching rows.
    """

    def __init__(self, cls: type, where: Where | None = None) -> None:
        super().__init__(cls)
        self.where = where or Where()

    def run(self, context: ExecutionContext) -> Result:
        descriptor = context.describe(self.type)
        count = descriptor.count_rows(descriptor.resolve(self.where, context), context)
        logger.debug(f'Counted {count} {descriptor.name} row(s)')
        return Result(count=count)
