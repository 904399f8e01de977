"""
Update requests.
"""
import logging
from collections.abc import Mapping
from typing import Any

from sqlob.context import ExecutionContext
from sqlob.exceptions import EmptyRecordSetError
from sqlob.request.base import Request
from sqlob.result import Result
from sqlob.where import Where

logger = logging.getLogger(__name__)


class UpdateRequest(Request):
    """Set attributes on every stored row of a type matching a Where.

    Value parameters bind before the Where's parameters. The result's
    `count` is the number of affected rows.

    Args:
        cls: Mapped type
        values: Attribute name -> new value; referenced objects are stored
            first if needed
        where: Criteria on attribute names; None or empty updates every row

    Raises
        EmptyRecordSetError: If `values` is empty
    """

    def __init__(self, cls: type, values: Mapping[str, Any], where: Where | None = None) -> None:
        super().__init__(cls)
        if not values:
            raise EmptyRecordSetError('UpdateRequest requires at least one value')
        self.values = dict(values)
        self.where = where or Where()

    def run(self, context: ExecutionContext) -> Result:
        descriptor = context.describe(self.type)
        if descriptor.primary_key in self.values:
            raise ValueError(f'The primary key {descriptor.primary_key} of {descriptor.name} cannot be updated')

        q = context.quote
        assignments = []
        params = []
        for name, value in self.values.items():
            field = descriptor.field(name)
            assignments.append(f'{q(field.column.name)} = ?')
            params.append(field.to_storage(value, context))

        sql = f'UPDATE {q(descriptor.name)} SET {", ".join(assignments)}'
        predicate, where_params = descriptor.resolve(self.where, context).to_sql(q)
        if predicate:
            sql += f' WHERE {predicate}'

        with context.prepare(sql) as statement:
            statement.execute(params + where_params)
            count = statement.rowcount
        logger.debug(f'Updated {count} {descriptor.name} row(s)')
        return Result(count=count)
