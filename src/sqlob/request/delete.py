"""
Delete requests.
"""
import logging

from sqlob.context import ExecutionContext
from sqlob.request.base import Request
from sqlob.result import Result
from sqlob.where import Where

logger = logging.getLogger(__name__)


class DeleteRequest(Request):
    """Delete every stored row of a type matching a Where.

    The result's `count` is the number of deleted rows. Referenced rows are
    left in place.
    """

    def __init__(self, cls: type, where: Where | None = None) -> None:
        super().__init__(cls)
        self.where = where or Where()

    def run(self, context: ExecutionContext) -> Result:
        descriptor = context.describe(self.type)
        q = context.quote
        sql = f'DELETE FROM {q(descriptor.name)}'
        predicate, params = descriptor.resolve(self.where, context).to_sql(q)
        if predicate:
            sql += f' WHERE {predicate}'

        with context.prepare(sql) as statement:
            statement.execute(params)
            count = statement.rowcount
        logger.debug(f'Deleted {count} {descriptor.name} row(s)')
        return Result(count=count)
