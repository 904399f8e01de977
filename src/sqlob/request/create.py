"""
Table creation requests.
"""
import logging

from sqlob.cache import Cache
from sqlob.context import ExecutionContext
from sqlob.request.base import Request
from sqlob.result import Result
from sqlob.schema import SqlobClass

logger = logging.getLogger(__name__)


class CreateRequest(Request):
    """Create the table of a type and of every type it references.

    Referenced tables are created first and existing tables are skipped. In a
    cycle of references, dialects that reject foreign keys to tables that do
    not exist yet get those constraints through ALTER TABLE once every table
    exists. The result's `count` is the number of tables created.
    """

    def _creation_order(self, context: ExecutionContext) -> list[SqlobClass]:
        order = []
        seen = set()

        def visit(cls: type) -> None:
            if cls in seen:
                return
            seen.add(cls)
            descriptor = context.describe(cls)
            for field in descriptor.references:
                visit(field.column.referenced)
            order.append(descriptor)

        visit(self.type)
        return order

    def run(self, context: ExecutionContext) -> Result:
        strategy = context.strategy
        q = context.quote
        order = self._creation_order(context)
        available = {d.type for d in order
                     if strategy.table_exists(context.connection, d.name, bypass_cache=True)}

        created = []
        deferred = []
        for descriptor in order:
            if descriptor.type in available:
                logger.debug(f'Table {descriptor.name} already exists')
                continue

            skip = set()
            if not strategy.allows_forward_references:
                skip = {field.column.referenced for field in descriptor.references
                        if field.column.referenced not in available
                        and field.column.referenced is not descriptor.type}

            with context.prepare(descriptor.creation_statement(quote=q, skip_foreign_keys=skip)) as statement:
                statement.execute()
            Cache.get_instance().clear_for_table(descriptor.name)
            logger.info(f'Created table {descriptor.name}')

            available.add(descriptor.type)
            created.append(descriptor.name)
            deferred.extend((descriptor, field) for field in descriptor.references
                            if field.column.referenced in skip)

        for descriptor, field in deferred:
            with context.prepare(descriptor.foreign_key_statement(field, q)) as statement:
                statement.execute()

        return Result(count=len(created))
