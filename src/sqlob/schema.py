"""
Schema descriptors for mapped types.

A SqlobClass derives the table layout of one type (table name, primary key
column, ordered fields) and implements the row-level operations the
requests are built from:

- creation_statement: CREATE TABLE text, foreign keys after the columns
- put / find_id / get: store, locate by value, and load by identifier
- resolve: translate attribute-level criteria into column-level criteria
- populate: materialize a row into an instance without calling __init__

References cascade through the referenced type's descriptor. A reference
to an object whose insert is still in progress (a cycle in the object
graph) is written as NULL and patched by `link` once the target row exists.
"""
import logging
import uuid
from collections.abc import Callable, Iterable, Sequence
from typing import TYPE_CHECKING, Any

from sqlob.column import persistable_attributes, transient_defaults
from sqlob.field import UNCONSTRAINED, UNMATCHED, SqlobField, to_identifier
from sqlob.where import Where

if TYPE_CHECKING:
    from sqlob.config import Configuration
    from sqlob.context import ExecutionContext

logger = logging.getLogger(__name__)

LOOKUP_CHUNK_SIZE = 50

Quote = Callable[[str], str] | None


def _no_quote(name: str) -> str:
    return name


class SqlobClass:
    """Table layout and row operations for one mapped type.

    Built once per type by `Configuration.describe` and immutable afterwards.
    """

    def __init__(self, cls: type, config: 'Configuration') -> None:
        self.type = cls
        self.config = config
        self.name = vars(cls).get('__tablename__') or cls.__name__
        self.primary_key = config.primary_key
        self.primary_key_type = config.types.lookup(uuid.UUID)
        self.fields = tuple(SqlobField(self, attribute, config.column_for(attribute))
                            for attribute in persistable_attributes(cls))
        self._by_name = {}
        for field in self.fields:
            self._by_name.setdefault(field.name, field)
            self._by_name.setdefault(field.column.name, field)
        self._extractors = config.strategy.get_extractors()
        self._transient_defaults = transient_defaults(cls)

        columns = [self.primary_key] + [field.column.name for field in self.fields]
        duplicates = {name for name in columns if columns.count(name) > 1}
        if duplicates:
            raise ValueError(f'{cls.__name__} maps more than one attribute to column(s) {sorted(duplicates)}')

    @classmethod
    def for_type(cls, target: type, config: 'Configuration') -> 'SqlobClass':
        """Return the cached descriptor of `target` in `config`."""
        return config.describe(target)

    @property
    def columns(self) -> list[str]:
        """Column names in statement order, primary key first."""
        return [self.primary_key] + [field.column.name for field in self.fields]

    @property
    def references(self) -> list[SqlobField]:
        return [field for field in self.fields if field.is_reference]

    def field(self, name: str) -> SqlobField:
        """Look up a field by attribute or column name.
        """
        try:
            return self._by_name[name]
        except KeyError:
            raise ValueError(f'{self.type.__name__} has no mapped field {name!r}') from None

    def extract(self, kind: Any, raw: Any) -> Any:
        """Decode a raw column value through the dialect's extractor for `kind`."""
        if isinstance(kind, type):
            for base in kind.__mro__:
                if base in self._extractors:
                    return self._extractors[base](raw)
        return raw

    # DDL

    def creation_statement(self, primary_key_name: str | None = None, quote: Quote = None,
                           if_not_exists: bool = False,
                           skip_foreign_keys: Iterable[type] = ()) -> str:
        """CREATE TABLE statement for this type.

        Args:
            primary_key_name: Primary key column name, defaults to the configured one
            quote: Optional identifier quoting function
            if_not_exists: Emit CREATE TABLE IF NOT EXISTS
            skip_foreign_keys: Referenced types whose FOREIGN KEY clause is left out

        Returns
            SQL text
        """
        q = quote or _no_quote
        skipped = set(skip_foreign_keys)
        pk = primary_key_name or self.primary_key
        parts = [f'{q(pk)} {self.primary_key_type.sql_type} PRIMARY KEY']
        parts.extend(field.definition(quote) for field in self.fields)
        parts.extend(field.foreign_key(quote) for field in self.references
                     if field.column.referenced not in skipped)
        exists = 'IF NOT EXISTS ' if if_not_exists else ''
        return f'CREATE TABLE {exists}{q(self.name)} ({", ".join(parts)})'

    def foreign_key_statement(self, field: SqlobField, quote: Quote = None) -> str:
        """ALTER TABLE statement adding the FOREIGN KEY of a reference field."""
        q = quote or _no_quote
        return f'ALTER TABLE {q(self.name)} ADD {field.foreign_key(quote)}'

    def insert_statement(self, quote: Quote = None) -> str:
        q = quote or _no_quote
        columns = ', '.join(q(name) for name in self.columns)
        placeholders = ', '.join('?' for _ in self.columns)
        return f'INSERT INTO {q(self.name)} ({columns}) VALUES ({placeholders})'

    # criteria

    def resolve(self, where: Where | None, context: 'ExecutionContext') -> Where:
        """Translate attribute-level criteria into column-level criteria.

        Leaves may name an attribute, a column or the primary key. Values are
        converted to statement parameters; referenced objects are looked up,
        never stored.
        """
        def leaf(node: Where) -> Where:
            if node.column == self.primary_key:
                value = None if node.value is None else str(to_identifier(node.value))
                return Where.eq(self.primary_key, value)
            field = self.field(node.column)
            value = field.criteria_value(node.value, context)
            if value is UNMATCHED:
                return Where.never()
            if value is UNCONSTRAINED:
                return Where()
            return Where.eq(field.column.name, field.bind(value, context))

        return (where or Where()).map(leaf)

    def expected_values(self, obj: Any, context: 'ExecutionContext') -> list[tuple[SqlobField, Any]] | None:
        """Comparable value of every field of `obj`.

        Returns None when a referenced object has no stored row, in which case
        no stored row can equal `obj`.
        """
        expected = []
        with context.resolving(obj):
            for field in self.fields:
                value = field.criteria_value(field.get(obj), context)
                if value is UNMATCHED:
                    return None
                if value is not UNCONSTRAINED:
                    expected.append((field, value))
        return expected

    # rows

    def select_rows(self, where: Where, context: 'ExecutionContext',
                    fields: Sequence[SqlobField] | None = None) -> list[dict]:
        """Run a SELECT with column-level criteria and return rows as dicts.
        """
        q = context.quote
        selected = self.fields if fields is None else fields
        columns = ', '.join(q(name) for name in [self.primary_key] + [f.column.name for f in selected])
        sql = f'SELECT {columns} FROM {q(self.name)}'
        predicate, params = where.to_sql(q)
        if predicate:
            sql += f' WHERE {predicate}'
        with context.prepare(sql) as statement:
            statement.execute(params)
            return statement.rows()

    def count_rows(self, where: Where, context: 'ExecutionContext') -> int:
        """Number of rows matching column-level criteria."""
        q = context.quote
        sql = f'SELECT COUNT(*) AS row_count FROM {q(self.name)}'
        predicate, params = where.to_sql(q)
        if predicate:
            sql += f' WHERE {predicate}'
        with context.prepare(sql) as statement:
            statement.execute(params)
            return int(statement.rows()[0]['row_count'])

    def populate(self, row: dict, context: 'ExecutionContext',
                 fields: Sequence[SqlobField] | None = None) -> Any:
        """Materialize a row, reusing an instance already loaded in this request.

        Fields outside `fields` are set to None.
        """
        row_id = to_identifier(row[self.primary_key])
        obj = context.loaded(self.type, row_id)
        if obj is not None:
            return obj

        obj = self.type.__new__(self.type)
        context.remember_loaded(self.type, row_id, obj)
        for field in self.fields:
            value = field.from_storage(row, context) if fields is None or field in fields else None
            field.set(obj, value)
        for name, default in self._transient_defaults.items():
            object.__setattr__(obj, name, default())
        return obj

    def row_values(self, obj: Any, row_id: uuid.UUID, context: 'ExecutionContext') -> list:
        """INSERT parameters for `obj`, in `columns` order."""
        return [str(row_id)] + [field.contribute(obj, row_id, context) for field in self.fields]

    def find_existing(self, objects: Sequence[Any], context: 'ExecutionContext',
                      ids: Sequence[uuid.UUID | None] | None = None) -> list[uuid.UUID | None]:
        """Identifiers of stored rows equal to each object, None where absent.

        Objects are looked up in chunks of LOOKUP_CHUNK_SIZE; each chunk is one
        SELECT on the OR of its objects' value criteria, plus a primary key
        match for objects with an explicit identifier.
        """
        ids = list(ids) if ids is not None else [None] * len(objects)
        expected = [self.expected_values(obj, context) for obj in objects]

        rows = []
        for start in range(0, len(objects), LOOKUP_CHUNK_SIZE):
            wheres = []
            chunk = zip(expected[start:start + LOOKUP_CHUNK_SIZE], ids[start:start + LOOKUP_CHUNK_SIZE])
            for values, explicit in chunk:
                if explicit is not None:
                    wheres.append(Where.eq(self.primary_key, str(explicit)))
                if values is not None:
                    wheres.append(Where.all(*(Where.eq(field.column.name, field.bind(value, context))
                                              for field, value in values)))
            where = Where.any(*wheres)
            if not where.is_never:
                rows.extend(self.select_rows(where, context))
        if not rows:
            return [None] * len(objects)

        row_ids = [to_identifier(row[self.primary_key]) for row in rows]

        found = []
        for values, explicit in zip(expected, ids):
            match = None
            if explicit is not None and explicit in row_ids:
                match = explicit
            elif values is not None:
                for row, row_id in zip(rows, row_ids):
                    if all(field.extract(row) == value for field, value in values):
                        match = row_id
                        break
            found.append(match)
        return found

    def find_id(self, obj: Any, context: 'ExecutionContext') -> uuid.UUID | None:
        """Identifier of the stored row equal to `obj`, without inserting."""
        stored = context.stored_id(obj)
        if stored is not None:
            return stored
        found = self.find_existing([obj], context)[0]
        if found is not None:
            context.remember(obj, found)
        return found

    def put(self, obj: Any, context: 'ExecutionContext') -> uuid.UUID:
        """Store `obj` unless an equal row exists, and return its identifier.

        Referenced objects are stored first.
        """
        if not isinstance(obj, self.type):
            raise TypeError(f'Expected {self.type.__name__}, got {type(obj).__name__}')
        stored = context.stored_id(obj)
        if stored is not None:
            return stored
        pending = context.in_flight_id(obj)
        if pending is not None:
            return pending

        from sqlob.request.insert import InsertRequest
        result = InsertRequest([obj], cls=self.type).execute(context)
        return result.keys()[0]

    def get(self, identifier: uuid.UUID | str, context: 'ExecutionContext') -> Any | None:
        """Load the instance stored under `identifier`, or None.
        """
        row_id = to_identifier(identifier)
        obj = context.loaded(self.type, row_id)
        if obj is not None:
            return obj
        rows = self.select_rows(Where.eq(self.primary_key, str(row_id)), context)
        if not rows:
            return None
        return self.populate(rows[0], context)

    def link(self, row_id: uuid.UUID, field: SqlobField, target_id: uuid.UUID,
             context: 'ExecutionContext') -> int:
        """Point a reference column written as NULL at its now stored target.
        """
        q = context.quote
        sql = (f'UPDATE {q(self.name)} SET {q(field.column.name)} = ? '
               f'WHERE {q(self.primary_key)} = ?')
        with context.prepare(sql) as statement:
            statement.execute([str(target_id), str(row_id)])
            logger.debug(f'Linked {field} of {row_id} to {target_id}')
            return statement.rowcount

    def __repr__(self) -> str:
        return f'SqlobClass({self.type.__name__}, table={self.name!r})'
