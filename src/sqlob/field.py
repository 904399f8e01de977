"""
Binding between one attribute of a mapped type and its column.
"""
import logging
import uuid
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from sqlob.column import Attribute, Column
from sqlob.exceptions import InaccessibleFieldError

if TYPE_CHECKING:
    from sqlob.context import ExecutionContext
    from sqlob.schema import SqlobClass

logger = logging.getLogger(__name__)


class _Marker:

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return self.name


# criteria values for references that cannot be expressed as a stored id
UNMATCHED = _Marker('UNMATCHED')
UNCONSTRAINED = _Marker('UNCONSTRAINED')


def to_identifier(value: Any) -> uuid.UUID:
    """Parse a stored primary key (CHAR columns may pad) into a UUID."""
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, bytes):
        value = value.decode()
    return uuid.UUID(str(value).strip())


class SqlobField:
    """One attribute of a mapped type bound to one column.

    Reference fields resolve the referenced type's descriptor lazily, so
    mutually referencing types never need to be described together.
    """

    def __init__(self, descriptor: 'SqlobClass', attribute: Attribute, column: Column) -> None:
        self.descriptor = descriptor
        self.attribute = attribute
        self.column = column
        self.name = attribute.name
        self._referenced = None

    @property
    def is_reference(self) -> bool:
        return self.column.is_reference

    @property
    def referenced(self) -> 'SqlobClass':
        """Descriptor of the referenced type."""
        if not self.is_reference:
            raise TypeError(f'{self} is not a reference field')
        if self._referenced is None:
            self._referenced = self.descriptor.config.describe(self.column.referenced)
        return self._referenced

    def get(self, obj: Any) -> Any:
        """Read the bound attribute from `obj`.
        """
        try:
            return getattr(obj, self.name)
        except AttributeError as err:
            raise InaccessibleFieldError(f'Cannot read {self} from {type(obj).__name__} instance') from err

    def set(self, obj: Any, value: Any) -> None:
        """Write the bound attribute on `obj`, bypassing frozen dataclass guards.
        """
        try:
            object.__setattr__(obj, self.name, value)
        except (AttributeError, TypeError) as err:
            raise InaccessibleFieldError(f'Cannot write {self} on {type(obj).__name__} instance') from err

    def to_storage(self, value: Any, context: 'ExecutionContext') -> Any:
        """Convert an application value into a statement parameter.

        A referenced object is stored first (if needed) and its identifier
        returned as text.
        """
        if value is None:
            return None
        if self.is_reference:
            if isinstance(value, uuid.UUID | str):
                return str(value)
            return str(self.referenced.put(value, context))
        return context.adapt(value)

    def contribute(self, obj: Any, row_id: uuid.UUID, context: 'ExecutionContext') -> Any:
        """Insert parameter for this field of `obj`, whose row will be `row_id`.

        A reference to an object whose own insert is still in progress is
        written as NULL and patched once the target row exists.
        """
        value = self.get(obj)
        if self.is_reference and value is not None and context.in_flight_id(value) is not None:
            context.defer_link(self, row_id, value)
            return None
        return self.to_storage(value, context)

    def extract(self, row: dict) -> Any:
        """Comparable value of this column in a row, without resolving references.
        """
        raw = self._raw(row)
        if raw is None:
            return None
        if self.is_reference:
            return str(to_identifier(raw))
        return self._extractor(raw)

    def from_storage(self, row: dict, context: 'ExecutionContext') -> Any:
        """Application value of this column in a row.

        References are resolved through the referenced type's `get`.
        """
        raw = self._raw(row)
        if raw is None:
            return None
        if self.is_reference:
            return self.referenced.get(to_identifier(raw), context)
        return self._extractor(raw)

    def criteria_value(self, value: Any, context: 'ExecutionContext') -> Any:
        """Value to compare this column against, without storing anything.

        Returns UNMATCHED for a referenced object with no stored row, and
        UNCONSTRAINED when the reference leads back to an object whose id is
        being looked up.
        """
        if value is None:
            return None
        if not self.is_reference:
            return context.normalize(value)
        if isinstance(value, uuid.UUID | str):
            return str(value)
        stored = context.stored_id(value)
        if stored is not None:
            return str(stored)
        if context.in_flight_id(value) is not None:
            return UNMATCHED
        if context.is_resolving(value):
            return UNCONSTRAINED
        found = self.referenced.find_id(value, context)
        return UNMATCHED if found is None else str(found)

    def bind(self, value: Any, context: 'ExecutionContext') -> Any:
        """Statement parameter for a value returned by `criteria_value`."""
        if value is None or self.is_reference:
            return value
        return context.adapt(value)

    def definition(self, quote: Callable[[str], str] | None = None) -> str:
        return self.column.definition(quote)

    def foreign_key(self, quote: Callable[[str], str] | None = None) -> str:
        """FOREIGN KEY clause for a reference field."""
        q = quote or (lambda name: name)
        target = self.referenced
        return (f'FOREIGN KEY ({q(self.column.name)}) '
                f'REFERENCES {q(target.name)}({q(target.primary_key)})')

    def _raw(self, row: dict) -> Any:
        try:
            return row[self.column.name]
        except KeyError:
            raise InaccessibleFieldError(f'Column {self.column.name} missing from row') from None

    def _extractor(self, raw: Any) -> Any:
        return self.descriptor.extract(self.column.kind, raw)

    def __repr__(self) -> str:
        return f'{self.descriptor.type.__name__}.{self.name}'
