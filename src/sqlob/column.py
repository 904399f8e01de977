"""
Column descriptors and the factories that build them.

This module provides:
- Attribute: One persistable attribute of a mapped type
- persistable_attributes: Introspect a dataclass or annotated class
- Column / ReferenceColumn: Scalar and foreign-key column descriptors
- ScalarColumnFactory / ReferenceColumnFactory: Build columns for attributes
- column() / transient(): Dataclass field helpers overriding the mapping
"""
import dataclasses
import inspect
import logging
import types
import typing
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

from sqlob.types import TypeRegistry, sql_type_code

logger = logging.getLogger(__name__)

METADATA_KEY = 'sqlob'


def column(name: str | None = None, sql_type: str | None = None, **kwargs: Any) -> Any:
    """Dataclass field overriding the column name and/or SQL type.

    Usage:
        @dataclass
        class Person:
            name: str = column(name='full_name', sql_type='VARCHAR(80)', default='')
    """
    metadata = dict(kwargs.pop('metadata', None) or {})
    metadata[METADATA_KEY] = {'name': name, 'sql_type': sql_type}
    return field(metadata=metadata, **kwargs)


def transient(**kwargs: Any) -> Any:
    """Dataclass field that is never persisted.
    """
    metadata = dict(kwargs.pop('metadata', None) or {})
    metadata[METADATA_KEY] = {'transient': True}
    return field(metadata=metadata, **kwargs)


@dataclass(frozen=True)
class Attribute:
    """A persistable attribute of a mapped type.

    `type` is the resolved annotation with Optional unwrapped.
    """
    owner: type
    name: str
    type: Any
    metadata: Mapping = field(default_factory=dict)

    @property
    def options(self) -> dict:
        return dict(self.metadata.get(METADATA_KEY) or {})

    @property
    def column_name(self) -> str:
        return self.options.get('name') or self.name


def _unwrap_optional(hint: Any) -> Any:
    """Map ``Optional[X]`` and ``X | None`` to ``X``."""
    origin = typing.get_origin(hint)
    if origin is typing.Union or origin is types.UnionType:
        args = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return hint


def _is_classvar(hint: Any) -> bool:
    return hint is ClassVar or typing.get_origin(hint) is ClassVar


def _type_hints(cls: type) -> dict[str, Any]:
    """Resolve annotations across the MRO, allowing self references."""
    return typing.get_type_hints(cls, localns={cls.__name__: cls})


def persistable_attributes(cls: type) -> list[Attribute]:
    """List the attributes of `cls` that map to columns, in declaration order.

    Dataclasses contribute their fields; other classes contribute their
    annotations, base classes first. Private names, ClassVars and transient
    fields are skipped.
    """
    hints = _type_hints(cls)
    attributes = []

    if dataclasses.is_dataclass(cls):
        for f in dataclasses.fields(cls):
            if f.name.startswith('_'):
                continue
            if (f.metadata.get(METADATA_KEY) or {}).get('transient'):
                continue
            hint = hints.get(f.name, f.type)
            attributes.append(Attribute(cls, f.name, _unwrap_optional(hint), f.metadata))
        return attributes

    seen = set()
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        for name in inspect.get_annotations(klass):
            if name in seen or name.startswith('_'):
                continue
            seen.add(name)
            hint = hints.get(name)
            if hint is None or _is_classvar(hint):
                continue
            attributes.append(Attribute(cls, name, _unwrap_optional(hint)))
    return attributes


def transient_defaults(cls: type) -> dict[str, Callable[[], Any]]:
    """Factories for the defaults of transient dataclass fields."""
    if not dataclasses.is_dataclass(cls):
        return {}
    defaults = {}
    for f in dataclasses.fields(cls):
        if not (f.metadata.get(METADATA_KEY) or {}).get('transient'):
            continue
        if f.default is not dataclasses.MISSING:
            defaults[f.name] = lambda value=f.default: value
        elif f.default_factory is not dataclasses.MISSING:
            defaults[f.name] = f.default_factory
    return defaults


def is_mapped_type(tp: Any, registry: TypeRegistry) -> bool:
    """Check whether `tp` is a record type that maps to its own table."""
    if not isinstance(tp, type) or tp in registry:
        return False
    if tp.__module__ == 'builtins':
        return False
    return dataclasses.is_dataclass(tp) or bool(inspect.get_annotations(tp))


@dataclass(frozen=True)
class Column:
    """A scalar column: the value round-trips directly.
    """
    name: str
    sql_type: str
    type_code: int
    kind: Any = None

    @property
    def is_reference(self) -> bool:
        return False

    def definition(self, quote: Callable[[str], str] | None = None) -> str:
        """Column definition as it appears in CREATE TABLE."""
        name = quote(self.name) if quote else self.name
        return f'{name} {self.sql_type}'


@dataclass(frozen=True)
class ReferenceColumn(Column):
    """A foreign-key column holding the identifier of a row of `referenced`.
    """
    referenced: type = None

    @property
    def is_reference(self) -> bool:
        return True


class ColumnFactory(ABC):
    """Decides whether and how an attribute maps to a column.
    """

    @abstractmethod
    def accepts(self, attribute: Attribute) -> bool:
        """Check whether this factory can build a column for `attribute`."""

    @abstractmethod
    def build(self, attribute: Attribute) -> Column:
        """Build the column for an accepted attribute."""


class ScalarColumnFactory(ColumnFactory):
    """Columns for attributes whose kind is in the type registry.

    An explicit ``sql_type`` override is accepted for any non-record kind.
    """

    def __init__(self, types: TypeRegistry) -> None:
        self.types = types

    def accepts(self, attribute: Attribute) -> bool:
        if isinstance(attribute.type, type) and attribute.type in self.types:
            return True
        return bool(attribute.options.get('sql_type')) and not is_mapped_type(attribute.type, self.types)

    def build(self, attribute: Attribute) -> Column:
        sql_type = attribute.options.get('sql_type')
        if sql_type:
            return Column(attribute.column_name, sql_type, int(sql_type_code(sql_type)), attribute.type)
        sqlob_type = self.types.lookup(attribute.type)
        return Column(attribute.column_name, sqlob_type.sql_type, sqlob_type.type_code, attribute.type)


class ReferenceColumnFactory(ColumnFactory):
    """Foreign-key columns for attributes typed with another mapped class.

    The column is typed like the referenced primary key.
    """

    def __init__(self, types: TypeRegistry) -> None:
        self.types = types

    def accepts(self, attribute: Attribute) -> bool:
        return is_mapped_type(attribute.type, self.types)

    def build(self, attribute: Attribute) -> Column:
        key_type = self.types.lookup(uuid.UUID)
        return ReferenceColumn(attribute.column_name, key_type.sql_type, key_type.type_code,
                               attribute.type, referenced=attribute.type)
