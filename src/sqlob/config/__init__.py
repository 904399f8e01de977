"""
Per-dialect mapping configuration.

A Configuration bundles everything needed to map types for one dialect: the
frozen type registry, the column factories in priority order, the primary
key column name and the cache of schema descriptors. It is passed explicitly
to execution contexts; `get_configuration` memoizes one per dialect.
"""
import logging
import threading
from collections.abc import Sequence
from functools import lru_cache

from sqlob.column import Attribute, Column, ColumnFactory, ReferenceColumnFactory
from sqlob.column import ScalarColumnFactory
from sqlob.config.type_mapping import TypeMappingConfig
from sqlob.exceptions import NoApplicableColumnFactoryError
from sqlob.schema import SqlobClass
from sqlob.strategy import get_strategy
from sqlob.types import TypeRegistry

logger = logging.getLogger(__name__)

__all__ = ['Configuration', 'TypeMappingConfig', 'get_configuration']


class Configuration:
    """Mapping configuration for one dialect.

    Args:
        dialect: Registered dialect name ('sqlite', 'postgresql')
        types: Type registry; frozen on construction
        factories: Column factories in priority order (scalar, then reference
            by default)
        primary_key: Name of the generated identifier column
    """

    def __init__(self, dialect: str, types: TypeRegistry | None = None,
                 factories: Sequence[ColumnFactory] | None = None,
                 primary_key: str = 'id') -> None:
        self.dialect = dialect
        self.strategy = get_strategy(dialect)
        if types is None:
            types = TypeRegistry(self.strategy.get_type_map())
        self.types = types.freeze()
        if factories is None:
            factories = (ScalarColumnFactory(self.types), ReferenceColumnFactory(self.types))
        self.factories = tuple(factories)
        self.primary_key = primary_key
        self._descriptors: dict[type, SqlobClass] = {}
        self._locks: dict[type, threading.Lock] = {}
        self._lock = threading.Lock()

    def column_for(self, attribute: Attribute) -> Column:
        """Build the column for an attribute with the first accepting factory.

        Raises
            NoApplicableColumnFactoryError: If no factory accepts the attribute
        """
        for factory in self.factories:
            if factory.accepts(attribute):
                return factory.build(attribute)
        raise NoApplicableColumnFactoryError(
            f'No column factory accepts {attribute.owner.__name__}.{attribute.name} '
            f'of type {attribute.type!r} for {self.dialect}')

    def describe(self, cls: type) -> SqlobClass:
        """Return the cached schema descriptor for `cls`, building it once.
        """
        descriptor = self._descriptors.get(cls)
        if descriptor is not None:
            return descriptor

        with self._lock:
            lock = self._locks.setdefault(cls, threading.Lock())

        with lock:
            descriptor = self._descriptors.get(cls)
            if descriptor is None:
                descriptor = SqlobClass(cls, self)
                self._descriptors[cls] = descriptor
                logger.debug(f'Described {cls.__name__} as table {descriptor.name} '
                             f'with {len(descriptor.fields)} columns')
        return descriptor

    def __repr__(self) -> str:
        return f'Configuration({self.dialect!r}, primary_key={self.primary_key!r})'


@lru_cache(maxsize=16)
def get_configuration(dialect: str, type_mapping: str | None = None,
                      primary_key: str = 'id') -> Configuration:
    """Get the shared Configuration for a dialect.

    Args:
        dialect: Registered dialect name
        type_mapping: Optional path to a JSON file overriding column types
        primary_key: Name of the generated identifier column

    Returns
        Configuration, the same instance for the same arguments
    """
    strategy = get_strategy(dialect)
    type_map = strategy.get_type_map()
    if type_mapping:
        type_map.update(TypeMappingConfig(type_mapping).get_types(dialect))
    return Configuration(dialect, TypeRegistry(type_map), primary_key=primary_key)
