"""
Configuration for column type overrides.

A type mapping file is JSON keyed by dialect, then by value kind name:

    {
        "postgresql": {"str": "VARCHAR(255)", "decimal": "NUMERIC(18, 6)"},
        "sqlite": {"float": "REAL"}
    }

Entries replace the dialect's default SQL type for that kind.
"""
import json
import logging
import pathlib

from sqlob.types import value_kind

logger = logging.getLogger(__name__)


class TypeMappingConfig:
    """Configuration for custom type mappings"""

    def __init__(self, config_file=None):
        self._mappings: dict[str, dict[str, str]] = {
            'postgresql': {},
            'sqlite': {},
        }
        if config_file:
            self.load_config(config_file)

    def load_config(self, config_file):
        """Load configuration from file, merging over what is already loaded.

        Raises
            OSError: If the file cannot be read
            ValueError: If the file is not valid JSON or not keyed by dialect
        """
        with pathlib.Path(config_file).open() as f:
            config = json.load(f)

        if not isinstance(config, dict):
            raise ValueError(f'Type mapping {config_file} must be a JSON object keyed by dialect')

        for dialect, mappings in config.items():
            if not isinstance(mappings, dict):
                raise ValueError(f'Type mapping for {dialect} must be an object of kind -> SQL type')
            for kind_name, sql_type in mappings.items():
                self.add_mapping(dialect, kind_name, sql_type)

        logger.info(f'Loaded type mapping configuration from {config_file}')

    def add_mapping(self, dialect, kind_name, sql_type):
        """Add a single kind -> SQL type override for a dialect."""
        value_kind(kind_name)
        self._mappings.setdefault(dialect, {})[kind_name.lower()] = sql_type

    def get_types(self, dialect) -> dict[type, str]:
        """Return the overrides for a dialect keyed by value kind."""
        return {value_kind(name): sql_type
                for name, sql_type in self._mappings.get(dialect, {}).items()}
