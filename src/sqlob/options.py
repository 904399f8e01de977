import logging
import pathlib
import sys
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any, Self

from sqlob.strategy import get_available_dialects, get_strategy_class
from sqlob.strategy import is_supported_dialect

logger = logging.getLogger(__name__)

__all__ = ['DatabaseOptions']


def _scriptname() -> str | None:
    """Name of the running script, without extension."""
    if not sys.argv or not sys.argv[0]:
        return None
    return pathlib.Path(sys.argv[0]).stem or None


def _section(config: Any, name: str) -> Any:
    """Walk a dotted path through a config module, object or mapping."""
    node = config
    for part in name.split('.'):
        if isinstance(node, Mapping):
            if part not in node:
                raise KeyError(f'Config section {name!r} not found (missing {part!r})')
            node = node[part]
        else:
            if not hasattr(node, part):
                raise KeyError(f'Config section {name!r} not found (missing {part!r})')
            node = getattr(node, part)
    return node


@dataclass
class DatabaseOptions:
    """Options

    supported driver names: `postgresql`, `sqlite`

    Connection pooling options:
    - use_pool: Whether to use connection pooling (default: False)
    - pool_max_connections: Maximum connections in pool (default: 5)
    - pool_max_idle_time: Maximum seconds a connection can be idle (default: 300)
    - pool_wait_timeout: Maximum seconds to wait for a connection (default: 30)

    Mapping options:
    - primary_key: Name of the generated identifier column (default: id)
    - type_mapping: Path to a JSON file overriding the dialect's column types
    """
    drivername: str = 'postgresql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    appname: str = None
    check_connection: bool = True
    # Connection pooling parameters
    use_pool: bool = False
    pool_max_connections: int = 5
    pool_max_idle_time: int = 300
    pool_wait_timeout: int = 30
    # Mapping parameters
    primary_key: str = 'id'
    type_mapping: str = None

    def __post_init__(self):
        if not is_supported_dialect(self.drivername):
            available = get_available_dialects()
            raise ValueError(f'drivername must be one of: {available}')
        self.appname = self.appname or _scriptname() or 'python_console'
        if not self.primary_key:
            raise ValueError('primary_key cannot be empty')
        strategy_cls = get_strategy_class(self.drivername)
        strategy_cls.validate_options(self)

    @classmethod
    def from_config(cls, name: str, config: Any, **overrides: Any) -> Self:
        """Build options from a named section of a config module, object or dict.

        Args:
            name: Dotted path to the section, e.g. ``'postgres.dev'``
            config: Module, object or mapping holding the section
            **overrides: Values replacing those read from the section

        Returns
            DatabaseOptions for the section

        Raises
            KeyError: If the section does not exist
        """
        section = _section(config, name)
        if not isinstance(section, Mapping):
            section = {k: v for k, v in vars(section).items() if not k.startswith('_')}

        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in section.items() if k in known}
        ignored = sorted(set(section) - known)
        if ignored:
            logger.debug(f'Ignoring unknown options in {name}: {ignored}')

        values.update(overrides)
        return cls(**values)
