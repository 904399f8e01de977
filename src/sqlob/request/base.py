"""
Base class for persistence requests.

A request is bound to one mapped type when it is built, executes exactly
once, and returns a Result. `execute` accepts either an ExecutionContext,
which the request runs in, or a connection, which is wrapped in a context
for the call only: committed on success, rolled back on error, and always
released.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any

from sqlob.context import ExecutionContext
from sqlob.result import Result

logger = logging.getLogger(__name__)


class Request(ABC):
    """One generated statement (or statement batch) against one mapped type.
    """

    def __init__(self, cls: type) -> None:
        if not isinstance(cls, type):
            raise TypeError(f'Requests are bound to a class, got {cls!r}')
        self.type = cls
        self._executed = False

    @property
    def executed(self) -> bool:
        return self._executed

    def execute(self, target: Any) -> Result:
        """Run the request.

        Args:
            target: ExecutionContext, or a connection wrapped in a new context
                for this call

        Returns
            Result of the request

        Raises
            RuntimeError: If the request was already executed
            DatabaseExecutionError: If the driver fails
        """
        if self._executed:
            raise RuntimeError(f'{type(self).__name__} can only be executed once')
        self._executed = True

        if isinstance(target, ExecutionContext):
            return self._run(target)
        with ExecutionContext(target) as context:
            return self._run(context)

    def _run(self, context: ExecutionContext) -> Result:
        with context.scope():
            return self.run(context)

    @abstractmethod
    def run(self, context: ExecutionContext) -> Result:
        """Build and execute the statement(s) in `context`."""

    def __repr__(self) -> str:
        state = 'executed' if self._executed else 'pending'
        return f'<{type(self).__name__} {self.type.__name__} {state}>'
