"""
Per-item failure reporting for command handlers.

Each unit of work either adds a record to the CommandResult or reports
an error through the FailureReporter. By default errors become WARNING
log records and the handler moves on; with enable_exception the error
is raised to the caller instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Generic, List, TypeVar

from sqladminops.domain.errors import SqlAdminError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CommandResult(Generic[T]):
    """Everything a command produced."""

    records: List[T] = field(default_factory=list)
    errors: List[SqlAdminError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    previews: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


class FailureReporter:
    """
    Routes failures into a CommandResult or up to the caller.
    """

    def __init__(self, result: CommandResult, enable_exception: bool = False, log: logging.Logger | None = None):
        self.result = result
        self.enable_exception = enable_exception
        self.log = log or logger

    def fail(self, error: SqlAdminError) -> None:
        """
        Report a failed unit of work.

        Raises:
            SqlAdminError: The same error, when enable_exception is set
        """
        self.result.errors.append(error)
        if self.enable_exception:
            raise error
        self.log.warning("%s", error)

    def warn(self, message: str) -> None:
        """Degraded output that never stops the command."""
        self.result.warnings.append(message)
        self.log.warning("%s", message)

    def preview(self, message: str) -> None:
        """Describe a mutating action that was not executed."""
        self.result.previews.append(message)
        self.log.info("What if: %s", message)
