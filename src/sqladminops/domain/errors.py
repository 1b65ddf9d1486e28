"""
Error taxonomy for SqlAdminOps.

Every error carries the identity of the target it happened on and the
operation that was attempted, so a warning can be read on its own.
"""

from __future__ import annotations


class SqlAdminError(Exception):
    """Base exception for all command failures."""

    def __init__(self, message: str, target: str | None = None, operation: str | None = None):
        super().__init__(message)
        self.message = message
        self.target = target
        self.operation = operation

    def __str__(self) -> str:
        if self.operation and self.target:
            return f"{self.operation} failed on {self.target}: {self.message}"
        if self.target:
            return f"{self.target}: {self.message}"
        return self.message


class ParameterValidationError(SqlAdminError):
    """Raised when a required parameter combination is missing."""


class InstanceConnectionError(SqlAdminError):
    """Raised when an instance or host cannot be reached or authenticated."""


class ObjectNotFoundError(SqlAdminError):
    """Raised when an endpoint, availability group or login does not exist."""


class UnsupportedPermissionError(SqlAdminError):
    """Raised when a permission is not valid for the securable type."""


class OperationFailedError(SqlAdminError):
    """Raised when a grant, login creation, alter or remote query fails."""


class ConfigurationError(SqlAdminError):
    """Raised for invalid configuration or credential files."""
