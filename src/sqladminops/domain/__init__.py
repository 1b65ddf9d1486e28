"""
Domain layer: entities, error taxonomy and collaborator interfaces.
"""

from sqladminops.domain.errors import (
    ConfigurationError,
    InstanceConnectionError,
    ObjectNotFoundError,
    OperationFailedError,
    ParameterValidationError,
    SqlAdminError,
    UnsupportedPermissionError,
)
from sqladminops.domain.models import (
    AG_PERMISSIONS,
    DEFAULT_PERMISSIONS,
    AvailabilityGroup,
    Endpoint,
    GrantResult,
    GrantType,
    Login,
    Permission,
    PermissionGrantRequest,
    TargetInstance,
    UptimeReport,
    format_duration,
)

__all__ = [
    "AG_PERMISSIONS",
    "DEFAULT_PERMISSIONS",
    "AvailabilityGroup",
    "ConfigurationError",
    "Endpoint",
    "GrantResult",
    "GrantType",
    "InstanceConnectionError",
    "Login",
    "ObjectNotFoundError",
    "OperationFailedError",
    "ParameterValidationError",
    "Permission",
    "PermissionGrantRequest",
    "SqlAdminError",
    "TargetInstance",
    "UnsupportedPermissionError",
    "UptimeReport",
    "format_duration",
]
