"""
Application layer: command services and their wiring.
"""

from sqladminops.application.common.reporting import CommandResult, FailureReporter
from sqladminops.application.permission_service import PermissionGrantService
from sqladminops.application.uptime_service import UptimeService

__all__ = [
    "CommandResult",
    "FailureReporter",
    "PermissionGrantService",
    "UptimeService",
]
