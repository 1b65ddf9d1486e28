"""
Helpers shared by the command handlers.
"""

from sqladminops.application.common.reporting import CommandResult, FailureReporter

__all__ = ["CommandResult", "FailureReporter"]
