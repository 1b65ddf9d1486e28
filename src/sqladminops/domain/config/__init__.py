"""
Configuration domain package.

This package contains the domain layer for configuration management.
"""

from typing import Dict, List

from .models import AppSettings, Credential, SqlTarget, WinRMSettings

# Type aliases for collections
SqlTargets = List[SqlTarget]
Credentials = Dict[str, Credential]

__all__ = [
    "AppSettings",
    "Credential",
    "Credentials",
    "SqlTarget",
    "SqlTargets",
    "WinRMSettings",
]
