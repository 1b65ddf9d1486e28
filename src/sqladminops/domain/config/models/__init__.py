"""
Configuration domain models.
"""

from .app_settings import AppSettings, WinRMSettings
from .credential import Credential
from .sql_target import SqlTarget

__all__ = [
    "AppSettings",
    "Credential",
    "SqlTarget",
    "WinRMSettings",
]
