"""
Configuration infrastructure: JSON files, credentials and settings.
"""

from sqladminops.infrastructure.config.credential_manager import CredentialManager
from sqladminops.infrastructure.config.manager import ConfigManager
from sqladminops.infrastructure.config.repository import ConfigRepository

__all__ = [
    "ConfigManager",
    "ConfigRepository",
    "CredentialManager",
]
