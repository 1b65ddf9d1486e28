"""
Dependency injection container for the application.

Creates infrastructure components once per CLI invocation and hands
them to the command services.
"""

import logging
from pathlib import Path
from typing import Optional

from sqladminops.application.permission_service import PermissionGrantService
from sqladminops.application.uptime_service import UptimeService
from sqladminops.domain.config import AppSettings
from sqladminops.infrastructure.config.manager import ConfigManager
from sqladminops.infrastructure.network import SocketNameResolver
from sqladminops.infrastructure.psremote.host_info import WindowsHostInfoProvider

logger = logging.getLogger(__name__)


class Container:
    """
    Dependency injection container.
    """

    def __init__(self, config_dir: Optional[Path] = None, settings: Optional[AppSettings] = None):
        """
        Args:
            config_dir: Base directory for configuration files
            settings: Overrides settings.json
        """
        self.config_dir = config_dir or Path.cwd() / "config"
        self._settings = settings

        self._config_manager: Optional[ConfigManager] = None
        self._connector = None
        self._permission_service: Optional[PermissionGrantService] = None
        self._uptime_service: Optional[UptimeService] = None

    @property
    def config_manager(self) -> ConfigManager:
        if self._config_manager is None:
            self._config_manager = ConfigManager(self.config_dir)
        return self._config_manager

    @property
    def settings(self) -> AppSettings:
        if self._settings is None:
            self._settings = self.config_manager.load_settings()
        return self._settings

    @property
    def connector(self):
        if self._connector is None:
            # pyodbc needs the ODBC driver manager at import time
            from sqladminops.infrastructure.sql_server import SqlConnector
            self._connector = SqlConnector(self.settings)
        return self._connector

    @property
    def permission_service(self) -> PermissionGrantService:
        if self._permission_service is None:
            self._permission_service = PermissionGrantService(self.connector)
        return self._permission_service

    @property
    def uptime_service(self) -> UptimeService:
        if self._uptime_service is None:
            self._uptime_service = UptimeService(
                connector=self.connector,
                resolver=SocketNameResolver(),
                host_info=WindowsHostInfoProvider(self.settings),
            )
        return self._uptime_service
