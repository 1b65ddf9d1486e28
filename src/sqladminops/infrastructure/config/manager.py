"""
Configuration manager.

Single entry point the CLI uses for settings, targets and credentials.
Everything is loaded lazily and cached for the life of the command.
"""

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from sqladminops.domain.config import AppSettings, Credential, SqlTargets
from sqladminops.domain.models import TargetInstance
from sqladminops.infrastructure.config.credential_manager import (
    MASTER_PASSWORD_ENV,
    CredentialManager,
)
from sqladminops.infrastructure.config.repository import ConfigRepository

logger = logging.getLogger(__name__)


class ConfigManager:
    """
    Loads and caches configuration for one CLI invocation.
    """

    def __init__(self, config_dir: Optional[Path] = None, master_password: Optional[str] = None):
        """
        Args:
            config_dir: Base directory for configuration files.
                        Defaults to 'config' under the current working directory.
            master_password: Overrides the SQLADMINOPS_MASTER_PASSWORD variable
        """
        if config_dir is None:
            config_dir = Path.cwd() / "config"

        self.config_dir = Path(config_dir)
        self.repository = ConfigRepository(self.config_dir)
        self.credential_manager = CredentialManager(
            self.repository,
            master_password=master_password or os.environ.get(MASTER_PASSWORD_ENV),
        )
        self._settings: Optional[AppSettings] = None
        self._sql_targets: Optional[SqlTargets] = None
        self._credentials_cache: Dict[str, Credential] = {}

    def load_settings(self) -> AppSettings:
        if self._settings is None:
            self._settings = self.repository.load_settings()
        return self._settings

    def load_sql_targets(self) -> SqlTargets:
        if self._sql_targets is None:
            logger.debug("Loading SQL targets configuration")
            self._sql_targets = self.repository.load_sql_targets()
            logger.debug("Loaded %d SQL targets", len(self._sql_targets))
        return self._sql_targets

    def get_enabled_targets(self) -> SqlTargets:
        return [target for target in self.load_sql_targets() if target.enabled]

    def get_targets_by_tag(self, tag: str) -> SqlTargets:
        """Enabled targets carrying `tag` (case-insensitive)."""
        wanted = tag.lower()
        return [
            target for target in self.get_enabled_targets()
            if wanted in (t.lower() for t in target.tags)
        ]

    def get_target_instances(self, tags: Optional[List[str]] = None) -> List[TargetInstance]:
        """
        Enabled targets as TargetInstances with their credentials loaded.

        With `tags`, only targets carrying at least one of them are returned.

        Raises:
            FileNotFoundError: If sql_targets.json is absent
            ConfigurationError: If a target or referenced credential is invalid
        """
        if tags:
            selected: SqlTargets = []
            for tag in tags:
                selected.extend(t for t in self.get_targets_by_tag(tag) if t not in selected)
        else:
            selected = self.get_enabled_targets()

        return [
            target.to_target_instance(
                credential=self.get_credential(target.credentials_ref),
                os_credential=self.get_credential(target.os_credentials_ref),
            )
            for target in selected
        ]

    def get_credential(self, cred_ref: Optional[str]) -> Optional[Credential]:
        """
        Credential for a reference; None passes through.

        Raises:
            ConfigurationError: If the credential cannot be loaded
        """
        if not cred_ref:
            return None
        if cred_ref not in self._credentials_cache:
            logger.debug("Loading credential: %s", cred_ref)
            self._credentials_cache[cred_ref] = self.credential_manager.load(cred_ref)
        return self._credentials_cache[cred_ref]
