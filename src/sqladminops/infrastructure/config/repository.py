"""
Configuration repository for loading and saving config files.

Handles file I/O for settings.json, sql_targets.json and the
credentials/ directory. JSONC files (// line comments) are accepted.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List

from sqladminops.domain.config import AppSettings, SqlTarget, SqlTargets
from sqladminops.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)

_LINE_COMMENT = re.compile(r'^\s*//.*$', re.MULTILINE)


def _strip_comments(jsonc_content: str) -> str:
    """Strip whole-line // comments from JSONC content."""
    return _LINE_COMMENT.sub("", jsonc_content)


class ConfigRepository:
    """
    Repository for configuration file operations.
    """

    def __init__(self, config_dir: Path):
        """
        Initialize the config repository.

        Args:
            config_dir: Base directory for configuration files
        """
        self.config_dir = Path(config_dir)

    @property
    def credentials_dir(self) -> Path:
        return self.config_dir / "credentials"

    def load_json_file(self, filename: str) -> Dict[str, Any] | List[Any]:
        """
        Load `<filename>.json`, falling back to `<filename>.jsonc`.

        Raises:
            FileNotFoundError: If neither file exists
            ConfigurationError: If the file cannot be parsed
        """
        json_path = self.config_dir / f"{filename}.json"
        jsonc_path = self.config_dir / f"{filename}.jsonc"

        if json_path.exists():
            path, content = json_path, json_path.read_text(encoding='utf-8')
        elif jsonc_path.exists():
            path, content = jsonc_path, _strip_comments(jsonc_path.read_text(encoding='utf-8'))
        else:
            raise FileNotFoundError(
                f"Config file '{filename}.json' or '{filename}.jsonc' not found in {self.config_dir}"
            )

        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e

    def save_json_file(self, path: Path, data: Dict[str, Any]) -> None:
        """Write data as indented JSON, creating parent directories."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding='utf-8')
        logger.info("Saved config file: %s", path)

    def load_settings(self) -> AppSettings:
        """
        Load settings.json; defaults apply when the file is absent.

        Raises:
            ConfigurationError: If the file is invalid
        """
        try:
            data = self.load_json_file("settings")
        except FileNotFoundError:
            logger.debug("No settings file in %s, using defaults", self.config_dir)
            return AppSettings()

        try:
            return AppSettings(**data)
        except Exception as e:  # pydantic.ValidationError or a non-mapping payload
            raise ConfigurationError(f"Invalid settings: {e}") from e

    def load_sql_targets(self) -> SqlTargets:
        """
        Load sql_targets.json.

        Raises:
            FileNotFoundError: If the file is absent
            ConfigurationError: If the file or a target is invalid
        """
        data = self.load_json_file("sql_targets")
        targets_data = data.get("targets", data) if isinstance(data, dict) else data

        if not isinstance(targets_data, list):
            raise ConfigurationError("sql_targets must contain a 'targets' array or be an array")

        targets = []
        for i, target_data in enumerate(targets_data):
            try:
                targets.append(SqlTarget(**target_data))
            except Exception as e:  # pydantic.ValidationError or a non-mapping entry
                raise ConfigurationError(f"Invalid SQL target at index {i}: {e}") from e
        return targets

    def credential_path(self, cred_ref: str) -> Path:
        return self.credentials_dir / f"{cred_ref}.json"

    def load_credential_data(self, cred_ref: str) -> Dict[str, Any]:
        """
        Raw content of credentials/<cred_ref>.json.

        Raises:
            ConfigurationError: If the file is missing or unreadable
        """
        path = self.credential_path(cred_ref)
        if not path.exists():
            raise ConfigurationError(f"Credential file '{cred_ref}' not found in {self.credentials_dir}")
        try:
            data = json.loads(path.read_text(encoding='utf-8'))
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in credential file {path}: {e}") from e

        logger.debug("Loaded credential file %s", path)
        # Support both formats: direct object or wrapped in "credentials"
        if isinstance(data, dict) and "credentials" in data:
            data = data["credentials"]
        if not isinstance(data, dict):
            raise ConfigurationError(f"Credential file {path} must contain an object")
        return data
