"""
SQL Template Manager - Load and render T-SQL from bundled template files.

Identifiers are bracket-quoted through the `quote_name` filter; values
are passed to pyodbc as `?` parameters and never rendered into the text.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"


def quote_name(identifier: str) -> str:
    """Bracket-quote an identifier the way QUOTENAME() does."""
    return "[" + str(identifier).replace("]", "]]") + "]"


class SqlTemplateManager:
    """
    Manages T-SQL templates loaded from .sql files.

    Templates are rendered with StrictUndefined so a missing variable
    fails loudly instead of producing partial DDL.
    """

    def __init__(self, template_dir: Path | str = TEMPLATE_DIR):
        """
        Initialize template manager.

        Args:
            template_dir: Directory containing .sql template files
        """
        self.template_dir = Path(template_dir)
        if not self.template_dir.exists():
            raise FileNotFoundError(f"SQL template directory not found: {self.template_dir}")

        self._env = Environment(
            loader=FileSystemLoader(self.template_dir),
            trim_blocks=True,
            lstrip_blocks=True,
            autoescape=False,  # SQL doesn't need HTML escaping
            undefined=StrictUndefined,
        )
        self._env.filters["quote_name"] = quote_name

        self._templates: Dict[str, Template] = {}

        logger.debug("SQL Template Manager initialized: %s", self.template_dir)

    def get_query(self, template_name: str, **kwargs) -> str:
        """
        Load and render a SQL template.

        Args:
            template_name: Name of template file (without .sql extension)
            **kwargs: Template variables

        Returns:
            Rendered SQL text

        Raises:
            FileNotFoundError: If template doesn't exist
        """
        if template_name not in self._templates:
            template_path = self.template_dir / f"{template_name}.sql"
            if not template_path.exists():
                raise FileNotFoundError(f"SQL template not found: {template_path}")
            self._templates[template_name] = self._env.get_template(f"{template_name}.sql")
            logger.debug("Loaded SQL template: %s", template_name)

        return self._templates[template_name].render(**kwargs).strip()

    def list_templates(self) -> list[str]:
        """List all available template names."""
        return sorted(f.stem for f in self.template_dir.glob("*.sql"))


_template_manager: Optional[SqlTemplateManager] = None


def get_sql_query(template_name: str, **kwargs) -> str:
    """Render a query with the application-wide template manager."""
    global _template_manager
    if _template_manager is None:
        _template_manager = SqlTemplateManager()
    return _template_manager.get_query(template_name, **kwargs)
