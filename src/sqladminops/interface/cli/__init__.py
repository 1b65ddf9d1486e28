"""
CLI package for SqlAdminOps.
"""

from .cli import main
from .orchestrator import app

__all__ = ["app", "main"]
