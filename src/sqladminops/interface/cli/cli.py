"""
CLI main entry point.
"""

from .orchestrator import app


def main() -> int:
    """
    Main entry point for the sqladminops console script.

    Returns:
        int: Exit code (Typer exits the process itself on errors)
    """
    app()
    return 0
