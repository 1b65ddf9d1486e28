"""
SQL Server T-SQL templates.
"""

from sqladminops.infrastructure.sql.template_manager import (
    SqlTemplateManager,
    get_sql_query,
    quote_name,
)

__all__ = [
    "SqlTemplateManager",
    "get_sql_query",
    "quote_name",
]
