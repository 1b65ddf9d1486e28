"""
SqlAdminOps - SQL Server administrative automation.

Grants availability group / endpoint permissions and reports SQL Server
and Windows uptime across instances.

Usage:
    # CLI
    sqladminops grant-ag-permission -S sql1 -t Endpoint -l CORP\\svc_sql
    sqladminops uptime -S sql1 -S sql2\\inst

    # Programmatic
    from sqladminops.application.container import Container

    result = Container().uptime_service.get_uptime(["sql1"])
"""

__version__ = "0.1.0"
