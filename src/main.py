"""
SqlAdminOps - SQL Server administrative automation.

Grants availability group and endpoint permissions and reports SQL Server
and Windows uptime.
"""

import sys

from sqladminops.interface.cli import main


if __name__ == "__main__":
    sys.exit(main())
