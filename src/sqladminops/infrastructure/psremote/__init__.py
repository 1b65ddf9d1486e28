"""
PSRemote Infrastructure Package.

PowerShell remoting through pywinrm, plus the host facts read over it.
"""

from sqladminops.infrastructure.psremote.client import (
    ConnectionConfig,
    PSRemoteClient,
    PSRemoteResult,
)
from sqladminops.infrastructure.psremote.host_info import WindowsHostInfoProvider

__all__ = [
    "ConnectionConfig",
    "PSRemoteClient",
    "PSRemoteResult",
    "WindowsHostInfoProvider",
]
