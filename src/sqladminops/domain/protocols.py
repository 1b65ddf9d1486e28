"""
Interfaces to the external collaborators.

The command handlers only talk to these protocols. The infrastructure
layer implements them on top of pyodbc, pywinrm and PowerShell; tests
replace them with mocks.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Protocol, runtime_checkable

from sqladminops.domain.config.models.credential import Credential
from sqladminops.domain.models import (
    AvailabilityGroup,
    Endpoint,
    Login,
    Permission,
    TargetInstance,
)


@runtime_checkable
class ServerSession(Protocol):
    """Authenticated session to one SQL Server instance."""

    name: str
    computer_name: str
    instance_name: str

    def refresh_endpoints(self) -> None: ...

    def find_endpoint(self, endpoint_type: str) -> Endpoint | None: ...

    def grant_endpoint_permission(
        self, endpoint: Endpoint, permission: Permission, login: str
    ) -> None: ...

    def get_availability_groups(
        self, names: Iterable[str] | None = None
    ) -> list[AvailabilityGroup]: ...

    def grant_availability_group_permission(
        self, group: AvailabilityGroup, permission: Permission, login: str
    ) -> None: ...

    def grant_create_any_database(self, group: AvailabilityGroup) -> None: ...

    def get_logins(self, names: Iterable[str] | None = None) -> list[Login]: ...

    def create_windows_login(self, name: str) -> Login: ...

    def get_database_create_date(self, database: str) -> datetime: ...

    def close(self) -> None: ...


class InstanceConnector(Protocol):
    """Opens sessions to SQL Server instances."""

    def connect(
        self, target: TargetInstance, credential: Credential | None = None
    ) -> ServerSession: ...


class NetworkNameResolver(Protocol):
    """Resolves a host name to its fully-qualified name."""

    def resolve(self, host: str, credential: Credential | None = None) -> str: ...


class HostInfoProvider(Protocol):
    """Reads host-level facts over the remote-management transports."""

    def get_last_boot_time(
        self, host: str, credential: Credential | None = None
    ) -> datetime: ...

    def get_last_boot_time_dcom(
        self, host: str, credential: Credential | None = None
    ) -> datetime: ...
