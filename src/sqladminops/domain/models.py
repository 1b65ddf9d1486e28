"""
Domain models for SqlAdminOps.

This module contains the core entities the command handlers work with:
- Target instances and the logins fetched from them
- Permission and grant-type enumerations
- Output records (grant results, uptime reports)

These models are pure data structures with no I/O dependencies.
Sessions referenced by a Login are opaque to this module.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sqladminops.domain.config.models.credential import Credential


LOCALHOST_ALIASES = {"localhost", ".", "(local)", "127.0.0.1", "::1"}


# ============================================================================
# Enumerations
# ============================================================================

class GrantType(Enum):
    """Securable kinds a permission can be granted on."""
    ENDPOINT = "Endpoint"
    AVAILABILITY_GROUP = "AvailabilityGroup"

    @classmethod
    def parse(cls, value: str | GrantType) -> GrantType:
        """Case-insensitive lookup by value."""
        if isinstance(value, cls):
            return value
        for member in cls:
            if member.value.lower() == str(value).strip().lower():
                return member
        raise ValueError(
            f"Invalid type '{value}'. Expected one of: {', '.join(m.value for m in cls)}"
        )


class Permission(Enum):
    """Object permissions accepted by grant-ag-permission."""
    ALTER = "Alter"
    CONNECT = "Connect"
    CONTROL = "Control"
    CREATE_ANY_DATABASE = "CreateAnyDatabase"
    CREATE_SEQUENCE = "CreateSequence"
    DELETE = "Delete"
    EXECUTE = "Execute"
    IMPERSONATE = "Impersonate"
    INSERT = "Insert"
    RECEIVE = "Receive"
    REFERENCES = "References"
    SELECT = "Select"
    SEND = "Send"
    TAKE_OWNERSHIP = "TakeOwnership"
    UPDATE = "Update"
    VIEW_CHANGE_TRACKING = "ViewChangeTracking"
    VIEW_DEFINITION = "ViewDefinition"

    @property
    def sql(self) -> str:
        """T-SQL keyword form, e.g. TakeOwnership -> TAKE OWNERSHIP."""
        return re.sub(r"(?<!^)(?=[A-Z])", " ", self.value).upper()

    @classmethod
    def parse(cls, value: str | Permission) -> Permission:
        """Case-insensitive lookup by value."""
        if isinstance(value, cls):
            return value
        wanted = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        raise ValueError(
            f"Invalid permission '{value}'. Expected one of: {', '.join(m.value for m in cls)}"
        )


# Only these are valid on an availability group securable
AG_PERMISSIONS = frozenset({
    Permission.ALTER,
    Permission.CONTROL,
    Permission.TAKE_OWNERSHIP,
    Permission.VIEW_DEFINITION,
})

DEFAULT_PERMISSIONS = (Permission.CONNECT,)

ENDPOINT_TYPE_DATABASE_MIRRORING = "DATABASE_MIRRORING"


# ============================================================================
# Core Domain Models
# ============================================================================

@dataclass
class TargetInstance:
    """
    A SQL Server endpoint to connect to.

    Accepts the usual SQL Server notations:
    HOST, HOST\\INSTANCE, HOST,PORT and HOST\\INSTANCE,PORT.

    `credential` is the SQL login for this target and `os_credential` the
    Windows account for host queries; None falls back to the caller's.
    """
    host: str
    instance: str | None = None
    port: int | None = None
    credential: Credential | None = None
    os_credential: Credential | None = None

    def __post_init__(self) -> None:
        if not self.host or not self.host.strip():
            raise ValueError("Instance host name cannot be empty")
        self.host = self.host.strip()
        if self.instance is not None:
            self.instance = self.instance.strip() or None
        if self.port is not None and not 1 <= self.port <= 65535:
            raise ValueError("Port must be between 1 and 65535")

    @classmethod
    def parse(cls, value: str | TargetInstance) -> TargetInstance:
        """Parse an instance string into a TargetInstance."""
        if isinstance(value, TargetInstance):
            return value

        text = str(value).strip()
        port = None
        if "," in text:
            text, port_text = text.rsplit(",", 1)
            try:
                port = int(port_text.strip())
            except ValueError as e:
                raise ValueError(f"Invalid port in instance '{value}'") from e

        instance = None
        if "\\" in text:
            text, instance = text.split("\\", 1)
            # MSSQLSERVER is the default instance
            if instance.strip().upper() == "MSSQLSERVER":
                instance = None

        return cls(host=text, instance=instance, port=port)

    @property
    def full_name(self) -> str:
        """Display name in HOST\\INSTANCE[,PORT] form."""
        name = self.host
        if self.instance:
            name = f"{name}\\{self.instance}"
        if self.port:
            name = f"{name},{self.port}"
        return name

    @property
    def connection_string_server(self) -> str:
        """SERVER= value for an ODBC connection string."""
        host = "localhost" if self.is_localhost else self.host
        server = f"{host}\\{self.instance}" if self.instance else host
        if self.port:
            server = f"{server},{self.port}"
        return server

    @property
    def is_localhost(self) -> bool:
        return self.host.lower() in LOCALHOST_ALIASES

    def __str__(self) -> str:
        return self.full_name


@dataclass
class Endpoint:
    """Server-level endpoint (only the attributes grants need)."""
    name: str
    endpoint_type: str


@dataclass
class AvailabilityGroup:
    """Availability group known to an instance."""
    name: str


@dataclass
class Login:
    """
    Server-level security principal.

    `parent` is the session of the instance the login was fetched from;
    grants against this login are issued through it.
    """
    name: str
    login_type: str
    parent: Any = field(default=None, repr=False, compare=False)

    @property
    def is_windows(self) -> bool:
        return self.login_type in ("WindowsUser", "WindowsGroup")

    @property
    def sql_instance(self) -> str:
        return getattr(self.parent, "name", "") if self.parent is not None else ""

    def to_record(self) -> dict[str, Any]:
        return {
            "SqlInstance": self.sql_instance,
            "Name": self.name,
            "LoginType": self.login_type,
        }


def is_windows_account_name(name: str) -> bool:
    """True for DOMAIN\\account style names."""
    domain, _, account = name.partition("\\")
    return bool(domain.strip()) and bool(account.strip())


@dataclass
class PermissionGrantRequest:
    """One attempted grant; used for preview text and error context."""
    instance: str
    grant_type: GrantType
    permission: Permission
    target: str
    login: str

    def describe(self) -> str:
        kind = "endpoint" if self.grant_type is GrantType.ENDPOINT else "availability group"
        return (
            f"Granting {self.permission.value} on {kind} {self.target} "
            f"to {self.login} on {self.instance}"
        )


@dataclass
class GrantResult:
    """Output record for one successful grant."""
    computer_name: str
    instance_name: str
    sql_instance: str
    name: str
    permission: Permission
    operation: str = "Grant"
    status: str = "Success"

    def to_record(self) -> dict[str, Any]:
        return {
            "ComputerName": self.computer_name,
            "InstanceName": self.instance_name,
            "SqlInstance": self.sql_instance,
            "Name": self.name,
            "Permission": self.permission.value,
            "Operation": self.operation,
            "Status": self.status,
        }


@dataclass
class UptimeReport:
    """
    Uptime summary for one instance.

    Windows-side fields stay None when the host boot time could not be
    read; such reports are SQL-only and omit those keys from the record.
    """
    computer_name: str
    instance_name: str
    sql_server: str
    sql_start_time: datetime
    sql_uptime: timedelta
    windows_boot_time: datetime | None = None
    windows_uptime: timedelta | None = None

    @property
    def sql_only(self) -> bool:
        return self.windows_boot_time is None

    @property
    def since_sql_start(self) -> str:
        return format_duration(self.sql_uptime)

    @property
    def since_windows_boot(self) -> str | None:
        if self.windows_uptime is None:
            return None
        return format_duration(self.windows_uptime)

    def to_record(self) -> dict[str, Any]:
        if self.sql_only:
            return {
                "ComputerName": self.computer_name,
                "InstanceName": self.instance_name,
                "SqlServer": self.sql_server,
                "SqlUptime": self.sql_uptime,
                "SqlStartTime": self.sql_start_time,
                "SinceSqlStart": self.since_sql_start,
            }
        return {
            "ComputerName": self.computer_name,
            "InstanceName": self.instance_name,
            "SqlServer": self.sql_server,
            "SqlUptime": self.sql_uptime,
            "WindowsUptime": self.windows_uptime,
            "SqlStartTime": self.sql_start_time,
            "WindowsBootTime": self.windows_boot_time,
            "SinceSqlStart": self.since_sql_start,
            "SinceWindowsBoot": self.since_windows_boot,
        }


def record_columns(records: list[dict[str, Any]]) -> list[str]:
    """Union of record keys in first-seen order (SQL-only uptime rows lack some)."""
    columns: list[str] = []
    for record in records:
        for key in record:
            if key not in columns:
                columns.append(key)
    return columns


def elapsed_since(start: datetime, now: datetime) -> timedelta:
    """Elapsed time between two aware datetimes, never negative."""
    delta = now - start
    if delta < timedelta(0):
        return timedelta(0)
    return delta


def format_duration(duration: timedelta) -> str:
    """Render a duration as '{d} days {h} hours {m} minutes {s} seconds'."""
    total = max(int(duration.total_seconds()), 0)
    days, remainder = divmod(total, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{days} days {hours} hours {minutes} minutes {seconds} seconds"
