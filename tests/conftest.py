"""
Shared test helpers: mock sessions and connectors at the protocol seam.
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

from sqladminops.domain.errors import InstanceConnectionError
from sqladminops.domain.models import AvailabilityGroup, Endpoint, Login, TargetInstance

HADR_ENDPOINT = Endpoint(name="Hadr_endpoint", endpoint_type="DATABASE_MIRRORING")


def make_session(
    name: str = "SQL1",
    computer_name: str | None = None,
    instance_name: str = "MSSQLSERVER",
    logins: tuple = (),
    groups: tuple = ("ag1",),
    endpoint: Endpoint | None = HADR_ENDPOINT,
    tempdb_created: datetime | None = None,
) -> MagicMock:
    """MagicMock ServerSession backed by simple in-memory state."""
    session = MagicMock()
    session.name = name
    session.computer_name = computer_name or name.split("\\")[0]
    session.instance_name = instance_name
    existing = list(logins)

    def get_logins(names=None):
        wanted = None if names is None else {n.lower() for n in names}
        return [
            Login(name=n, login_type="WindowsUser", parent=session)
            for n in existing
            if wanted is None or n.lower() in wanted
        ]

    def create_windows_login(login_name):
        existing.append(login_name)
        return Login(name=login_name, login_type="WindowsUser", parent=session)

    def get_availability_groups(names=None):
        wanted = None if names is None else {n.lower() for n in names}
        return [AvailabilityGroup(g) for g in groups if wanted is None or g.lower() in wanted]

    session.get_logins.side_effect = get_logins
    session.create_windows_login.side_effect = create_windows_login
    session.get_availability_groups.side_effect = get_availability_groups
    session.find_endpoint.return_value = endpoint
    session.get_database_create_date.return_value = (
        tempdb_created or datetime(2026, 10, 1, 8, 0, 0, tzinfo=timezone.utc)
    )
    return session


def make_connector(sessions: dict) -> MagicMock:
    """Connector returning sessions by instance name; unknown names fail to connect."""
    connector = MagicMock()

    def connect(target, credential=None):
        key = TargetInstance.parse(target).full_name
        if key not in sessions:
            raise InstanceConnectionError("Login timeout expired", target=key, operation="Connect")
        return sessions[key]

    connector.connect.side_effect = connect
    return connector
