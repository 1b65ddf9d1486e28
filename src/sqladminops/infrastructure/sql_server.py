"""
SQL Server connection and object-model access.

Handles:
- Connection string building
- ODBC driver detection and fallback
- Reading server identity, endpoints, availability groups and logins
- Issuing GRANT / CREATE LOGIN / ALTER AVAILABILITY GROUP statements

Statements are rendered from the bundled T-SQL templates.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List

import pyodbc

from sqladminops.domain.config.models.app_settings import AppSettings
from sqladminops.domain.config.models.credential import Credential
from sqladminops.domain.errors import InstanceConnectionError, OperationFailedError
from sqladminops.domain.models import (
    AvailabilityGroup,
    Endpoint,
    Login,
    Permission,
    TargetInstance,
)
from sqladminops.infrastructure.sql.template_manager import get_sql_query

logger = logging.getLogger(__name__)

# sys.server_principals.type -> login type name
LOGIN_TYPES = {
    "S": "SqlLogin",
    "U": "WindowsUser",
    "G": "WindowsGroup",
    "C": "Certificate",
    "K": "AsymmetricKey",
    "E": "ExternalUser",
    "X": "ExternalGroup",
}

PREFERRED_DRIVERS = [
    "ODBC Driver 18 for SQL Server",
    "ODBC Driver 17 for SQL Server",
    "ODBC Driver 13 for SQL Server",
    "ODBC Driver 11 for SQL Server",
]

FALLBACK_DRIVERS = [
    "SQL Server Native Client 11.0",
    "SQL Server Native Client 10.0",
    "SQL Server",
]


class SqlConnector:
    """
    Opens SqlServerSession objects.

    Uses Windows integrated authentication unless a SQL credential is given.
    """

    def __init__(self, settings: AppSettings | None = None):
        self.settings = settings or AppSettings()
        self._driver: str | None = self.settings.odbc_driver

    def _detect_odbc_driver(self) -> str:
        """
        Detect best available ODBC driver.

        Raises:
            RuntimeError: If no suitable driver found
        """
        if self._driver:
            return self._driver

        drivers = pyodbc.drivers()
        logger.debug("Available ODBC drivers: %s", drivers)

        for driver in PREFERRED_DRIVERS:
            if driver in drivers:
                logger.debug("Using ODBC driver: %s", driver)
                self._driver = driver
                return driver

        for driver in FALLBACK_DRIVERS:
            if driver in drivers:
                logger.warning("Using fallback ODBC driver: %s", driver)
                self._driver = driver
                return driver

        raise RuntimeError("No SQL Server ODBC driver found. Please install ODBC Driver 17 or 18.")

    def build_connection_string(self, target: TargetInstance, credential: Credential | None = None) -> str:
        """Build the ODBC connection string for a target."""
        driver = self._detect_odbc_driver()

        parts = [
            f"DRIVER={{{driver}}}",
            f"SERVER={target.connection_string_server}",
            "DATABASE=master",
            f"Encrypt={'yes' if self.settings.encrypt else 'no'}",
            f"TrustServerCertificate={'yes' if self.settings.trust_server_certificate else 'no'}",
            "APP=sqladminops",
        ]

        credential = credential or target.credential
        if credential is None:
            parts.append("Trusted_Connection=yes")
        else:
            parts.append(f"UID={credential.username}")
            parts.append("PWD={" + credential.get_password().replace("}", "}}") + "}")

        return ";".join(parts)

    def connect(self, target: TargetInstance, credential: Credential | None = None) -> SqlServerSession:
        """
        Open a session to the target.

        Raises:
            InstanceConnectionError: If no driver is available or the login fails
        """
        target = TargetInstance.parse(target)
        try:
            conn_str = self.build_connection_string(target, credential)
            connection = pyodbc.connect(conn_str, autocommit=True, timeout=self.settings.connect_timeout)
        except (pyodbc.Error, RuntimeError) as e:
            raise InstanceConnectionError(
                str(e), target=target.full_name, operation="Connect"
            ) from e

        try:
            session = SqlServerSession(connection, target)
        except OperationFailedError as e:
            connection.close()
            raise InstanceConnectionError(
                e.message, target=target.full_name, operation="Connect"
            ) from e
        logger.info("Connected to %s", session.name)
        return session


class SqlServerSession:
    """
    Session to one SQL Server instance.

    Exposes the small slice of the server object graph the commands use.
    Endpoints are cached until refresh_endpoints() is called.
    """

    def __init__(self, connection: Any, target: TargetInstance):
        self._connection = connection
        self.target = target
        self._endpoints: List[Endpoint] | None = None
        self.name: str = target.full_name

        props = self._fetch_one(get_sql_query("server_properties"), operation="Read server properties")
        self.name: str = (props or {}).get("ServerName") or target.full_name
        self.computer_name: str = (props or {}).get("ComputerName") or target.host
        self.instance_name: str = (props or {}).get("InstanceName") or "MSSQLSERVER"

    def __repr__(self) -> str:
        return f"SqlServerSession({self.name!r})"

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------

    def execute_query(self, query: str, *params: Any, operation: str = "Query") -> List[Dict[str, Any]]:
        """
        Execute a query and return rows as dictionaries.

        Raises:
            OperationFailedError: If the statement fails
        """
        try:
            cursor = self._connection.cursor()
            try:
                cursor.execute(query, *params)
                if cursor.description is None:
                    return []
                columns = [column[0] for column in cursor.description]
                rows = [dict(zip(columns, row)) for row in cursor.fetchall()]
            finally:
                cursor.close()
        except pyodbc.Error as e:
            raise OperationFailedError(str(e), target=self.name, operation=operation) from e

        logger.debug("%s returned %d rows", operation, len(rows))
        return rows

    def _fetch_one(self, query: str, *params: Any, operation: str) -> Dict[str, Any] | None:
        rows = self.execute_query(query, *params, operation=operation)
        return rows[0] if rows else None

    def _execute(self, query: str, operation: str) -> None:
        logger.debug("Executing on %s: %s", self.name, query)
        self.execute_query(query, operation=operation)

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def refresh_endpoints(self) -> None:
        self._endpoints = None

    @property
    def endpoints(self) -> List[Endpoint]:
        if self._endpoints is None:
            rows = self.execute_query(get_sql_query("list_endpoints"), operation="List endpoints")
            self._endpoints = [
                Endpoint(name=row["EndpointName"], endpoint_type=row["EndpointType"])
                for row in rows
            ]
        return self._endpoints

    def find_endpoint(self, endpoint_type: str) -> Endpoint | None:
        for endpoint in self.endpoints:
            if endpoint.endpoint_type.upper() == endpoint_type.upper():
                return endpoint
        return None

    def grant_endpoint_permission(self, endpoint: Endpoint, permission: Permission, login: str) -> None:
        query = get_sql_query(
            "grant_endpoint_permission",
            permission=permission.sql,
            endpoint=endpoint.name,
            login=login,
        )
        self._execute(query, operation=f"Grant {permission.value} on endpoint {endpoint.name} to {login}")

    # ------------------------------------------------------------------
    # Availability groups
    # ------------------------------------------------------------------

    def get_availability_groups(self, names: Iterable[str] | None = None) -> List[AvailabilityGroup]:
        """Availability groups on this instance, optionally filtered by name."""
        rows = self.execute_query(
            get_sql_query("list_availability_groups"), operation="List availability groups"
        )
        groups = [AvailabilityGroup(name=row["GroupName"]) for row in rows]
        if names is None:
            return groups
        wanted = {name.lower() for name in names}
        return [group for group in groups if group.name.lower() in wanted]

    def grant_availability_group_permission(
        self, group: AvailabilityGroup, permission: Permission, login: str
    ) -> None:
        query = get_sql_query(
            "grant_availability_group_permission",
            permission=permission.sql,
            group=group.name,
            login=login,
        )
        self._execute(query, operation=f"Grant {permission.value} on availability group {group.name} to {login}")

    def grant_create_any_database(self, group: AvailabilityGroup) -> None:
        query = get_sql_query("grant_create_any_database", group=group.name)
        self._execute(query, operation=f"Grant CreateAnyDatabase on availability group {group.name}")

    # ------------------------------------------------------------------
    # Logins
    # ------------------------------------------------------------------

    def get_logins(self, names: Iterable[str] | None = None) -> List[Login]:
        """Logins on this instance, optionally filtered by name (case-insensitive)."""
        rows = self.execute_query(get_sql_query("list_logins"), operation="List logins")
        logins = [
            Login(
                name=row["LoginName"],
                login_type=LOGIN_TYPES.get(str(row["LoginTypeCode"]).strip(), "Unknown"),
                parent=self,
            )
            for row in rows
        ]
        if names is None:
            return logins
        wanted = {name.lower() for name in names}
        return [login for login in logins if login.name.lower() in wanted]

    def create_windows_login(self, name: str) -> Login:
        self._execute(get_sql_query("create_windows_login", login=name), operation=f"Create login {name}")
        logger.info("Created Windows login %s on %s", name, self.name)
        created = self.get_logins([name])
        if created:
            return created[0]
        return Login(name=name, login_type="WindowsUser", parent=self)

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    def get_database_create_date(self, database: str) -> datetime:
        """
        Creation time of a database as an aware UTC datetime.

        sys.databases stores server-local time; the server's current UTC
        offset is read in the same statement.
        """
        row = self._fetch_one(
            get_sql_query("database_create_date"),
            database,
            operation=f"Read {database} creation date",
        )
        if row is None or row["CreateDate"] is None:
            raise OperationFailedError(
                f"Database {database} not found", target=self.name, operation="Read creation date"
            )
        local_created = row["CreateDate"]
        offset = timedelta(minutes=int(row["UtcOffsetMinutes"] or 0))
        return (local_created - offset).replace(tzinfo=timezone.utc)

    def close(self) -> None:
        try:
            self._connection.close()
        except pyodbc.Error as e:
            logger.debug("Closing connection to %s failed: %s", self.name, e)
