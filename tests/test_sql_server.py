"""
Tests for SqlConnector and SqlServerSession against a fake pyodbc connection.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

pyodbc = pytest.importorskip("pyodbc")

from sqladminops.domain.config import AppSettings, Credential
from sqladminops.domain.errors import InstanceConnectionError, OperationFailedError
from sqladminops.domain.models import AvailabilityGroup, Endpoint, Permission, TargetInstance
from sqladminops.infrastructure import sql_server
from sqladminops.infrastructure.sql_server import SqlConnector, SqlServerSession

PROPS = (["ServerName", "ComputerName", "InstanceName"], [("SQL1\\INST", "SQL1", "INST")])


class FakeConnection:
    """
    Minimal pyodbc connection: the first result whose key occurs in the
    statement text is returned.
    """

    def __init__(self, results=None):
        self.results = {"SERVERPROPERTY": PROPS}
        self.results.update(results or {})
        self.executed = []
        self.closed = False

    def cursor(self):
        conn = self
        cursor = MagicMock()

        def execute(query, *params):
            conn.executed.append((query, params))
            cursor.description = None
            cursor.fetchall.return_value = []
            for key, value in conn.results.items():
                if key in query:
                    if isinstance(value, Exception):
                        raise value
                    columns, rows = value
                    cursor.description = [(c,) for c in columns]
                    cursor.fetchall.return_value = rows
                    break

        cursor.execute.side_effect = execute
        return cursor

    def close(self):
        self.closed = True


def make_session(results=None, target="SQL1\\INST"):
    conn = FakeConnection(results)
    return SqlServerSession(conn, TargetInstance.parse(target)), conn


class TestConnectionString:

    def test_integrated_security(self):
        connector = SqlConnector(AppSettings(odbc_driver="ODBC Driver 18 for SQL Server"))

        conn_str = connector.build_connection_string(TargetInstance.parse("SQL1\\INST,1433"))

        assert "DRIVER={ODBC Driver 18 for SQL Server}" in conn_str
        assert "SERVER=SQL1\\INST,1433" in conn_str
        assert "Trusted_Connection=yes" in conn_str
        assert "UID=" not in conn_str

    def test_sql_credential(self):
        connector = SqlConnector(AppSettings(odbc_driver="ODBC Driver 18 for SQL Server"))
        cred = Credential(username="sa", password="p}w")

        conn_str = connector.build_connection_string(TargetInstance.parse("SQL1"), cred)

        assert "UID=sa" in conn_str
        assert "PWD={p}}w}" in conn_str
        assert "Trusted_Connection" not in conn_str

    def test_localhost_alias(self):
        connector = SqlConnector(AppSettings(odbc_driver="x"))
        assert "SERVER=localhost\\INST" in connector.build_connection_string(TargetInstance.parse(".\\INST"))

    def test_driver_detection_prefers_newest(self, monkeypatch):
        monkeypatch.setattr(
            sql_server.pyodbc, "drivers",
            lambda: ["SQL Server", "ODBC Driver 17 for SQL Server", "ODBC Driver 18 for SQL Server"],
        )
        assert SqlConnector()._detect_odbc_driver() == "ODBC Driver 18 for SQL Server"

    def test_no_driver_is_connection_error(self, monkeypatch):
        monkeypatch.setattr(sql_server.pyodbc, "drivers", lambda: [])

        with pytest.raises(InstanceConnectionError) as exc:
            SqlConnector().connect("SQL1")
        assert exc.value.target == "SQL1"


class TestConnect:

    def test_connect_returns_session(self, monkeypatch):
        conn = FakeConnection()
        connect = MagicMock(return_value=conn)
        monkeypatch.setattr(sql_server.pyodbc, "connect", connect)

        session = SqlConnector(AppSettings(odbc_driver="x", connect_timeout=7)).connect("SQL1\\INST")

        assert session.name == "SQL1\\INST"
        assert session.computer_name == "SQL1"
        assert session.instance_name == "INST"
        assert connect.call_args.kwargs == {"autocommit": True, "timeout": 7}

    def test_login_failure(self, monkeypatch):
        monkeypatch.setattr(
            sql_server.pyodbc, "connect", MagicMock(side_effect=pyodbc.Error("28000", "Login failed"))
        )

        with pytest.raises(InstanceConnectionError):
            SqlConnector(AppSettings(odbc_driver="x")).connect("SQL1")

    def test_connection_closed_when_properties_fail(self, monkeypatch):
        conn = FakeConnection({"SERVERPROPERTY": pyodbc.Error("42000", "boom")})
        monkeypatch.setattr(sql_server.pyodbc, "connect", MagicMock(return_value=conn))

        with pytest.raises(InstanceConnectionError):
            SqlConnector(AppSettings(odbc_driver="x")).connect("SQL1")
        assert conn.closed


class TestSession:

    def test_default_instance_name(self):
        session, _ = make_session(
            {"SERVERPROPERTY": (["ServerName", "ComputerName", "InstanceName"], [("SQL1", "SQL1", None)])},
            target="SQL1",
        )
        assert session.instance_name == "MSSQLSERVER"

    def test_find_mirroring_endpoint(self):
        session, _ = make_session({
            "sys.endpoints": (
                ["EndpointName", "EndpointType"],
                [("TSQL Default TCP", "TSQL"), ("Hadr_endpoint", "DATABASE_MIRRORING")],
            ),
        })

        assert session.find_endpoint("DATABASE_MIRRORING") == Endpoint("Hadr_endpoint", "DATABASE_MIRRORING")

    def test_endpoints_cached_until_refresh(self):
        session, conn = make_session({"sys.endpoints": (["EndpointName", "EndpointType"], [])})

        session.find_endpoint("DATABASE_MIRRORING")
        session.find_endpoint("DATABASE_MIRRORING")
        assert sum("sys.endpoints" in q for q, _ in conn.executed) == 1

        session.refresh_endpoints()
        session.find_endpoint("DATABASE_MIRRORING")
        assert sum("sys.endpoints" in q for q, _ in conn.executed) == 2

    def test_get_logins_filters_case_insensitive(self):
        session, _ = make_session({
            "sys.server_principals": (
                ["LoginName", "LoginTypeCode"], [("DOM\\svc", "U"), ("sa", "S"), ("DOM\\dbas", "G")],
            ),
        })

        logins = session.get_logins(["dom\\SVC", "sa"])

        assert [(l.name, l.login_type) for l in logins] == [("DOM\\svc", "WindowsUser"), ("sa", "SqlLogin")]
        assert all(l.parent is session for l in logins)

    def test_availability_group_filter(self):
        session, _ = make_session({
            "sys.availability_groups": (["GroupName"], [("AG1",), ("AG2",)]),
        })

        assert session.get_availability_groups(["ag2"]) == [AvailabilityGroup("AG2")]

    def test_grant_statements(self):
        session, conn = make_session()

        session.grant_endpoint_permission(Endpoint("Hadr_endpoint", "DATABASE_MIRRORING"), Permission.CONNECT, "DOM\\svc")
        session.grant_availability_group_permission(AvailabilityGroup("ag1"), Permission.TAKE_OWNERSHIP, "DOM\\svc")
        session.grant_create_any_database(AvailabilityGroup("ag1"))

        statements = [q for q, _ in conn.executed[1:]]
        assert statements == [
            "GRANT CONNECT ON ENDPOINT::[Hadr_endpoint] TO [DOM\\svc]",
            "GRANT TAKE OWNERSHIP ON AVAILABILITY GROUP::[ag1] TO [DOM\\svc]",
            "ALTER AVAILABILITY GROUP [ag1] GRANT CREATE ANY DATABASE",
        ]

    def test_failed_statement_is_operation_error(self):
        session, _ = make_session({"GRANT": pyodbc.Error("15151", "Cannot find the login")})

        with pytest.raises(OperationFailedError) as exc:
            session.grant_create_any_database(AvailabilityGroup("ag1"))
        assert exc.value.target == "SQL1\\INST"

    def test_create_windows_login(self):
        session, conn = make_session({
            "sys.server_principals": (["LoginName", "LoginTypeCode"], [("DOM\\new", "U")]),
        })

        login = session.create_windows_login("DOM\\new")

        assert conn.executed[1][0] == "CREATE LOGIN [DOM\\new] FROM WINDOWS"
        assert login.name == "DOM\\new"
        assert login.parent is session

    def test_tempdb_create_date_is_utc(self):
        session, conn = make_session({
            "sys.databases": (
                ["CreateDate", "UtcOffsetMinutes"], [(datetime(2026, 10, 1, 10, 0, 0), 120)],
            ),
        })

        created = session.get_database_create_date("tempdb")

        assert created == datetime(2026, 10, 1, 8, 0, 0, tzinfo=timezone.utc)
        assert conn.executed[-1][1] == ("tempdb",)

    def test_missing_database(self):
        session, _ = make_session({"sys.databases": (["CreateDate", "UtcOffsetMinutes"], [])})

        with pytest.raises(OperationFailedError):
            session.get_database_create_date("nope")

    def test_close(self):
        session, conn = make_session()
        session.close()
        assert conn.closed
