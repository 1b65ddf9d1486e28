"""
CLI tests with typer's CliRunner and an injected container.
"""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from typer.testing import CliRunner

from sqladminops.application.permission_service import PermissionGrantService
from sqladminops.application.uptime_service import UptimeService
from sqladminops.domain.config import Credential
from sqladminops.domain.errors import ConfigurationError
from sqladminops.domain.models import TargetInstance
from sqladminops.infrastructure.config.manager import ConfigManager
from sqladminops.interface.cli.orchestrator import app

from conftest import make_connector, make_session

NOW = datetime(2026, 10, 3, 11, 4, 5, tzinfo=timezone.utc)
BOOT = datetime(2026, 9, 30, 23, 0, 0, tzinfo=timezone.utc)

runner = CliRunner()


@pytest.fixture
def sessions():
    return {
        "SQL1": make_session(name="SQL1", logins=("DOM\\svc",)),
        "SQL2": make_session(name="SQL2"),
    }


@pytest.fixture
def container(sessions):
    connector = make_connector(sessions)
    host_info = MagicMock()
    host_info.get_last_boot_time.return_value = BOOT
    resolver = MagicMock()
    resolver.resolve.side_effect = lambda host, credential=None: host

    container = MagicMock()
    container.config_manager.get_credential.return_value = None
    container.permission_service = PermissionGrantService(connector)
    container.uptime_service = UptimeService(connector, resolver, host_info, clock=lambda: NOW)
    return container


def invoke(container, *args, **kwargs):
    return runner.invoke(app, list(args), obj=container, **kwargs)


def records_of(result):
    """JSON records from stdout, skipping any log lines written around them."""
    text = result.stdout
    start = text.find("[\n")
    if start == -1:
        start = text.find("[]")
    return json.JSONDecoder().raw_decode(text[start:])[0]


class TestGrantCommand:

    def test_grant_json(self, container):
        result = invoke(
            container, "grant-ag-permission", "-S", "SQL1", "-t", "Endpoint", "-l", "DOM\\svc", "-f", "json"
        )

        assert result.exit_code == 0
        records = records_of(result)
        assert records == [{
            "ComputerName": "SQL1",
            "InstanceName": "MSSQLSERVER",
            "SqlInstance": "SQL1",
            "Name": "DOM\\svc",
            "Permission": "Connect",
            "Operation": "Grant",
            "Status": "Success",
        }]

    def test_type_and_permission_are_case_insensitive(self, container, sessions):
        result = invoke(
            container, "grant-ag-permission", "-S", "SQL1", "-t", "availabilitygroup",
            "-a", "ag1", "-l", "DOM\\svc", "-p", "viewdefinition", "-f", "json",
        )

        assert result.exit_code == 0
        assert records_of(result)[0]["Permission"] == "ViewDefinition"
        sessions["SQL1"].grant_availability_group_permission.assert_called_once()

    def test_validation_error_exits_nonzero(self, container, sessions):
        result = invoke(container, "grant-ag-permission", "-S", "SQL1", "-t", "Endpoint")

        assert result.exit_code == 1
        sessions["SQL1"].get_logins.assert_not_called()

    def test_invalid_permission_rejected_by_parser(self, container):
        result = invoke(container, "grant-ag-permission", "-S", "SQL1", "-t", "Endpoint", "-p", "Fly")

        assert result.exit_code == 2

    def test_what_if(self, container, sessions):
        result = invoke(
            container, "grant-ag-permission", "-S", "SQL1", "-t", "Endpoint", "-l", "DOM\\svc",
            "--what-if", "-f", "json",
        )

        assert result.exit_code == 0
        sessions["SQL1"].grant_endpoint_permission.assert_not_called()

    def test_enable_exception_stops(self, container):
        result = invoke(
            container, "grant-ag-permission", "-S", "NOPE", "-S", "SQL1", "-t", "Endpoint",
            "-l", "DOM\\svc", "--enable-exception",
        )

        assert result.exit_code == 1
        container.permission_service.connector.connect.assert_called_once()

    def test_input_records_from_stdin(self, container, sessions):
        records = json.dumps([{"SqlInstance": "SQL1", "Name": "DOM\\svc", "LoginType": "WindowsUser"}])

        result = invoke(
            container, "grant-ag-permission", "-t", "Endpoint", "--input", "-", "-f", "json",
            input=records,
        )

        assert result.exit_code == 0
        assert records_of(result)[0]["Name"] == "DOM\\svc"
        sessions["SQL1"].close.assert_called_once()

    def test_export(self, container, tmp_path):
        target = tmp_path / "grants.xlsx"

        result = invoke(
            container, "grant-ag-permission", "-S", "SQL1", "-t", "Endpoint", "-l", "DOM\\svc",
            "-f", "csv", "--export", str(target),
        )

        assert result.exit_code == 0
        assert target.exists()
        assert result.stdout.splitlines()[0] == (
            "ComputerName,InstanceName,SqlInstance,Name,Permission,Operation,Status"
        )

    def test_unknown_credential_exits_2(self, container):
        container.config_manager.get_credential.side_effect = ConfigurationError("Credential file 'x' not found")

        result = invoke(
            container, "grant-ag-permission", "-S", "SQL1", "-t", "Endpoint", "-l", "DOM\\svc", "-C", "x"
        )

        assert result.exit_code == 2


class TestUptimeCommand:

    def test_uptime_json(self, container):
        result = invoke(container, "uptime", "-S", "SQL1", "-f", "json")

        assert result.exit_code == 0
        record = records_of(result)[0]
        assert record["SqlServer"] == "SQL1"
        assert record["SinceSqlStart"] == "2 days 3 hours 4 minutes 5 seconds"
        assert record["SinceWindowsBoot"] == "2 days 12 hours 4 minutes 5 seconds"
        assert record["SqlStartTime"] == "2026-10-01T08:00:00+00:00"

    def test_sql_only_record_omits_windows_fields(self, container):
        host_info = container.uptime_service.host_info
        host_info.get_last_boot_time.side_effect = ConfigurationError("x")
        host_info.get_last_boot_time_dcom.side_effect = ConfigurationError("y")

        result = invoke(container, "uptime", "-S", "SQL1", "-f", "json")

        assert result.exit_code == 0
        assert "WindowsUptime" not in records_of(result)[0]

    def test_all_targets(self, container):
        container.config_manager.get_target_instances.return_value = [
            TargetInstance(host="SQL1"),
            TargetInstance(host="SQL2"),
        ]

        result = invoke(container, "uptime", "--all-targets", "-f", "json")

        assert result.exit_code == 0
        assert [r["SqlServer"] for r in records_of(result)] == ["SQL1", "SQL2"]
        container.config_manager.get_target_instances.assert_called_once_with(None)

    def test_all_targets_by_tag(self, container):
        container.config_manager.get_target_instances.return_value = [TargetInstance(host="SQL2")]

        result = invoke(container, "uptime", "--all-targets", "--tag", "prod", "-f", "json")

        assert result.exit_code == 0
        container.config_manager.get_target_instances.assert_called_once_with(["prod"])

    def test_all_targets_use_configured_credentials(self, container, tmp_path):
        (tmp_path / "sql_targets.json").write_text(json.dumps({"targets": [
            {"id": "one", "server": "SQL1", "credential_file": "sqladmin", "os_credential_file": "winadmin"},
        ]}))
        cred_dir = tmp_path / "credentials"
        cred_dir.mkdir()
        (cred_dir / "sqladmin.json").write_text(json.dumps({"username": "sa", "password": "pw"}))
        (cred_dir / "winadmin.json").write_text(json.dumps({"username": "DOM\\admin", "password": "wpw"}))
        container.config_manager = ConfigManager(tmp_path)

        result = invoke(container, "uptime", "--all-targets", "-f", "json")

        assert result.exit_code == 0
        target = container.uptime_service.connector.connect.call_args[0][0]
        assert target.credential.username == "sa"
        assert target.credential.get_password() == "pw"
        host, windows_cred = container.uptime_service.host_info.get_last_boot_time.call_args[0]
        assert host == "SQL1"
        assert windows_cred.username == "DOM\\admin"

    def test_windows_credential_option_overrides_target(self, container):
        option_cred = Credential(username="DOM\\other", password="pw")
        target_cred = Credential(username="DOM\\admin", password="pw")
        container.config_manager.get_target_instances.return_value = [
            TargetInstance(host="SQL1", os_credential=target_cred),
        ]
        container.config_manager.get_credential.side_effect = lambda ref: option_cred if ref == "other" else None

        result = invoke(container, "uptime", "--all-targets", "-W", "other", "-f", "json")

        assert result.exit_code == 0
        container.uptime_service.host_info.get_last_boot_time.assert_called_once_with("SQL1", option_cred)

    def test_no_instances(self, container):
        result = invoke(container, "uptime")

        assert result.exit_code == 2

    def test_connection_failure_exits_1(self, container):
        result = invoke(container, "uptime", "-S", "NOPE", "-S", "SQL1", "-f", "csv")

        assert result.exit_code == 1

    def test_windows_credential_is_loaded(self, container):
        cred = Credential(username="DOM\\admin", password="pw")
        container.config_manager.get_credential.side_effect = lambda ref: cred if ref == "win" else None

        result = invoke(container, "uptime", "-S", "SQL1", "-W", "win", "-f", "json")

        assert result.exit_code == 0
        container.uptime_service.host_info.get_last_boot_time.assert_called_once_with("SQL1", cred)


class TestLoginCommand:

    def test_list_json_round_trips_into_grant(self, container):
        listed = invoke(container, "login", "list", "-S", "SQL1", "-f", "json")

        assert listed.exit_code == 0
        records = records_of(listed)
        assert records == [{"SqlInstance": "SQL1", "Name": "DOM\\svc", "LoginType": "WindowsUser"}]

        granted = invoke(
            container, "grant-ag-permission", "-t", "Endpoint", "--input", "-", "-f", "json",
            input=listed.stdout,
        )
        assert granted.exit_code == 0
        assert len(records_of(granted)) == 1


class TestCredentialCommand:

    def test_set_plain(self, tmp_path, monkeypatch):
        monkeypatch.delenv("SQLADMINOPS_MASTER_PASSWORD", raising=False)

        result = runner.invoke(
            app,
            ["--config-dir", str(tmp_path), "credential", "set", "sql_admin", "-u", "sa", "--password", "pw", "--plain"],
        )

        assert result.exit_code == 0
        data = json.loads((tmp_path / "credentials" / "sql_admin.json").read_text())
        assert data == {"username": "sa", "password": "pw"}

    def test_set_encrypted_requires_master_password(self, tmp_path, monkeypatch):
        monkeypatch.delenv("SQLADMINOPS_MASTER_PASSWORD", raising=False)

        result = runner.invoke(
            app, ["--config-dir", str(tmp_path), "credential", "set", "x", "-u", "sa", "--password", "pw"],
        )

        assert result.exit_code == 2
        assert not (tmp_path / "credentials" / "x.json").exists()

    def test_set_encrypted(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SQLADMINOPS_MASTER_PASSWORD", "master")

        result = runner.invoke(
            app, ["--config-dir", str(tmp_path), "credential", "set", "x", "-u", "sa", "--password", "pw"],
        )

        assert result.exit_code == 0
        data = json.loads((tmp_path / "credentials" / "x.json").read_text())
        assert data["encrypted"] is True
        assert "password" not in data


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert "sqladminops" in result.stdout
