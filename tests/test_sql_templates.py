"""
Tests for the bundled T-SQL templates.
"""

import pytest
from jinja2 import UndefinedError

from sqladminops.infrastructure.sql import SqlTemplateManager, get_sql_query, quote_name


class TestQuoteName:

    def test_brackets(self):
        assert quote_name("Hadr_endpoint") == "[Hadr_endpoint]"

    def test_closing_bracket_is_doubled(self):
        assert quote_name("evil]; DROP LOGIN sa; --") == "[evil]]; DROP LOGIN sa; --]"


class TestTemplates:

    def test_all_templates_present(self):
        names = SqlTemplateManager().list_templates()
        assert {
            "create_windows_login",
            "database_create_date",
            "grant_availability_group_permission",
            "grant_create_any_database",
            "grant_endpoint_permission",
            "list_availability_groups",
            "list_endpoints",
            "list_logins",
            "server_properties",
        } <= set(names)

    def test_grant_endpoint_permission(self):
        sql = get_sql_query(
            "grant_endpoint_permission", permission="CONNECT", endpoint="Hadr_endpoint", login="DOM\\svc"
        )
        assert sql == "GRANT CONNECT ON ENDPOINT::[Hadr_endpoint] TO [DOM\\svc]"

    def test_grant_availability_group_permission(self):
        sql = get_sql_query(
            "grant_availability_group_permission", permission="VIEW DEFINITION", group="ag1", login="DOM\\svc"
        )
        assert sql == "GRANT VIEW DEFINITION ON AVAILABILITY GROUP::[ag1] TO [DOM\\svc]"

    def test_grant_create_any_database(self):
        assert get_sql_query("grant_create_any_database", group="ag1") == (
            "ALTER AVAILABILITY GROUP [ag1] GRANT CREATE ANY DATABASE"
        )

    def test_create_windows_login(self):
        assert get_sql_query("create_windows_login", login="DOM\\new") == "CREATE LOGIN [DOM\\new] FROM WINDOWS"

    def test_database_name_is_a_parameter(self):
        assert "WHERE name = ?" in get_sql_query("database_create_date")

    def test_missing_variable_fails(self):
        with pytest.raises(UndefinedError):
            get_sql_query("grant_create_any_database")

    def test_unknown_template(self):
        with pytest.raises(FileNotFoundError):
            get_sql_query("no_such_template")
