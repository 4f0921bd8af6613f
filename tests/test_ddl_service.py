"""
Tests for guarded DDL execution.

**Feature: snow-cli-proxy, Property 11: DDL Exclusion Enforcement**
**Validates: Requirements 8.2**
"""

import asyncio

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from snowproxy.infrastructure import CommandResult, FakeCommandExecutor, ObjectCatalog
from snowproxy.services import DDLService, ErrorKind, ToolError
from snowproxy.services.ddl_service import DESTRUCTIVE_WARNING, has_multiple_statements
from tests.sql_strategies import allowed_identifier, excluded_identifier
from tests.warehouse_fixtures import default_checker


def run_async(coro):
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def make_service(executor: FakeCommandExecutor) -> DDLService:
    return DDLService(ObjectCatalog(executor), default_checker())


@given(
    allowed=allowed_identifier,
    excluded=excluded_identifier,
    template=st.sampled_from(
        [
            "CREATE TABLE {x} (id INT)",
            "CREATE OR REPLACE VIEW {a} AS SELECT * FROM {x}",
            "CREATE TABLE {a} AS SELECT * FROM {x}",
            "CREATE TABLE {a} AS SELECT * FROM ORDERS, {x}",
            "CREATE OR REPLACE VIEW {a} AS SELECT o.ID FROM ORDERS o, {x} p WHERE o.ID = p.ID",
            "ALTER TABLE {x} ADD COLUMN c INT",
            "DROP TABLE IF EXISTS {x}",
            "DROP VIEW DB.S.{x}",
            "CREATE SCHEMA {x}",
        ]
    ),
)
@settings(max_examples=100, deadline=None)
def test_ddl_touching_excluded_object_is_rejected(allowed: str, excluded: str, template: str):
    """
    **Feature: snow-cli-proxy, Property 11: DDL Exclusion Enforcement**
    **Validates: Requirements 8.2**

    For any DDL that creates, alters, drops or reads an excluded object,
    execute_ddl SHALL raise EXCLUDED_OBJECT and SHALL NOT run it.
    """
    fake = FakeCommandExecutor()
    ddl = template.format(a=allowed, x=excluded)

    with pytest.raises(ToolError) as exc_info:
        run_async(make_service(fake).execute_ddl(ddl))

    assert exc_info.value.kind is ErrorKind.EXCLUDED_OBJECT
    assert exc_info.value.code == "E6001"
    assert fake.calls == []


class TestExecuteDDL:
    """Unit tests for execute_ddl."""

    def test_create_table(self):
        fake = FakeCommandExecutor(
            CommandResult(stdout="Table ORDERS successfully created.", stderr="", exit_code=0)
        )

        result = run_async(make_service(fake).execute_ddl("CREATE TABLE ORDERS (id INT)"))

        assert result == {
            "success": True,
            "ddlType": "CREATE_TABLE",
            "objectNames": ["ORDERS"],
            "message": "DDL executed successfully",
            "output": "Table ORDERS successfully created.",
        }
        assert fake.queries == ["CREATE TABLE ORDERS (id INT)"]

    def test_comma_join_source_is_checked(self):
        fake = FakeCommandExecutor()

        with pytest.raises(ToolError) as exc_info:
            run_async(
                make_service(fake).execute_ddl(
                    "CREATE TABLE copy_t AS SELECT * FROM orders o, PROD_USERS u WHERE o.id = u.id"
                )
            )

        assert exc_info.value.code == "E6001"
        assert "PROD_USERS" in exc_info.value.message
        assert fake.calls == []

    def test_destructive_statement_carries_warning(self):
        result = run_async(make_service(FakeCommandExecutor()).execute_ddl("DROP TABLE ORDERS"))

        assert result["warning"] == DESTRUCTIVE_WARNING
        assert "output" not in result

    def test_view_reports_sources(self):
        result = run_async(
            make_service(FakeCommandExecutor()).execute_ddl(
                "CREATE VIEW V1 AS SELECT * FROM ORDERS JOIN CUSTOMERS ON 1 = 1"
            )
        )

        assert result["objectNames"] == ["V1", "ORDERS", "CUSTOMERS"]

    @pytest.mark.parametrize(
        "ddl",
        [
            "",
            "   ",
            "SELECT * FROM ORDERS",
            "INSERT INTO ORDERS VALUES (1)",
            "CREATE TABLE A (id INT); DROP TABLE B",
        ],
    )
    def test_invalid_input(self, ddl):
        fake = FakeCommandExecutor()

        with pytest.raises(ToolError) as exc_info:
            run_async(make_service(fake).execute_ddl(ddl))

        assert exc_info.value.kind is ErrorKind.INVALID_INPUT
        assert exc_info.value.code == "E6000"
        assert fake.calls == []

    @pytest.mark.parametrize(
        "result, kind, code",
        [
            (
                CommandResult("", "Table 'X' does not exist or not authorized.", 1),
                ErrorKind.OBJECT_NOT_FOUND,
                "E6002",
            ),
            (
                CommandResult("", "Insufficient privileges to operate on schema", 1),
                ErrorKind.PERMISSION_DENIED,
                "E6003",
            ),
            (
                CommandResult("", "SQL compilation error: syntax error", 1),
                ErrorKind.DDL_EXECUTION_ERROR,
                "E6004",
            ),
            (
                CommandResult("", "Command timed out after 30 seconds", 124),
                ErrorKind.DDL_EXECUTION_ERROR,
                "E6005",
            ),
        ],
    )
    def test_failures(self, result, kind, code):
        fake = FakeCommandExecutor(result)

        with pytest.raises(ToolError) as exc_info:
            run_async(make_service(fake).execute_ddl("ALTER TABLE X ADD COLUMN c INT"))

        assert exc_info.value.kind is kind
        assert exc_info.value.code == code
        assert exc_info.value.message == result.stderr


class TestMultipleStatements:
    """Statement separator detection."""

    def test_trailing_semicolon_is_single(self):
        assert not has_multiple_statements("CREATE TABLE t (id INT);")

    def test_semicolon_in_literal(self):
        assert not has_multiple_statements("CREATE VIEW v AS SELECT 'a;b' AS c")

    def test_semicolon_in_dollar_body(self):
        ddl = "CREATE PROCEDURE p() RETURNS INT LANGUAGE SQL AS $$ BEGIN RETURN 1; END; $$"

        assert not has_multiple_statements(ddl)

    def test_two_statements(self):
        assert has_multiple_statements("DROP TABLE a; DROP TABLE b;")
