"""
Tests for object discovery: listing, describe and DDL fetch.
"""

import asyncio

import pytest

from snowproxy.infrastructure import FakeCommandExecutor, InMemoryWarehouse, ObjectCatalog
from snowproxy.services import DiscoveryService, ErrorKind, ToolError
from tests.warehouse_fixtures import (
    MULTI_LINE_DDL,
    catalog_for,
    default_checker,
    multi_line_warehouse,
    sample_warehouse,
)


def run_async(coro):
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def make_service(executor: FakeCommandExecutor) -> DiscoveryService:
    return DiscoveryService(ObjectCatalog(executor), default_checker())


class TestListObjects:
    """list_objects hides excluded objects."""

    def test_excluded_rows_are_filtered(self):
        service = DiscoveryService(catalog_for(sample_warehouse()), default_checker())

        result = run_async(service.list_objects("table", database="ANALYTICS", schema="PUBLIC"))

        assert [row["name"] for row in result["objects"]] == ["ORDERS", "CUSTOMERS"]
        assert result["totalCount"] == 2
        assert result["_meta"] == {
            "objectType": "table",
            "scope": "ANALYTICS.PUBLIC",
            "like": None,
        }

    def test_account_level_listing(self):
        service = DiscoveryService(catalog_for(sample_warehouse()), default_checker())

        result = run_async(service.list_objects("DATABASE"))

        assert [row["name"] for row in result["objects"]] == ["ANALYTICS", "RAW"]

    @pytest.mark.parametrize(
        "database, schema",
        [("PROD_DB", "PUBLIC"), ("PROD_DB", None), ("ANALYTICS", "SYSTEM_AUDIT")],
    )
    def test_excluded_scope_is_refused(self, database, schema):
        warehouse = sample_warehouse()
        service = DiscoveryService(catalog_for(warehouse), default_checker())

        with pytest.raises(ToolError) as exc_info:
            run_async(service.list_objects("table", database=database, schema=schema))

        assert exc_info.value.kind is ErrorKind.EXCLUDED_OBJECT
        assert exc_info.value.code == "E2002"
        assert warehouse.calls == []

    def test_rows_are_checked_with_their_qualifiers(self):
        fake = FakeCommandExecutor().when(
            "object",
            "list",
            stdout=(
                "name\tdatabase_name\tschema_name\n"
                "ORDERS\tANALYTICS\tPUBLIC\n"
                "USERS\tPROD_DB\tPUBLIC\n"
                "EVENTS\tANALYTICS\tSYSTEM_AUDIT\n"
            ),
        )

        result = run_async(make_service(fake).list_objects("table"))

        assert [row["name"] for row in result["objects"]] == ["ORDERS"]

    def test_like_is_passed_through(self):
        fake = FakeCommandExecutor()

        run_async(make_service(fake).list_objects("view", like="ORD%"))

        assert fake.calls[0].args == ["object", "list", "view", "--terse", "--like", "ORD%"]

    def test_invalid_object_type(self):
        fake = FakeCommandExecutor()

        with pytest.raises(ToolError) as exc_info:
            run_async(make_service(fake).list_objects("spreadsheet"))

        assert exc_info.value.kind is ErrorKind.INVALID_INPUT
        assert exc_info.value.code == "E2000"
        assert fake.calls == []

    def test_cli_failure(self):
        fake = FakeCommandExecutor().when("object", "list", stderr="boom", exit_code=2)

        with pytest.raises(ToolError) as exc_info:
            run_async(make_service(fake).list_objects("table"))

        assert exc_info.value.code == "E2001"
        assert exc_info.value.message == "boom"


class TestDescribeObject:
    """describe_object refuses excluded objects."""

    def test_describe_returns_rows(self):
        fake = FakeCommandExecutor().when(
            "object",
            "describe",
            stdout="name\ttype\tnull?\nID\tNUMBER(38,0)\tN\nNAME\tVARCHAR\tY\n",
        )

        result = run_async(make_service(fake).describe_object("table", "ORDERS", "DB", "PUBLIC"))

        assert result["metadata"]["columns"] == [
            {"name": "ID", "type": "NUMBER(38,0)", "null?": "N"},
            {"name": "NAME", "type": "VARCHAR", "null?": "Y"},
        ]
        assert result["objectName"] == "ORDERS"
        assert fake.calls[0].args == [
            "object", "describe", "table", "ORDERS", "--in", "DB.PUBLIC",
        ]

    @pytest.mark.parametrize(
        "name, database, schema",
        [
            ("PROD_USERS", None, None),
            ("USERS", "PROD_DB", None),
            ("EVENTS", "ANALYTICS", "SYSTEM_AUDIT"),
            ("ORDERS_BACKUP", "DB", "S"),
        ],
    )
    def test_excluded_object(self, name, database, schema):
        fake = FakeCommandExecutor()

        with pytest.raises(ToolError) as exc_info:
            run_async(make_service(fake).describe_object("table", name, database, schema))

        assert exc_info.value.kind is ErrorKind.EXCLUDED_OBJECT
        assert exc_info.value.code == "E2002"
        assert fake.calls == []

    def test_cli_failure(self):
        fake = FakeCommandExecutor().when("object", "describe", stderr="nope", exit_code=1)

        with pytest.raises(ToolError) as exc_info:
            run_async(make_service(fake).describe_object("table", "ORDERS"))

        assert exc_info.value.code == "E2003"


class TestGetDDL:
    """get_ddl fetches SHOW CREATE output."""

    def test_returns_ddl(self):
        warehouse = InMemoryWarehouse().add("view", "DB.S.V", ddl="create view DB.S.V as select 1;")
        service = DiscoveryService(catalog_for(warehouse), default_checker())

        result = run_async(service.get_ddl("view", "V", database="DB", schema="S"))

        assert result == {
            "objectType": "VIEW",
            "objectName": "V",
            "ddl": "create view DB.S.V as select 1;",
            "database": "DB",
            "schema": "S",
        }
        assert warehouse.queries == ["SHOW CREATE VIEW DB.S.V"]

    def test_multi_line_ddl_is_returned_whole(self):
        warehouse = multi_line_warehouse()
        service = DiscoveryService(catalog_for(warehouse), default_checker())

        result = run_async(service.get_ddl("table", "T", database="DB", schema="S"))

        assert result["ddl"] == MULTI_LINE_DDL
        assert warehouse.calls[0].args[-2:] == ["--format", "JSON"]

    def test_excluded(self):
        fake = FakeCommandExecutor()

        with pytest.raises(ToolError) as exc_info:
            run_async(make_service(fake).get_ddl("table", "CUSTOMERS_ARCHIVE"))

        assert exc_info.value.code == "E2002"
        assert fake.calls == []

    def test_not_authorized(self):
        service = DiscoveryService(catalog_for(InMemoryWarehouse()), default_checker())

        with pytest.raises(ToolError) as exc_info:
            run_async(service.get_ddl("table", "MISSING", "DB", "S"))

        # "does not exist or not authorized" is reported as a privilege failure
        assert exc_info.value.kind is ErrorKind.PERMISSION_DENIED
        assert exc_info.value.code == "E2004"

    def test_empty_output(self):
        fake = FakeCommandExecutor().when_query(r"^SHOW CREATE", stdout="")

        with pytest.raises(ToolError) as exc_info:
            run_async(make_service(fake).get_ddl("table", "T"))

        assert exc_info.value.kind is ErrorKind.OBJECT_NOT_FOUND
        assert exc_info.value.code == "E2005"

    def test_missing_name(self):
        with pytest.raises(ToolError) as exc_info:
            run_async(make_service(FakeCommandExecutor()).get_ddl("table", " "))

        assert exc_info.value.code == "E2000"
