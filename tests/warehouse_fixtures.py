"""
Shared warehouse fixtures for service tests.
"""

from snowproxy.core.config import ExclusionConfig
from snowproxy.core.exclusion import ExclusionChecker
from snowproxy.infrastructure.fakes import InMemoryWarehouse
from snowproxy.infrastructure.object_catalog import ObjectCatalog


def default_checker() -> ExclusionChecker:
    return ExclusionChecker.from_config(ExclusionConfig())


def sample_warehouse() -> InMemoryWarehouse:
    """
    Two allowed databases and one excluded one.

    ANALYTICS.PUBLIC holds allowed and excluded tables and a view;
    ANALYTICS.SYSTEM_AUDIT is an excluded schema; PROD_DB is excluded with
    children that must never be listed.
    """
    return (
        InMemoryWarehouse()
        .add("database", "ANALYTICS")
        .add("database", "RAW")
        .add("database", "PROD_DB")
        .add("schema", "ANALYTICS.PUBLIC")
        .add("schema", "ANALYTICS.SYSTEM_AUDIT")
        .add("schema", "RAW.LANDING")
        .add("schema", "PROD_DB.PUBLIC")
        .add("table", "ANALYTICS.PUBLIC.ORDERS")
        .add("table", "ANALYTICS.PUBLIC.CUSTOMERS")
        .add("table", "ANALYTICS.PUBLIC.ORDERS_BACKUP")
        .add("table", "ANALYTICS.SYSTEM_AUDIT.EVENTS")
        .add("table", "RAW.LANDING.EVENTS")
        .add("table", "PROD_DB.PUBLIC.USERS")
        .add("view", "ANALYTICS.PUBLIC.ORDER_SUMMARY")
        .add("function", "ANALYTICS.PUBLIC.NORMALIZE")
    )


def catalog_for(warehouse: InMemoryWarehouse) -> ObjectCatalog:
    return ObjectCatalog(warehouse, timeout=5.0)


# Table DDL as SHOW CREATE returns it: several lines, indented, with a blank line
MULTI_LINE_DDL = (
    "create or replace TABLE T (\n"
    "\tID NUMBER(38,0) NOT NULL,\n"
    "\tNAME VARCHAR(100),\n"
    "\n"
    "\tprimary key (ID)\n"
    ");"
)


def multi_line_warehouse() -> InMemoryWarehouse:
    """One database, one schema and a table whose DDL spans several lines."""
    return (
        InMemoryWarehouse()
        .add("database", "DB")
        .add("schema", "DB.S")
        .add("table", "DB.S.T", ddl=MULTI_LINE_DDL)
    )
