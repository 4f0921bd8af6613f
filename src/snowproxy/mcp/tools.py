"""
MCP tool definitions for snowproxy.

Defines the available tools and their schemas for the MCP interface.
"""

from mcp.types import Tool

from snowproxy.infrastructure.object_catalog import OBJECT_TYPES
from snowproxy.services.lineage_service import (
    DEPENDENCY_OBJECT_TYPES,
    DIRECTIONS,
    LINEAGE_OBJECT_TYPES,
)

_CONNECTION = {
    "type": "string",
    "description": "Connection name from snow CLI config (optional, defaults to config)",
}
_DATABASE = {"type": "string", "description": "Database name"}
_SCHEMA = {"type": "string", "description": "Schema name"}


def _include(description: str, default: bool) -> dict:
    return {"type": "boolean", "description": description, "default": default}


def list_tools() -> list[Tool]:
    """List available MCP tools."""
    return [
        Tool(
            name="execute_sql",
            description="Execute a SQL statement. Metadata and data results are returned as column metadata and a row count only; row values are never returned. Statements referencing excluded objects are rejected.",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "SQL statement to execute", "minLength": 1},
                    "connection": _CONNECTION,
                },
                "required": ["query"],
            },
        ),
        Tool(
            name="execute_scalar",
            description="Execute an aggregate (COUNT, SUM, AVG, MIN, MAX) or session-function query and return its values. Non-scalar statements are rejected; a LIMIT is added when missing.",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Scalar SQL query", "minLength": 1},
                    "limit": {
                        "type": "integer",
                        "description": "Maximum rows (capped by guardrail.max_scalar_rows)",
                        "minimum": 1,
                        "default": 100,
                    },
                    "connection": _CONNECTION,
                },
                "required": ["query"],
            },
        ),
        Tool(
            name="list_objects",
            description="List objects of a type, optionally within a database or schema. Excluded objects are omitted.",
            inputSchema={
                "type": "object",
                "properties": {
                    "objectType": {
                        "type": "string",
                        "enum": list(OBJECT_TYPES),
                        "description": "Type of object to list",
                    },
                    "database": _DATABASE,
                    "schema": _SCHEMA,
                    "like": {"type": "string", "description": "Pattern to match object names"},
                    "connection": _CONNECTION,
                },
                "required": ["objectType"],
            },
        ),
        Tool(
            name="describe_object",
            description="Describe the columns or properties of an object.",
            inputSchema={
                "type": "object",
                "properties": {
                    "objectType": {
                        "type": "string",
                        "enum": list(OBJECT_TYPES),
                        "description": "Type of object to describe",
                    },
                    "objectName": {"type": "string", "description": "Name of the object"},
                    "database": _DATABASE,
                    "schema": _SCHEMA,
                    "connection": _CONNECTION,
                },
                "required": ["objectType", "objectName"],
            },
        ),
        Tool(
            name="get_ddl",
            description="Get the DDL of an object with SHOW CREATE.",
            inputSchema={
                "type": "object",
                "properties": {
                    "objectType": {
                        "type": "string",
                        "description": "Type of object (TABLE, VIEW, PROCEDURE, FUNCTION, etc.)",
                        "minLength": 1,
                    },
                    "objectName": {"type": "string", "description": "Name of the object", "minLength": 1},
                    "database": _DATABASE,
                    "schema": _SCHEMA,
                    "connection": _CONNECTION,
                },
                "required": ["objectType", "objectName"],
            },
        ),
        Tool(
            name="get_lineage",
            description="Get upstream and downstream dependencies of a table or view via SNOWFLAKE.CORE.OBJECT_DEPENDENCIES.",
            inputSchema={
                "type": "object",
                "properties": {
                    "objectName": {"type": "string", "description": "Name of the object"},
                    "objectType": {
                        "type": "string",
                        "enum": list(LINEAGE_OBJECT_TYPES),
                        "description": "Type of object",
                    },
                    "direction": {
                        "type": "string",
                        "enum": list(DIRECTIONS),
                        "default": "both",
                        "description": "Direction of dependencies to fetch",
                    },
                    "database": _DATABASE,
                    "schema": _SCHEMA,
                    "connection": _CONNECTION,
                },
                "required": ["objectName", "objectType"],
            },
        ),
        Tool(
            name="get_dependencies",
            description="List the objects referenced by a view, function or procedure.",
            inputSchema={
                "type": "object",
                "properties": {
                    "objectName": {"type": "string", "description": "Name of the object"},
                    "objectType": {
                        "type": "string",
                        "enum": list(DEPENDENCY_OBJECT_TYPES),
                        "description": "Type of object",
                    },
                    "database": _DATABASE,
                    "schema": _SCHEMA,
                    "connection": _CONNECTION,
                },
                "required": ["objectName", "objectType"],
            },
        ),
        Tool(
            name="sync_objects",
            description="Sync object DDL into a local directory tree and write .object-repository.json. Excluded objects are skipped and their children are never listed.",
            inputSchema={
                "type": "object",
                "properties": {
                    "targetDir": {
                        "type": "string",
                        "description": "Target directory for sync output (optional, defaults to config)",
                    },
                    "includeDatabases": _include("Include databases in sync", True),
                    "includeSchemas": _include("Include schemas in sync", True),
                    "includeTables": _include("Include tables in sync", True),
                    "includeViews": _include("Include views in sync", True),
                    "includeFunctions": _include("Include functions in sync", False),
                    "includeProcedures": _include("Include procedures in sync", False),
                    "includeStages": _include("Include stages in sync", False),
                    "includeTasks": _include("Include tasks in sync", False),
                    "connection": _CONNECTION,
                },
            },
        ),
        Tool(
            name="check_staleness",
            description="Check whether a local DDL file still matches the remote object's DDL (SHA-256 comparison).",
            inputSchema={
                "type": "object",
                "properties": {
                    "objectName": {"type": "string", "description": "Name of the object to check"},
                    "objectType": {
                        "type": "string",
                        "description": "Type of object (table, view, schema, database, etc.)",
                    },
                    "localPath": {"type": "string", "description": "Path to local DDL file"},
                    "database": _DATABASE,
                    "schema": _SCHEMA,
                    "connection": _CONNECTION,
                },
                "required": ["objectName", "objectType", "localPath"],
            },
        ),
        Tool(
            name="execute_ddl",
            description="Execute a single CREATE, ALTER or DROP statement. Statements touching excluded objects are rejected; destructive statements carry a warning.",
            inputSchema={
                "type": "object",
                "properties": {
                    "ddl": {"type": "string", "description": "CREATE/ALTER/DROP statement to execute"},
                    "connection": _CONNECTION,
                },
                "required": ["ddl"],
            },
        ),
    ]
