"""MCP tool handlers for snowproxy."""
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Optional

from mcp.types import TextContent

from snowproxy.infrastructure.executor import ExecutionOptions
from snowproxy.mcp.context import MCPContext
from snowproxy.services import ErrorKind, SyncOptions, ToolError

logger = logging.getLogger(__name__)

# Handler type: takes arguments dict and MCPContext, returns the JSON payload
_HANDLERS: dict[str, Callable[[dict, MCPContext], Awaitable[Any]]] = {}

# Code reported for malformed arguments, per tool
_INVALID_INPUT_CODES: dict[str, str] = {}


def _register(name: str, invalid_input_code: str):
    def decorator(fn):
        _HANDLERS[name] = fn
        _INVALID_INPUT_CODES[name] = invalid_input_code
        return fn
    return decorator


class _ArgumentError(Exception):
    """Malformed tool arguments; converted to INVALID_INPUT with the tool's code."""

    pass


def _text(payload: Any) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload, indent=2))]


def _str_arg(arguments: dict, key: str, required: bool = False) -> Optional[str]:
    value = arguments.get(key)
    if value is None:
        if required:
            raise _ArgumentError(f"'{key}' is required")
        return None
    if not isinstance(value, str):
        raise _ArgumentError(f"'{key}' must be a string")
    if required and not value.strip():
        raise _ArgumentError(f"'{key}' must not be empty")
    return value or None


def _bool_arg(arguments: dict, key: str, default: bool) -> bool:
    value = arguments.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise _ArgumentError(f"'{key}' must be a boolean")
    return value


def _int_arg(arguments: dict, key: str, default: int, minimum: int = 1) -> int:
    value = arguments.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise _ArgumentError(f"'{key}' must be an integer")
    if value < minimum:
        raise _ArgumentError(f"'{key}' must be >= {minimum}")
    return value


def _execution(arguments: dict) -> ExecutionOptions:
    return ExecutionOptions(connection=_str_arg(arguments, "connection"))


async def call_tool(name: str, arguments: Any, ctx: MCPContext) -> list[TextContent]:
    """
    Handle tool calls from MCP clients.

    Args:
        name: The tool name to invoke.
        arguments: Tool arguments as a dictionary.
        ctx: MCPContext containing all required services.

    Returns:
        List with one TextContent holding the JSON result, or the
        ``{"error", "message", "code"}`` envelope on failure.
    """
    if ctx is None:
        return _text(
            ToolError(ErrorKind.INTERNAL_ERROR, "MCPContext not initialized", "E9001").to_dict()
        )

    handler = _HANDLERS.get(name)
    if handler is None:
        return _text(ToolError(ErrorKind.UNKNOWN_TOOL, f"Unknown tool: {name}", "E9000").to_dict())

    if arguments is None:
        arguments = {}
    try:
        if not isinstance(arguments, dict):
            raise _ArgumentError("arguments must be an object")
        return _text(await handler(arguments, ctx))
    except _ArgumentError as e:
        return _text(
            ToolError(ErrorKind.INVALID_INPUT, str(e), _INVALID_INPUT_CODES[name]).to_dict()
        )
    except ToolError as e:
        logger.info(f"{name} failed: {e.kind.value} ({e.code})")
        return _text(e.to_dict())
    except Exception as e:
        logger.exception(f"Unexpected error executing {name}")
        return _text(
            ToolError(ErrorKind.INTERNAL_ERROR, f"Error executing {name}: {e}", "E9002").to_dict()
        )


@_register("execute_sql", "E1000")
async def _handle_execute_sql(arguments: dict, ctx: MCPContext) -> Any:
    query = _str_arg(arguments, "query", required=True)
    outcome = await ctx.query_service.execute_sql(query, _execution(arguments))
    return outcome.to_dict()


@_register("execute_scalar", "E1000")
async def _handle_execute_scalar(arguments: dict, ctx: MCPContext) -> Any:
    query = _str_arg(arguments, "query", required=True)
    limit = _int_arg(arguments, "limit", default=100)
    outcome = await ctx.query_service.execute_scalar(query, limit, _execution(arguments))
    return outcome.to_dict()


@_register("list_objects", "E2000")
async def _handle_list_objects(arguments: dict, ctx: MCPContext) -> Any:
    return await ctx.discovery_service.list_objects(
        object_type=_str_arg(arguments, "objectType", required=True),
        database=_str_arg(arguments, "database"),
        schema=_str_arg(arguments, "schema"),
        like=_str_arg(arguments, "like"),
        execution=_execution(arguments),
    )


@_register("describe_object", "E2000")
async def _handle_describe_object(arguments: dict, ctx: MCPContext) -> Any:
    return await ctx.discovery_service.describe_object(
        object_type=_str_arg(arguments, "objectType", required=True),
        object_name=_str_arg(arguments, "objectName", required=True),
        database=_str_arg(arguments, "database"),
        schema=_str_arg(arguments, "schema"),
        execution=_execution(arguments),
    )


@_register("get_ddl", "E2000")
async def _handle_get_ddl(arguments: dict, ctx: MCPContext) -> Any:
    return await ctx.discovery_service.get_ddl(
        object_type=_str_arg(arguments, "objectType", required=True),
        object_name=_str_arg(arguments, "objectName", required=True),
        database=_str_arg(arguments, "database"),
        schema=_str_arg(arguments, "schema"),
        execution=_execution(arguments),
    )


@_register("get_lineage", "E3000")
async def _handle_get_lineage(arguments: dict, ctx: MCPContext) -> Any:
    return await ctx.lineage_service.get_lineage(
        object_name=_str_arg(arguments, "objectName", required=True),
        object_type=_str_arg(arguments, "objectType", required=True),
        direction=_str_arg(arguments, "direction") or "both",
        database=_str_arg(arguments, "database"),
        schema=_str_arg(arguments, "schema"),
        execution=_execution(arguments),
    )


@_register("get_dependencies", "E3000")
async def _handle_get_dependencies(arguments: dict, ctx: MCPContext) -> Any:
    return await ctx.lineage_service.get_dependencies(
        object_name=_str_arg(arguments, "objectName", required=True),
        object_type=_str_arg(arguments, "objectType", required=True),
        database=_str_arg(arguments, "database"),
        schema=_str_arg(arguments, "schema"),
        execution=_execution(arguments),
    )


@_register("sync_objects", "E4000")
async def _handle_sync_objects(arguments: dict, ctx: MCPContext) -> Any:
    options = SyncOptions(
        include_databases=_bool_arg(arguments, "includeDatabases", True),
        include_schemas=_bool_arg(arguments, "includeSchemas", True),
        include_tables=_bool_arg(arguments, "includeTables", True),
        include_views=_bool_arg(arguments, "includeViews", True),
        include_functions=_bool_arg(arguments, "includeFunctions", False),
        include_procedures=_bool_arg(arguments, "includeProcedures", False),
        include_stages=_bool_arg(arguments, "includeStages", False),
        include_tasks=_bool_arg(arguments, "includeTasks", False),
    )
    target_dir = _str_arg(arguments, "targetDir")
    execution = _execution(arguments)

    async with ctx.sync_lock:
        report = await ctx.sync_service.sync_objects(target_dir, options, execution)
    return report.to_dict()


@_register("check_staleness", "E5000")
async def _handle_check_staleness(arguments: dict, ctx: MCPContext) -> Any:
    check = await ctx.staleness_service.check_staleness(
        object_name=_str_arg(arguments, "objectName", required=True),
        object_type=_str_arg(arguments, "objectType", required=True),
        local_path=_str_arg(arguments, "localPath", required=True),
        database=_str_arg(arguments, "database"),
        schema=_str_arg(arguments, "schema"),
        execution=_execution(arguments),
    )
    return check.to_dict()


@_register("execute_ddl", "E6000")
async def _handle_execute_ddl(arguments: dict, ctx: MCPContext) -> Any:
    ddl = _str_arg(arguments, "ddl", required=True)
    return await ctx.ddl_service.execute_ddl(ddl, _execution(arguments))
