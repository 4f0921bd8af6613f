"""
MCP Server for snowproxy.

Provides the Model Context Protocol interface to the metadata-only proxy.

This module serves as the entry point for the MCP server. The implementation
is split across submodules:
- mcp/context.py: MCPContext dataclass and factory functions
- mcp/tools.py: Tool definitions and schemas
- mcp/handlers.py: Tool handler implementations
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

# Load .env BEFORE building the context (so SNOWPROXY_* overrides apply)
from dotenv import load_dotenv

if not load_dotenv():
    # Fallback: .env at the project root, for servers started elsewhere
    _env_file = Path(__file__).parent.parent.parent / ".env"
    if _env_file.exists():
        load_dotenv(_env_file)

from mcp.server import Server
from mcp.server.stdio import stdio_server

from snowproxy.core.config import configure_logging
from snowproxy.mcp.context import MCPContext, create_mcp_context
from snowproxy.mcp.handlers import call_tool
from snowproxy.mcp.tools import list_tools

__all__ = ["app", "list_tools", "call_tool", "main", "run_server"]

logger = logging.getLogger(__name__)

# Initialize MCP server
app = Server("snow-cli-mcp-server")

# Module-level context, created at startup
_ctx: MCPContext | None = None


@app.list_tools()
async def _list_tools():
    """List available MCP tools."""
    return list_tools()


@app.call_tool()
async def _call_tool(name: str, arguments):
    """Handle tool calls from MCP clients."""
    return await call_tool(name, arguments, _ctx)


async def run_server(config_path: Optional[Path | str] = None) -> None:
    """Run the MCP server over stdio until the client disconnects."""
    global _ctx

    _ctx = create_mcp_context(config_path)
    configure_logging(_ctx.config.logging)
    logger.info(
        "Starting MCP server",
        extra={
            "project": _ctx.config.project.name,
            "connection": _ctx.config.snowcli.connection,
            "exclusion_patterns": len(_ctx.config.exclusions.patterns),
        },
    )

    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(read_stream, write_stream, app.create_initialization_options())
    finally:
        _ctx = None


def main():
    """Entry point for the MCP server."""
    asyncio.run(run_server())


if __name__ == "__main__":
    main()
