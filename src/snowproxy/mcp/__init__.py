"""
MCP (Model Context Protocol) server package for snowproxy.

This package provides the MCP interface for the metadata-only proxy and
the object repository sync.
"""

from snowproxy.mcp.context import (
    MCPContext,
    context_from_services,
    create_mcp_context,
)
from snowproxy.mcp.handlers import call_tool
from snowproxy.mcp.tools import list_tools

__all__ = [
    "MCPContext",
    "create_mcp_context",
    "context_from_services",
    "list_tools",
    "call_tool",
]
