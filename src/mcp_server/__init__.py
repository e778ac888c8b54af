"""MCP Server - Tool registry, request dispatch, and resource access.

The MCP Server is the authoritative component for tool execution.
It registers tools and resources, validates and routes JSON-RPC
requests, and never lets a tool failure escape as an exception.
"""

from mcp_server.registry import PROTOCOL_METHODS, ToolRegistry
from mcp_server.resources import DataProvider, ResourceReader
from mcp_server.router import ToolRouter
from mcp_server.server import Server

__all__ = [
    "PROTOCOL_METHODS",
    "ToolRegistry",
    "DataProvider",
    "ResourceReader",
    "ToolRouter",
    "Server",
]
