"""MCP Client - Tool discovery and execution.

The MCP Client sends JSON-RPC requests to an MCP Server,
checks the responses, and executes tool calls.
It is stateless and reusable by the orchestrator and the CLI.
"""

from mcp_client.client import MCPClient, MCPClientError

__all__ = [
    "MCPClient",
    "MCPClientError",
]
