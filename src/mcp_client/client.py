"""MCP Client for tool discovery and execution.

Provides a clean interface for talking to an in-process MCP Server.
Handles request formatting, response checking, and error handling.
"""

import json
import time
import uuid
from typing import Any, Optional

from shared.errors import INVALID_PARAMS, METHOD_NOT_FOUND
from shared.logging import get_logger
from shared.models import JSONRPC_VERSION, ToolResult, ToolResultStatus
from mcp_server.server import Server

logger = get_logger(__name__)


class MCPClientError(Exception):
    """An error response, or an unusable reply, from the MCP Server."""
    
    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


_STATUS_BY_CODE = {
    METHOD_NOT_FOUND: ToolResultStatus.NOT_FOUND,
    INVALID_PARAMS: ToolResultStatus.VALIDATION_ERROR,
}


class MCPClient:
    """
    Client for interacting with the MCP Server.
    
    Provides methods for:
    - Discovering available tools and resources
    - Reading resources
    - Executing tool calls
    
    The client is stateless and reusable.
    """
    
    def __init__(self, server: Server) -> None:
        self.server = server
    
    def send_request(self, method: str, params: Optional[dict[str, Any]] = None) -> Any:
        """
        Send one JSON-RPC request and return its result.
        
        Args:
            method: Protocol method or tool name
            params: Request parameters
        
        Returns:
            The ``result`` member of the response
        
        Raises:
            MCPClientError: If the server answers with an error or an invalid reply
        """
        request_id = str(uuid.uuid4())
        request = {
            "jsonrpc": JSONRPC_VERSION,
            "method": method,
            "params": params or {},
            "id": request_id,
        }
        
        response_data = self.server.process_request(json.dumps(request, default=str))
        
        try:
            response = json.loads(response_data)
        except json.JSONDecodeError as e:
            raise MCPClientError(f"Invalid JSON response: {e}")
        
        if not isinstance(response, dict) or response.get("id") != request_id:
            raise MCPClientError("Response does not match request id")
        
        if "error" in response:
            error = response["error"] or {}
            raise MCPClientError(
                error.get("message", "unknown error"),
                code=error.get("code")
            )
        
        return response.get("result")
    
    def list_tools(self) -> list[dict[str, Any]]:
        """List declarations of all tools registered on the server."""
        return self.send_request("tools/list")
    
    def list_resources(self) -> list[dict[str, Any]]:
        return self.send_request("resources/list")
    
    def read_resource(self, uri: str) -> Any:
        return self.send_request("resources/read", {"uri": uri})
    
    def call_tool(self, name: str, arguments: Optional[dict[str, Any]] = None) -> Any:
        """Call a tool and return its result, raising on error responses."""
        return self.send_request(name, arguments)
    
    def execute(
        self,
        tool_name: str,
        parameters: Optional[dict[str, Any]] = None
    ) -> ToolResult:
        """
        Execute a tool via the MCP Server.
        
        Unlike ``call_tool`` this never raises for error responses; the
        failure is described by the returned result instead.
        
        Args:
            tool_name: Tool name
            parameters: Tool parameters
        
        Returns:
            Tool execution result
        """
        start_time = time.time()
        
        try:
            data = self.call_tool(tool_name, parameters)
        except MCPClientError as e:
            logger.info("Tool call failed", tool=tool_name, code=e.code, error=e.message)
            return ToolResult(
                tool_name=tool_name,
                status=_STATUS_BY_CODE.get(e.code, ToolResultStatus.ERROR),
                error=e.message,
                error_code=e.code,
                execution_time_ms=(time.time() - start_time) * 1000
            )
        
        return ToolResult(
            tool_name=tool_name,
            status=ToolResultStatus.SUCCESS,
            data=data,
            execution_time_ms=(time.time() - start_time) * 1000
        )
