"""Tool Router for MCP Server.

Routes tool calls to registered handlers.
Handles lookup, validation, and execution.
"""

import time
from typing import Any

from shared.errors import InternalError, MethodNotFoundError, ValidationError
from shared.logging import get_logger
from mcp_server.registry import ToolRegistry

logger = get_logger(__name__)


class ToolRouter:
    """
    Routes tool calls to their handlers.
    
    Responsibilities:
    - Look up the tool by name
    - Validate parameters against the tool's input schema
    - Invoke the handler, converting any failure into an InternalError
    """
    
    def __init__(self, registry: ToolRegistry) -> None:
        self.registry = registry
    
    def execute(self, tool_name: str, parameters: dict[str, Any]) -> Any:
        """
        Execute a tool call.
        
        Args:
            tool_name: Registered tool name
            parameters: Tool parameters
        
        Returns:
            Whatever the tool handler returns
        
        Raises:
            MethodNotFoundError: If no tool has that name
            ValidationError: If the parameters do not match the input schema
            InternalError: If the handler raised
        """
        tool = self.registry.get_tool(tool_name)
        if not tool:
            raise MethodNotFoundError(f"Method '{tool_name}' not found")
        
        is_valid, errors = self.registry.validate_input(tool_name, parameters)
        if not is_valid:
            logger.info("Tool parameters rejected", tool=tool_name, errors=errors)
            raise ValidationError(f"Invalid params for '{tool_name}': {'; '.join(errors)}")
        
        logger.debug("Executing tool", tool=tool_name)
        start_time = time.time()
        
        try:
            result = tool.handler(parameters)
        except Exception as e:
            logger.error(
                "Tool execution failed",
                tool=tool_name,
                error=str(e),
                exc_info=True
            )
            raise InternalError(str(e) or type(e).__name__) from e
        
        logger.info(
            "Tool executed",
            tool=tool_name,
            execution_time_ms=round((time.time() - start_time) * 1000, 3)
        )
        return result
