"""Error types for MCP Platform.

Dispatcher-level errors carry a JSON-RPC error code and are always
converted into error envelopes by the server. Orchestrator-level errors
are fatal to a single invocation and propagate to the caller.
"""

from typing import Any, Optional


# JSON-RPC 2.0 reserved codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# Implementation-defined server error codes
RESOURCE_NOT_FOUND = -32002
DATA_ERROR = -32003


class MCPError(Exception):
    """Base class for errors that map onto a JSON-RPC error object."""
    
    code: int = INTERNAL_ERROR
    
    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
    
    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-RPC error object for this exception."""
        return {"code": self.code, "message": self.message}


class ProtocolError(MCPError):
    """The request could not be parsed as JSON."""
    code = PARSE_ERROR


class InvalidRequestError(ProtocolError):
    """The JSON payload is not a valid request envelope."""
    code = INVALID_REQUEST


class MethodNotFoundError(MCPError):
    """No protocol method or tool matches the requested name."""
    code = METHOD_NOT_FOUND


class ValidationError(MCPError):
    """Missing registration fields or invalid tool parameters."""
    code = INVALID_PARAMS


class InternalError(MCPError):
    """A tool handler raised while executing."""
    code = INTERNAL_ERROR


class NotFoundError(MCPError):
    """No registered resource matches the requested URI."""
    code = RESOURCE_NOT_FOUND


class DataError(MCPError):
    """Resource data is missing, unreadable or cannot be parsed."""
    code = DATA_ERROR


class OrchestratorError(Exception):
    """Base class for errors that abort an orchestration."""
    pass


class GatewayError(OrchestratorError):
    """A call to the AI gateway backend failed."""
    pass


class GatewayUnavailableError(OrchestratorError):
    """No gateway model satisfies the required capabilities."""
    pass


class LoopLimitExceededError(OrchestratorError):
    """The model kept requesting function calls past the turn limit."""
    
    def __init__(self, max_turns: int) -> None:
        super().__init__(
            f"Conversation did not converge within {max_turns} turns"
        )
        self.max_turns = max_turns


class ToolExecutionError(OrchestratorError):
    """A tool call failed and tool errors are configured as fatal."""
    
    def __init__(self, tool_name: str, message: str, code: Optional[int] = None) -> None:
        super().__init__(f"Tool '{tool_name}' failed: {message}")
        self.tool_name = tool_name
        self.code = code
