"""MCP Server - JSON-RPC request dispatcher.

The server is the authoritative component for tool execution and
resource access. It has no LLM logic: it parses request envelopes,
routes them to the registry, and always answers with a well-formed
response envelope.
"""

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional, Union

import pydantic

from shared.errors import (
    InternalError,
    InvalidRequestError,
    MCPError,
    MethodNotFoundError,
    ProtocolError,
    ValidationError,
)
from shared.logging import get_logger
from shared.models import (
    JSONRPCRequest,
    JSONRPCResponse,
    ResourceDefinition,
    ToolDefinition,
)
from mcp_server.registry import ToolRegistry
from mcp_server.resources import DataProvider, ResourceReader
from mcp_server.router import ToolRouter

logger = get_logger(__name__)


class Server:
    """
    JSON-RPC dispatcher over a tool and resource registry.
    
    Protocol methods:
    - ``tools/list``: declarations of all registered tools
    - ``resources/list``: metadata of all registered resources
    - ``resources/read``: data of the resource named by ``params.uri``
    
    Any other method is treated as a tool name.
    """
    
    def __init__(
        self,
        registry: Optional[ToolRegistry] = None,
        data_provider: Optional[Union[DataProvider, Mapping[str, Any]]] = None,
        base_path: Optional[Union[str, Path]] = None
    ) -> None:
        self.registry = registry or ToolRegistry()
        self.router = ToolRouter(self.registry)
        self.resources = ResourceReader(self.registry, data_provider, base_path)
    
    def register_tool(
        self,
        tool: Union[ToolDefinition, Mapping[str, Any]]
    ) -> ToolDefinition:
        return self.registry.register_tool(tool)
    
    def register_resource(
        self,
        resource: Union[ResourceDefinition, Mapping[str, Any]]
    ) -> ResourceDefinition:
        return self.registry.register_resource(resource)
    
    def reserve_names(self, *names: str) -> None:
        """Reserve names so that no tool can be registered under them."""
        self.registry.reserve(*names)
    
    def process_request(self, raw_request: Union[str, bytes]) -> str:
        """
        Handle one serialized request and return the serialized response.
        
        Never raises: every failure becomes a JSON-RPC error response.
        """
        response = self.handle(raw_request)
        try:
            return json.dumps(response.to_dict(), default=str)
        except (TypeError, ValueError, RecursionError) as e:
            logger.error("Unserializable response", request_id=response.id, error=str(e))
            failure = JSONRPCResponse.failure(
                response.id,
                InternalError(f"Result is not serializable: {e}")
            )
            return json.dumps(failure.to_dict(), default=str)
    
    def handle(self, raw_request: Union[str, bytes]) -> JSONRPCResponse:
        """Handle one serialized request and return the response model."""
        try:
            payload = json.loads(raw_request)
        except (ValueError, TypeError, RecursionError) as e:
            logger.warning("Unparsable request", error=str(e))
            return JSONRPCResponse.failure(None, ProtocolError(f"Parse error: {e}"))
        
        request_id = self._extract_id(payload)
        
        try:
            request = JSONRPCRequest.model_validate(payload)
        except pydantic.ValidationError as e:
            logger.warning("Invalid request envelope", request_id=request_id)
            return JSONRPCResponse.failure(
                request_id,
                InvalidRequestError(f"Invalid request: {e.errors()[0]['msg']}")
            )
        
        try:
            result = self._dispatch(request.method, request.params or {})
        except MCPError as e:
            return JSONRPCResponse.failure(request.id, e)
        except Exception as e:
            logger.error("Unhandled error processing request", method=request.method, exc_info=True)
            return JSONRPCResponse.failure(request.id, InternalError(str(e)))
        
        return JSONRPCResponse.success(request.id, result)
    
    def _dispatch(self, method: str, params: dict[str, Any]) -> Any:
        logger.debug("Dispatching request", method=method)
        
        if method == "tools/list":
            return self.registry.list_tool_declarations()
        
        if method == "resources/list":
            return self.registry.list_resource_descriptors()
        
        if method == "resources/read":
            uri = params.get("uri")
            if not isinstance(uri, str) or not uri:
                raise ValidationError("resources/read requires a 'uri' parameter")
            return self.resources.read(uri)
        
        if self.registry.get_tool(method) is None:
            raise MethodNotFoundError(f"Method '{method}' not found")
        
        return self.router.execute(method, params)
    
    @staticmethod
    def _extract_id(payload: Any) -> Optional[Union[str, int]]:
        if isinstance(payload, dict):
            request_id = payload.get("id")
            if isinstance(request_id, (str, int)) and not isinstance(request_id, bool):
                return request_id
        return None
