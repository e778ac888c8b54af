"""Tool and Resource Registry for MCP Server.

Holds the named tool and resource descriptors for one invocation.
Entries are registered up front and treated as read-only afterwards.
"""

from typing import Any, Iterable, Mapping, Optional, Union

import pydantic

from shared.errors import ValidationError
from shared.logging import get_logger
from shared.models import ResourceDefinition, ToolDefinition
from shared.schema import check_schema, validate_schema

logger = get_logger(__name__)


# Methods answered by the server itself; no tool may take these names.
PROTOCOL_METHODS = frozenset({"tools/list", "resources/list", "resources/read"})


def _describe_errors(exc: pydantic.ValidationError) -> str:
    missing = [
        ".".join(str(loc) for loc in err["loc"])
        for err in exc.errors()
        if err["type"] == "missing"
    ]
    if missing:
        return f"missing required field(s): {', '.join(missing)}"
    return "; ".join(err["msg"] for err in exc.errors())


class ToolRegistry:
    """
    Central registry for tools and resources.
    
    Responsibilities:
    - Register tools and resources
    - Lookup by name (and resources by URI)
    - Validate tool input against its schema
    - Describe tools and resources for introspection
    """
    
    def __init__(self, reserved_names: Optional[Iterable[str]] = None) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        self._resources: dict[str, ResourceDefinition] = {}
        self._reserved: set[str] = set(PROTOCOL_METHODS)
        if reserved_names:
            self.reserve(*reserved_names)
    
    def reserve(self, *names: str) -> None:
        """
        Reserve names that tools must not shadow.
        
        Raises:
            ValidationError: If a tool is already registered under one of the names
        """
        for name in names:
            if name in self._tools:
                raise ValidationError(
                    f"Cannot reserve '{name}': a tool is already registered under that name"
                )
            self._reserved.add(name)
    
    @property
    def reserved_names(self) -> frozenset[str]:
        return frozenset(self._reserved)
    
    def register_tool(
        self,
        tool: Union[ToolDefinition, Mapping[str, Any]]
    ) -> ToolDefinition:
        """
        Register a tool in the registry.
        
        Registering under an existing name replaces the previous tool.
        
        Args:
            tool: Tool definition, or a mapping with name, description,
                inputSchema and handler
        
        Returns:
            The registered tool definition
        
        Raises:
            ValidationError: If fields are missing, the schema is invalid,
                or the name is reserved
        """
        if not isinstance(tool, ToolDefinition):
            try:
                tool = ToolDefinition.model_validate(dict(tool))
            except pydantic.ValidationError as e:
                raise ValidationError(f"Invalid tool descriptor: {_describe_errors(e)}") from e
        
        if tool.name in self._reserved:
            raise ValidationError(f"Tool name '{tool.name}' is reserved")
        
        problems = check_schema(tool.input_schema)
        if problems:
            raise ValidationError(
                f"Tool '{tool.name}' has an invalid inputSchema: {'; '.join(problems)}"
            )
        
        if tool.name in self._tools:
            logger.warning("Tool replaced", tool=tool.name)
        
        self._tools[tool.name] = tool
        logger.info("Tool registered", tool=tool.name)
        return tool
    
    def register_many(self, tools: Iterable[Union[ToolDefinition, Mapping[str, Any]]]) -> None:
        """Register multiple tools at once."""
        for tool in tools:
            self.register_tool(tool)
    
    def register_resource(
        self,
        resource: Union[ResourceDefinition, Mapping[str, Any]]
    ) -> ResourceDefinition:
        """
        Register a resource in the registry.
        
        Args:
            resource: Resource definition, or a mapping with name, uri,
                mimeType and optionally description, dataKey or filePath
        
        Returns:
            The registered resource definition
        
        Raises:
            ValidationError: If fields are missing or the URI is unsupported
        """
        if not isinstance(resource, ResourceDefinition):
            try:
                resource = ResourceDefinition.model_validate(dict(resource))
            except pydantic.ValidationError as e:
                raise ValidationError(f"Invalid resource descriptor: {_describe_errors(e)}") from e
        
        if resource.name in self._resources:
            logger.warning("Resource replaced", resource=resource.name)
        
        self._resources[resource.name] = resource
        logger.info("Resource registered", resource=resource.name, uri=resource.uri)
        return resource
    
    def get_tool(self, name: str) -> Optional[ToolDefinition]:
        """Get a tool by name, or None if not registered."""
        return self._tools.get(name)
    
    def get_resource(self, name: str) -> Optional[ResourceDefinition]:
        """Get a resource by name, or None if not registered."""
        return self._resources.get(name)
    
    def find_resource(self, uri: str) -> Optional[ResourceDefinition]:
        """Get a resource by URI, or None if no resource has that URI."""
        for resource in self._resources.values():
            if resource.uri == uri:
                return resource
        return None
    
    def list_tools(self) -> list[ToolDefinition]:
        return list(self._tools.values())
    
    def list_resources(self) -> list[ResourceDefinition]:
        return list(self._resources.values())
    
    def list_tool_declarations(self) -> list[dict[str, Any]]:
        """Declarations of every tool, as advertised to the gateway."""
        return [tool.declaration() for tool in self._tools.values()]
    
    def list_resource_descriptors(self) -> list[dict[str, Any]]:
        """Metadata of every resource, without the underlying data."""
        return [resource.descriptor() for resource in self._resources.values()]
    
    def validate_input(
        self,
        tool_name: str,
        parameters: dict[str, Any]
    ) -> tuple[bool, list[str]]:
        """
        Validate input parameters against tool's input schema.
        
        Args:
            tool_name: Tool name
            parameters: Input parameters to validate
        
        Returns:
            Tuple of (is_valid, list of error messages)
        """
        tool = self.get_tool(tool_name)
        if not tool:
            return False, [f"Tool '{tool_name}' not found"]
        
        return validate_schema(parameters, tool.input_schema)
