"""Resource reading for MCP Server.

``data://`` resources are looked up in an injected data provider,
``file://`` resources are read from disk and parsed per MIME type.
"""

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional, Protocol, Union

import yaml

from shared.errors import DataError, NotFoundError
from shared.logging import get_logger
from shared.models import ResourceDefinition
from mcp_server.registry import ToolRegistry

logger = get_logger(__name__)


YAML_MIME_TYPES = {"application/yaml", "application/x-yaml", "text/yaml"}


class DataProvider(Protocol):
    """Source of values for ``data://`` resources."""
    
    def get_data(self, key: str) -> Any:
        """Return the value stored under ``key``; raise KeyError if absent."""
        ...


def parse_content(text: str, mime_type: str) -> Any:
    """
    Parse resource text according to its declared MIME type.
    
    Raises:
        DataError: If the type is unsupported or the text does not parse
    """
    base_type = mime_type.split(";")[0].strip().lower()
    
    if base_type == "application/json" or base_type.endswith("+json"):
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise DataError(f"Invalid JSON content: {e}") from e
    
    if base_type in YAML_MIME_TYPES:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise DataError(f"Invalid YAML content: {e}") from e
    
    if base_type.startswith("text/"):
        return text
    
    raise DataError(f"Unsupported resource MIME type '{mime_type}'")


class ResourceReader:
    """
    Resolves resource URIs to their data.
    
    Args:
        registry: Registry holding the resource descriptors
        data_provider: Mapping or object with ``get_data(key)`` for data:// resources
        base_path: Directory that relative file:// paths resolve against
    """
    
    def __init__(
        self,
        registry: ToolRegistry,
        data_provider: Optional[Union[DataProvider, Mapping[str, Any]]] = None,
        base_path: Optional[Union[str, Path]] = None
    ) -> None:
        self.registry = registry
        self.data_provider = data_provider
        self.base_path = Path(base_path) if base_path is not None else None
    
    def read(self, uri: str) -> Any:
        """
        Read the resource registered under ``uri``.
        
        Raises:
            NotFoundError: If no resource has this URI
            DataError: If the data cannot be obtained or parsed
        """
        resource = self.registry.find_resource(uri)
        if resource is None:
            raise NotFoundError(f"Resource '{uri}' not found")
        
        if resource.scheme == "data":
            return self._read_data(resource)
        return self._read_file(resource)
    
    def _read_data(self, resource: ResourceDefinition) -> Any:
        if self.data_provider is None:
            raise DataError(f"No data provider configured for '{resource.uri}'")
        
        key = resource.data_key or ""
        try:
            if isinstance(self.data_provider, Mapping):
                return self.data_provider[key]
            return self.data_provider.get_data(key)
        except KeyError as e:
            raise DataError(f"No data available for key '{key}'") from e
    
    def _read_file(self, resource: ResourceDefinition) -> Any:
        path = Path(resource.file_path or "")
        if not path.is_absolute() and self.base_path is not None:
            path = self.base_path / path
        
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Resource file unreadable", uri=resource.uri, path=str(path), error=str(e))
            raise DataError(f"Cannot read resource file '{path}': {e}") from e
        
        return parse_content(text, resource.mime_type)
