"""Core data models for MCP Platform.

This module defines the shared data structures: tool and resource
descriptors, JSON-RPC envelopes, and the conversation content exchanged
with the AI gateway.
"""

import base64
from enum import Enum
from typing import Annotated, Any, Callable, Literal, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from shared.errors import MCPError


JSONRPC_VERSION = "2.0"

RESOURCE_SCHEMES = ("data", "file")

ToolHandler = Callable[[dict[str, Any]], Any]


class ToolDefinition(BaseModel):
    """
    A named, schema-described callable exposed to the model.
    
    Accepts either Python field names or the wire names used by
    registration mappings (``inputSchema``, ``callable``).
    """
    model_config = ConfigDict(populate_by_name=True)
    
    name: str = Field(..., min_length=1, description="Unique tool name")
    description: str = Field(..., description="Clear description for LLM usage")
    input_schema: dict[str, Any] = Field(
        ...,
        alias="inputSchema",
        description="JSON Schema for input validation"
    )
    handler: ToolHandler = Field(
        ...,
        validation_alias=AliasChoices("handler", "callable"),
        exclude=True
    )
    
    def declaration(self) -> dict[str, Any]:
        """Return the function declaration advertised to the gateway."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.input_schema,
        }


class ResourceDefinition(BaseModel):
    """
    A named, read-only data source addressed by URI.
    
    ``data://<key>`` resources resolve against the server's data provider,
    ``file://<path>`` resources are read from disk. When neither
    ``data_key`` nor ``file_path`` is given it is derived from the URI.
    """
    model_config = ConfigDict(populate_by_name=True)
    
    name: str = Field(..., min_length=1)
    uri: str = Field(..., min_length=1)
    description: str = ""
    mime_type: str = Field(..., alias="mimeType", min_length=1)
    data_key: Optional[str] = Field(default=None, alias="dataKey")
    file_path: Optional[str] = Field(default=None, alias="filePath")
    
    @model_validator(mode="after")
    def _resolve_source(self) -> "ResourceDefinition":
        scheme, sep, target = self.uri.partition("://")
        if not sep or scheme not in RESOURCE_SCHEMES or not target:
            raise ValueError(
                f"Unsupported resource URI '{self.uri}': expected data:// or file://"
            )
        
        if self.data_key is not None and self.file_path is not None:
            raise ValueError("Resource takes exactly one of dataKey or filePath")
        
        if scheme == "data":
            if self.file_path is not None:
                raise ValueError("data:// resources take a dataKey, not a filePath")
            if self.data_key is None:
                self.data_key = target
        else:
            if self.data_key is not None:
                raise ValueError("file:// resources take a filePath, not a dataKey")
            if self.file_path is None:
                self.file_path = target
        
        return self
    
    @property
    def scheme(self) -> str:
        """URI scheme, either 'data' or 'file'."""
        return self.uri.partition("://")[0]
    
    def descriptor(self) -> dict[str, Any]:
        """Return resource metadata, never the underlying data."""
        return {
            "name": self.name,
            "uri": self.uri,
            "description": self.description,
            "mimeType": self.mime_type,
        }


class JSONRPCRequest(BaseModel):
    """JSON-RPC 2.0 request envelope."""
    jsonrpc: Literal["2.0"]
    method: str = Field(..., min_length=1)
    params: Optional[dict[str, Any]] = None
    id: Optional[Union[str, int]] = None
    
    @field_validator("params", mode="before")
    @classmethod
    def _empty_array_as_object(cls, value: Any) -> Any:
        # Clients that serialize an empty parameter map as [] still mean "no params".
        if isinstance(value, list) and not value:
            return {}
        return value


class JSONRPCErrorObject(BaseModel):
    """Error member of a JSON-RPC response."""
    code: int
    message: str


class JSONRPCResponse(BaseModel):
    """
    JSON-RPC 2.0 response envelope.
    
    Exactly one of ``result`` and ``error`` is emitted by ``to_dict``.
    """
    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: Optional[Union[str, int]] = None
    result: Any = None
    error: Optional[JSONRPCErrorObject] = None
    
    @classmethod
    def success(cls, request_id: Optional[Union[str, int]], result: Any) -> "JSONRPCResponse":
        return cls(id=request_id, result=result)
    
    @classmethod
    def failure(cls, request_id: Optional[Union[str, int]], error: MCPError) -> "JSONRPCResponse":
        return cls(
            id=request_id,
            error=JSONRPCErrorObject(code=error.code, message=error.message)
        )
    
    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"jsonrpc": self.jsonrpc}
        if self.error is not None:
            data["error"] = self.error.model_dump()
        else:
            data["result"] = self.result
        data["id"] = self.id
        return data


class ToolResultStatus(str, Enum):
    """Status of tool execution."""
    SUCCESS = "success"
    ERROR = "error"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"


class ToolResult(BaseModel):
    """
    Result of a tool execution as seen by a client.
    
    Contains the output data, status, and any error information.
    """
    tool_name: str
    status: ToolResultStatus
    data: Optional[Any] = None
    error: Optional[str] = None
    error_code: Optional[int] = None
    execution_time_ms: float = 0
    
    @property
    def ok(self) -> bool:
        return self.status == ToolResultStatus.SUCCESS


class Capability(str, Enum):
    """Feature tags a gateway model must support to be selected."""
    MULTIMODAL_INPUT = "multimodal_input"
    TEXT_GENERATION = "text_generation"
    FUNCTION_CALLING = "function_calling"
    IMAGE_GENERATION = "image_generation"


class ModelHandle(BaseModel):
    """A gateway model chosen for a set of capabilities."""
    provider: str
    model: str
    capabilities: list[Capability] = Field(default_factory=list)


class ContentRole(str, Enum):
    """Author of a conversation content item."""
    USER = "user"
    MODEL = "model"


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class FunctionCallPart(BaseModel):
    type: Literal["function_call"] = "function_call"
    id: Optional[str] = None
    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class FunctionResponsePart(BaseModel):
    type: Literal["function_response"] = "function_response"
    id: Optional[str] = None
    name: str
    result: dict[str, Any] = Field(default_factory=dict)


class InlineDataPart(BaseModel):
    """Binary payload carried as base64, optionally as a data URL."""
    type: Literal["inline_data"] = "inline_data"
    mime_type: str
    data: str
    
    def decode(self) -> bytes:
        """Decode the payload, stripping a ``data:<mime>;base64,`` prefix if present."""
        payload = self.data
        if payload.startswith("data:"):
            payload = payload.partition(",")[2]
        return base64.b64decode(payload, validate=True)


class FileDataPart(BaseModel):
    """Reference to remotely hosted data. The URI may be short-lived."""
    type: Literal["file_data"] = "file_data"
    file_uri: str
    mime_type: Optional[str] = None


Part = Annotated[
    Union[TextPart, FunctionCallPart, FunctionResponsePart, InlineDataPart, FileDataPart],
    Field(discriminator="type")
]


class Content(BaseModel):
    """One conversation item: a role and its ordered parts."""
    role: ContentRole
    parts: list[Part] = Field(default_factory=list)
    
    @property
    def text(self) -> str:
        """Concatenated text of all Text parts."""
        return "".join(part.text for part in self.parts if isinstance(part, TextPart))
    
    @property
    def function_calls(self) -> list[FunctionCallPart]:
        return [part for part in self.parts if isinstance(part, FunctionCallPart)]
    
    @classmethod
    def user_text(cls, text: str) -> "Content":
        return cls(role=ContentRole.USER, parts=[TextPart(text=text)])


class Candidate(BaseModel):
    """One alternative response generated by the gateway."""
    content: Content
    finish_reason: Optional[str] = None
