"""Tests for MCP Server components."""

import json
import sys
from datetime import date

import pytest

from shared.errors import (
    DATA_ERROR,
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    RESOURCE_NOT_FOUND,
    InternalError,
    MethodNotFoundError,
    ValidationError,
)
from shared.models import ResourceDefinition, ToolDefinition
from shared.schema import create_tool_schema


def make_add_tool(name="add"):
    return ToolDefinition(
        name=name,
        description="Adds two integers.",
        input_schema=create_tool_schema([
            {"name": "a", "type": "integer"},
            {"name": "b", "type": "integer"},
        ]),
        handler=lambda params: params["a"] + params["b"]
    )


def rpc(server, method, params=None, request_id=1):
    request = {"jsonrpc": "2.0", "method": method, "id": request_id}
    if params is not None:
        request["params"] = params
    return json.loads(server.process_request(json.dumps(request)))


class TestToolRegistry:
    """Tests for the ToolRegistry."""
    
    def test_register_tool(self):
        """Test registering a tool."""
        from mcp_server.registry import ToolRegistry
        
        registry = ToolRegistry()
        registry.register_tool(make_add_tool())
        
        assert registry.get_tool("add") is not None
        assert registry.get_tool("missing") is None
    
    def test_register_tool_from_mapping(self):
        """Registration mappings use the wire names inputSchema and callable."""
        from mcp_server.registry import ToolRegistry
        
        registry = ToolRegistry()
        tool = registry.register_tool({
            "name": "echo",
            "description": "Echoes its input.",
            "inputSchema": {"type": "object", "properties": {}},
            "callable": lambda params: params,
        })
        
        assert tool.name == "echo"
        assert registry.get_tool("echo").handler({"x": 1}) == {"x": 1}
    
    def test_register_tool_missing_fields(self):
        """Test that incomplete descriptors are rejected with the missing fields named."""
        from mcp_server.registry import ToolRegistry
        
        registry = ToolRegistry()
        
        with pytest.raises(ValidationError, match="inputSchema") as exc_info:
            registry.register_tool({"name": "broken", "description": "No schema", "handler": print})
        
        assert exc_info.value.code == INVALID_PARAMS
        assert registry.get_tool("broken") is None
    
    def test_register_tool_invalid_schema(self):
        """Test that a schema which is not valid JSON Schema is rejected."""
        from mcp_server.registry import ToolRegistry
        
        registry = ToolRegistry()
        tool = make_add_tool()
        tool.input_schema = {"type": "not-a-type"}
        
        with pytest.raises(ValidationError, match="invalid inputSchema"):
            registry.register_tool(tool)
    
    def test_register_duplicate_tool_replaces(self):
        """Test that the last registration under a name wins."""
        from mcp_server.registry import ToolRegistry
        
        registry = ToolRegistry()
        registry.register_tool(make_add_tool())
        
        replacement = make_add_tool()
        replacement.handler = lambda params: "replaced"
        registry.register_tool(replacement)
        
        assert len(registry.list_tools()) == 1
        assert registry.get_tool("add").handler({"a": 1, "b": 2}) == "replaced"
    
    @pytest.mark.parametrize("name", ["tools/list", "resources/list", "resources/read"])
    def test_protocol_method_names_reserved(self, name):
        """Test that tools cannot shadow protocol methods."""
        from mcp_server.registry import ToolRegistry
        
        registry = ToolRegistry()
        
        with pytest.raises(ValidationError, match="reserved"):
            registry.register_tool(make_add_tool(name=name))
    
    def test_reserved_names(self):
        """Test reserving extra names, in both registration orders."""
        from mcp_server.registry import ToolRegistry
        
        registry = ToolRegistry(reserved_names=["generate_image"])
        assert "generate_image" in registry.reserved_names
        
        with pytest.raises(ValidationError):
            registry.register_tool(make_add_tool(name="generate_image"))
        
        registry.register_tool(make_add_tool())
        with pytest.raises(ValidationError, match="already registered"):
            registry.reserve("add")
    
    def test_validate_input(self):
        """Test input validation against schema."""
        from mcp_server.registry import ToolRegistry
        
        registry = ToolRegistry()
        registry.register_tool(make_add_tool())
        
        is_valid, errors = registry.validate_input("add", {"a": 1, "b": 2})
        assert is_valid
        assert errors == []
        
        is_valid, errors = registry.validate_input("add", {"a": 1})
        assert not is_valid
        assert any("'b' is a required property" in e for e in errors)
        
        is_valid, errors = registry.validate_input("add", {"a": "one", "b": 2})
        assert not is_valid
        assert errors[0].startswith("a:")
        
        is_valid, errors = registry.validate_input("missing", {})
        assert not is_valid
    
    def test_list_tool_declarations(self):
        """Test declarations advertised to the gateway."""
        from mcp_server.registry import ToolRegistry
        
        registry = ToolRegistry()
        registry.register_tool(make_add_tool())
        
        declarations = registry.list_tool_declarations()
        
        assert declarations == [{
            "name": "add",
            "description": "Adds two integers.",
            "parameters": make_add_tool().input_schema,
        }]
    
    def test_register_resource(self):
        """Test resource registration and lookup by URI."""
        from mcp_server.registry import ToolRegistry
        
        registry = ToolRegistry()
        registry.register_resource({
            "name": "users",
            "uri": "data://users",
            "mimeType": "application/json",
        })
        
        resource = registry.find_resource("data://users")
        assert resource is not None
        assert resource.data_key == "users"
        assert registry.find_resource("data://posts") is None
        assert registry.list_resource_descriptors() == [{
            "name": "users",
            "uri": "data://users",
            "description": "",
            "mimeType": "application/json",
        }]
    
    @pytest.mark.parametrize("descriptor", [
        {"name": "r", "uri": "http://example.com/x", "mimeType": "application/json"},
        {"name": "r", "uri": "data://x", "mimeType": "application/json", "filePath": "x.json"},
        {"name": "r", "uri": "file://x.json", "mimeType": "application/json", "dataKey": "x"},
        {"name": "r", "uri": "data://x"},
    ])
    def test_register_invalid_resource(self, descriptor):
        """Test that unsupported schemes and conflicting sources are rejected."""
        from mcp_server.registry import ToolRegistry
        
        registry = ToolRegistry()
        
        with pytest.raises(ValidationError):
            registry.register_resource(descriptor)
    
    def test_get_resource(self):
        """Test resource lookup by name."""
        from mcp_server.registry import ToolRegistry
        
        registry = ToolRegistry()
        registry.register_resource({
            "name": "catalog",
            "uri": "file://./products.json",
            "mimeType": "application/json",
        })
        
        resource = registry.get_resource("catalog")
        
        assert resource is not None
        assert resource.uri == "file://./products.json"
        assert resource.file_path == "./products.json"
        assert registry.get_resource("missing") is None


class TestToolRouter:
    """Tests for the ToolRouter."""
    
    def setup_method(self):
        """Set up test fixtures."""
        from mcp_server.registry import ToolRegistry
        from mcp_server.router import ToolRouter
        
        self.registry = ToolRegistry()
        self.registry.register_tool(make_add_tool())
        self.router = ToolRouter(self.registry)
    
    def test_execute(self):
        """Test executing a tool."""
        assert self.router.execute("add", {"a": 2, "b": 3}) == 5
    
    def test_execute_unknown_tool(self):
        """Test executing a non-existent tool."""
        with pytest.raises(MethodNotFoundError):
            self.router.execute("nonexistent", {})
    
    def test_execute_with_validation_error(self):
        """Test executing with invalid parameters."""
        with pytest.raises(ValidationError, match="Invalid params for 'add'"):
            self.router.execute("add", {"a": 2})
    
    def test_handler_failure_becomes_internal_error(self):
        """Test that handler exceptions are converted, keeping the message."""
        def explode(params):
            raise RuntimeError("database offline")
        
        self.registry.register_tool(ToolDefinition(
            name="explode",
            description="Always fails.",
            input_schema={"type": "object"},
            handler=explode
        ))
        
        with pytest.raises(InternalError, match="database offline"):
            self.router.execute("explode", {})


class TestServer:
    """Tests for JSON-RPC request processing."""
    
    def setup_method(self):
        """Set up test fixtures."""
        from mcp_server.server import Server
        
        self.server = Server(data_provider={"users": [{"id": 1, "username": "admin"}]})
        self.server.register_tool(make_add_tool())
    
    def test_tool_call(self):
        """Test a successful tool call."""
        response = rpc(self.server, "add", {"a": 2, "b": 3}, request_id="req-1")
        
        assert response == {"jsonrpc": "2.0", "result": 5, "id": "req-1"}
    
    @pytest.mark.parametrize("raw", [
        "{not json",
        pytest.param(
            '{"jsonrpc": "2.0", "method": "add", "params": {"a": ' + "1" * 5000 + '}, "id": "a"}',
            marks=pytest.mark.skipif(
                not hasattr(sys, "get_int_max_str_digits"), reason="no integer digit limit"
            ),
        ),
        "[" * 100000,
    ])
    def test_malformed_json(self, raw):
        """Test that unparsable input yields a parse error with a null id."""
        response = json.loads(self.server.process_request(raw))
        
        assert response["error"]["code"] == PARSE_ERROR
        assert response["id"] is None
        assert "result" not in response
    
    def test_invalid_envelope_echoes_id(self):
        """Test that a request missing its method is rejected but keeps its id."""
        raw = json.dumps({"jsonrpc": "2.0", "id": 7})
        
        response = json.loads(self.server.process_request(raw))
        
        assert response["error"]["code"] == INVALID_REQUEST
        assert response["id"] == 7
    
    def test_wrong_version_is_invalid(self):
        raw = json.dumps({"jsonrpc": "1.0", "method": "add", "id": 1})
        
        response = json.loads(self.server.process_request(raw))
        
        assert response["error"]["code"] == INVALID_REQUEST
    
    def test_method_not_found(self):
        """Test calling an unregistered method."""
        response = rpc(self.server, "subtract", {"a": 1, "b": 2})
        
        assert response["error"]["code"] == METHOD_NOT_FOUND
        assert "subtract" in response["error"]["message"]
    
    def test_invalid_params(self):
        """Test that schema violations yield an invalid params error."""
        response = rpc(self.server, "add", {"a": "two", "b": 3})
        
        assert response["error"]["code"] == INVALID_PARAMS
    
    def test_missing_params_means_empty_object(self):
        """Test that absent params are validated as an empty object."""
        response = rpc(self.server, "add")
        
        assert response["error"]["code"] == INVALID_PARAMS
        assert "required property" in response["error"]["message"]
    
    def test_empty_params_array_accepted(self):
        self.server.register_tool(ToolDefinition(
            name="ping",
            description="Replies pong.",
            input_schema={"type": "object", "properties": {}},
            handler=lambda params: "pong"
        ))
        
        response = rpc(self.server, "ping", [])
        
        assert response["result"] == "pong"
    
    def test_internal_error(self):
        """Test that a failing handler yields an internal error, not an exception."""
        def explode(params):
            raise ValueError("bad things")
        
        self.server.register_tool(ToolDefinition(
            name="explode",
            description="Always fails.",
            input_schema={"type": "object"},
            handler=explode
        ))
        
        response = rpc(self.server, "explode", {})
        
        assert response["error"] == {"code": INTERNAL_ERROR, "message": "bad things"}
    
    def test_non_json_result_is_stringified(self):
        """Test that results without a JSON form are serialized as strings."""
        self.server.register_tool(ToolDefinition(
            name="today",
            description="Returns a fixed date.",
            input_schema={"type": "object"},
            handler=lambda params: date(2024, 1, 2)
        ))
        
        response = rpc(self.server, "today", {})
        
        assert response["result"] == "2024-01-02"
    
    def test_unserializable_result_is_internal_error(self):
        """Test that a result with no JSON form still yields an error envelope."""
        circular: dict = {}
        circular["self"] = circular
        results = {"tuple_keys": {(1, 2): 3}, "circular": circular}
        
        for name, value in results.items():
            self.server.register_tool(ToolDefinition(
                name=name,
                description="Returns a value json cannot encode.",
                input_schema={"type": "object"},
                handler=lambda params, value=value: value
            ))
            
            response = rpc(self.server, name, {}, request_id="b")
            
            assert response["error"]["code"] == INTERNAL_ERROR
            assert response["id"] == "b"
            assert "result" not in response
    
    def test_replaced_tool_dispatches_newest_handler(self):
        replacement = make_add_tool()
        self.server.register_tool(ToolDefinition(
            name="add",
            description="Multiplies two integers.",
            input_schema=replacement.input_schema,
            handler=lambda params: params["a"] * params["b"]
        ))
        
        response = rpc(self.server, "add", {"a": 2, "b": 3})
        
        assert response["result"] == 6
    
    def test_tools_list(self):
        """Test the tools/list introspection method."""
        response = rpc(self.server, "tools/list")
        
        assert [d["name"] for d in response["result"]] == ["add"]
    
    def test_resources_list_and_read(self):
        """Test listing resources and reading a data:// resource."""
        self.server.register_resource(ResourceDefinition(
            name="users",
            uri="data://users",
            mime_type="application/json",
            data_key="users"
        ))
        
        listed = rpc(self.server, "resources/list")
        read = rpc(self.server, "resources/read", {"uri": "data://users"})
        
        assert listed["result"][0]["uri"] == "data://users"
        assert "users" not in listed["result"][0]
        assert read["result"] == [{"id": 1, "username": "admin"}]
    
    def test_read_unknown_resource(self):
        """Test reading a URI with no registered resource."""
        response = rpc(self.server, "resources/read", {"uri": "data://nothing"})
        
        assert response["error"]["code"] == RESOURCE_NOT_FOUND
    
    def test_read_requires_uri(self):
        response = rpc(self.server, "resources/read", {})
        
        assert response["error"]["code"] == INVALID_PARAMS
    
    def test_read_missing_data_key(self):
        """Test a data:// resource whose key the provider does not have."""
        self.server.register_resource({
            "name": "posts",
            "uri": "data://posts",
            "mimeType": "application/json",
        })
        
        response = rpc(self.server, "resources/read", {"uri": "data://posts"})
        
        assert response["error"]["code"] == DATA_ERROR


class TestFileResources:
    """Tests for file:// resources."""
    
    def setup_method(self):
        """Set up test fixtures."""
        from mcp_server.server import Server
        
        self.server = Server()
    
    def register(self, path, mime_type="application/json"):
        self.server.register_resource({
            "name": "catalog",
            "uri": "file://catalog",
            "mimeType": mime_type,
            "filePath": str(path),
        })
    
    def test_read_json_file(self, tmp_path):
        path = tmp_path / "products.json"
        path.write_text(json.dumps([{"sku": "A-1", "price": 3}]))
        self.register(path)
        
        response = rpc(self.server, "resources/read", {"uri": "file://catalog"})
        
        assert response["result"] == [{"sku": "A-1", "price": 3}]
    
    def test_read_yaml_file(self, tmp_path):
        path = tmp_path / "products.yaml"
        path.write_text("- sku: A-1\n  price: 3\n")
        self.register(path, mime_type="application/yaml")
        
        response = rpc(self.server, "resources/read", {"uri": "file://catalog"})
        
        assert response["result"] == [{"sku": "A-1", "price": 3}]
    
    def test_read_text_file(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("plain notes")
        self.register(path, mime_type="text/plain")
        
        response = rpc(self.server, "resources/read", {"uri": "file://catalog"})
        
        assert response["result"] == "plain notes"
    
    def test_relative_path_uses_base_path(self, tmp_path):
        """Test that relative file paths resolve against the server base path."""
        from mcp_server.server import Server
        
        (tmp_path / "products.json").write_text("{\"ok\": true}")
        server = Server(base_path=tmp_path)
        server.register_resource({
            "name": "catalog",
            "uri": "file://./products.json",
            "mimeType": "application/json",
        })
        
        response = rpc(server, "resources/read", {"uri": "file://./products.json"})
        
        assert response["result"] == {"ok": True}
    
    def test_invalid_json_file(self, tmp_path):
        """Test that unparsable file content yields a data error."""
        path = tmp_path / "products.json"
        path.write_text("{oops")
        self.register(path)
        
        response = rpc(self.server, "resources/read", {"uri": "file://catalog"})
        
        assert response["error"]["code"] == DATA_ERROR
    
    def test_missing_file(self, tmp_path):
        self.register(tmp_path / "absent.json")
        
        response = rpc(self.server, "resources/read", {"uri": "file://catalog"})
        
        assert response["error"]["code"] == DATA_ERROR
    
    def test_unsupported_mime_type(self, tmp_path):
        path = tmp_path / "image.png"
        path.write_bytes(b"abc")
        self.register(path, mime_type="image/png")
        
        response = rpc(self.server, "resources/read", {"uri": "file://catalog"})
        
        assert response["error"]["code"] == DATA_ERROR
