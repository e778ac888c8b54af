"""JSON Schema helpers for tool input.

Tool parameters are checked with Draft 7, the dialect tool declarations
are written in.
"""

from typing import Any, Iterable

from jsonschema import Draft7Validator, SchemaError


JSON_TYPES = frozenset({"string", "integer", "number", "boolean", "array", "object", "null"})

# Python spellings accepted in parameter definitions
TYPE_ALIASES = {
    "str": "string",
    "int": "integer",
    "float": "number",
    "bool": "boolean",
    "list": "array",
    "dict": "object",
}

# Keywords copied verbatim from a parameter definition into its schema
PASSTHROUGH_KEYWORDS = ("enum", "default", "items", "minimum", "maximum", "pattern")


def _format_error(path: Iterable[Any], message: str) -> str:
    location = ".".join(str(p) for p in path)
    return f"{location}: {message}" if location else message


def validate_schema(data: Any, schema: dict[str, Any]) -> tuple[bool, list[str]]:
    """
    Validate data against a JSON Schema.
    
    Args:
        data: The data to validate
        schema: JSON Schema to validate against; an empty schema accepts anything
    
    Returns:
        Tuple of (is_valid, list of error messages ordered by location)
    """
    if not schema:
        return True, []
    
    errors = sorted(
        Draft7Validator(schema).iter_errors(data),
        key=lambda e: [str(p) for p in e.absolute_path]
    )
    messages = [_format_error(e.absolute_path, e.message) for e in errors]
    return not messages, messages


def check_schema(schema: dict[str, Any]) -> list[str]:
    """Problems that make ``schema`` unusable as a Draft 7 schema, if any."""
    try:
        Draft7Validator.check_schema(schema)
    except SchemaError as e:
        return [_format_error(e.absolute_path, e.message)]
    return []


def json_type(name: str) -> str:
    """Normalize a parameter type name; unknown names fall back to string."""
    name = TYPE_ALIASES.get(name, name)
    return name if name in JSON_TYPES else "string"


def create_tool_schema(
    parameters: list[dict[str, Any]],
    required: list[str] | None = None
) -> dict[str, Any]:
    """
    Build an object schema from parameter definitions.
    
    Each definition has a ``name`` and optionally ``type``, ``description``
    and any of the passthrough keywords (``enum``, ``items``, ...).
    
    Args:
        parameters: Parameter definitions
        required: Required parameter names. When omitted, every parameter
            without a default and not marked ``required: False`` is required
    
    Returns:
        JSON Schema dictionary
    """
    properties: dict[str, Any] = {}
    for param in parameters:
        prop = {
            "type": json_type(param.get("type", "string")),
            "description": param.get("description", ""),
        }
        prop.update({k: param[k] for k in PASSTHROUGH_KEYWORDS if k in param})
        properties[param["name"]] = prop
    
    if required is None:
        required = [
            p["name"] for p in parameters
            if p.get("required", True) and "default" not in p
        ]
    
    return {
        "type": "object",
        "properties": properties,
        "required": list(required),
    }
