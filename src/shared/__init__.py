"""Shared utilities and base classes for MCP Platform."""

from shared.models import (
    Candidate,
    Capability,
    Content,
    ContentRole,
    ResourceDefinition,
    ToolDefinition,
    ToolResult,
)
from shared.config import Settings, get_settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "Candidate",
    "Capability",
    "Content",
    "ContentRole",
    "ResourceDefinition",
    "ToolDefinition",
    "ToolResult",
    "Settings",
    "get_settings",
    "get_logger",
    "setup_logging",
]
