"""Orchestrator / AI Gateway.

Runs the conversation loop for one prompt: supplies tool declarations
to the AI gateway, executes the function calls it requests through the
MCP Client, and answers local capabilities such as image generation.
"""

from orchestrator.llm import AIGatewayAdapter, MockGateway, create_gateway
from orchestrator.conversation import Conversation
from orchestrator.images import GeneratedImage
from orchestrator.client import AIClient

__all__ = [
    "AIGatewayAdapter",
    "MockGateway",
    "create_gateway",
    "Conversation",
    "GeneratedImage",
    "AIClient",
]
