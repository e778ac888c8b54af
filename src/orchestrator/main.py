"""Orchestrator - command-line entry point.

Wires one invocation together:
- Settings and logging
- AI gateway adapter
- Content store, MCP Server and domain registration
- AI Client running the prompt
"""

from typing import Optional

import click
import yaml

from shared.config import Settings, get_settings
from shared.errors import OrchestratorError
from shared.logging import get_logger, setup_logging
from mcp_client.client import MCPClientError
from mcp_server.server import Server
from domains import load_all_domains
from domains.content.store import ContentStore
from orchestrator.client import AIClient
from orchestrator.llm import create_gateway

logger = get_logger(__name__)


def build_client(settings: Settings) -> AIClient:
    """Create the gateway, server and client, and register all domains."""
    gateway = create_gateway(settings.llm)
    
    store = ContentStore()
    server = Server(data_provider=store, base_path=settings.mcp_server.resource_base_path)
    
    client = AIClient.from_settings(server, gateway, settings.orchestrator)
    load_all_domains(server, store, client.generate_text, settings.mcp_server.products_path)
    
    logger.info(
        "Client ready",
        provider=settings.llm.provider,
        tools=len(server.registry.list_tools()),
        resources=len(server.registry.list_resources())
    )
    return client


@click.command()
@click.argument("prompt")
@click.option(
    "--config", "-c", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML settings file."
)
@click.option("--max-turns", type=click.IntRange(min=1), default=None, help="Override the turn limit.")
@click.option("--command", "command_mode", is_flag=True, help="Print a shell command for PROMPT instead.")
def main(
    prompt: str,
    config_path: Optional[str],
    max_turns: Optional[int],
    command_mode: bool
) -> None:
    """Answer PROMPT with an AI model that can call the registered tools."""
    try:
        settings = Settings.from_yaml(config_path) if config_path else get_settings()
        if max_turns is not None:
            settings.orchestrator.max_turns = max_turns
        
        setup_logging(settings.log_level, json_output=settings.environment == "production")
    except (yaml.YAMLError, ValueError) as e:
        raise click.ClickException(f"Invalid configuration: {e}")
    
    try:
        client = build_client(settings)
        if command_mode:
            output = client.generate_command(prompt)
        else:
            output = client.call_with_prompt(prompt)
    except (OrchestratorError, MCPClientError, ValueError) as e:
        logger.error("Invocation failed", error=str(e), error_type=type(e).__name__)
        raise click.ClickException(str(e))
    
    # Generated image files belong to the caller from here on.
    click.echo(output)


if __name__ == "__main__":
    main()
