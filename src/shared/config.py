"""Configuration management for MCP Platform.

Supports YAML configuration files and environment variable overrides.
Configuration is loaded once and cached for performance.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMSettings(BaseSettings):
    """AI gateway configuration."""
    provider: str = Field(default="openai", description="Gateway provider: openai, azure_openai, mock")
    model: str = Field(default="gpt-4o", description="Text generation model")
    image_model: str = Field(default="dall-e-3", description="Image generation model")
    api_key: Optional[str] = Field(default=None, description="API key")
    api_base: Optional[str] = Field(default=None, description="API base URL")
    api_version: Optional[str] = Field(default="2024-02-15-preview", description="API version")
    deployment_name: Optional[str] = Field(default=None, description="Azure deployment name")
    image_deployment_name: Optional[str] = Field(default=None, description="Azure image deployment name")
    temperature: float = Field(default=0.7, ge=0, le=2)
    max_tokens: int = Field(default=4096, gt=0)
    timeout_seconds: float = Field(default=60.0, gt=0)
    max_retries: int = Field(default=2, ge=0)
    
    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        env_file=".env",
        extra="ignore"
    )


class MCPServerSettings(BaseSettings):
    """Dispatcher configuration."""
    resource_base_path: str = Field(default=".", description="Base for relative file:// resources")
    products_path: str = Field(default="./products.json")
    
    model_config = SettingsConfigDict(
        env_prefix="MCP_SERVER_",
        env_file=".env",
        extra="ignore"
    )


class OrchestratorSettings(BaseSettings):
    """Orchestrator configuration."""
    max_turns: int = Field(default=10, ge=1, description="Maximum gateway round-trips per prompt")
    tool_errors_fatal: bool = Field(default=False)
    image_dir: Optional[str] = Field(default=None, description="Directory for generated images")
    
    model_config = SettingsConfigDict(
        env_prefix="ORCHESTRATOR_",
        env_file=".env",
        extra="ignore"
    )


class Settings(BaseSettings):
    """Main application settings."""
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    log_level: str = Field(default="WARNING")
    
    # Component settings
    llm: LLMSettings = Field(default_factory=LLMSettings)
    mcp_server: MCPServerSettings = Field(default_factory=MCPServerSettings)
    orchestrator: OrchestratorSettings = Field(default_factory=OrchestratorSettings)
    
    model_config = SettingsConfigDict(
        env_prefix="MCP_",
        env_file=".env",
        extra="ignore"
    )
    
    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        return cls(**load_yaml_config(path))


def load_yaml_config(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file."""
    path = Path(path)
    if not path.exists():
        return {}
    
    with open(path) as f:
        return yaml.safe_load(f) or {}


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    config_path = os.environ.get("MCP_CONFIG_PATH", "config/settings.yaml")
    return Settings.from_yaml(config_path)
