"""Shared test fixtures."""

import pytest
import structlog


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop logging configuration made by a test, e.g. through the CLI."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def store():
    from domains.content.store import ContentStore
    
    return ContentStore()


@pytest.fixture
def server(store):
    from mcp_server.server import Server
    
    return Server(data_provider=store)


@pytest.fixture
def gateway():
    from orchestrator.llm import MockGateway
    
    return MockGateway()
