"""Tests for the command-line entry point."""

import pytest
from click.testing import CliRunner

from shared.config import get_settings


@pytest.fixture(autouse=True)
def mock_provider(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "mock")
    monkeypatch.delenv("MCP_CONFIG_PATH", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestCLI:
    """Tests for the mcp-ai command."""
    
    def test_prompt_answered(self):
        from orchestrator.main import main
        
        runner = CliRunner()
        result = runner.invoke(main, ["Hello there"])
        
        assert result.exit_code == 0, result.output
        assert "This is a mock response." in result.output
    
    def test_command_mode(self):
        from orchestrator.main import main
        
        runner = CliRunner()
        result = runner.invoke(main, ["list files", "--command"])
        
        assert result.exit_code == 0, result.output
        assert "This is a mock response." in result.output
    
    def test_config_file(self, tmp_path):
        from orchestrator.main import main
        
        config = tmp_path / "settings.yaml"
        config.write_text(
            "log_level: ERROR\n"
            "llm:\n"
            "  provider: unknown\n"
        )
        
        runner = CliRunner()
        result = runner.invoke(main, ["Hello", "--config", str(config)])
        
        assert result.exit_code == 1
        assert "Unsupported AI gateway" in result.output
    
    @pytest.mark.parametrize("content", [
        "llm: [\n",
        "log_level: NOPE\n",
    ])
    def test_invalid_config_file(self, tmp_path, content):
        """Test that a broken config file is reported without a traceback."""
        from orchestrator.main import main
        
        config = tmp_path / "settings.yaml"
        config.write_text(content)
        
        runner = CliRunner()
        result = runner.invoke(main, ["Hello", "--config", str(config)])
        
        assert result.exit_code == 1
        assert "Error: Invalid configuration" in result.output
        assert "Traceback" not in result.output
    
    def test_gateway_unavailable_exits_with_error(self, monkeypatch):
        from orchestrator.main import main
        
        monkeypatch.setenv("LLM_PROVIDER", "openai")
        monkeypatch.delenv("LLM_API_KEY", raising=False)
        
        runner = CliRunner()
        result = runner.invoke(main, ["Hello"])
        
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "not configured" in result.output
    
    def test_loop_limit_exits_with_error(self, monkeypatch):
        from orchestrator import main as cli
        from orchestrator.llm import MockGateway
        from shared.models import FunctionCallPart
        
        gateway = MockGateway()
        for _ in range(2):
            gateway.queue_text_response(FunctionCallPart(name="greet", args={"name": "Ada"}))
        monkeypatch.setattr(cli, "create_gateway", lambda settings: gateway)
        
        runner = CliRunner()
        result = runner.invoke(cli.main, ["Greet Ada forever", "--max-turns", "2"])
        
        assert result.exit_code == 1
        assert "did not converge within 2 turns" in result.output
    
    def test_max_turns_must_be_positive(self):
        from orchestrator.main import main
        
        runner = CliRunner()
        result = runner.invoke(main, ["Hello", "--max-turns", "0"])
        
        assert result.exit_code == 2
