"""
Tests for shared/config.py - configuration loading and defaults.
"""

import os
import pytest
from unittest.mock import patch

from agentgraph.shared.config import (
    AppConfig, EngineConfig, LLMConfig, LLMProvider, SkillConfig, ToolChoice, ToolConfig,
    load_config,
)


class TestEnums:
    def test_provider_values(self):
        assert LLMProvider("anthropic") == LLMProvider.ANTHROPIC
        assert LLMProvider("openai_compatible") == LLMProvider.OPENAI_COMPATIBLE

    def test_tool_choice_values(self):
        assert ToolChoice("required") == ToolChoice.REQUIRED


class TestDefaults:
    def test_engine_bounds(self):
        cfg = EngineConfig()
        assert cfg.max_iterations == 10
        assert cfg.react_max_iterations == 5
        assert cfg.max_tool_rounds == 8

    def test_llm_defaults(self):
        cfg = LLMConfig()
        assert cfg.provider == LLMProvider.OPENAI_COMPATIBLE
        assert cfg.tool_choice == ToolChoice.AUTO
        assert cfg.max_retries == 3

    def test_tool_roots_default_to_cwd(self):
        assert ToolConfig().roots == (os.getcwd(),)

    def test_app_config_is_frozen(self):
        cfg = AppConfig()
        with pytest.raises(Exception):
            cfg.log_level = "DEBUG"

    def test_skill_dir_default(self):
        assert SkillConfig().skills_dir == "./skills"


class TestLoadConfig:
    @patch("agentgraph.shared.config.load_dotenv")
    def test_reads_environment(self, _dotenv):
        env = {
            "AGENTGRAPH_LLM_PROVIDER": "ANTHROPIC",
            "AGENTGRAPH_API_KEY": "sk-env",
            "AGENTGRAPH_MODEL": "claude-test",
            "AGENTGRAPH_TOOL_CHOICE": "required",
            "AGENTGRAPH_MAX_ITERATIONS": "4",
            "AGENTGRAPH_TOOL_ROOTS": os.pathsep.join(["/srv/a", "/srv/b"]),
            "AGENTGRAPH_TIMEZONE": "Europe/Paris",
            "AGENTGRAPH_LANGUAGE": "fr-FR",
            "LOG_LEVEL": "debug",
        }
        with patch.dict(os.environ, env, clear=True):
            cfg = load_config()

        assert cfg.llm.provider == LLMProvider.ANTHROPIC
        assert cfg.llm.api_key == "sk-env"
        assert cfg.llm.model == "claude-test"
        assert cfg.llm.tool_choice == ToolChoice.REQUIRED
        assert cfg.engine.max_iterations == 4
        assert cfg.tools.roots == ("/srv/a", "/srv/b")
        assert cfg.timezone == "Europe/Paris"
        assert cfg.language == "fr-FR"
        assert cfg.log_level == "DEBUG"

    @patch("agentgraph.shared.config.load_dotenv")
    def test_bad_enum_values_fall_back(self, _dotenv):
        env = {"AGENTGRAPH_LLM_PROVIDER": "carrier-pigeon", "AGENTGRAPH_TOOL_CHOICE": "sometimes"}
        with patch.dict(os.environ, env, clear=True):
            cfg = load_config()
        assert cfg.llm.provider == LLMProvider.OPENAI_COMPATIBLE
        assert cfg.llm.tool_choice == ToolChoice.AUTO

    @patch("agentgraph.shared.config.load_dotenv")
    def test_empty_environment_uses_defaults(self, _dotenv):
        with patch.dict(os.environ, {}, clear=True):
            cfg = load_config()
        assert cfg.llm.api_key == ""
        assert cfg.engine == EngineConfig()
        assert cfg.tools.roots == (os.getcwd(),)
        assert cfg.log_file_dir == ""

    @patch("agentgraph.shared.config.load_dotenv")
    def test_tool_output_caps_from_environment(self, _dotenv):
        env = {"AGENTGRAPH_EXEC_MAX_OUTPUT": "500", "AGENTGRAPH_FETCH_MAX_CHARS": "250"}
        with patch.dict(os.environ, env, clear=True):
            cfg = load_config()
        assert cfg.tools.exec_max_output_chars == 500
        assert cfg.tools.fetch_max_chars == 250

    @patch("agentgraph.shared.config.load_dotenv")
    def test_tool_output_caps_default(self, _dotenv):
        with patch.dict(os.environ, {}, clear=True):
            cfg = load_config()
        assert cfg.tools.exec_max_output_chars == ToolConfig().exec_max_output_chars
        assert cfg.tools.fetch_max_chars == ToolConfig().fetch_max_chars
