"""
Centralized configuration management for agentgraph.
Uses environment variables with safe defaults following 12-factor app principles.
"""

import os
from dataclasses import dataclass, field
from dotenv import load_dotenv
from enum import Enum


class LLMProvider(Enum):
    """LLM provider selection."""
    OPENAI_COMPATIBLE = "openai_compatible"  # OpenAI, DeepSeek, any /chat/completions gateway
    ANTHROPIC = "anthropic"


class ToolChoice(Enum):
    """Native function-calling selection mode."""
    AUTO = "auto"
    NONE = "none"
    REQUIRED = "required"


@dataclass(frozen=True)
class LLMConfig:
    """Language-model provider configuration."""
    provider: LLMProvider = LLMProvider.OPENAI_COMPATIBLE
    api_key: str = ""
    base_url: str = "https://api.deepseek.com/v1"
    model: str = "deepseek-chat"
    temperature: float = 0.7
    max_tokens: int = 4096
    timeout_seconds: float = 120.0
    max_retries: int = 3
    tool_choice: ToolChoice = ToolChoice.AUTO


@dataclass(frozen=True)
class EngineConfig:
    """Bounds for the execution loop and the tool-calling loops inside nodes."""
    max_iterations: int = 10          # node turns per execution
    react_max_iterations: int = 5     # think/act rounds per ReAct node turn
    max_tool_rounds: int = 8          # model round-trips per native tool node turn


@dataclass(frozen=True)
class ToolConfig:
    """Built-in tool limits. File tools only touch paths under `roots`."""
    roots: tuple = field(default_factory=lambda: (os.getcwd(),))
    max_file_size_bytes: int = 1_048_576  # 1MB
    exec_timeout_seconds: float = 60.0
    exec_working_dir: str = ""  # empty = current working directory
    exec_max_output_chars: int = 20_000
    fetch_timeout_seconds: float = 10.0
    fetch_max_chars: int = 10_000


@dataclass(frozen=True)
class SkillConfig:
    """Skill catalog location."""
    skills_dir: str = "./skills"


@dataclass(frozen=True)
class AppConfig:
    """Root application configuration - assembled from environment."""
    llm: LLMConfig = field(default_factory=LLMConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    tools: ToolConfig = field(default_factory=ToolConfig)
    skills: SkillConfig = field(default_factory=SkillConfig)
    log_file_dir: str = ""  # Directory for timestamped log files; empty = no file logging
    log_level: str = "INFO"
    timezone: str = "UTC"
    language: str = "en-US"


def _split_paths(raw: str) -> tuple:
    return tuple(p.strip() for p in raw.split(os.pathsep) if p.strip())


def load_config() -> AppConfig:
    """
    Load configuration from environment variables.
    Safe defaults are used when env vars are not set.
    """
    load_dotenv()  # Load .env file if present

    provider_str = os.environ.get("AGENTGRAPH_LLM_PROVIDER", "openai_compatible").lower()
    try:
        provider = LLMProvider(provider_str)
    except ValueError:
        provider = LLMProvider.OPENAI_COMPATIBLE

    choice_str = os.environ.get("AGENTGRAPH_TOOL_CHOICE", "auto").lower()
    try:
        tool_choice = ToolChoice(choice_str)
    except ValueError:
        tool_choice = ToolChoice.AUTO

    llm = LLMConfig(
        provider=provider,
        api_key=os.environ.get("AGENTGRAPH_API_KEY", ""),
        base_url=os.environ.get("AGENTGRAPH_BASE_URL", "https://api.deepseek.com/v1"),
        model=os.environ.get("AGENTGRAPH_MODEL", "deepseek-chat"),
        temperature=float(os.environ.get("AGENTGRAPH_TEMPERATURE", "0.7")),
        max_tokens=int(os.environ.get("AGENTGRAPH_MAX_TOKENS", "4096")),
        timeout_seconds=float(os.environ.get("AGENTGRAPH_LLM_TIMEOUT", "120")),
        max_retries=int(os.environ.get("AGENTGRAPH_LLM_RETRIES", "3")),
        tool_choice=tool_choice,
    )

    engine = EngineConfig(
        max_iterations=int(os.environ.get("AGENTGRAPH_MAX_ITERATIONS", "10")),
        react_max_iterations=int(os.environ.get("AGENTGRAPH_REACT_MAX_ITERATIONS", "5")),
        max_tool_rounds=int(os.environ.get("AGENTGRAPH_MAX_TOOL_ROUNDS", "8")),
    )

    roots = _split_paths(os.environ.get("AGENTGRAPH_TOOL_ROOTS", "")) or (os.getcwd(),)
    tools = ToolConfig(
        roots=roots,
        max_file_size_bytes=int(os.environ.get("AGENTGRAPH_MAX_FILE_SIZE", "1048576")),
        exec_timeout_seconds=float(os.environ.get("AGENTGRAPH_EXEC_TIMEOUT", "60")),
        exec_working_dir=os.environ.get("AGENTGRAPH_EXEC_CWD", ""),
        exec_max_output_chars=int(os.environ.get("AGENTGRAPH_EXEC_MAX_OUTPUT", "20000")),
        fetch_timeout_seconds=float(os.environ.get("AGENTGRAPH_FETCH_TIMEOUT", "10")),
        fetch_max_chars=int(os.environ.get("AGENTGRAPH_FETCH_MAX_CHARS", "10000")),
    )

    skills = SkillConfig(
        skills_dir=os.environ.get("AGENTGRAPH_SKILLS_DIR", "./skills"),
    )

    return AppConfig(
        llm=llm,
        engine=engine,
        tools=tools,
        skills=skills,
        log_file_dir=os.environ.get("LOG_FILE_DIR", ""),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        timezone=os.environ.get("AGENTGRAPH_TIMEZONE", "UTC"),
        language=os.environ.get("AGENTGRAPH_LANGUAGE", "en-US"),
    )
