"""
LLM client implementations for agentgraph.
Supports any OpenAI-compatible chat completions endpoint (OpenAI, DeepSeek,
gateways) and the Anthropic Messages API. Both implement ILLMClient with
streaming text and native function calling.

Production hardening:
- All LLM calls wrapped in asyncio.wait_for() with configurable timeout
- Exponential backoff retry on transient failures
- Permanent failures raise LLMClientError (fatal to the execution)
"""

import asyncio
import json
import logging
from abc import abstractmethod
from typing import Callable, Optional

import anthropic
from openai import AsyncOpenAI

from agentgraph.shared.config import AppConfig, LLMConfig, LLMProvider, ToolChoice
from agentgraph.shared.errors import LLMClientError
from agentgraph.shared.interfaces import ILLMClient
from agentgraph.shared.models import LLMResponse, StreamChunk, ToolCall, ToolCallFunction

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Retry / timeout constants
# ---------------------------------------------------------------------------

LLM_BACKOFF_BASE_SECONDS = 2.0      # Exponential backoff base: 2s, 4s, 8s

# Errors that are worth retrying (transient)
_TRANSIENT_ERROR_KEYWORDS = (
    "timeout", "timed out", "rate_limit", "rate limit",
    "overloaded", "capacity", "529", "503", "502",
    "connection", "reset", "eof", "broken pipe",
)


class _PartialStreamError(LLMClientError):
    """The stream broke after text was already delivered; retrying would duplicate it."""


def _is_transient_error(error: Exception) -> bool:
    """Determine if an error is transient and worth retrying."""
    if isinstance(error, LLMClientError):
        return False
    error_str = str(error).lower()
    return any(keyword in error_str for keyword in _TRANSIENT_ERROR_KEYWORDS)


async def _retry_with_backoff(
    coro_factory,
    operation_name: str,
    timeout: float,
    max_retries: int,
    partial_output: Optional[Callable[[], bool]] = None,
):
    """
    Execute an async operation with timeout + exponential backoff retry.

    Args:
        coro_factory: A callable that returns a new coroutine on each call.
                      (Must be a factory because coroutines can't be re-awaited.)
        operation_name: For logging (e.g., "Anthropic API call").
        partial_output: Reports whether the current attempt already delivered
                        output. A timed-out attempt that did is not retried.

    Raises:
        LLMClientError on a permanent error or once retries are exhausted.
    """
    attempts = max(1, max_retries)
    last_error = None
    for attempt in range(1, attempts + 1):
        try:
            return await asyncio.wait_for(coro_factory(), timeout=timeout)
        except asyncio.TimeoutError:
            last_error = TimeoutError(f"{operation_name} timed out after {timeout}s")
            if partial_output is not None and partial_output():
                logger.error(f"{operation_name} timed out after partial output (attempt {attempt}/{attempts})")
                raise _PartialStreamError(f"Stream interrupted after partial output: {last_error}") from last_error
            logger.warning(f"{operation_name} timeout (attempt {attempt}/{attempts})")
        except Exception as e:
            last_error = e
            if not _is_transient_error(e):
                # Permanent error - don't retry
                logger.error(f"{operation_name} permanent error: {e}")
                if isinstance(e, LLMClientError):
                    raise
                raise LLMClientError(f"{operation_name} failed: {e}") from e
            logger.warning(f"{operation_name} transient error (attempt {attempt}/{attempts}): {e}")

        # Backoff before retry (except after final attempt)
        if attempt < attempts:
            backoff = LLM_BACKOFF_BASE_SECONDS * (2 ** (attempt - 1))
            logger.info(f"{operation_name} retrying in {backoff:.1f}s...")
            await asyncio.sleep(backoff)

    # All retries exhausted
    logger.error(f"{operation_name} failed after {attempts} attempts: {last_error}")
    raise LLMClientError(f"All {attempts} attempts failed: {last_error}") from last_error


def _emit(on_chunk: Optional[Callable[[StreamChunk], None]], text: str) -> None:
    if on_chunk is not None and text:
        on_chunk(StreamChunk(content=text))


def _tracking(on_chunk, delivered: list):
    """Wrap a chunk sink so the caller can tell whether this attempt emitted anything."""
    def _sink(chunk: StreamChunk) -> None:
        delivered.append(chunk)
        if on_chunk is not None:
            on_chunk(chunk)
    return _sink


# ---------------------------------------------------------------------------
# Shared base: message buffer, bound tools, usage counters
# ---------------------------------------------------------------------------

class _BaseLLMClient(ILLMClient):

    provider_name = "LLM"

    def __init__(self, config: LLMConfig, tool_choice: Optional[ToolChoice] = None):
        self._config = config
        self._tool_choice = tool_choice or config.tool_choice
        self._tools: list = []
        self._messages: list[dict] = []
        self._total_input = 0
        self._total_output = 0

    @property
    def tools(self) -> list:
        return list(self._tools)

    @property
    def messages(self) -> list[dict]:
        return list(self._messages)

    def bind_tools(self, tools: list) -> "_BaseLLMClient":
        self._tools = list(tools)
        return self

    def set_messages(self, messages: list[dict]) -> "_BaseLLMClient":
        self._messages = [dict(m) for m in messages]
        return self

    def clone(self) -> "_BaseLLMClient":
        """A fresh client with the same settings and an empty message buffer."""
        return type(self)(self._config, tool_choice=self._tool_choice)

    async def send(self, on_chunk: Optional[Callable[[StreamChunk], None]] = None) -> LLMResponse:
        if not self._messages:
            raise LLMClientError("set_messages() must be called before send()")
        if not self._config.api_key:
            raise LLMClientError(f"No API key configured for {self.provider_name}")

        delivered = []

        def _attempt():
            delivered.clear()
            return self._raw_call(_tracking(on_chunk, delivered))

        response = await _retry_with_backoff(
            _attempt,
            f"{self.provider_name} API call",
            timeout=self._config.timeout_seconds,
            max_retries=self._config.max_retries,
            partial_output=lambda: bool(delivered),
        )
        logger.debug(
            f"{self.provider_name} reply: {len(response.content)} chars, "
            f"{len(response.tool_calls)} tool calls"
        )
        return response

    @abstractmethod
    async def _raw_call(self, on_chunk) -> LLMResponse:
        """Single streaming attempt (used by retry wrapper)."""

    async def get_usage(self) -> dict:
        return {"total_input_tokens": self._total_input, "total_output_tokens": self._total_output}


# ---------------------------------------------------------------------------
# OpenAI-compatible client (OpenAI, DeepSeek, gateways)
# ---------------------------------------------------------------------------

class OpenAICompatibleLLMClient(_BaseLLMClient):
    """
    Streaming chat completions via the ``openai`` SDK.

    Tool-call deltas arrive in fragments keyed by ``index``; names and
    argument strings are concatenated per index before the reply is returned.
    """

    provider_name = "OpenAI-compatible"

    def __init__(self, config: LLMConfig, tool_choice: Optional[ToolChoice] = None):
        super().__init__(config, tool_choice)
        self._client = None  # Created lazily on first API call

    def _get_client(self) -> AsyncOpenAI:
        """Lazy-create the AsyncOpenAI client on first use."""
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._config.api_key,
                base_url=self._config.base_url or None,
            )
        return self._client

    def _build_kwargs(self) -> dict:
        kwargs: dict = {
            "model": self._config.model,
            "messages": self._messages,
            "max_tokens": self._config.max_tokens,
            "temperature": self._config.temperature,
            "stream": True,
            "stream_options": {"include_usage": True},
        }
        if self._tools:
            kwargs["tools"] = [{"type": "function", "function": t.info["function"]} for t in self._tools]
            kwargs["tool_choice"] = self._tool_choice.value
        return kwargs

    async def _raw_call(self, on_chunk) -> LLMResponse:
        """Single streaming attempt (used by retry wrapper)."""
        stream = await self._get_client().chat.completions.create(**self._build_kwargs())

        content_parts: list[str] = []
        fragments: dict[int, dict] = {}
        try:
            async for chunk in stream:
                usage = getattr(chunk, "usage", None)
                if usage:
                    self._total_input += usage.prompt_tokens or 0
                    self._total_output += usage.completion_tokens or 0
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                if delta.content:
                    content_parts.append(delta.content)
                    _emit(on_chunk, delta.content)
                for tc in delta.tool_calls or []:
                    _merge_tool_call_delta(fragments, tc)
        except Exception as e:
            if content_parts:
                raise _PartialStreamError(f"Stream interrupted after partial output: {e}") from e
            raise

        return LLMResponse(
            content="".join(content_parts),
            tool_calls=[_fragment_to_tool_call(fragments[i]) for i in sorted(fragments)],
        )


def _merge_tool_call_delta(fragments: dict, delta) -> None:
    entry = fragments.setdefault(delta.index, {"id": "", "type": "function", "name": "", "arguments": ""})
    if delta.id:
        entry["id"] = delta.id
    if getattr(delta, "type", None):
        entry["type"] = delta.type
    function = getattr(delta, "function", None)
    if function:
        if function.name:
            entry["name"] += function.name
        if function.arguments:
            entry["arguments"] += function.arguments


def _fragment_to_tool_call(entry: dict) -> ToolCall:
    return ToolCall(
        id=entry["id"],
        type=entry["type"],
        function=ToolCallFunction(name=entry["name"], arguments=entry["arguments"]),
    )


# ---------------------------------------------------------------------------
# Direct Anthropic API client
# ---------------------------------------------------------------------------

_ANTHROPIC_TOOL_CHOICE = {
    ToolChoice.AUTO: {"type": "auto"},
    ToolChoice.REQUIRED: {"type": "any"},
    ToolChoice.NONE: {"type": "none"},
}


class AnthropicLLMClient(_BaseLLMClient):
    """Claude via the Anthropic Messages API (streaming)."""

    provider_name = "Anthropic"

    def __init__(self, config: LLMConfig, tool_choice: Optional[ToolChoice] = None):
        super().__init__(config, tool_choice)
        self._client = anthropic.AsyncAnthropic(api_key=config.api_key)

    def _build_kwargs(self) -> dict:
        system, messages = _to_anthropic_messages(self._messages)
        kwargs: dict = {
            "model": self._config.model,
            "max_tokens": self._config.max_tokens,
            "temperature": self._config.temperature,
            "messages": messages,
        }
        if system:
            kwargs["system"] = system
        if self._tools:
            kwargs["tools"] = [_to_anthropic_tool(t.info) for t in self._tools]
            kwargs["tool_choice"] = _ANTHROPIC_TOOL_CHOICE[self._tool_choice]
        return kwargs

    async def _raw_call(self, on_chunk) -> LLMResponse:
        """Single streaming attempt (used by retry wrapper)."""
        emitted = False
        try:
            async with self._client.messages.stream(**self._build_kwargs()) as stream:
                async for text in stream.text_stream:
                    emitted = True
                    _emit(on_chunk, text)
                message = await stream.get_final_message()
        except Exception as e:
            if emitted:
                raise _PartialStreamError(f"Stream interrupted after partial output: {e}") from e
            raise

        usage = message.usage
        self._total_input += usage.input_tokens
        self._total_output += usage.output_tokens
        return self._parse_response(message)

    @staticmethod
    def _parse_response(message) -> LLMResponse:
        text_parts = []
        tool_calls = []
        for block in message.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(ToolCall(
                    id=block.id,
                    function=ToolCallFunction(name=block.name, arguments=json.dumps(block.input)),
                ))
        return LLMResponse(content="".join(text_parts), tool_calls=tool_calls)


def _to_anthropic_tool(info: dict) -> dict:
    """
    Convert an OpenAI-style function definition to Anthropic format.

    OpenAI format:
        {"type": "function", "function": {"name": "...", "description": "...", "parameters": {...}}}
    Anthropic format:
        {"name": "...", "description": "...", "input_schema": {...}}
    """
    function = info.get("function", {})
    return {
        "name": function.get("name", ""),
        "description": function.get("description", ""),
        "input_schema": function.get("parameters") or {"type": "object", "properties": {}},
    }


def _to_anthropic_messages(messages: list[dict]) -> tuple[str, list[dict]]:
    """Fold system messages into one system string and map tool traffic to blocks.

    Consecutive messages with the same role are merged, and a conversation
    with no user turn gets a minimal one since the API requires it.
    """
    system_parts: list[str] = []
    converted: list[dict] = []

    for message in messages:
        role = message.get("role")
        content = message.get("content") or ""
        if role == "system":
            if content:
                system_parts.append(content)
            continue

        if role == "tool":
            role = "user"
            blocks = [{
                "type": "tool_result",
                "tool_use_id": message.get("tool_call_id", ""),
                "content": content,
            }]
        else:
            blocks = [{"type": "text", "text": content}] if content else []
            for tc in message.get("tool_calls") or []:
                function = tc.get("function", {})
                try:
                    arguments = json.loads(function.get("arguments") or "{}")
                except json.JSONDecodeError:
                    arguments = {}
                blocks.append({
                    "type": "tool_use",
                    "id": tc.get("id", ""),
                    "name": function.get("name", ""),
                    "input": arguments if isinstance(arguments, dict) else {},
                })
        if not blocks:
            continue

        if converted and converted[-1]["role"] == role:
            converted[-1]["content"].extend(blocks)
        else:
            converted.append({"role": role, "content": blocks})

    if not converted or converted[0]["role"] != "user":
        converted.insert(0, {"role": "user", "content": [{"type": "text", "text": "Please respond."}]})

    return "\n\n".join(system_parts), converted


# ---------------------------------------------------------------------------
# Factory function (Open/Closed Principle - extend without modifying callers)
# ---------------------------------------------------------------------------

def create_llm_client(config: AppConfig, tool_choice: Optional[ToolChoice] = None) -> ILLMClient:
    """
    Factory: create the appropriate LLM client based on configuration.

    Supports:
      - AGENTGRAPH_LLM_PROVIDER=openai_compatible → OpenAICompatibleLLMClient
      - AGENTGRAPH_LLM_PROVIDER=anthropic → AnthropicLLMClient
    """
    llm = config.llm
    if not llm.api_key:
        logger.warning("AGENTGRAPH_API_KEY is not set; model calls will fail until it is configured")

    if llm.provider == LLMProvider.ANTHROPIC:
        logger.info(f"Using Anthropic API (model: {llm.model})")
        return AnthropicLLMClient(llm, tool_choice=tool_choice)

    logger.info(f"Using OpenAI-compatible API at {llm.base_url} (model: {llm.model})")
    return OpenAICompatibleLLMClient(llm, tool_choice=tool_choice)
