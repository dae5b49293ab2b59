"""
Shared test fixtures for the agentgraph test suite.
"""

import json
import os
import sys
import tempfile
from collections import deque

import pytest
from pydantic import BaseModel

# Ensure agentgraph is importable without installation
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from agentgraph.shared.interfaces import ILLMClient
from agentgraph.shared.models import (
    AgentState, HistoryMessage, LLMResponse, StreamChunk, ToolCall, ToolCallFunction,
)
from agentgraph.tools.base import FunctionTool


class ScriptedLLM(ILLMClient):
    """Deterministic fake model.

    Each `send` pops the next scripted reply: a string (content only), an
    LLMResponse, or an exception instance to raise. Once the script runs
    out it answers with an empty reply. Every message list it was sent is
    kept in `calls`.
    """

    def __init__(self, replies=None):
        self.replies = deque(replies or [])
        self.calls: list[list[dict]] = []
        self.bound_tools: list = []
        self.messages: list[dict] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def bind_tools(self, tools):
        self.bound_tools = list(tools)
        return self

    def set_messages(self, messages):
        self.messages = [dict(m) for m in messages]
        return self

    async def send(self, on_chunk=None):
        self.calls.append(list(self.messages))
        reply = self.replies.popleft() if self.replies else LLMResponse()
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, str):
            reply = LLMResponse(content=reply)
        if on_chunk is not None and reply.content:
            on_chunk(StreamChunk(content=reply.content))
        return reply

    def clone(self):
        return ScriptedLLM()


def make_tool_call(name: str, args=None, call_id: str = "") -> ToolCall:
    arguments = args if isinstance(args, str) else json.dumps(args or {})
    return ToolCall(id=call_id or f"call_{name}", function=ToolCallFunction(name=name, arguments=arguments))


def tool_reply(*calls: ToolCall, content: str = "") -> LLMResponse:
    return LLMResponse(content=content, tool_calls=list(calls))


class TextArgs(BaseModel):
    text: str = ""


def make_echo_tool(name: str = "echo", log: list = None) -> FunctionTool:
    async def echo(text: str = "") -> str:
        if log is not None:
            log.append((name, text))
        return f"{name}:{text}"
    return FunctionTool(name, f"Echo text back ({name})", echo, TextArgs)


def make_failing_tool(name: str = "boom") -> FunctionTool:
    async def boom(text: str = "") -> str:
        raise RuntimeError("tool exploded")
    return FunctionTool(name, "Always raises", boom, TextArgs)


@pytest.fixture
def tmp_dir():
    with tempfile.TemporaryDirectory() as d:
        yield os.path.realpath(d)


@pytest.fixture
def chunks():
    return []


@pytest.fixture
def state(chunks):
    return AgentState(
        history=[HistoryMessage(role="user", content="What is in the project?")],
        send_chunk=chunks.append,
    )


@pytest.fixture
def empty_state(chunks):
    return AgentState(send_chunk=chunks.append)


@pytest.fixture
def echo_log():
    return []


@pytest.fixture
def echo_tool(echo_log):
    return make_echo_tool("echo", echo_log)


@pytest.fixture
def upper_tool(echo_log):
    return make_echo_tool("upper", echo_log)


@pytest.fixture
def failing_tool():
    return make_failing_tool()


def streamed_text(chunks: list) -> str:
    return "".join(c.content for c in chunks)
