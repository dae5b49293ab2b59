"""
Pydantic schemas for structured LLM output parsing.

Nodes that ask the model for a JSON envelope all go through
`decode_structured_reply`, which classifies the raw reply as fenced JSON,
bare JSON or unparseable. The decision models then apply the
"malformed reply -> safe default" policy on top of that.
"""

import json
import re
from dataclasses import dataclass
from typing import Union

from pydantic import BaseModel, Field

from agentgraph.shared.constants import PARSE_FAILURE_SNIPPET_CHARS

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```")


@dataclass(frozen=True)
class FencedJson:
    """A JSON object found inside a ```json fenced block."""
    data: dict
    raw: str


@dataclass(frozen=True)
class BareJson:
    """The whole reply parsed as a JSON object."""
    data: dict
    raw: str


@dataclass(frozen=True)
class Unparseable:
    raw: str

    @property
    def snippet(self) -> str:
        return self.raw[:PARSE_FAILURE_SNIPPET_CHARS]


StructuredReply = Union[FencedJson, BareJson, Unparseable]


def decode_structured_reply(text: str) -> StructuredReply:
    """Classify a model reply that is supposed to carry a JSON object.

    A fenced block takes precedence: if one is present but does not hold a
    valid object the reply is unparseable, the bare text is not retried.
    """
    text = text or ""
    match = _FENCED_JSON.search(text)
    candidate = match.group(1) if match else text
    try:
        data = json.loads(candidate)
    except (json.JSONDecodeError, ValueError):
        return Unparseable(raw=text)
    if not isinstance(data, dict):
        return Unparseable(raw=text)
    if match:
        return FencedJson(data=data, raw=text)
    return BareJson(data=data, raw=text)


def _as_str(value) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


class ShouldCallDecision(BaseModel):
    """Phase A of a decide-then-call tool node."""
    should_call: bool = Field(default=False, description="Only a literal JSON true counts")
    reason: str = Field(default="", description="Model's explanation, or the parse diagnostic")

    @classmethod
    def from_reply(cls, text: str) -> "ShouldCallDecision":
        reply = decode_structured_reply(text)
        if isinstance(reply, Unparseable):
            return cls(should_call=False, reason=f"parse failed: {reply.snippet}")
        return cls(
            should_call=reply.data.get("shouldCall") is True,
            reason=_as_str(reply.data.get("reason")),
        )


class ToolGroupDecision(ShouldCallDecision):
    """Phase A of the multi-tool variant, which also names a tool."""
    selected_tool: str = ""

    @classmethod
    def from_reply(cls, text: str) -> "ToolGroupDecision":
        reply = decode_structured_reply(text)
        if isinstance(reply, Unparseable):
            return cls(should_call=False, reason=f"parse failed: {reply.snippet}")
        return cls(
            should_call=reply.data.get("shouldCall") is True,
            reason=_as_str(reply.data.get("reason")),
            selected_tool=_as_str(reply.data.get("selectedTool")),
        )


class ToolCallRequest(BaseModel):
    """Phase B of a decide-then-call tool node."""
    tool_name: str = ""
    arguments: dict = Field(default_factory=dict)

    @classmethod
    def from_reply(cls, text: str, default_tool: str = "") -> "ToolCallRequest":
        """Malformed replies fall back to `default_tool` with no arguments."""
        reply = decode_structured_reply(text)
        if isinstance(reply, Unparseable):
            return cls(tool_name=default_tool, arguments={})
        arguments = reply.data.get("arguments")
        return cls(
            tool_name=_as_str(reply.data.get("toolName")) or default_tool,
            arguments=arguments if isinstance(arguments, dict) else {},
        )
