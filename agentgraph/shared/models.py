"""
Domain models for agentgraph.
Pure data classes with no external dependencies (Clean Architecture inner layer).
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional


class ExecutionStatus(Enum):
    """State machine states for one graph execution."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class StreamChunk:
    """One piece of incremental output pushed through the state's sink."""
    content: str = ""
    type: str = "chunk"  # chunk | init | done | error

    def to_dict(self) -> dict:
        return {"type": self.type, "content": self.content}


@dataclass
class ToolCallFunction:
    name: str = ""
    arguments: str = ""  # serialized JSON object, parsed by the callee


@dataclass
class ToolCall:
    """A tool invocation requested by the model."""
    id: str = ""
    function: ToolCallFunction = field(default_factory=ToolCallFunction)
    type: str = "function"

    @property
    def name(self) -> str:
        return self.function.name

    def parse_arguments(self) -> tuple[dict, Optional[str]]:
        """Decode the argument string.

        Returns ``(args, None)`` on success and ``({}, error)`` when the string
        is not a JSON object. Empty arguments mean "no arguments".
        """
        raw = (self.function.arguments or "").strip()
        if not raw:
            return {}, None
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            return {}, f"Invalid tool arguments for {self.name}: {e.msg} (got: {raw[:100]})"
        if not isinstance(parsed, dict):
            return {}, f"Invalid tool arguments for {self.name}: expected a JSON object"
        return parsed, None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "function": {"name": self.function.name, "arguments": self.function.arguments},
        }


@dataclass
class LLMResponse:
    """Accumulated result of one model completion."""
    content: str = ""
    tool_calls: list = field(default_factory=list)  # list[ToolCall]

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


@dataclass
class HistoryMessage:
    """A completed prior conversational turn (user or assistant only)."""
    role: str
    content: str = ""

    def __post_init__(self):
        if self.role not in ("user", "assistant"):
            raise ValueError(f"History messages must be user or assistant, got '{self.role}'")

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


@dataclass
class AgentMessage:
    """A message produced during the current execution pass."""
    role: str  # system | user | assistant | tool
    content: str = ""
    title: Optional[str] = None  # human-readable tag, e.g. "tool result: read_file"
    tool_calls: list = field(default_factory=list)  # list[ToolCall]
    tool_call_id: Optional[str] = None

    @property
    def display_role(self) -> str:
        return self.title or self.role

    def to_dict(self) -> dict:
        data = {"role": self.role, "content": self.content}
        if self.title:
            data["title"] = self.title
        if self.tool_calls:
            data["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]
        if self.tool_call_id:
            data["tool_call_id"] = self.tool_call_id
        return data

    def to_llm_message(self, native_tools: bool = False) -> dict:
        """Message dict for `ILLMClient.set_messages`.

        With ``native_tools`` the tool-call structure is kept so a model with
        bound tools sees its own requests and their results. Otherwise tool
        traffic is flattened into plain assistant text, which every model
        accepts regardless of what is bound.
        """
        if native_tools:
            data = {"role": self.role, "content": self.content}
            if self.tool_calls:
                data["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]
            if self.tool_call_id:
                data["tool_call_id"] = self.tool_call_id
            return data
        if self.role == "tool" or self.tool_calls:
            detail = self.content or ", ".join(
                f"{tc.name}({tc.function.arguments})" for tc in self.tool_calls
            )
            return {"role": "assistant", "content": f"[{self.display_role}] {detail}"}
        return {"role": self.role, "content": self.content}


def _discard_chunk(chunk: StreamChunk) -> None:
    return None


@dataclass
class AgentState:
    """Working memory threaded through every node and the router.

    ``history`` belongs to the caller and is only read. ``context`` is the
    append-only log of the current pass; nodes add to it and never reorder
    or delete. ``send_chunk`` is the live output sink.
    """
    history: list = field(default_factory=list)   # list[HistoryMessage]
    context: list = field(default_factory=list)   # list[AgentMessage]
    send_chunk: Callable[[StreamChunk], None] = _discard_chunk

    def append(self, message: AgentMessage) -> AgentMessage:
        self.context.append(message)
        return message

    def extend(self, messages: list) -> None:
        for message in messages:
            self.append(message)

    def copy_context(self) -> list:
        """Explicit copy of the log for callers exploring an alternative branch."""
        return list(self.context)

    def last_user_message(self) -> Optional[Any]:
        for message in reversed(self.history + self.context):
            if message.role == "user":
                return message
        return None


@dataclass
class NodeVisitRecord:
    """One entry of the execution audit trail."""
    node_key: str
    start_time: datetime
    end_time: datetime
    snapshot: Any = None

    @property
    def duration_ms(self) -> float:
        return (self.end_time - self.start_time).total_seconds() * 1000

    def to_dict(self) -> dict:
        return {
            "node_key": self.node_key,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "snapshot": self.snapshot,
        }


@dataclass
class ExecutionResult:
    """What a finished execution hands back to its caller."""
    final_state: AgentState
    execution_path: list = field(default_factory=list)  # list[NodeVisitRecord]
    iterations: int = 0

    @property
    def final_message(self) -> Optional[str]:
        for message in reversed(self.final_state.context):
            if message.role == "assistant":
                return message.content
        return None

    @property
    def visited_keys(self) -> list[str]:
        return [record.node_key for record in self.execution_path]
