"""
Base Node - shared plumbing for every node variant.

Each node:
1. Is constructed with its model client(s) injected, never creating its own
2. Appends its output to state.context (append only, never reorders)
3. Streams progress through state.send_chunk
4. Treats odd model replies and failing tools as data, not exceptions
"""

import logging
from typing import Optional

from agentgraph.shared.chunks import ChunkSender
from agentgraph.shared.interfaces import ILLMClient, INode, ITool
from agentgraph.shared.models import AgentState

logger = logging.getLogger(__name__)


class BaseNode(INode):
    """Abstract base class for agentgraph nodes."""

    def __init__(
        self,
        name: str,
        label: Optional[str] = None,
        description: str = "",
        metadata: Optional[dict] = None,
    ):
        self.name = name
        self.label = label or name
        self.description = description
        self.metadata = metadata

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    @staticmethod
    def _require_llm(llm: Optional[ILLMClient], node_type: str) -> ILLMClient:
        if llm is None:
            raise ValueError(f"{node_type} requires an LLM client")
        return llm

    @staticmethod
    def _require_tools(tools: Optional[list], node_type: str) -> list[ITool]:
        if not tools:
            raise ValueError(f"{node_type} requires at least one tool")
        return list(tools)

    @staticmethod
    def _chunks(state: AgentState) -> ChunkSender:
        return ChunkSender(state.send_chunk)

    @staticmethod
    def _conversation(state: AgentState, native_tools: bool = False) -> list[dict]:
        """History followed by the current context, as model messages."""
        messages = [m.to_dict() for m in state.history]
        messages.extend(m.to_llm_message(native_tools=native_tools) for m in state.context)
        return messages
