"""
Abstract interfaces (Ports) for agentgraph.
Following Dependency Inversion Principle - nodes and the router depend on
these abstractions, never on a concrete provider client.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from .models import AgentState, LLMResponse, StreamChunk


class ILLMClient(ABC):
    """Interface for a chat language model with native function calling."""

    @abstractmethod
    def bind_tools(self, tools: list) -> "ILLMClient":
        """Make `tools` (list[ITool]) available to the model's call selection."""

    @abstractmethod
    def set_messages(self, messages: list[dict]) -> "ILLMClient":
        """Replace the conversation sent on the next `send`."""

    @abstractmethod
    async def send(
        self,
        on_chunk: Optional[Callable[[StreamChunk], None]] = None,
    ) -> LLMResponse:
        """Run one completion.

        Calls `on_chunk` zero or more times with incremental text, then
        returns the accumulated content and fully assembled tool calls.
        """

    @abstractmethod
    def clone(self) -> "ILLMClient":
        """A new client with the same settings and its own message buffer."""


class ITool(ABC):
    """Interface for a callable tool with a declared JSON schema."""

    @property
    @abstractmethod
    def info(self) -> dict:
        """{"type": "function", "function": {name, description, parameters}}."""

    @property
    def name(self) -> str:
        return self.info["function"]["name"]

    @property
    def description(self) -> str:
        return self.info["function"].get("description", "")

    @abstractmethod
    async def call(self, args: dict) -> str:
        """Run the tool. Well-behaved tools return error text instead of raising."""


class INode(ABC):
    """Interface for one unit of work in an agent graph."""

    label: str = ""
    metadata: Optional[dict] = None

    @abstractmethod
    async def execute(self, state: AgentState) -> AgentState:
        """Append this node's output to `state.context` and return the same state."""

    def snapshot(self, state: AgentState) -> Any:
        """Optional audit payload recorded in the visit trace."""
        return None


class IRouter(ABC):
    """Interface for choosing the next node."""

    @abstractmethod
    async def next(self, current_node_key: str, state: AgentState) -> str:
        """Return the next node key, or END."""
