"""
Native function-calling tool nodes.

One turn:
  1. bind tools, send the conversation
  2. while the reply asks for tools: pop each call in order, run it,
     append a "tool request" / "tool result" pair, then resend
  3. once the model stops asking, append the "tool calling finished" marker

A reply with no calls at all is an ordinary answer and is appended as-is.
Unknown tool names end the turn with a diagnostic; malformed arguments and
tool exceptions become result text so the model can correct itself.
"""

import logging
import uuid
from collections import deque
from typing import Callable, Optional, Union

from agentgraph.shared.constants import (
    DEFAULT_MAX_TOOL_ROUNDS,
    MAX_TOOL_RESULT_PREVIEW,
    TOOL_CALLING_FINISHED,
    TOOL_REQUEST_TITLE,
    TOOL_RESULT_TITLE,
)
from agentgraph.shared.interfaces import ILLMClient, ITool
from agentgraph.shared.models import AgentMessage, AgentState, LLMResponse, ToolCall
from agentgraph.shared.prompts import TOOL_GROUP_PROMPT, render_tool_list, render_tool_schemas
from agentgraph.tools.base import call_tool_safely
from agentgraph.tools.registry import ToolRegistry
from agentgraph.nodes.base import BaseNode

logger = logging.getLogger(__name__)

PromptSource = Union[str, Callable[[list], str], None]


def default_tool_prompt(tools: list) -> str:
    return TOOL_GROUP_PROMPT % render_tool_list(tools)


class NativeToolGroupNode(BaseNode):
    """Model-driven tool loop over several natively bound tools."""

    def __init__(
        self,
        name: str,
        llm: ILLMClient,
        tools: list[ITool],
        system_prompt: PromptSource = None,
        max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS,
        label: Optional[str] = None,
        description: str = "",
        metadata: Optional[dict] = None,
    ):
        super().__init__(name, label, description, metadata)
        llm = self._require_llm(llm, type(self).__name__)
        self.registry = ToolRegistry(self._require_tools(tools, type(self).__name__))
        self.llm = llm.bind_tools(self.registry.all())
        self.system_prompt = system_prompt
        self.max_tool_rounds = max_tool_rounds

    @property
    def tools(self) -> list[ITool]:
        return self.registry.all()

    def render_system_prompt(self) -> str:
        if callable(self.system_prompt):
            return self.system_prompt(self.tools)
        if self.system_prompt:
            return self.system_prompt
        return default_tool_prompt(self.tools)

    def build_messages(self, state: AgentState) -> list[dict]:
        messages = [{"role": "system", "content": self.render_system_prompt()}]
        messages.extend(self._conversation(state, native_tools=True))
        return messages

    async def _send(self, state: AgentState) -> LLMResponse:
        self.llm.set_messages(self.build_messages(state))
        return await self.llm.send(state.send_chunk)

    async def execute(self, state: AgentState) -> AgentState:
        response = await self._send(state)
        if not response.has_tool_calls:
            state.append(AgentMessage(role="assistant", content=response.content or ""))
            return state

        rounds = 0
        while response.has_tool_calls:
            queue = deque(response.tool_calls)
            while queue:
                if not await self._handle_call(queue.popleft(), state):
                    return state

            rounds += 1
            if rounds >= self.max_tool_rounds:
                logger.warning(f"{self.name}: stopping after {rounds} tool rounds")
                state.append(AgentMessage(
                    role="assistant",
                    content=f"{TOOL_CALLING_FINISHED} (round limit {self.max_tool_rounds} reached)",
                ))
                return state
            response = await self._send(state)

        finished = TOOL_CALLING_FINISHED
        if response.content:
            finished = f"{finished}\n{response.content}"
        state.append(AgentMessage(role="assistant", content=finished))
        logger.info(f"{self.name}: tool calling finished after {rounds} rounds")
        return state

    async def _handle_call(self, call: ToolCall, state: AgentState) -> bool:
        """Run one requested call. Returns False when the turn must stop."""
        target = self.registry.get(call.name)
        if target is None:
            message = self.registry.unknown_tool_message(call.name)
            logger.warning(f"{self.name}: {message}")
            state.append(AgentMessage(role="assistant", content=message))
            self._chunks(state).section(f"[tool-call-error]{call.name}", message)
            return False

        if not call.id:
            call.id = f"call_{uuid.uuid4().hex[:12]}"

        args, error = call.parse_arguments()
        result = error if error else await call_tool_safely(target, args)
        logger.info(f"{self.name}: {call.name} -> {result[:MAX_TOOL_RESULT_PREVIEW]!r}")

        state.append(AgentMessage(
            role="assistant",
            content="",
            title=f"{TOOL_REQUEST_TITLE}: {call.name}",
            tool_calls=[call],
        ))
        state.append(AgentMessage(
            role="tool",
            content=result,
            title=f"{TOOL_RESULT_TITLE}: {call.name}",
            tool_call_id=call.id,
        ))
        self._chunks(state).section(f"[tool-call-success]{call.name}", result)
        return True


class NativeToolNode(NativeToolGroupNode):
    """The same loop with a single bound tool."""

    def __init__(
        self,
        name: str,
        llm: ILLMClient,
        tool: ITool,
        system_prompt: PromptSource = None,
        max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS,
        label: Optional[str] = None,
        description: str = "",
        metadata: Optional[dict] = None,
    ):
        super().__init__(
            name, llm, [tool] if tool else [],
            system_prompt=system_prompt, max_tool_rounds=max_tool_rounds,
            label=label, description=description, metadata=metadata,
        )
        self.tool = tool

    def render_system_prompt(self) -> str:
        prompt = super().render_system_prompt()
        return f"{prompt}\n\n## Tool definition\n```json\n{render_tool_schemas(self.tools)}\n```"
