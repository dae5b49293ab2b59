"""
Decide-then-call tool nodes (prompted JSON, no native function calling).

Phase A asks the model whether a tool should be called and gets back
``{"shouldCall", "reason"[, "selectedTool"]}``. Phase B asks for
``{"toolName", "arguments"}`` and runs the tool. Malformed replies never
raise: a bad decision means "don't call", bad arguments mean "call with {}".
"""

import json
import logging
from abc import abstractmethod
from typing import Optional

from agentgraph.shared.constants import MAX_TOOL_RESULT_PREVIEW
from agentgraph.shared.interfaces import ILLMClient, ITool
from agentgraph.shared.models import AgentMessage, AgentState
from agentgraph.shared.prompts import (
    GROUP_SHOULD_CALL_INSTRUCTIONS,
    SHOULD_CALL_INSTRUCTIONS,
    TOOL_CALL_INSTRUCTIONS,
    render_transcript,
)
from agentgraph.orchestrator.schemas import ShouldCallDecision, ToolCallRequest, ToolGroupDecision
from agentgraph.tools.base import call_tool_safely
from agentgraph.tools.registry import ToolRegistry
from agentgraph.nodes.base import BaseNode

logger = logging.getLogger(__name__)


def _tool_result_message(tool_name: str, result: str) -> AgentMessage:
    return AgentMessage(role="assistant", content=f"[tool: {tool_name}]\n{result}")


class _DecideThenCall(BaseNode):

    def __init__(
        self,
        name: str,
        llm: ILLMClient,
        tools: list[ITool],
        condition_prompt: str = "",
        call_prompt: str = "",
        label: Optional[str] = None,
        description: str = "",
        metadata: Optional[dict] = None,
    ):
        super().__init__(name, label, description, metadata)
        self.llm = self._require_llm(llm, type(self).__name__)
        self.registry = ToolRegistry(self._require_tools(tools, type(self).__name__))
        self.condition_prompt = condition_prompt
        self.call_prompt = call_prompt

    @abstractmethod
    def _schemas_json(self) -> str:
        """Tool schema JSON shown in both prompts."""

    @abstractmethod
    def _decision_instructions(self) -> str:
        """Reply-format instructions for the decision call."""

    @abstractmethod
    def _call_instructions(self) -> str:
        """Reply-format instructions for the argument call."""

    def build_condition_messages(self, state: AgentState) -> list[dict]:
        content = (
            f"{self.condition_prompt}\n\n"
            f"## Available tools\n```json\n{self._schemas_json()}\n```\n\n"
            f"## Current context\n{render_transcript(state.context)}\n\n"
            f"## Conversation history\n{render_transcript(state.history)}\n\n"
            f"{self._decision_instructions()}"
        )
        return [{"role": "system", "content": content}]

    def build_call_messages(self, state: AgentState) -> list[dict]:
        content = (
            f"{self.call_prompt}\n\n"
            f"## Tool definitions\n```json\n{self._schemas_json()}\n```\n\n"
            f"## Current context\n{render_transcript(state.context)}\n\n"
            f"{self._call_instructions()}"
        )
        return [{"role": "system", "content": content}]

    async def _ask(self, messages: list[dict], state: AgentState) -> str:
        self.llm.set_messages(messages)
        response = await self.llm.send(state.send_chunk)
        return response.content or ""

    async def _run_tool(self, target: ITool, arguments: dict, state: AgentState) -> AgentState:
        result = await call_tool_safely(target, arguments)
        logger.info(f"{self.name}: {target.name} -> {result[:MAX_TOOL_RESULT_PREVIEW]!r}")
        state.append(_tool_result_message(target.name, result))
        return state


class DecideToolNode(_DecideThenCall):
    """Decide-then-call over exactly one tool."""

    def __init__(
        self,
        name: str,
        llm: ILLMClient,
        tool: ITool,
        condition_prompt: str = "",
        call_prompt: str = "",
        label: Optional[str] = None,
        description: str = "",
        metadata: Optional[dict] = None,
    ):
        super().__init__(
            name, llm, [tool] if tool else [], condition_prompt, call_prompt,
            label=label, description=description, metadata=metadata,
        )
        self.tool = tool

    def _schemas_json(self) -> str:
        return json.dumps(self.tool.info, indent=2, ensure_ascii=False)

    def _decision_instructions(self) -> str:
        return SHOULD_CALL_INSTRUCTIONS

    def _call_instructions(self) -> str:
        return TOOL_CALL_INSTRUCTIONS % self.tool.name

    async def execute(self, state: AgentState) -> AgentState:
        decision = ShouldCallDecision.from_reply(
            await self._ask(self.build_condition_messages(state), state)
        )
        if not decision.should_call:
            logger.info(f"{self.name}: not calling {self.tool.name} ({decision.reason[:80]})")
            state.append(AgentMessage(role="assistant", content=decision.reason))
            return state

        request = ToolCallRequest.from_reply(
            await self._ask(self.build_call_messages(state), state),
            default_tool=self.tool.name,
        )
        # The single-tool variant always runs its own tool
        return await self._run_tool(self.tool, request.arguments, state)


class DecideToolGroupNode(_DecideThenCall):
    """Decide-then-call over several tools; the model names the one to run."""

    def _schemas_json(self) -> str:
        return json.dumps([t.info for t in self.registry], indent=2, ensure_ascii=False)

    def _decision_instructions(self) -> str:
        return GROUP_SHOULD_CALL_INSTRUCTIONS

    def _call_instructions(self) -> str:
        return TOOL_CALL_INSTRUCTIONS % "tool name"

    async def execute(self, state: AgentState) -> AgentState:
        decision = ToolGroupDecision.from_reply(
            await self._ask(self.build_condition_messages(state), state)
        )
        if not decision.should_call:
            logger.info(f"{self.name}: no tool call ({decision.reason[:80]})")
            state.append(AgentMessage(role="assistant", content=decision.reason))
            return state

        request = ToolCallRequest.from_reply(
            await self._ask(self.build_call_messages(state), state),
            default_tool=decision.selected_tool,
        )
        target = self.registry.get(request.tool_name)
        if target is None:
            logger.warning(f"{self.name}: model asked for unknown tool '{request.tool_name}'")
            state.append(AgentMessage(
                role="assistant", content=self.registry.unknown_tool_message(request.tool_name),
            ))
            return state

        return await self._run_tool(target, request.arguments, state)
