"""
ReAct node: a bounded think -> act loop.

Each iteration asks a dedicated "think" model whether more tool work is
needed. An empty reply ends the loop; otherwise the thought is appended
and exactly one NativeToolGroupNode turn runs.
"""

import logging
from typing import Optional

from agentgraph.shared.constants import (
    DEFAULT_MAX_TOOL_ROUNDS,
    DEFAULT_REACT_MAX_ITERATIONS,
    THOUGHT_TITLE,
)
from agentgraph.shared.interfaces import ILLMClient, ITool
from agentgraph.shared.models import AgentMessage, AgentState
from agentgraph.shared.prompts import REACT_THINK_PROMPT, build_state_messages, render_tool_schemas
from agentgraph.nodes.base import BaseNode
from agentgraph.nodes.native_tool import NativeToolGroupNode, PromptSource

logger = logging.getLogger(__name__)

ASSESSMENT_SECTION = "[md|tool assessment]"


class ReActNode(BaseNode):
    """Think with `think_llm`, act with a NativeToolGroupNode on `call_llm`."""

    def __init__(
        self,
        name: str,
        call_llm: ILLMClient,
        think_llm: ILLMClient,
        tools: list[ITool],
        think_prompt: PromptSource = None,
        call_prompt: PromptSource = None,
        max_iterations: int = DEFAULT_REACT_MAX_ITERATIONS,
        max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS,
        label: Optional[str] = None,
        description: str = "",
        metadata: Optional[dict] = None,
    ):
        super().__init__(name, label, description, metadata)
        self._require_llm(call_llm, "ReActNode (call_llm)")
        self.think_llm = self._require_llm(think_llm, "ReActNode (think_llm)")
        tools = self._require_tools(tools, "ReActNode")
        self.max_iterations = max_iterations
        self._think_prompt = think_prompt
        self.group_node = NativeToolGroupNode(
            name=f"{name}_group",
            llm=call_llm,
            tools=tools,
            system_prompt=call_prompt,
            max_tool_rounds=max_tool_rounds,
        )

    @property
    def tools(self) -> list[ITool]:
        return self.group_node.tools

    def render_think_prompt(self) -> str:
        if callable(self._think_prompt):
            return self._think_prompt(self.tools)
        if self._think_prompt:
            return self._think_prompt
        return REACT_THINK_PROMPT % render_tool_schemas(self.tools)

    async def execute(self, state: AgentState) -> AgentState:
        iterations = 0
        while iterations < self.max_iterations:
            iterations += 1
            if not await self._think(state):
                break
            await self.group_node.execute(state)
        else:
            logger.info(f"{self.name}: reached {self.max_iterations} think/act iterations")
        return state

    async def _think(self, state: AgentState) -> bool:
        """Returns True when the model wants to act."""
        self.think_llm.set_messages(build_state_messages(state, self.render_think_prompt()))
        response = await self.think_llm.send()
        thought = (response.content or "").strip()

        if not thought:
            self._chunks(state).section(ASSESSMENT_SECTION, "Tool calling complete.")
            return False

        state.append(AgentMessage(role="assistant", content=thought, title=THOUGHT_TITLE))
        self._chunks(state).section(ASSESSMENT_SECTION, thought)
        return True
