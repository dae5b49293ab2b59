"""
Plain completion nodes: one model call over history + context.
"""

import logging
from typing import Optional

from agentgraph.shared.interfaces import ILLMClient
from agentgraph.shared.models import AgentMessage, AgentState
from agentgraph.shared.prompts import DEEP_THINK_PROMPT, DEEP_THINK_RESULT_PREFIX
from agentgraph.nodes.base import BaseNode

logger = logging.getLogger(__name__)


class CompletionNode(BaseNode):
    """System prompt + history + context in, one streamed assistant reply out.

    Model errors are not caught here; they end the execution.
    """

    def __init__(
        self,
        name: str,
        llm: ILLMClient,
        system_prompt: str = "",
        label: Optional[str] = None,
        description: str = "",
        metadata: Optional[dict] = None,
    ):
        super().__init__(name, label, description, metadata)
        self.llm = self._require_llm(llm, type(self).__name__)
        self.system_prompt = system_prompt

    def build_messages(self, state: AgentState) -> list[dict]:
        messages = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.extend(self._conversation(state))
        return messages

    async def execute(self, state: AgentState) -> AgentState:
        self.llm.set_messages(self.build_messages(state))
        response = await self.llm.send(state.send_chunk)
        state.append(AgentMessage(role="assistant", content=response.content or ""))
        logger.debug(f"{self.name}: appended {len(response.content or '')} chars")
        return state


class DeepThinkNode(CompletionNode):
    """Analysis-only completion streamed inside a "thinking" block."""

    SECTION = "[md|thinking]"

    def __init__(
        self,
        name: str,
        llm: ILLMClient,
        system_prompt: str = "",
        label: Optional[str] = None,
        description: str = "",
        metadata: Optional[dict] = None,
    ):
        super().__init__(
            name, llm,
            system_prompt=system_prompt or DEEP_THINK_PROMPT,
            label=label, description=description, metadata=metadata,
        )

    async def execute(self, state: AgentState) -> AgentState:
        self.llm.set_messages(self.build_messages(state))

        sender = self._chunks(state).start(self.SECTION)
        response = await self.llm.send(sender.send_chunk)
        sender.finish()

        state.append(AgentMessage(
            role="assistant",
            content=f"{DEEP_THINK_RESULT_PREFIX}{response.content or ''}",
            title="deep thinking",
        ))
        return state
