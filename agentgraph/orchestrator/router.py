"""
LLM-driven router: picks the next node from the current node's outgoing edges.

The model sees the current node, the numbered routes with their condition
prompts, the full context transcript and a compressed history summary, and
is asked to reply with a target key. Any reply that is not one of the
candidate targets falls back to the first unconditioned edge, then to the
first edge, so routing always makes progress.
"""

import logging
from typing import Optional

from agentgraph.shared.constants import END, HISTORY_SUMMARY_MAX_CHARS
from agentgraph.shared.interfaces import ILLMClient, IRouter
from agentgraph.shared.models import AgentState
from agentgraph.shared.prompts import (
    HISTORY_COMPRESSION_PROMPT,
    HISTORY_SUMMARY_PREFIX,
    NO_CONTEXT,
    NO_HISTORY,
    ROUTER_SYSTEM_PROMPT,
    ROUTER_USER_INSTRUCTION,
)
from agentgraph.orchestrator.graph import Edge, Graph

logger = logging.getLogger(__name__)


class LLMGraphRouter(IRouter):
    """Routes by asking a language model, with deterministic fallbacks."""

    def __init__(self, graph: Graph, llm: ILLMClient, system_prompt: Optional[str] = None):
        if llm is None:
            raise ValueError("LLMGraphRouter requires an LLM client")
        self.graph = graph
        self._llm = llm
        self._system_prompt = system_prompt or ROUTER_SYSTEM_PROMPT

    async def next(self, current_node_key: str, state: AgentState) -> str:
        edges = self.graph.outgoing_edges(current_node_key)

        if not edges or self.graph.is_end_point(current_node_key):
            logger.info(f"Route: {current_node_key} -> {END} (terminal)")
            return END

        history_summary = await self._summarize_history(state)
        prompt = self._build_prompt(
            current_node_key,
            self._describe_routes(edges),
            self._summarize_context(state),
            history_summary,
        )
        self._llm.set_messages([
            {"role": "system", "content": prompt},
            {"role": "user", "content": ROUTER_USER_INSTRUCTION},
        ])
        response = await self._llm.send()

        target = self._resolve_target(response.content, edges)
        logger.info(f"Route: {current_node_key} -> {target}")
        return target

    # ─── Prompt pieces ───────────────────────────────────────

    @staticmethod
    def _describe_routes(edges: list[Edge]) -> str:
        lines = []
        for i, edge in enumerate(edges, start=1):
            condition = edge.condition.prompt if edge.condition else "unconditional"
            lines.append(
                f"{i}. target: {edge.target_key}\n"
                f"   label: {edge.label or 'none'}\n"
                f"   condition: {condition}"
            )
        return "\n".join(lines)

    @staticmethod
    def _summarize_context(state: AgentState) -> str:
        if not state.context:
            return NO_CONTEXT
        lines = [f"[current context ({len(state.context)} messages)]"]
        for i, message in enumerate(state.context, start=1):
            lines.append(f"{i}. [{message.role or 'unknown'}]: {message.content or ''}")
        return "\n".join(lines)

    async def _summarize_history(self, state: AgentState) -> str:
        if not state.history:
            return NO_HISTORY

        history_text = "\n".join(f"{m.role}: {m.content}" for m in state.history)
        self._llm.set_messages([{
            "role": "user",
            "content": HISTORY_COMPRESSION_PROMPT.format(
                max_chars=HISTORY_SUMMARY_MAX_CHARS, history=history_text,
            ),
        }])
        response = await self._llm.send()
        return f"{HISTORY_SUMMARY_PREFIX}\n{(response.content or '').strip()}"

    def _build_prompt(self, current_node: str, routes: str, context_summary: str, history_summary: str) -> str:
        # str.replace, not format: custom templates may contain literal braces
        return (
            self._system_prompt
            .replace("{routes}", routes)
            .replace("{current_node}", current_node)
            .replace("{context_summary}", context_summary)
            .replace("{history_summary}", history_summary)
        )

    @staticmethod
    def _resolve_target(reply: Optional[str], edges: list[Edge]) -> str:
        target = (reply or "").strip()
        if target in {e.target_key for e in edges}:
            return target

        for edge in edges:
            if edge.condition is None:
                logger.warning(f"Router reply '{target[:50]}' is not a route; using default '{edge.target_key}'")
                return edge.target_key

        logger.warning(f"Router reply '{target[:50]}' is not a route; using first '{edges[0].target_key}'")
        return edges[0].target_key
