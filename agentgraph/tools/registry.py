"""
Tool Registry - name -> tool lookup for nodes that choose among several tools.

The model may only invoke tools registered here; an unknown name is
reported back as a diagnostic listing what is available.
"""

import logging
from typing import Iterable, Optional

from agentgraph.shared.interfaces import ITool

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Ordered catalog of tools, keyed by function name."""

    def __init__(self, tools: Optional[Iterable[ITool]] = None):
        self._tools: dict[str, ITool] = {}
        for t in tools or []:
            self.register(t)

    def register(self, tool: ITool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Duplicate tool name: {tool.name}")
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")

    def get(self, name: str) -> Optional[ITool]:
        return self._tools.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self):
        return iter(self._tools.values())

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def all(self) -> list[ITool]:
        return list(self._tools.values())

    def unknown_tool_message(self, name: str) -> str:
        return f'Tool "{name}" not found. Available tools: {", ".join(self.names)}'
