"""
Environment node: tells the model what time it is, what system it runs on
and which language to answer in. Makes no model call and cannot fail.
"""

import platform
from datetime import datetime, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from agentgraph.shared.models import AgentMessage, AgentState
from agentgraph.shared.prompts import NOWADAYS_TEMPLATE
from agentgraph.nodes.base import BaseNode

ENVIRONMENT_SECTION = "[pre|environment]"


def _resolve_timezone(name: str):
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


class NowadaysNode(BaseNode):

    def __init__(
        self,
        name: str,
        tz: str = "UTC",
        language: str = "en-US",
        clock: Optional[Callable[[], datetime]] = None,
        label: Optional[str] = None,
        description: str = "",
        metadata: Optional[dict] = None,
    ):
        super().__init__(name, label, description, metadata)
        self.tz = _resolve_timezone(tz)
        self.language = language
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def describe(self) -> str:
        now = self._clock().astimezone(self.tz)
        system = f"{platform.system()} {platform.machine()} (Python {platform.python_version()})"
        return NOWADAYS_TEMPLATE.format(
            now=now.strftime("%Y-%m-%d %H:%M:%S %Z"),
            platform=system,
            language=self.language,
        )

    async def execute(self, state: AgentState) -> AgentState:
        info = self.describe()
        state.append(AgentMessage(role="system", content=info, title="environment"))
        self._chunks(state).section(ENVIRONMENT_SECTION, info)
        return state
