"""
Execution context: identity, status machine and the cooperative
abort / pause controls of one graph execution.

Status transitions:
  PENDING -> RUNNING            (start, resume)
  RUNNING -> PENDING            (pause)
  Pausing before start leaves the execution PENDING until resume.
  RUNNING -> COMPLETED | FAILED
  PENDING | RUNNING -> CANCELLED | FAILED
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from agentgraph.shared.errors import ExecutionCancelledError, InvalidStatusTransition
from agentgraph.shared.models import ExecutionStatus

logger = logging.getLogger(__name__)

_TRANSITIONS = {
    ExecutionStatus.PENDING: {
        ExecutionStatus.RUNNING, ExecutionStatus.CANCELLED, ExecutionStatus.FAILED,
    },
    ExecutionStatus.RUNNING: {
        ExecutionStatus.PENDING, ExecutionStatus.COMPLETED,
        ExecutionStatus.CANCELLED, ExecutionStatus.FAILED,
    },
    ExecutionStatus.COMPLETED: set(),
    ExecutionStatus.CANCELLED: set(),
    ExecutionStatus.FAILED: set(),
}

TERMINAL_STATUSES = frozenset({
    ExecutionStatus.COMPLETED, ExecutionStatus.CANCELLED, ExecutionStatus.FAILED,
})


def _new_execution_id() -> str:
    return f"EXE-{datetime.now(timezone.utc).strftime('%Y%m%d-%H%M%S')}-{uuid.uuid4().hex[:6]}"


class ExecutionContext:
    """Live handle on one execution, shared between the engine and the caller."""

    def __init__(self, execution_id: Optional[str] = None, metadata: Optional[dict] = None):
        self.execution_id = execution_id or _new_execution_id()
        self.start_time = datetime.now(timezone.utc)
        self.metadata = dict(metadata or {})
        self.iteration_count = 0
        self.current_node_key: Optional[str] = None
        self.abort_signal = asyncio.Event()
        self._status = ExecutionStatus.PENDING
        self._resumed = asyncio.Event()
        self._resumed.set()
        self._paused = False
        self._started = False
        self._abort_callbacks: list[Callable[[], None]] = []

    @property
    def status(self) -> ExecutionStatus:
        return self._status

    @property
    def is_aborted(self) -> bool:
        return self.abort_signal.is_set()

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def is_finished(self) -> bool:
        return self._status in TERMINAL_STATUSES

    def _transition(self, target: ExecutionStatus) -> None:
        if target not in _TRANSITIONS[self._status]:
            raise InvalidStatusTransition(self._status, target)
        logger.debug(f"Execution {self.execution_id}: {self._status.value} -> {target.value}")
        self._status = target

    # ── Lifecycle (driven by the engine) ─────────────────────

    def start(self) -> None:
        if self._started:
            raise InvalidStatusTransition(self._status, ExecutionStatus.RUNNING)
        self._started = True
        if self._paused:
            logger.info(f"Execution {self.execution_id} start held by pause")
            return
        self._transition(ExecutionStatus.RUNNING)

    def complete(self) -> None:
        self._transition(ExecutionStatus.COMPLETED)

    def fail(self) -> None:
        self._transition(ExecutionStatus.FAILED)

    # ── Caller controls ──────────────────────────────────────

    def abort(self) -> bool:
        """Request cancellation. Returns False if the execution already finished."""
        if self.is_finished:
            return False
        self._transition(ExecutionStatus.CANCELLED)
        self.abort_signal.set()
        # Release anyone parked on the pause gate so they observe the abort
        self._resumed.set()
        for callback in list(self._abort_callbacks):
            callback()
        logger.info(f"Execution {self.execution_id} aborted")
        return True

    def pause(self) -> None:
        """Hold the execution at its next checkpoint. Pausing twice is a no-op."""
        if self._paused:
            return
        if self.is_finished:
            raise InvalidStatusTransition(self._status, ExecutionStatus.PENDING)
        if self._status == ExecutionStatus.RUNNING:
            self._transition(ExecutionStatus.PENDING)
        self._paused = True
        self._resumed.clear()
        logger.info(f"Execution {self.execution_id} paused")

    def resume(self) -> None:
        if not self._paused:
            raise InvalidStatusTransition(self._status, ExecutionStatus.RUNNING)
        if self._started:
            self._transition(ExecutionStatus.RUNNING)
        self._paused = False
        self._resumed.set()
        logger.info(f"Execution {self.execution_id} resumed")

    def on_abort(self, callback: Callable[[], None]) -> None:
        self._abort_callbacks.append(callback)

    # ── Cooperative checkpoints ──────────────────────────────

    def raise_if_aborted(self, node_key: Optional[str] = None) -> None:
        if self.is_aborted:
            raise ExecutionCancelledError(self.execution_id, node_key)

    async def wait_if_paused(self) -> None:
        await self._resumed.wait()
        self.raise_if_aborted(self.current_node_key)

    def to_dict(self) -> dict:
        return {
            "execution_id": self.execution_id,
            "start_time": self.start_time.isoformat(),
            "status": self._status.value,
            "iteration_count": self.iteration_count,
            "current_node_key": self.current_node_key,
            "metadata": self.metadata,
        }
