"""
Graph executor - runs nodes in sequence, consulting the router between turns.

  current = entry
  while iterations < max_iterations:
      run node, record the visit
      stop if current is an end point
      ask the router; stop on END

The iteration cap is checked before every turn, so a self-loop edge or a
misbehaving router can never run more than `max_iterations` nodes.
Cancellation is cooperative: the abort signal and the pause gate are
checked before each node turn and each router call, and aborting also
cancels the running task so in-flight model/tool awaits are interrupted.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from agentgraph.shared.constants import DEFAULT_MAX_ITERATIONS, END
from agentgraph.shared.errors import ExecutionCancelledError, NodeNotFoundError
from agentgraph.shared.interfaces import IRouter
from agentgraph.shared.logging_config import execution_id_ctx
from agentgraph.shared.models import AgentState, ExecutionResult, NodeVisitRecord
from agentgraph.orchestrator.context import ExecutionContext
from agentgraph.orchestrator.graph import Graph

logger = logging.getLogger(__name__)


@dataclass
class ExecutionHandle:
    """What `GraphExecutor.execute` hands back: the running task and its context."""
    result: asyncio.Task
    context: ExecutionContext

    def cancel(self) -> bool:
        return self.context.abort()


class GraphExecutor:
    """Drives one graph. May run several executions, each with its own state."""

    def __init__(self, graph: Graph, router: IRouter, max_iterations: int = DEFAULT_MAX_ITERATIONS):
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.graph = graph
        self.router = router
        self.max_iterations = max_iterations
        self._active: dict[str, ExecutionHandle] = {}

    def execute(
        self,
        entry_key: str,
        initial_state: AgentState,
        metadata: Optional[dict] = None,
    ) -> ExecutionHandle:
        """Start an execution on the running event loop.

        Returns immediately; await ``handle.result`` for the ExecutionResult.
        """
        if self.graph.entries and entry_key not in self.graph.entries:
            raise ValueError(
                f"Entry '{entry_key}' is not a declared entry point: {list(self.graph.entries)}"
            )

        context = ExecutionContext(metadata=metadata)
        task = asyncio.get_running_loop().create_task(
            self._run(entry_key, initial_state, context),
            name=context.execution_id,
        )
        handle = ExecutionHandle(result=task, context=context)

        def _cancel_task():
            # Before the first turn the opening abort check handles it
            if task.done() or context.iteration_count == 0:
                return
            if asyncio.current_task() is not task:
                task.cancel()

        context.on_abort(_cancel_task)
        self._active[context.execution_id] = handle
        task.add_done_callback(lambda _t: self._active.pop(context.execution_id, None))
        return handle

    def cancel(self) -> None:
        """Abort every execution this executor still has in flight."""
        for handle in list(self._active.values()):
            handle.cancel()

    async def _run(self, entry_key: str, state: AgentState, context: ExecutionContext) -> ExecutionResult:
        token = execution_id_ctx.set(context.execution_id)
        records: list[NodeVisitRecord] = []
        current = entry_key
        iterations = 0
        try:
            context.raise_if_aborted()
            context.start()
            logger.info(f"Execution started at '{entry_key}' (max {self.max_iterations} iterations)")

            while iterations < self.max_iterations:
                context.current_node_key = current
                await context.wait_if_paused()

                iterations += 1
                context.iteration_count = iterations

                if not self.graph.has_node(current):
                    raise NodeNotFoundError(current, execution_path=records, current_state=state)
                node = self.graph.get_node(current)

                start = datetime.now(timezone.utc)
                state = await node.execute(state) or state
                end = datetime.now(timezone.utc)
                records.append(NodeVisitRecord(
                    node_key=current, start_time=start, end_time=end, snapshot=node.snapshot(state),
                ))
                logger.info(
                    f"Node '{current}' done in {records[-1].duration_ms:.0f}ms "
                    f"(iteration {iterations}/{self.max_iterations}, context={len(state.context)})"
                )

                if self.graph.is_end_point(current):
                    break

                await context.wait_if_paused()
                next_key = await self.router.next(current, state)
                if next_key == END:
                    break
                current = next_key
            else:
                logger.warning(f"Iteration cap {self.max_iterations} reached at '{current}'")

            await context.wait_if_paused()
            context.complete()
            logger.info(f"Execution completed after {iterations} iterations")
            return ExecutionResult(final_state=state, execution_path=records, iterations=iterations)

        except asyncio.CancelledError:
            context.abort()
            logger.info(f"Execution cancelled at '{current}'")
            raise ExecutionCancelledError(context.execution_id, current) from None
        except ExecutionCancelledError:
            logger.info(f"Execution cancelled at '{current}'")
            raise
        except Exception as e:
            if not context.is_finished:
                context.fail()
            logger.error(f"Execution failed at '{current}': {e}")
            raise
        finally:
            execution_id_ctx.reset(token)
