"""
Exception hierarchy for agentgraph.

Only fatal/structural problems are exceptions. Malformed model replies,
failing tools and unknown tool names are normal operating input and are
turned into diagnostic messages by the nodes instead.
"""

from typing import Any, Optional


class AgentGraphError(Exception):
    """Base class for all agentgraph errors."""


class GraphExecutionError(AgentGraphError):
    """An execution stopped on a structural error."""

    def __init__(
        self,
        message: str,
        node_key: str,
        execution_path: Optional[list] = None,
        current_state: Any = None,
    ):
        super().__init__(message)
        self.node_key = node_key
        self.execution_path = execution_path or []
        self.current_state = current_state


class NodeNotFoundError(GraphExecutionError):
    """The engine was routed to a key that has no node in the graph."""

    def __init__(self, node_key: str, execution_path: Optional[list] = None, current_state: Any = None):
        super().__init__(
            f"Node not found: {node_key}",
            node_key=node_key,
            execution_path=execution_path,
            current_state=current_state,
        )


class ExecutionCancelledError(AgentGraphError):
    """The execution was aborted before it completed."""

    def __init__(self, execution_id: str, node_key: Optional[str] = None):
        where = f" at node '{node_key}'" if node_key else ""
        super().__init__(f"Execution {execution_id} cancelled{where}")
        self.execution_id = execution_id
        self.node_key = node_key


class InvalidStatusTransition(AgentGraphError):
    """An execution context was asked to move to a status it cannot reach."""

    def __init__(self, current, requested):
        super().__init__(f"Cannot transition from {current.value} to {requested.value}")
        self.current = current
        self.requested = requested


class LLMClientError(AgentGraphError):
    """The language-model provider failed permanently (after retries)."""
