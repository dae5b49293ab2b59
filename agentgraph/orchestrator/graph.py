"""
Graph model for agent workflows.

A Graph is a static, read-only description: entry keys, end-point keys,
a key -> node mapping and an ordered list of directed edges. It is built
once with GraphBuilder and shared by the executor and the router.

  builder = GraphBuilder()
  builder.add_node("think", think).add_node("answer", answer)
  builder.add_edge("think", "answer").set_entry_point("think").set_end_points("answer")
  graph = builder.build()
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from agentgraph.shared.constants import END
from agentgraph.shared.errors import NodeNotFoundError
from agentgraph.shared.interfaces import INode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EdgeCondition:
    """Natural-language guard the router shows to the model."""
    prompt: str


@dataclass(frozen=True)
class Edge:
    source_key: str
    target_key: str
    label: str = ""
    condition: Optional[EdgeCondition] = None

    @property
    def is_conditional(self) -> bool:
        return self.condition is not None


@dataclass(frozen=True)
class GraphValidation:
    is_valid: bool
    errors: tuple = ()
    warnings: tuple = ()


@dataclass(frozen=True)
class Graph:
    """Immutable workflow description.

    Edge targets are not checked at construction; a key with no node is
    only detected when the executor is routed to it. Use `validate()` to
    catch such mistakes up front.
    """
    entries: tuple = ()
    end_points: frozenset = frozenset()
    nodes: Mapping[str, INode] = field(default_factory=lambda: MappingProxyType({}))
    edges: tuple = ()

    def __post_init__(self):
        object.__setattr__(self, "entries", tuple(self.entries))
        object.__setattr__(self, "end_points", frozenset(self.end_points))
        object.__setattr__(self, "nodes", MappingProxyType(dict(self.nodes)))
        object.__setattr__(self, "edges", tuple(self.edges))

    def outgoing_edges(self, key: str) -> list[Edge]:
        """Edges leaving `key`, in declaration order."""
        return [e for e in self.edges if e.source_key == key]

    def is_end_point(self, key: str) -> bool:
        return key in self.end_points

    def has_node(self, key: str) -> bool:
        return key in self.nodes

    def get_node(self, key: str) -> INode:
        try:
            return self.nodes[key]
        except KeyError:
            raise NodeNotFoundError(key) from None

    def validate(self) -> GraphValidation:
        """Structural check. Errors make the graph unusable; warnings are smells."""
        errors = []
        warnings = []

        for entry in self.entries:
            if entry not in self.nodes:
                errors.append(f"Entry point '{entry}' does not exist in nodes")

        for edge in self.edges:
            if edge.source_key not in self.nodes:
                errors.append(f"Edge source '{edge.source_key}' does not exist in nodes")
            if edge.target_key != END and edge.target_key not in self.nodes:
                errors.append(
                    f"Edge target '{edge.target_key}' (from '{edge.source_key}') does not exist in nodes"
                )

        unconditioned = Counter(e.source_key for e in self.edges if e.condition is None)
        for source, count in unconditioned.items():
            if count > 1:
                warnings.append(
                    f"Node '{source}' has {count} unconditioned edges; only the first is used as fallback"
                )

        for end_point in sorted(self.end_points):
            if end_point not in self.nodes:
                warnings.append(f"End point '{end_point}' does not exist in nodes")

        reachable = self._reachable_from(self.entries)
        for key in self.nodes:
            if key not in reachable:
                warnings.append(f"Node '{key}' is unreachable from any entry point")

        return GraphValidation(is_valid=not errors, errors=tuple(errors), warnings=tuple(warnings))

    def _reachable_from(self, starts) -> set:
        seen = set()
        stack = [k for k in starts if k in self.nodes]
        while stack:
            key = stack.pop()
            if key in seen:
                continue
            seen.add(key)
            for edge in self.outgoing_edges(key):
                if edge.target_key in self.nodes and edge.target_key not in seen:
                    stack.append(edge.target_key)
        return seen


class GraphBuilder:
    """Fluent, mutable builder for the immutable Graph."""

    def __init__(self):
        self._nodes: dict[str, INode] = {}
        self._edges: list[Edge] = []
        self._entries: list[str] = []
        self._end_points: list[str] = []

    def add_node(self, key: str, node: INode) -> "GraphBuilder":
        if not key:
            raise ValueError("Node key must be a non-empty string")
        if key == END:
            raise ValueError(f"'{END}' is reserved and cannot be used as a node key")
        if key in self._nodes:
            raise ValueError(f"Duplicate node key: {key}")
        self._nodes[key] = node
        return self

    def add_edge(
        self,
        source_key: str,
        target_key: str,
        label: str = "",
        condition: Optional[str] = None,
    ) -> "GraphBuilder":
        """Add one directed edge. `condition` is the guard prompt, if any."""
        self._edges.append(Edge(
            source_key=source_key,
            target_key=target_key,
            label=label,
            condition=EdgeCondition(condition) if condition else None,
        ))
        return self

    def add_routes(self, source_key: str, routes: list) -> "GraphBuilder":
        """Add several edges from one source.

        Each route is ``(target, label)`` or ``(target, label, condition_prompt)``.
        """
        for route in routes:
            target, label, *rest = route
            self.add_edge(source_key, target, label, rest[0] if rest else None)
        return self

    def set_entry_point(self, *keys: str) -> "GraphBuilder":
        for key in keys:
            if key not in self._entries:
                self._entries.append(key)
        return self

    def set_end_points(self, *keys: str) -> "GraphBuilder":
        for key in keys:
            if key not in self._end_points:
                self._end_points.append(key)
        return self

    def build(self) -> Graph:
        graph = Graph(
            entries=self._entries,
            end_points=self._end_points,
            nodes=self._nodes,
            edges=self._edges,
        )
        validation = graph.validate()
        for problem in validation.errors:
            logger.warning(f"Graph error: {problem}")
        for problem in validation.warnings:
            logger.debug(f"Graph warning: {problem}")
        logger.info(
            f"Built graph: {len(graph.nodes)} nodes, {len(graph.edges)} edges, "
            f"entries={list(graph.entries)}"
        )
        return graph
