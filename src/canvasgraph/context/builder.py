"""ContextAssembler - breadth-first context collection and ranking.

Context for a node N is everything that flows into it: sources of N's
inbound edges, plus targets of bidirectional edges where N is the source,
followed transitively up to a maximum depth. Inactive edges never carry
context and nodes with ``includeInContext`` set to False are skipped.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Iterator

from canvasgraph.context.render import RenderOptions, render_node
from canvasgraph.graph.builder import CanvasGraph
from canvasgraph.graph.GraphNode import GraphNode, NodeKind
from canvasgraph.graph.relations import Edge, strength_priority

DEFAULT_MAX_DEPTH = 2

KIND_PRIORITY = {
    NodeKind.WORKSPACE: 0,
    NodeKind.ORCHESTRATOR: 1,
    NodeKind.PROJECT: 1,
    NodeKind.NOTE: 2,
    NodeKind.TASK: 3,
    NodeKind.ARTIFACT: 4,
    NodeKind.CONVERSATION: 5,
}
OTHER_KIND_PRIORITY = 10

CONTEXT_PRIORITY = {"high": 0, "medium": 1, "low": 2}


@dataclass
class ContextItem:
    """A node reached during traversal.

    Attributes:
        node: The reached node.
        depth: Hops from the queried node (1 = direct neighbor).
        strength_priority: Priority of the edge it was reached through.
        path: Node ids from the queried node to this one.
    """

    node: GraphNode
    depth: int
    strength_priority: int
    path: list[str] = field(default_factory=list)

    def sort_key(self) -> tuple[int, int, int, int]:
        """Composite ranking key: closer, stronger, kind, then own priority."""
        return (
            self.depth,
            -self.strength_priority,
            KIND_PRIORITY.get(self.node.kind, OTHER_KIND_PRIORITY),
            CONTEXT_PRIORITY.get(self.node.data.get("contextPriority") or "medium", 1),
        )


class ContextAssembler:
    """Collects and renders the context of a node.

    Example:
        >>> assembler = ContextAssembler(max_depth=2)
        >>> text = assembler.assemble(graph, "node-b")
    """

    def __init__(
        self,
        max_depth: int = DEFAULT_MAX_DEPTH,
        options: RenderOptions | None = None,
    ) -> None:
        self.max_depth = max_depth
        self.options = options or RenderOptions()

    def _feeding_edges(self, graph: CanvasGraph, node_id: str) -> Iterator[tuple[Edge, str]]:
        """Active edges that carry context into `node_id`, with the far endpoint."""
        for edge in graph.all_edges():
            if not edge.is_active:
                continue
            if edge.target == node_id:
                yield edge, edge.source
        for edge in graph.all_edges():
            if not edge.is_active:
                continue
            if edge.source == node_id and edge.is_bidirectional:
                yield edge, edge.target

    def collect(
        self, graph: CanvasGraph, node_id: str, max_depth: int | None = None
    ) -> list[ContextItem]:
        """Traverse the neighborhood of `node_id` and rank what was found.

        Each node appears at most once, at the first (shallowest) point
        the traversal reaches it. Neighbors already on the current path
        are never enqueued, so cycles terminate.

        Args:
            graph: Graph to traverse.
            node_id: The node whose context is assembled.
            max_depth: Hop limit (defaults to the assembler's).

        Returns:
            Reached items sorted by rank.
        """
        depth_limit = self.max_depth if max_depth is None else max_depth
        if depth_limit < 1 or not graph.has_node(node_id):
            return []

        visited: set[str] = {node_id}
        result: list[ContextItem] = []
        queue: deque[ContextItem] = deque(self._neighbors(graph, node_id, 1, [node_id], visited))

        while queue:
            current = queue.popleft()
            if current.node.id in visited or current.depth > depth_limit:
                continue
            visited.add(current.node.id)
            result.append(current)
            if current.depth < depth_limit:
                queue.extend(
                    self._neighbors(graph, current.node.id, current.depth + 1, current.path, visited)
                )

        return sorted(result, key=ContextItem.sort_key)

    def _neighbors(
        self,
        graph: CanvasGraph,
        node_id: str,
        depth: int,
        path: list[str],
        visited: set[str],
    ) -> Iterator[ContextItem]:
        for edge, other_id in self._feeding_edges(graph, node_id):
            if other_id in visited or other_id in path:
                continue
            other = graph.find_by_id(other_id)
            if other is None or not other.include_in_context:
                continue
            yield ContextItem(
                node=other,
                depth=depth,
                strength_priority=strength_priority(edge.data),
                path=[*path, other_id],
            )

    def assemble(self, graph: CanvasGraph, node_id: str, max_depth: int | None = None) -> str:
        """Render the ranked context of `node_id` as one text blob."""
        blocks: list[str] = []
        for item in self.collect(graph, node_id, max_depth):
            blocks.extend(render_node(item.node, self.options))
        return self.options.separator.join(blocks)
