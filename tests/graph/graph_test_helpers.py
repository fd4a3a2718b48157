"""Helpers for building canvas graphs in tests."""

from __future__ import annotations

from typing import Any

from canvasgraph.graph.builder import CanvasGraph
from canvasgraph.graph.GraphNode import GraphNode, NodeKind, Position
from canvasgraph.graph.relations import Edge, default_edge_data


def make_node(
    node_id: str,
    kind: NodeKind | str = NodeKind.NOTE,
    z_index: int = 0,
    **data: Any,
) -> GraphNode:
    """Create a node with `data` as its data bag (``type`` filled in)."""
    kind = NodeKind.parse(kind)
    return GraphNode(
        id=node_id,
        kind=kind,
        position=Position(0, 0),
        z_index=z_index,
        data={"type": kind.value, **data},
    )


def make_edge(source: str, target: str, **data: Any) -> Edge:
    """Create an edge with default data plus overrides."""
    return Edge(
        id=f"{source}-{target}",
        source=source,
        target=target,
        data=default_edge_data(**data),
    )


def build_graph(nodes: list[GraphNode], edges: list[Edge] | None = None) -> CanvasGraph:
    """Insert nodes and edges directly, bypassing mutation bookkeeping."""
    graph = CanvasGraph()
    for node in nodes:
        graph.insert_node(node)
    for edge in edges or []:
        graph.insert_edge(edge)
    return graph


def raw_node(node_id: str, kind: str = "note", **data: Any) -> dict[str, Any]:
    """A node in snapshot wire format."""
    return {
        "id": node_id,
        "type": kind,
        "position": {"x": 0, "y": 0},
        "data": {"type": kind, **data},
    }


def raw_edge(source: str, target: str, **extra: Any) -> dict[str, Any]:
    """An edge in snapshot wire format."""
    return {"id": f"{source}-{target}", "source": source, "target": target, **extra}
