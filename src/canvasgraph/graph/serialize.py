"""Graph Serialization - export and import canvas graphs.

This module converts CanvasGraph nodes and edges to JSON-compatible dicts
(the workspace snapshot wire format) and back. Importing applies the
load-time normalizations older snapshots need:

- legacy edge ``weight`` migrated to ``strength``
- swapped connection handles repaired
- missing edge data replaced by defaults
- node context metadata mirrored into the ``properties`` bag
- conversations without a ``mode`` default to ``chat``
- dangling and duplicate edges pruned
"""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING, Any, Iterable

from canvasgraph.graph.GraphNode import GraphNode, NodeKind, Position
from canvasgraph.graph.mutations import TrashedItem
from canvasgraph.graph.relations import (
    Edge,
    default_edge_data,
    migrate_edge_strength,
    normalize_handles,
)

if TYPE_CHECKING:
    from canvasgraph.graph.builder import CanvasGraph

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

# Task fields mirrored into `properties` on load
_TASK_PROPERTY_FIELDS = ("status", "priority", "dueDate")


def serialize_node(node: GraphNode) -> dict[str, Any]:
    """Serialize a GraphNode to a JSON-compatible dict.

    Args:
        node: The node to serialize.

    Returns:
        Dict in snapshot wire format.
    """
    return {
        "id": node.id,
        "type": node.kind.value,
        "position": node.position.to_dict(),
        "width": node.width,
        "height": node.height,
        "zIndex": node.z_index,
        "selected": node.selected,
        "data": copy.deepcopy(node.data),
    }


def serialize_edge(edge: Edge) -> dict[str, Any]:
    """Serialize an Edge to a JSON-compatible dict."""
    result: dict[str, Any] = {
        "id": edge.id,
        "source": edge.source,
        "target": edge.target,
        "data": copy.deepcopy(edge.data),
    }
    if edge.source_handle is not None:
        result["sourceHandle"] = edge.source_handle
    if edge.target_handle is not None:
        result["targetHandle"] = edge.target_handle
    return result


def serialize_trash_item(item: TrashedItem) -> dict[str, Any]:
    return {
        "node": serialize_node(item.node),
        "edges": [serialize_edge(e) for e in item.edges],
        "deletedAt": item.deleted_at,
    }


def serialize_graph(graph: CanvasGraph) -> dict[str, Any]:
    """Serialize a CanvasGraph to ``{"nodes": [...], "edges": [...]}``."""
    return {
        "nodes": [serialize_node(node) for node in graph.all_nodes()],
        "edges": [serialize_edge(edge) for edge in graph.all_edges()],
    }


def migrate_node_data(data: dict[str, Any]) -> dict[str, Any]:
    """Return a migrated copy of a node's data bag.

    Context metadata (and task status fields) are mirrored into
    ``properties`` when absent there; conversations gain ``mode``.
    """
    data = copy.deepcopy(data)
    properties = data.setdefault("properties", {})
    if properties is None:
        properties = data["properties"] = {}

    if data.get("contextRole") and not properties.get("contextRole"):
        properties["contextRole"] = data["contextRole"]
    if data.get("contextPriority") and not properties.get("contextPriority"):
        properties["contextPriority"] = data["contextPriority"]
    if data.get("tags") and not properties.get("tags"):
        properties["tags"] = data["tags"]

    if data.get("type") == NodeKind.TASK.value:
        for key in _TASK_PROPERTY_FIELDS:
            if data.get(key) and not properties.get(key):
                properties[key] = data[key]

    if data.get("type") == NodeKind.CONVERSATION.value and not data.get("mode"):
        data["mode"] = "chat"
    return data


def deserialize_node(raw: dict[str, Any]) -> GraphNode:
    """Build a GraphNode from its wire form, applying data migrations.

    Raises:
        ValueError: If the node kind is unknown.
    """
    kind = NodeKind.parse(raw.get("type") or (raw.get("data") or {}).get("type"))
    data = dict(raw.get("data") or {})
    data.setdefault("type", kind.value)
    return GraphNode(
        id=raw["id"],
        kind=kind,
        position=Position.from_dict(raw.get("position")),
        width=raw.get("width") or 280,
        height=raw.get("height") or 120,
        z_index=raw.get("zIndex") or 0,
        selected=bool(raw.get("selected", False)),
        data=migrate_node_data(data),
    )


def deserialize_edge(raw: dict[str, Any]) -> Edge:
    """Build an Edge from its wire form, applying edge migrations."""
    source_handle, target_handle = normalize_handles(
        raw.get("sourceHandle"), raw.get("targetHandle")
    )
    raw_data = raw.get("data")
    if raw_data:
        data = {**default_edge_data(), **migrate_edge_strength(copy.deepcopy(raw_data))}
    else:
        data = default_edge_data()
    return Edge(
        id=raw.get("id") or f"{raw['source']}-{raw['target']}",
        source=raw["source"],
        target=raw["target"],
        source_handle=source_handle,
        target_handle=target_handle,
        data=data,
    )


def deserialize_trash_item(raw: dict[str, Any]) -> TrashedItem:
    return TrashedItem(
        node=deserialize_node(raw["node"]),
        edges=[deserialize_edge(e) for e in raw.get("edges") or []],
        deleted_at=raw.get("deletedAt") or 0,
    )


def load_graph(
    snapshot: dict[str, Any],
    graph: CanvasGraph | None = None,
) -> CanvasGraph:
    """Populate a graph from a workspace snapshot.

    Edges whose endpoints are missing and repeated (source, target) pairs
    are dropped without error; the first edge for a pair wins.

    Args:
        snapshot: Dict with ``nodes`` and ``edges`` lists (and optional
            ``trash``).
        graph: Graph to fill (cleared first); a new one when omitted.

    Returns:
        The populated graph.

    Raises:
        ValueError: If a node has an unknown kind.
    """
    if graph is None:
        from canvasgraph.graph.builder import CanvasGraph

        graph = CanvasGraph()
    graph.clear()

    for raw_node in snapshot.get("nodes") or []:
        graph.insert_node(deserialize_node(raw_node))

    for edge in _valid_edges(graph, snapshot.get("edges") or []):
        graph.insert_edge(edge)

    graph.load_trash(deserialize_trash_item(item) for item in snapshot.get("trash") or [])
    return graph


def _valid_edges(graph: CanvasGraph, raw_edges: Iterable[dict[str, Any]]) -> Iterable[Edge]:
    seen: set[tuple[str, str]] = set()
    for raw in raw_edges:
        edge = deserialize_edge(raw)
        if not graph.has_node(edge.source) or not graph.has_node(edge.target):
            logger.debug("Pruning dangling edge %s (%s)", edge.id, edge)
            continue
        if edge.pair in seen:
            logger.debug("Pruning duplicate edge %s (%s)", edge.id, edge)
            continue
        seen.add(edge.pair)
        yield edge
