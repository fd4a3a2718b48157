"""Mutation records for undoable canvas edits.

This module defines the closed set of history actions:
- HistoryAction: Base record with forward (redo) and inverse (undo) application
- One dataclass variant per committed mutation kind
- Batch: Composite action applied in order, undone in reverse
- TrashedItem: Soft-deleted node plus its incident edges

Every snapshot a record holds is deep-cloned when the record is built and
cloned again whenever it is applied, so the history log never aliases the
live graph.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from canvasgraph.graph.GraphNode import GraphNode, NodeKind, Position, Size
from canvasgraph.graph.relations import Edge

if TYPE_CHECKING:
    from canvasgraph.graph.builder import CanvasGraph


def _clone(value: Any) -> Any:
    return copy.deepcopy(value)


class HistoryAction:
    """Base class for undoable mutations.

    Subclasses set ``action_type`` and implement ``redo``/``undo``; the
    inverse of every forward application must restore the graph exactly.
    """

    action_type: ClassVar[str] = ""

    @property
    def label(self) -> str:
        """Human-readable description for history menus."""
        return self.action_type

    def redo(self, graph: CanvasGraph) -> None:
        """Apply the forward form of this action to the graph."""
        raise NotImplementedError(f"{type(self).__name__} does not implement redo")

    def undo(self, graph: CanvasGraph) -> None:
        """Apply the inverse of this action to the graph."""
        raise NotImplementedError(f"{type(self).__name__} does not implement undo")

    def __str__(self) -> str:
        return f"{self.action_type}({self.label})"


# ─────────────────────────────────────────────────────────────────────────
# Node actions
# ─────────────────────────────────────────────────────────────────────────


@dataclass
class AddNode(HistoryAction):
    """A node was created."""

    action_type: ClassVar[str] = "ADD_NODE"

    node: GraphNode

    def __post_init__(self) -> None:
        self.node = self.node.clone()

    @property
    def label(self) -> str:
        return "Create node"

    def redo(self, graph: CanvasGraph) -> None:
        graph.insert_node(self.node.clone())

    def undo(self, graph: CanvasGraph) -> None:
        graph.remove_node(self.node.id)


@dataclass
class DeleteNode(HistoryAction):
    """A node was removed; ``index`` is its position in node order."""

    action_type: ClassVar[str] = "DELETE_NODE"

    node: GraphNode
    index: int | None = None

    def __post_init__(self) -> None:
        self.node = self.node.clone()

    @property
    def label(self) -> str:
        return "Delete node"

    def redo(self, graph: CanvasGraph) -> None:
        graph.remove_node(self.node.id)

    def undo(self, graph: CanvasGraph) -> None:
        graph.insert_node(self.node.clone(), self.index)


@dataclass
class UpdateNode(HistoryAction):
    """A node's data bag changed; snapshots hold the full bag."""

    action_type: ClassVar[str] = "UPDATE_NODE"

    node_id: str
    before: dict[str, Any]
    after: dict[str, Any]

    def __post_init__(self) -> None:
        self.before = _clone(self.before)
        self.after = _clone(self.after)

    @property
    def label(self) -> str:
        return "Edit node"

    def redo(self, graph: CanvasGraph) -> None:
        _restore_data(graph, self.node_id, self.after)

    def undo(self, graph: CanvasGraph) -> None:
        _restore_data(graph, self.node_id, self.before)


@dataclass
class NodeDataChange:
    """One node's before/after data inside a bulk update."""

    node_id: str
    before: dict[str, Any]
    after: dict[str, Any]


@dataclass
class BulkUpdateNodes(HistoryAction):
    """Several nodes' data bags changed together."""

    action_type: ClassVar[str] = "BULK_UPDATE_NODES"

    updates: list[NodeDataChange] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.updates = _clone(self.updates)

    @property
    def label(self) -> str:
        return f"Edit {len(self.updates)} nodes"

    def redo(self, graph: CanvasGraph) -> None:
        for update in self.updates:
            _restore_data(graph, update.node_id, update.after)

    def undo(self, graph: CanvasGraph) -> None:
        for update in self.updates:
            _restore_data(graph, update.node_id, update.before)


@dataclass
class MoveNode(HistoryAction):
    """A node was dragged to a new position."""

    action_type: ClassVar[str] = "MOVE_NODE"

    node_id: str
    before: Position
    after: Position

    def __post_init__(self) -> None:
        self.before = _clone(self.before)
        self.after = _clone(self.after)

    @property
    def label(self) -> str:
        return "Move node"

    def redo(self, graph: CanvasGraph) -> None:
        node = graph.find_by_id(self.node_id)
        if node:
            node.position = _clone(self.after)

    def undo(self, graph: CanvasGraph) -> None:
        node = graph.find_by_id(self.node_id)
        if node:
            node.position = _clone(self.before)


@dataclass
class ResizeNode(HistoryAction):
    """A node's dimensions changed."""

    action_type: ClassVar[str] = "RESIZE_NODE"

    node_id: str
    before: Size
    after: Size

    def __post_init__(self) -> None:
        self.before = _clone(self.before)
        self.after = _clone(self.after)

    @property
    def label(self) -> str:
        return "Resize node"

    def redo(self, graph: CanvasGraph) -> None:
        _apply_size(graph, self.node_id, self.after)

    def undo(self, graph: CanvasGraph) -> None:
        _apply_size(graph, self.node_id, self.before)


@dataclass
class LayerChange:
    """One node's z-index before and after a reorder."""

    node_id: str
    before: int
    after: int


@dataclass
class ReorderLayers(HistoryAction):
    """Stacking order of several nodes changed."""

    action_type: ClassVar[str] = "REORDER_LAYERS"

    updates: list[LayerChange] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.updates = _clone(self.updates)

    @property
    def label(self) -> str:
        return f"Reorder {len(self.updates)} layers"

    def redo(self, graph: CanvasGraph) -> None:
        for update in self.updates:
            node = graph.find_by_id(update.node_id)
            if node:
                node.z_index = update.after

    def undo(self, graph: CanvasGraph) -> None:
        for update in self.updates:
            node = graph.find_by_id(update.node_id)
            if node:
                node.z_index = update.before


# ─────────────────────────────────────────────────────────────────────────
# Message actions
# ─────────────────────────────────────────────────────────────────────────


@dataclass
class AddMessage(HistoryAction):
    """A message was appended to a conversation.

    ``title_before``/``title_after`` are set when the message auto-titled
    the conversation, so undo restores the placeholder title too.
    """

    action_type: ClassVar[str] = "ADD_MESSAGE"

    node_id: str
    message: dict[str, Any]
    title_before: str | None = None
    title_after: str | None = None

    def __post_init__(self) -> None:
        self.message = _clone(self.message)

    @property
    def label(self) -> str:
        return f"Add {self.message.get('role', 'user')} message"

    def redo(self, graph: CanvasGraph) -> None:
        node = _conversation(graph, self.node_id)
        if node is None:
            return
        node.data.setdefault("messages", []).append(_clone(self.message))
        if self.title_after is not None:
            node.data["title"] = self.title_after

    def undo(self, graph: CanvasGraph) -> None:
        node = _conversation(graph, self.node_id)
        if node is None:
            return
        message_id = self.message.get("id")
        node.data["messages"] = [
            m for m in node.data.get("messages", []) if m.get("id") != message_id
        ]
        if self.title_before is not None:
            node.data["title"] = self.title_before


@dataclass
class DeleteMessage(HistoryAction):
    """A message was removed from a conversation at ``index``."""

    action_type: ClassVar[str] = "DELETE_MESSAGE"

    node_id: str
    message: dict[str, Any]
    index: int

    def __post_init__(self) -> None:
        self.message = _clone(self.message)

    @property
    def label(self) -> str:
        return f"Delete {self.message.get('role', 'user')} message"

    def redo(self, graph: CanvasGraph) -> None:
        node = _conversation(graph, self.node_id)
        if node is None:
            return
        messages = node.data.get("messages") or []
        if 0 <= self.index < len(messages):
            del messages[self.index]

    def undo(self, graph: CanvasGraph) -> None:
        node = _conversation(graph, self.node_id)
        if node is None:
            return
        node.data.setdefault("messages", []).insert(self.index, _clone(self.message))


# ─────────────────────────────────────────────────────────────────────────
# Edge actions
# ─────────────────────────────────────────────────────────────────────────


@dataclass
class AddEdge(HistoryAction):
    """An edge was created."""

    action_type: ClassVar[str] = "ADD_EDGE"

    edge: Edge

    def __post_init__(self) -> None:
        self.edge = self.edge.clone()

    @property
    def label(self) -> str:
        return "Create connection"

    def redo(self, graph: CanvasGraph) -> None:
        graph.insert_edge(self.edge.clone())

    def undo(self, graph: CanvasGraph) -> None:
        graph.remove_edge(self.edge.id)


@dataclass
class DeleteEdge(HistoryAction):
    """An edge was removed; ``index`` is its position in edge order."""

    action_type: ClassVar[str] = "DELETE_EDGE"

    edge: Edge
    index: int | None = None

    def __post_init__(self) -> None:
        self.edge = self.edge.clone()

    @property
    def label(self) -> str:
        return "Delete connection"

    def redo(self, graph: CanvasGraph) -> None:
        graph.remove_edge(self.edge.id)

    def undo(self, graph: CanvasGraph) -> None:
        graph.insert_edge(self.edge.clone(), self.index)


@dataclass
class UpdateEdge(HistoryAction):
    """An edge's data changed; snapshots hold the full data dict."""

    action_type: ClassVar[str] = "UPDATE_EDGE"

    edge_id: str
    before: dict[str, Any]
    after: dict[str, Any]

    def __post_init__(self) -> None:
        self.before = _clone(self.before)
        self.after = _clone(self.after)

    @property
    def label(self) -> str:
        return "Edit connection"

    def redo(self, graph: CanvasGraph) -> None:
        edge = graph.find_edge(self.edge_id)
        if edge:
            edge.data = _clone(self.after)

    def undo(self, graph: CanvasGraph) -> None:
        edge = graph.find_edge(self.edge_id)
        if edge:
            edge.data = _clone(self.before)


@dataclass
class _EdgeSwap(HistoryAction):
    """Replace an edge wholesale with a before/after snapshot."""

    before: Edge
    after: Edge

    def __post_init__(self) -> None:
        self.before = self.before.clone()
        self.after = self.after.clone()

    def redo(self, graph: CanvasGraph) -> None:
        graph.replace_edge(self.before.id, self.after.clone())

    def undo(self, graph: CanvasGraph) -> None:
        graph.replace_edge(self.after.id, self.before.clone())


@dataclass
class ReverseEdge(_EdgeSwap):
    """An edge's direction was flipped (id preserved)."""

    action_type: ClassVar[str] = "REVERSE_EDGE"

    @property
    def label(self) -> str:
        return "Reverse connection"


@dataclass
class ReconnectEdge(_EdgeSwap):
    """An edge was re-targeted to a new endpoint pair."""

    action_type: ClassVar[str] = "RECONNECT_EDGE"

    @property
    def label(self) -> str:
        return "Reconnect edge"


# ─────────────────────────────────────────────────────────────────────────
# Composite
# ─────────────────────────────────────────────────────────────────────────


@dataclass
class Batch(HistoryAction):
    """Several actions committed as one undo step."""

    action_type: ClassVar[str] = "BATCH"

    actions: list[HistoryAction] = field(default_factory=list)
    description: str | None = None

    def __post_init__(self) -> None:
        for action in self.actions:
            if not isinstance(action, HistoryAction):
                raise TypeError(f"Batch members must be history actions, got {action!r}")

    @property
    def label(self) -> str:
        return self.description or f"{len(self.actions)} actions"

    def redo(self, graph: CanvasGraph) -> None:
        for action in self.actions:
            action.redo(graph)

    def undo(self, graph: CanvasGraph) -> None:
        for action in reversed(self.actions):
            action.undo(graph)

    def __len__(self) -> int:
        return len(self.actions)


@dataclass
class TrashedItem:
    """A soft-deleted node together with the edges removed alongside it.

    Attributes:
        node: The node as it was when trashed.
        edges: Edges incident to the node at deletion time.
        deleted_at: Epoch milliseconds of the soft delete.
    """

    node: GraphNode
    edges: list[Edge] = field(default_factory=list)
    deleted_at: int = 0


# ─────────────────────────────────────────────────────────────────────────
# Application helpers
# ─────────────────────────────────────────────────────────────────────────


def _restore_data(graph: CanvasGraph, node_id: str, data: dict[str, Any]) -> None:
    node = graph.find_by_id(node_id)
    if node is None:
        return
    node.data = _clone(data)
    kind = data.get("type")
    if kind and kind != node.kind.value:
        node.kind = NodeKind.parse(kind)


def _apply_size(graph: CanvasGraph, node_id: str, size: Size) -> None:
    node = graph.find_by_id(node_id)
    if node:
        node.width = size.width
        node.height = size.height


def _conversation(graph: CanvasGraph, node_id: str) -> GraphNode | None:
    node = graph.find_by_id(node_id)
    if node is None or node.kind != NodeKind.CONVERSATION:
        return None
    return node


__all__ = [
    "HistoryAction",
    "AddNode",
    "DeleteNode",
    "UpdateNode",
    "NodeDataChange",
    "BulkUpdateNodes",
    "MoveNode",
    "ResizeNode",
    "LayerChange",
    "ReorderLayers",
    "AddMessage",
    "DeleteMessage",
    "AddEdge",
    "DeleteEdge",
    "UpdateEdge",
    "ReverseEdge",
    "ReconnectEdge",
    "Batch",
    "TrashedItem",
]
