"""CanvasGraph - the graph store for canvas nodes and edges.

CanvasGraph owns the node and edge collections plus the soft-delete trash
and enforces the structural invariants (one edge per ordered pair, project
membership kept bidirectional, z-order above existing nodes). Every
committed mutation returns the HistoryAction describing it; the store has
no knowledge of the history engine that records those actions.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Iterable, Iterator

from canvasgraph.graph.factory import (
    MIN_NODE_HEIGHT,
    MIN_NODE_WIDTH,
    apply_property_defaults,
    create_node_data,
    dimensions_for,
    new_id,
    now_ms,
)
from canvasgraph.graph.GraphNode import GraphNode, NodeKind, Position, Size
from canvasgraph.graph.mutations import (
    AddEdge,
    AddMessage,
    AddNode,
    Batch,
    BulkUpdateNodes,
    DeleteEdge,
    DeleteMessage,
    DeleteNode,
    HistoryAction,
    LayerChange,
    NodeDataChange,
    ReconnectEdge,
    ReorderLayers,
    ResizeNode,
    ReverseEdge,
    TrashedItem,
    UpdateEdge,
    UpdateNode,
)
from canvasgraph.graph.relations import (
    Edge,
    default_edge_data,
    edge_id_for,
    swap_handle,
)

logger = logging.getLogger(__name__)

DEFAULT_TRASH_LIMIT = 50

CONVERSATION_PLACEHOLDER_TITLE = "New Conversation"
AUTO_TITLE_LENGTH = 50


class CanvasGraph:
    """Container for canvas nodes and edges.

    Nodes are kept in an insertion-ordered dict keyed by id; edges in a
    list. Ordering matters: it is the serialized order and the order in
    which undo restores removed entries.

    Attributes:
        trash_limit: Maximum number of soft-deleted items retained.
    """

    def __init__(self, trash_limit: int = DEFAULT_TRASH_LIMIT) -> None:
        self.trash_limit = trash_limit
        self._index: dict[str, GraphNode] = {}
        self._edges: list[Edge] = []
        self._trash: list[TrashedItem] = []

    # ─────────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────────

    def find_by_id(self, node_id: str) -> GraphNode | None:
        """Find node by ID."""
        return self._index.get(node_id)

    def find_edge(self, edge_id: str) -> Edge | None:
        """Find edge by ID."""
        for edge in self._edges:
            if edge.id == edge_id:
                return edge
        return None

    def find_edge_between(self, source: str, target: str) -> Edge | None:
        """Find the edge for an ordered (source, target) pair."""
        for edge in self._edges:
            if edge.source == source and edge.target == target:
                return edge
        return None

    def all_nodes(self) -> Iterator[GraphNode]:
        """Iterate nodes in insertion order."""
        yield from self._index.values()

    def all_edges(self) -> Iterator[Edge]:
        """Iterate edges in insertion order."""
        yield from self._edges

    def nodes_by_kind(self, kind: NodeKind) -> Iterator[GraphNode]:
        """Iterate nodes of a specific kind."""
        for node in self._index.values():
            if node.kind == kind:
                yield node

    def node_count(self) -> int:
        return len(self._index)

    def edge_count(self) -> int:
        return len(self._edges)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._index

    def incoming_edges(self, node_id: str) -> list[Edge]:
        """Edges whose target is `node_id`."""
        return [e for e in self._edges if e.target == node_id]

    def outgoing_edges(self, node_id: str) -> list[Edge]:
        """Edges whose source is `node_id`."""
        return [e for e in self._edges if e.source == node_id]

    def connected_nodes(self, node_id: str) -> list[GraphNode]:
        """Nodes sharing an edge with `node_id`, in edge order, without repeats."""
        seen: set[str] = set()
        result: list[GraphNode] = []
        for edge in self._edges:
            if edge.source == node_id:
                other = edge.target
            elif edge.target == node_id:
                other = edge.source
            else:
                continue
            node = self._index.get(other)
            if node is not None and other not in seen:
                seen.add(other)
                result.append(node)
        return result

    def child_node_ids(self, project_id: str) -> list[str]:
        """Member ids of a project node (empty for anything else)."""
        project = self._index.get(project_id)
        if project is None or project.kind != NodeKind.PROJECT:
            return []
        return list(project.data.get("childNodeIds") or [])

    def edge_position(self, edge_id: str) -> int | None:
        """Position of an edge in edge order."""
        for i, edge in enumerate(self._edges):
            if edge.id == edge_id:
                return i
        return None

    @property
    def trash(self) -> list[TrashedItem]:
        """Soft-deleted items, oldest first."""
        return list(self._trash)

    def clone(self) -> CanvasGraph:
        """Deep copy of the graph (nodes, edges and trash)."""
        other = CanvasGraph(trash_limit=self.trash_limit)
        for node in self._index.values():
            other._index[node.id] = node.clone()
        other._edges = [edge.clone() for edge in self._edges]
        other._trash = [
            TrashedItem(
                node=item.node.clone(),
                edges=[e.clone() for e in item.edges],
                deleted_at=item.deleted_at,
            )
            for item in self._trash
        ]
        return other

    def __iter__(self) -> Iterator[GraphNode]:
        return self.all_nodes()

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._index

    # ─────────────────────────────────────────────────────────────────────
    # Raw primitives (used by history actions; no bookkeeping)
    # ─────────────────────────────────────────────────────────────────────

    def insert_node(self, node: GraphNode, index: int | None = None) -> None:
        """Insert a node, optionally at a position in node order.

        An existing node with the same id is replaced in place.
        """
        if node.id in self._index or index is None or index >= len(self._index):
            self._index[node.id] = node
            return
        items = list(self._index.items())
        items.insert(max(index, 0), (node.id, node))
        self._index = dict(items)

    def remove_node(self, node_id: str) -> GraphNode | None:
        """Remove a node without touching edges."""
        return self._index.pop(node_id, None)

    def insert_edge(self, edge: Edge, index: int | None = None) -> None:
        """Insert an edge, optionally at a position in edge order."""
        if index is None or index >= len(self._edges):
            self._edges.append(edge)
        else:
            self._edges.insert(max(index, 0), edge)

    def remove_edge(self, edge_id: str) -> Edge | None:
        """Remove an edge by id."""
        position = self.edge_position(edge_id)
        if position is None:
            return None
        return self._edges.pop(position)

    def replace_edge(self, edge_id: str, edge: Edge) -> bool:
        """Swap the edge with `edge_id` for `edge`, keeping its position."""
        position = self.edge_position(edge_id)
        if position is None:
            return False
        self._edges[position] = edge
        return True

    def clear(self) -> None:
        """Drop all nodes, edges and trash."""
        self._index = {}
        self._edges = []
        self._trash = []

    # ─────────────────────────────────────────────────────────────────────
    # Node mutations
    # ─────────────────────────────────────────────────────────────────────

    def add_node(
        self,
        kind: NodeKind | str,
        position: Position | None = None,
        node_id: str | None = None,
        property_schema: dict[str, Any] | None = None,
    ) -> AddNode:
        """Create a node of the given kind.

        The new node is placed above every existing node and becomes the
        only selected node.

        Args:
            kind: Node kind (enum member or string value).
            position: Top-left canvas position (defaults to origin).
            node_id: Explicit id; a fresh one is generated when omitted.
            property_schema: Optional schema whose per-kind defaults apply.

        Returns:
            AddNode recording the creation.

        Raises:
            ValueError: If the kind is unknown.
        """
        kind = NodeKind.parse(kind)
        data = apply_property_defaults(create_node_data(kind), kind, property_schema)
        size = dimensions_for(kind)
        max_z = max((n.z_index for n in self._index.values()), default=0)

        for existing in self._index.values():
            existing.selected = False

        node = GraphNode(
            id=node_id or new_id(),
            kind=kind,
            position=position or Position(),
            width=size.width,
            height=size.height,
            z_index=max(max_z, 0) + 1,
            selected=True,
            data=data,
        )
        self._index[node.id] = node
        return AddNode(node=node)

    def update_node(self, node_id: str, partial: dict[str, Any]) -> UpdateNode | None:
        """Merge `partial` into a node's data and stamp `updatedAt`.

        A ``type`` key naming a different kind converts the node.

        Returns:
            UpdateNode with full before/after bags, or None if the node
            does not exist.
        """
        node = self._index.get(node_id)
        if node is None:
            return None
        before = node.data
        after = {**before, **partial, "updatedAt": now_ms()}
        if "type" in partial:
            node.kind = NodeKind.parse(partial["type"])
        node.data = after
        return UpdateNode(node_id=node_id, before=before, after=after)

    def update_bulk_nodes(
        self, node_ids: Iterable[str], partial: dict[str, Any]
    ) -> BulkUpdateNodes | None:
        """Apply the same partial update to several nodes."""
        updates: list[NodeDataChange] = []
        stamp = now_ms()
        for node_id in node_ids:
            node = self._index.get(node_id)
            if node is None:
                continue
            before = node.data
            node.data = {**before, **partial, "updatedAt": stamp}
            updates.append(NodeDataChange(node_id=node_id, before=before, after=node.data))
        if not updates:
            return None
        return BulkUpdateNodes(updates=updates)

    def move_node(self, node_id: str, position: Position) -> None:
        """Set a node's position without producing a history record.

        Drags are coalesced by the history engine's drag gesture instead.
        """
        node = self._index.get(node_id)
        if node is not None:
            node.position = Position(position.x, position.y)

    def resize_node(self, node_id: str, width: float, height: float) -> ResizeNode | None:
        """Resize a node, clamping to the minimum node size."""
        node = self._index.get(node_id)
        if node is None:
            return None
        before = node.size
        after = Size(max(width, MIN_NODE_WIDTH), max(height, MIN_NODE_HEIGHT))
        if before == after:
            return None
        node.width = after.width
        node.height = after.height
        return ResizeNode(node_id=node_id, before=before, after=after)

    def set_node_size(self, node_id: str, width: float, height: float) -> None:
        """Set dimensions directly (live resize), clamped, no history."""
        node = self._index.get(node_id)
        if node is not None:
            node.width = max(width, MIN_NODE_WIDTH)
            node.height = max(height, MIN_NODE_HEIGHT)

    def delete_nodes(self, node_ids: Iterable[str]) -> Batch | None:
        """Delete nodes and every edge touching them.

        Project membership is repaired on surviving nodes within the same
        batch, so a single undo restores everything.

        Returns:
            Batch of DeleteNode records, then DeleteEdge records, then any
            membership UpdateNode records; None if nothing was deleted.
        """
        doomed = {nid for nid in node_ids if nid in self._index}
        if not doomed:
            return None

        actions: list[HistoryAction] = []
        removed = 0
        for position, node in enumerate(list(self._index.values())):
            if node.id in doomed:
                actions.append(DeleteNode(node=node, index=position - removed))
                removed += 1

        removed = 0
        for position, edge in enumerate(list(self._edges)):
            if edge.source in doomed or edge.target in doomed:
                actions.append(DeleteEdge(edge=edge, index=position - removed))
                removed += 1

        for node in self._index.values():
            if node.id in doomed:
                continue
            after = self._membership_repair(node, doomed)
            if after is not None:
                actions.append(UpdateNode(node_id=node.id, before=node.data, after=after))

        batch = Batch(actions=actions, description=_plural(len(doomed), "Delete", "node"))
        batch.redo(self)
        return batch

    def _membership_repair(self, node: GraphNode, doomed: set[str]) -> dict[str, Any] | None:
        if node.kind == NodeKind.PROJECT:
            children = node.data.get("childNodeIds") or []
            kept = [cid for cid in children if cid not in doomed]
            if len(kept) != len(children):
                return {**node.data, "childNodeIds": kept}
        if node.parent_id in doomed:
            after = dict(node.data)
            after.pop("parentId", None)
            return after
        return None

    # ─────────────────────────────────────────────────────────────────────
    # Edge mutations
    # ─────────────────────────────────────────────────────────────────────

    def add_edge(
        self,
        source: str,
        target: str,
        source_handle: str | None = None,
        target_handle: str | None = None,
    ) -> AddEdge | None:
        """Connect two nodes.

        Silently does nothing when either endpoint is empty or missing, or
        when an edge for the exact (source, target) pair already exists.
        """
        if not source or not target:
            return None
        if source not in self._index or target not in self._index:
            return None
        if self.find_edge_between(source, target) is not None:
            return None

        data = default_edge_data(intraProject=self._is_intra_project(source, target))
        outgoing_color = self._index[source].data.get("outgoingEdgeColor")
        if outgoing_color:
            data["color"] = outgoing_color

        edge = Edge(
            id=self._unique_edge_id(source, target),
            source=source,
            target=target,
            source_handle=source_handle,
            target_handle=target_handle,
            data=data,
        )
        self._edges.append(edge)
        return AddEdge(edge=edge)

    def _unique_edge_id(self, source: str, target: str, keep: Edge | None = None) -> str:
        """Canonical id for the pair, suffixed when another edge already holds it.

        A reversed edge keeps its original id, so the canonical id of a new
        pair can already be taken.
        """
        edge_id = edge_id_for(source, target)
        if any(e.id == edge_id and e is not keep for e in self._edges):
            edge_id = f"{edge_id}-{new_id()[:8]}"
        return edge_id

    def update_edge(self, edge_id: str, partial: dict[str, Any]) -> UpdateEdge | None:
        """Merge `partial` into an edge's data."""
        edge = self.find_edge(edge_id)
        if edge is None:
            return None
        before = edge.data
        edge.data = {**before, **partial}
        return UpdateEdge(edge_id=edge_id, before=before, after=edge.data)

    def delete_edges(self, edge_ids: Iterable[str]) -> Batch | None:
        """Delete edges by id."""
        doomed = set(edge_ids)
        actions: list[HistoryAction] = []
        removed = 0
        for position, edge in enumerate(list(self._edges)):
            if edge.id in doomed:
                actions.append(DeleteEdge(edge=edge, index=position - removed))
                removed += 1
        if not actions:
            return None
        batch = Batch(actions=actions, description=_plural(len(actions), "Delete", "connection"))
        batch.redo(self)
        return batch

    def reverse_edge(self, edge_id: str) -> ReverseEdge | None:
        """Swap an edge's endpoints, keeping its id.

        Handle roles are remapped so the new source uses a ``-source``
        handle. Does nothing if the reversed pair is already connected.
        """
        edge = self.find_edge(edge_id)
        if edge is None:
            return None
        existing = self.find_edge_between(edge.target, edge.source)
        if existing is not None and existing.id != edge.id:
            return None

        reversed_edge = Edge(
            id=edge.id,
            source=edge.target,
            target=edge.source,
            source_handle=swap_handle(edge.target_handle, "-target", "-source"),
            target_handle=swap_handle(edge.source_handle, "-source", "-target"),
            data=dict(edge.data),
        )
        action = ReverseEdge(before=edge, after=reversed_edge)
        self.replace_edge(edge.id, reversed_edge)
        return action

    def reconnect_edge(
        self,
        edge_id: str,
        source: str,
        target: str,
        source_handle: str | None = None,
        target_handle: str | None = None,
    ) -> ReconnectEdge | DeleteEdge | None:
        """Re-target an edge to a new endpoint pair.

        If a different edge already connects the new pair, the old edge is
        dropped instead and a DeleteEdge is returned.
        """
        edge = self.find_edge(edge_id)
        if edge is None or not source or not target:
            return None
        if source not in self._index or target not in self._index:
            return None

        existing = self.find_edge_between(source, target)
        if existing is not None and existing.id != edge.id:
            action = DeleteEdge(edge=edge, index=self.edge_position(edge.id))
            action.redo(self)
            return action

        data = dict(edge.data)
        data["intraProject"] = self._is_intra_project(source, target)
        updated = Edge(
            id=self._unique_edge_id(source, target, keep=edge),
            source=source,
            target=target,
            source_handle=source_handle,
            target_handle=target_handle,
            data=data,
        )
        action = ReconnectEdge(before=edge, after=updated)
        self.replace_edge(edge.id, updated)
        return action

    # ─────────────────────────────────────────────────────────────────────
    # Layers
    # ─────────────────────────────────────────────────────────────────────

    def layer_order(self) -> list[str]:
        """Node ids from top (highest z-index) to bottom; ties keep node order."""
        nodes = list(self._index.values())
        return [n.id for n in sorted(nodes, key=lambda n: -n.z_index)]

    def reorder_layers(self, node_ids: list[str], target_index: int) -> ReorderLayers | None:
        """Move nodes to `target_index` in layer order and rewrite z-indices.

        The top of the layer list receives the highest z-index.

        Returns:
            ReorderLayers listing only the nodes whose z-index changed, or
            None if nothing changed.
        """
        current = self.layer_order()
        moved = [nid for nid in node_ids if nid in self._index]
        if not moved:
            return None
        moved_set = set(moved)

        adjustment = sum(1 for nid in current[: max(target_index, 0)] if nid in moved_set)
        remaining = [nid for nid in current if nid not in moved_set]
        insert_at = min(max(target_index - adjustment, 0), len(remaining))
        remaining[insert_at:insert_at] = moved

        updates: list[LayerChange] = []
        for position, nid in enumerate(remaining):
            node = self._index[nid]
            new_z = len(remaining) - position
            if node.z_index != new_z:
                updates.append(LayerChange(node_id=nid, before=node.z_index, after=new_z))
                node.z_index = new_z
        if not updates:
            return None
        return ReorderLayers(updates=updates)

    # ─────────────────────────────────────────────────────────────────────
    # Conversation messages
    # ─────────────────────────────────────────────────────────────────────

    def add_message(self, node_id: str, role: str, content: str) -> AddMessage | None:
        """Append a message to a conversation node.

        The first user message replaces the placeholder title with its
        first 50 characters.
        """
        node = self._index.get(node_id)
        if node is None or node.kind != NodeKind.CONVERSATION:
            return None
        message = {"id": new_id(), "role": role, "content": content, "timestamp": now_ms()}
        node.data.setdefault("messages", []).append(message)
        node.data["updatedAt"] = now_ms()

        title_before = title_after = None
        if role == "user" and node.data.get("title") == CONVERSATION_PLACEHOLDER_TITLE:
            title_before = node.data["title"]
            title_after = content[:AUTO_TITLE_LENGTH]
            if len(content) > AUTO_TITLE_LENGTH:
                title_after += "..."
            node.data["title"] = title_after
        return AddMessage(
            node_id=node_id,
            message=message,
            title_before=title_before,
            title_after=title_after,
        )

    def delete_message(self, node_id: str, index: int) -> DeleteMessage | None:
        """Remove the message at `index` from a conversation node."""
        node = self._index.get(node_id)
        if node is None or node.kind != NodeKind.CONVERSATION:
            return None
        messages = node.data.get("messages") or []
        if not 0 <= index < len(messages):
            return None
        message = messages.pop(index)
        node.data["updatedAt"] = now_ms()
        return DeleteMessage(node_id=node_id, message=message, index=index)

    def update_last_message(self, node_id: str, content: str) -> None:
        """Replace the content of the last message (streaming), no history."""
        node = self._index.get(node_id)
        if node is None or node.kind != NodeKind.CONVERSATION:
            return
        messages = node.data.get("messages") or []
        if messages:
            messages[-1]["content"] = content
            node.data["updatedAt"] = now_ms()

    def remove_last_message(self, node_id: str) -> bool:
        """Drop a trailing empty assistant placeholder (cancelled stream)."""
        node = self._index.get(node_id)
        if node is None or node.kind != NodeKind.CONVERSATION:
            return False
        messages = node.data.get("messages") or []
        if messages and messages[-1].get("role") == "assistant" and not messages[-1].get("content"):
            messages.pop()
            return True
        return False

    # ─────────────────────────────────────────────────────────────────────
    # Project membership
    # ─────────────────────────────────────────────────────────────────────

    def add_node_to_project(self, node_id: str, project_id: str) -> Batch | None:
        """Make a node a member of a project.

        Removes it from any previous project, inherits the project color
        and refreshes ``intraProject`` on incident edges. Projects cannot
        be nested.

        Returns:
            Batch of UpdateNode/UpdateEdge records covering the node, both
            projects and the refreshed edges; None if nothing changed.
        """
        node = self._index.get(node_id)
        project = self._index.get(project_id)
        if node is None or project is None or project.kind != NodeKind.PROJECT:
            return None
        if node.kind == NodeKind.PROJECT:
            return None

        old_parent_id = node.parent_id
        before = self._membership_before(node_id, [old_parent_id, project_id])

        if old_parent_id:
            self._drop_child(old_parent_id, node_id)

        children = list(project.data.get("childNodeIds") or [])
        if node_id not in children:
            children.append(node_id)
        project.data = {**project.data, "childNodeIds": children}
        node.data = {**node.data, "parentId": project_id}

        project_color = project.data.get("color")
        if project_color:
            node.data["color"] = project_color

        self._refresh_intra_project(node_id)
        return self._membership_batch(before, "Add to project")

    def remove_node_from_project(self, node_id: str) -> Batch | None:
        """Detach a node from its project."""
        node = self._index.get(node_id)
        if node is None or not node.parent_id:
            return None
        before = self._membership_before(node_id, [node.parent_id])
        self._drop_child(node.parent_id, node_id)
        node.data = {k: v for k, v in node.data.items() if k != "parentId"}
        self._refresh_intra_project(node_id)
        return self._membership_batch(before, "Remove from project")

    def _membership_before(
        self, node_id: str, project_ids: list[str | None]
    ) -> tuple[dict[str, dict[str, Any]], dict[str, dict[str, Any]]]:
        node_ids = [node_id, *(pid for pid in project_ids if pid and pid in self._index)]
        nodes = {nid: copy.deepcopy(self._index[nid].data) for nid in dict.fromkeys(node_ids)}
        edges = {e.id: copy.deepcopy(e.data) for e in self._edges if e.touches(node_id)}
        return nodes, edges

    def _membership_batch(
        self,
        before: tuple[dict[str, dict[str, Any]], dict[str, dict[str, Any]]],
        description: str,
    ) -> Batch | None:
        node_before, edge_before = before
        actions: list[HistoryAction] = []
        for nid, data in node_before.items():
            node = self._index[nid]
            if node.data != data:
                actions.append(UpdateNode(node_id=nid, before=data, after=node.data))
        for edge_id, data in edge_before.items():
            edge = self.find_edge(edge_id)
            if edge is not None and edge.data != data:
                actions.append(UpdateEdge(edge_id=edge_id, before=data, after=edge.data))
        if not actions:
            return None
        return Batch(actions=actions, description=description)

    def _drop_child(self, project_id: str, node_id: str) -> None:
        parent = self._index.get(project_id)
        if parent is not None and parent.kind == NodeKind.PROJECT:
            parent.data = {
                **parent.data,
                "childNodeIds": [
                    cid for cid in parent.data.get("childNodeIds") or [] if cid != node_id
                ],
            }

    def _is_intra_project(self, source: str, target: str) -> bool:
        source_node = self._index.get(source)
        target_node = self._index.get(target)
        if source_node is None or target_node is None:
            return False
        source_parent = source_node.parent_id
        return bool(source_parent) and source_parent == target_node.parent_id

    def _refresh_intra_project(self, node_id: str) -> None:
        for edge in self._edges:
            if edge.touches(node_id):
                edge.data["intraProject"] = self._is_intra_project(edge.source, edge.target)

    # ─────────────────────────────────────────────────────────────────────
    # Trash (soft delete, outside undo/redo)
    # ─────────────────────────────────────────────────────────────────────

    def soft_delete_nodes(self, node_ids: Iterable[str]) -> list[TrashedItem]:
        """Move nodes and their incident edges into the trash.

        The trash keeps at most ``trash_limit`` items, evicting oldest first.
        """
        wanted = set(node_ids)
        doomed = [nid for nid in self._index if nid in wanted]
        if not doomed:
            return []
        stamp = now_ms()
        items = [
            TrashedItem(
                node=self._index[nid].clone(),
                edges=[e.clone() for e in self._edges if e.touches(nid)],
                deleted_at=stamp,
            )
            for nid in doomed
        ]
        self._trash.extend(items)
        overflow = len(self._trash) - self.trash_limit
        if overflow > 0:
            logger.debug("Trash full, evicting %d oldest item(s)", overflow)
            del self._trash[:overflow]

        doomed_set = set(doomed)
        for nid in doomed:
            del self._index[nid]
        self._edges = [
            e for e in self._edges if e.source not in doomed_set and e.target not in doomed_set
        ]
        return items

    def restore_from_trash(self, index: int) -> GraphNode | None:
        """Reinsert a trashed node.

        Only edges whose both endpoints exist after the node is back are
        restored; the rest are dropped. Invalid indices are ignored.
        """
        if not 0 <= index < len(self._trash):
            return None
        item = self._trash.pop(index)
        node = item.node.clone()
        self._index[node.id] = node
        for edge in item.edges:
            if edge.source not in self._index or edge.target not in self._index:
                logger.debug("Dropping edge %s on restore: endpoint missing", edge.id)
                continue
            if self.find_edge_between(edge.source, edge.target) is not None:
                continue
            self._edges.append(edge.clone())
        return node

    def permanently_delete(self, index: int) -> TrashedItem | None:
        """Remove one item from the trash for good."""
        if not 0 <= index < len(self._trash):
            return None
        return self._trash.pop(index)

    def empty_trash(self) -> None:
        """Discard every trashed item."""
        self._trash = []

    def load_trash(self, items: Iterable[TrashedItem]) -> None:
        """Replace the trash contents (used when loading a snapshot)."""
        self._trash = list(items)[-self.trash_limit :] if self.trash_limit > 0 else []


def _plural(count: int, verb: str, noun: str) -> str:
    if count == 1:
        return f"{verb} {noun}"
    return f"{verb} {count} {noun}s"


__all__ = ["CanvasGraph", "DEFAULT_TRASH_LIMIT"]
