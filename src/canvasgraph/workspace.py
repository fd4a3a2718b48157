"""Workspace - the per-workspace context object.

A Workspace wires one CanvasGraph, one HistoryEngine and one context
cache/assembler pair together. UI-level actions call Workspace methods,
which mutate the graph, record the returned history action and then run
the settle phase (activation re-evaluation) before returning. Several
workspaces can coexist in one process; none of them is global.

The object is not thread-safe; confine each instance to one thread.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from canvasgraph.context.builder import ContextAssembler
from canvasgraph.context.cache import ContextCache, GraphState, compute_cache_key
from canvasgraph.context.render import DEFAULT_SEPARATOR, RenderOptions
from canvasgraph.graph.activation import evaluate_all_node_activations
from canvasgraph.graph.builder import DEFAULT_TRASH_LIMIT, CanvasGraph
from canvasgraph.graph.factory import new_id, now_ms
from canvasgraph.graph.GraphNode import GraphNode, NodeKind, Position
from canvasgraph.graph.history import DEFAULT_MAX_ENTRIES, HistoryEngine
from canvasgraph.graph.mutations import AddEdge, HistoryAction, TrashedItem
from canvasgraph.graph.relations import Edge
from canvasgraph.graph.serialize import (
    SNAPSHOT_VERSION,
    load_graph,
    serialize_edge,
    serialize_node,
    serialize_trash_item,
)

logger = logging.getLogger(__name__)

DEFAULT_WORKSPACE_NAME = "Untitled Workspace"

DEFAULT_CONTEXT_SETTINGS: dict[str, Any] = {
    "globalDepth": 2,
    "traversalMode": "all",
}

DEFAULT_VIEWPORT: dict[str, float] = {"x": 0, "y": 0, "zoom": 1}

EXTRACTION_OFFSET = 50
EXTRACTION_FALLBACK_WIDTH = 300


@dataclass
class PendingExtraction:
    """A node suggested by an AI response, awaiting user acceptance.

    Attributes:
        id: Extraction identifier.
        source_node_id: Node the suggestion was extracted from.
        kind: Kind of node to create (note or task).
        suggested_data: Suggested field values.
        status: ``pending`` or ``edited``.
        created_at: Epoch milliseconds.
    """

    id: str
    source_node_id: str
    kind: NodeKind
    suggested_data: dict[str, Any] = field(default_factory=dict)
    status: str = "pending"
    created_at: int = field(default_factory=now_ms)


class Workspace:
    """One canvas workspace: graph, history, context cache and UI state.

    Args:
        workspace_id: Workspace identifier (generated when omitted).
        name: Display name.
        max_history: History cap.
        trash_limit: Soft-delete trash cap.
        context_settings: Overrides for ``globalDepth``/``traversalMode``.
        render_options: Context rendering limits.
    """

    def __init__(
        self,
        workspace_id: str | None = None,
        name: str = DEFAULT_WORKSPACE_NAME,
        max_history: int = DEFAULT_MAX_ENTRIES,
        trash_limit: int = DEFAULT_TRASH_LIMIT,
        context_settings: dict[str, Any] | None = None,
        render_options: RenderOptions | None = None,
    ) -> None:
        self.workspace_id = workspace_id or new_id()
        self.name = name
        self.graph = CanvasGraph(trash_limit=trash_limit)
        self.history = HistoryEngine(max_entries=max_history)
        self.cache = ContextCache()
        self.render_options = render_options or RenderOptions()
        self.context_settings: dict[str, Any] = {
            **DEFAULT_CONTEXT_SETTINGS,
            **(context_settings or {}),
        }
        self._default_context_settings = dict(self.context_settings)
        self.property_schema: dict[str, Any] = {}
        self.viewport: dict[str, float] = dict(DEFAULT_VIEWPORT)
        self.is_dirty = False
        self.last_saved = 0
        self.created_at = now_ms()
        self.updated_at = self.created_at
        self.selected_node_ids: list[str] = []
        self.selected_edge_ids: list[str] = []
        self.pending_extractions: list[PendingExtraction] = []
        self.recently_spawned: frozenset[str] = frozenset()
        self.revision = 0

    @classmethod
    def from_config(cls, config: dict[str, Any], **kwargs: Any) -> Workspace:
        """Build a workspace using limits from a resolved configuration."""
        history = config.get("history", {})
        trash = config.get("trash", {})
        context = config.get("context", {})
        options = RenderOptions(
            recent_messages=context.get("recent_messages", 5),
            chars_per_token=context.get("chars_per_token", 4),
            default_max_injection_tokens=context.get("default_max_injection_tokens", 2000),
            separator=context.get("separator", DEFAULT_SEPARATOR),
        )
        settings = {
            "globalDepth": context.get("default_depth", DEFAULT_CONTEXT_SETTINGS["globalDepth"]),
            "traversalMode": context.get(
                "traversal_mode", DEFAULT_CONTEXT_SETTINGS["traversalMode"]
            ),
        }
        return cls(
            max_history=history.get("max_entries", DEFAULT_MAX_ENTRIES),
            trash_limit=trash.get("max_items", DEFAULT_TRASH_LIMIT),
            context_settings=settings,
            render_options=options,
            **kwargs,
        )

    # ─────────────────────────────────────────────────────────────────────
    # Read-only views
    # ─────────────────────────────────────────────────────────────────────

    @property
    def nodes(self) -> list[GraphNode]:
        return list(self.graph.all_nodes())

    @property
    def edges(self) -> list[Edge]:
        return list(self.graph.all_edges())

    @property
    def trash(self) -> list[TrashedItem]:
        return self.graph.trash

    @property
    def history_index(self) -> int:
        return self.history.history_index

    # ─────────────────────────────────────────────────────────────────────
    # Recording and settle phase
    # ─────────────────────────────────────────────────────────────────────

    def _touch(self) -> None:
        self.is_dirty = True
        self.revision += 1
        self.updated_at = now_ms()

    def _record(self, action: HistoryAction | None, settle: bool = False) -> HistoryAction | None:
        if action is None:
            return None
        self.history.push(action)
        self._touch()
        if settle:
            self._settle()
        return action

    def _settle(self) -> None:
        """Re-evaluate activation conditions after a committed mutation."""
        changed = evaluate_all_node_activations(self.graph)
        if changed:
            logger.debug("Activation settled, %d node(s) changed", len(changed))
            self._touch()

    def _spawned(self, node_ids: Iterable[str]) -> None:
        self.recently_spawned = self.recently_spawned | frozenset(node_ids)

    def clear_spawned(self) -> None:
        """Forget spawn feedback state (the caller's animation finished)."""
        self.recently_spawned = frozenset()

    def _prune_removed(self) -> None:
        """Forget selection and cached context of nodes no longer on the canvas."""
        self.selected_node_ids = [nid for nid in self.selected_node_ids if self.graph.has_node(nid)]
        self.selected_edge_ids = [
            eid for eid in self.selected_edge_ids if self.graph.find_edge(eid) is not None
        ]
        self.cache.retain(n.id for n in self.graph.all_nodes())

    # ─────────────────────────────────────────────────────────────────────
    # Node operations
    # ─────────────────────────────────────────────────────────────────────

    def add_node(self, kind: NodeKind | str, position: Position | None = None) -> str:
        """Create a node and return its id.

        Raises:
            ValueError: If the kind is unknown.
        """
        action = self.graph.add_node(kind, position, property_schema=self.property_schema)
        node_id = action.node.id
        self.selected_node_ids = [node_id]
        self._record(action)
        self._spawned([node_id])
        return node_id

    def update_node(self, node_id: str, partial: dict[str, Any]) -> None:
        """Merge fields into a node's data (no-op for unknown ids)."""
        self._record(self.graph.update_node(node_id, partial), settle="enabled" in partial)

    def update_bulk_nodes(self, node_ids: Iterable[str], partial: dict[str, Any]) -> None:
        self._record(self.graph.update_bulk_nodes(node_ids, partial), settle="enabled" in partial)

    def set_node_property(self, node_id: str, property_id: str, value: Any) -> None:
        """Set one entry of a node's ``properties`` bag."""
        node = self.graph.find_by_id(node_id)
        if node is None:
            return
        properties = {**(node.data.get("properties") or {}), property_id: value}
        self.update_node(node_id, {"properties": properties})

    def delete_nodes(self, node_ids: Iterable[str]) -> None:
        """Delete nodes and their incident edges as one undo step."""
        self._record(self.graph.delete_nodes(node_ids), settle=True)
        self._prune_removed()

    def move_node(self, node_id: str, position: Position) -> None:
        """Live position update during a drag (not recorded)."""
        self.graph.move_node(node_id, position)

    def start_node_drag(self, node_ids: Iterable[str]) -> None:
        self.history.start_node_drag(self.graph, node_ids)

    def commit_node_drag(self, node_ids: Iterable[str]) -> None:
        if self.history.commit_node_drag(self.graph, node_ids) is not None:
            self._touch()

    def resize_node(self, node_id: str, width: float, height: float) -> None:
        """Resize a node as a single undo step."""
        self._record(self.graph.resize_node(node_id, width, height))

    def set_node_size(self, node_id: str, width: float, height: float) -> None:
        """Live dimension update during a resize gesture (not recorded)."""
        self.graph.set_node_size(node_id, width, height)

    def start_node_resize(self, node_id: str) -> None:
        self.history.start_node_resize(self.graph, node_id)

    def commit_node_resize(self, node_id: str) -> None:
        if self.history.commit_node_resize(self.graph, node_id) is not None:
            self._touch()

    def reorder_layers(self, node_ids: list[str], target_index: int) -> None:
        self._record(self.graph.reorder_layers(node_ids, target_index))

    def add_node_to_project(self, node_id: str, project_id: str) -> None:
        self._record(self.graph.add_node_to_project(node_id, project_id))

    def remove_node_from_project(self, node_id: str) -> None:
        self._record(self.graph.remove_node_from_project(node_id))

    # ─────────────────────────────────────────────────────────────────────
    # Messages
    # ─────────────────────────────────────────────────────────────────────

    def add_message(self, node_id: str, role: str, content: str) -> None:
        """Append a conversation message.

        Only user messages are undoable; assistant messages are produced
        by streaming and are not recorded.
        """
        action = self.graph.add_message(node_id, role, content)
        if action is None:
            return
        if role == "user":
            self._record(action)
        else:
            self._touch()

    def delete_message(self, node_id: str, index: int) -> None:
        self._record(self.graph.delete_message(node_id, index))

    def update_last_message(self, node_id: str, content: str) -> None:
        self.graph.update_last_message(node_id, content)
        self._touch()

    def remove_last_message(self, node_id: str) -> None:
        if self.graph.remove_last_message(node_id):
            self._touch()

    # ─────────────────────────────────────────────────────────────────────
    # Edge operations
    # ─────────────────────────────────────────────────────────────────────

    def add_edge(
        self,
        source: str,
        target: str,
        source_handle: str | None = None,
        target_handle: str | None = None,
    ) -> str | None:
        """Connect two nodes; returns the edge id, or None if rejected."""
        action = self.graph.add_edge(source, target, source_handle, target_handle)
        self._record(action, settle=True)
        return action.edge.id if action is not None else None

    def update_edge(self, edge_id: str, partial: dict[str, Any]) -> None:
        self._record(self.graph.update_edge(edge_id, partial), settle=True)

    def delete_edges(self, edge_ids: Iterable[str]) -> None:
        self._record(self.graph.delete_edges(edge_ids), settle=True)
        self._prune_removed()

    def reverse_edge(self, edge_id: str) -> None:
        self._record(self.graph.reverse_edge(edge_id), settle=True)

    def reconnect_edge(
        self,
        edge_id: str,
        source: str,
        target: str,
        source_handle: str | None = None,
        target_handle: str | None = None,
    ) -> None:
        action = self.graph.reconnect_edge(edge_id, source, target, source_handle, target_handle)
        self._record(action, settle=True)
        self._prune_removed()

    # ─────────────────────────────────────────────────────────────────────
    # Trash
    # ─────────────────────────────────────────────────────────────────────

    def soft_delete_nodes(self, node_ids: Iterable[str]) -> None:
        """Move nodes (and their edges) to the trash; not undoable."""
        if self.graph.soft_delete_nodes(node_ids):
            self._prune_removed()
            self._touch()
            self._settle()

    def restore_from_trash(self, index: int) -> None:
        node = self.graph.restore_from_trash(index)
        if node is not None:
            self._spawned([node.id])
            self._touch()
            self._settle()

    def permanently_delete(self, index: int) -> None:
        self.graph.permanently_delete(index)

    def empty_trash(self) -> None:
        self.graph.empty_trash()

    # ─────────────────────────────────────────────────────────────────────
    # History
    # ─────────────────────────────────────────────────────────────────────

    def undo(self) -> None:
        """Undo the last recorded action (no-op at the start of history)."""
        if self.history.undo(self.graph) is not None:
            self._after_history_move()

    def redo(self) -> None:
        """Redo the next action (no-op at the tail of history)."""
        if self.history.redo(self.graph) is not None:
            self._after_history_move()

    def _after_history_move(self) -> None:
        self._prune_removed()
        self._touch()
        self._settle()

    def can_undo(self) -> bool:
        return self.history.can_undo()

    def can_redo(self) -> bool:
        return self.history.can_redo()

    # ─────────────────────────────────────────────────────────────────────
    # Selection and viewport
    # ─────────────────────────────────────────────────────────────────────

    def set_selected_nodes(self, node_ids: Iterable[str]) -> None:
        wanted = [nid for nid in node_ids if self.graph.has_node(nid)]
        chosen = set(wanted)
        for node in self.graph.all_nodes():
            node.selected = node.id in chosen
        self.selected_node_ids = wanted

    def set_selected_edges(self, edge_ids: Iterable[str]) -> None:
        self.selected_edge_ids = [eid for eid in edge_ids if self.graph.find_edge(eid)]

    def clear_selection(self) -> None:
        self.set_selected_nodes([])
        self.selected_edge_ids = []

    def set_viewport(self, x: float, y: float, zoom: float) -> None:
        self.viewport = {"x": x, "y": y, "zoom": zoom}

    # ─────────────────────────────────────────────────────────────────────
    # Context
    # ─────────────────────────────────────────────────────────────────────

    @property
    def context_depth(self) -> int:
        return int(self.context_settings.get("globalDepth", DEFAULT_CONTEXT_SETTINGS["globalDepth"]))

    def update_context_settings(self, **settings: Any) -> None:
        self.context_settings = {**self.context_settings, **settings}
        self.is_dirty = True

    def get_context_for_node(self, node_id: str) -> str:
        """Assembled AI context for a node, served from cache when unchanged."""
        depth = self.context_depth
        key = compute_cache_key(
            self.graph,
            GraphState(
                workspace_id=self.workspace_id,
                last_saved=self.last_saved,
                history_index=self.history.history_index,
                is_dirty=self.is_dirty,
                depth=depth,
                revision=self.revision,
            ),
        )
        assembler = ContextAssembler(max_depth=depth, options=self.render_options)
        return self.cache.get(node_id, key, lambda: assembler.assemble(self.graph, node_id))

    # ─────────────────────────────────────────────────────────────────────
    # Extractions
    # ─────────────────────────────────────────────────────────────────────

    def add_pending_extraction(
        self,
        source_node_id: str,
        kind: NodeKind | str,
        suggested_data: dict[str, Any] | None = None,
    ) -> str:
        """Queue a suggested node; returns the extraction id."""
        extraction = PendingExtraction(
            id=new_id(),
            source_node_id=source_node_id,
            kind=NodeKind.parse(kind),
            suggested_data=copy.deepcopy(suggested_data or {}),
        )
        self.pending_extractions = [*self.pending_extractions, extraction]
        return extraction.id

    def edit_extraction(self, extraction_id: str, data: dict[str, Any]) -> None:
        for extraction in self.pending_extractions:
            if extraction.id == extraction_id:
                extraction.suggested_data = {**extraction.suggested_data, **data}
                extraction.status = "edited"

    def dismiss_extraction(self, extraction_id: str) -> None:
        self.pending_extractions = [e for e in self.pending_extractions if e.id != extraction_id]

    def clear_all_extractions(self, source_node_id: str | None = None) -> None:
        if source_node_id is None:
            self.pending_extractions = []
        else:
            self.pending_extractions = [
                e for e in self.pending_extractions if e.source_node_id != source_node_id
            ]

    def accept_extraction(
        self, extraction_id: str, position: Position | None = None
    ) -> str | None:
        """Create the suggested node, linked from its source, as one undo step.

        Aborts without creating anything when the source node is gone.

        Returns:
            The new node id, or None if nothing was created.
        """
        extraction = next((e for e in self.pending_extractions if e.id == extraction_id), None)
        if extraction is None:
            return None
        source = self.graph.find_by_id(extraction.source_node_id)
        if source is None:
            logger.debug(
                "Extraction %s aborted: source %s no longer exists",
                extraction_id,
                extraction.source_node_id,
            )
            self.dismiss_extraction(extraction_id)
            return None

        if position is None:
            position = Position(
                source.position.x + (source.width or EXTRACTION_FALLBACK_WIDTH) + EXTRACTION_OFFSET,
                source.position.y,
            )

        actions: list[HistoryAction] = []
        add_action = self.graph.add_node(
            extraction.kind, position, property_schema=self.property_schema
        )
        node_id = add_action.node.id
        actions.append(add_action)

        update_action = self.graph.update_node(node_id, _extraction_fields(extraction))
        if update_action is not None:
            actions.append(update_action)

        edge_action = self.graph.add_edge(source.id, node_id, "bottom-source", "top-target")
        if isinstance(edge_action, AddEdge):
            label_action = self.graph.update_edge(edge_action.edge.id, {"label": "extracted"})
            actions.append(edge_action)
            if label_action is not None:
                actions.append(label_action)

        if self.history.commit_batch(actions, description="Accept extraction") is not None:
            self._touch()
        self.selected_node_ids = [node_id]
        self._spawned([node_id])
        self.dismiss_extraction(extraction_id)
        self._settle()
        return node_id

    # ─────────────────────────────────────────────────────────────────────
    # Persistence boundary
    # ─────────────────────────────────────────────────────────────────────

    def mark_dirty(self) -> None:
        self.is_dirty = True

    def mark_clean(self, saved_at: int | None = None) -> None:
        self.is_dirty = False
        self.last_saved = saved_at if saved_at is not None else now_ms()

    def to_snapshot(self) -> dict[str, Any]:
        """Export the workspace as a JSON-compatible snapshot."""
        snapshot: dict[str, Any] = {
            "id": self.workspace_id,
            "name": self.name,
            "nodes": [serialize_node(n) for n in self.graph.all_nodes()],
            "edges": [serialize_edge(e) for e in self.graph.all_edges()],
            "viewport": dict(self.viewport),
            "propertySchema": copy.deepcopy(self.property_schema),
            "contextSettings": dict(self.context_settings),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "version": SNAPSHOT_VERSION,
        }
        if self.graph.trash:
            snapshot["trash"] = [serialize_trash_item(item) for item in self.graph.trash]
        return snapshot

    def load(self, snapshot: dict[str, Any]) -> None:
        """Replace the workspace state with a snapshot.

        Applies load-time migrations and pruning, resets history, selection
        and the dirty flag, and invalidates the context cache.

        Raises:
            ValueError: If a node in the snapshot has an unknown kind.
        """
        load_graph(snapshot, self.graph)
        for node in self.graph.all_nodes():
            node.selected = False

        self.workspace_id = snapshot.get("id") or new_id()
        self.name = snapshot.get("name") or DEFAULT_WORKSPACE_NAME
        self.viewport = {**DEFAULT_VIEWPORT, **(snapshot.get("viewport") or {})}
        self.property_schema = copy.deepcopy(snapshot.get("propertySchema") or {})
        self.context_settings = {
            **self._default_context_settings,
            **(snapshot.get("contextSettings") or {}),
        }
        self.created_at = snapshot.get("createdAt") or now_ms()
        self.updated_at = snapshot.get("updatedAt") or self.created_at
        self._reset_session()
        logger.debug(
            "Loaded workspace %s: %d nodes, %d edges",
            self.workspace_id,
            self.graph.node_count(),
            self.graph.edge_count(),
        )

    def new_workspace(self, name: str = DEFAULT_WORKSPACE_NAME) -> None:
        """Reset to an empty workspace with a fresh id."""
        self.graph.clear()
        self.workspace_id = new_id()
        self.name = name
        self.viewport = dict(DEFAULT_VIEWPORT)
        self.property_schema = {}
        self.context_settings = dict(self._default_context_settings)
        self.created_at = now_ms()
        self.updated_at = self.created_at
        self._reset_session()

    def _reset_session(self) -> None:
        self.history.clear()
        self.cache.invalidate()
        self.selected_node_ids = []
        self.selected_edge_ids = []
        self.pending_extractions = []
        self.recently_spawned = frozenset()
        self.is_dirty = False
        self.last_saved = 0
        self.revision += 1


def _extraction_fields(extraction: PendingExtraction) -> dict[str, Any]:
    suggested = extraction.suggested_data
    if extraction.kind == NodeKind.NOTE:
        return {
            "title": suggested.get("title") or "Extracted Note",
            "content": suggested.get("content") or "",
            "tags": suggested.get("tags"),
        }
    if extraction.kind == NodeKind.TASK:
        return {
            "title": suggested.get("title") or "Extracted Task",
            "description": suggested.get("description") or "",
            "priority": suggested.get("priority") or "none",
            "status": "todo",
            "tags": suggested.get("tags"),
        }
    return {key: value for key, value in suggested.items() if key != "type"}


__all__ = ["Workspace", "PendingExtraction", "DEFAULT_CONTEXT_SETTINGS"]
