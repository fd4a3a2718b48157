"""HistoryEngine - linear undo/redo over committed history actions.

The engine keeps a single list of actions and a cursor pointing at the
last applied entry. Pushing while the cursor is not at the tail discards
the redo branch. The list is capped; when the cap is exceeded the oldest
entries are dropped and the cursor shifts down by the same amount.

Drag and resize gestures are coalesced: the start call snapshots the
geometry of the affected nodes, the commit call diffs against it and
records a single undo step.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from canvasgraph.graph.builder import CanvasGraph
from canvasgraph.graph.GraphNode import Position, Size
from canvasgraph.graph.mutations import Batch, HistoryAction, MoveNode, ResizeNode

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 100


class HistoryEngine:
    """Linear history with a cursor.

    ``history_index`` ranges over ``[-1, len - 1]``; -1 means nothing can
    be undone.

    Example:
        >>> history = HistoryEngine()
        >>> history.push(graph.add_node("note"))
        >>> history.undo(graph)
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self.max_entries = max_entries
        self._actions: list[HistoryAction] = []
        self.history_index = -1
        self._drag_start: dict[str, Position] = {}
        self._resize_start: dict[str, Size] = {}

    # ─────────────────────────────────────────────────────────────────────
    # Recording
    # ─────────────────────────────────────────────────────────────────────

    def push(self, action: HistoryAction) -> None:
        """Record a committed action.

        Args:
            action: The action that was just applied to the graph.

        Raises:
            TypeError: If `action` is not a HistoryAction.
        """
        _require_action(action)
        del self._actions[self.history_index + 1 :]
        self._actions.append(action)
        self.history_index = len(self._actions) - 1

        overflow = len(self._actions) - self.max_entries
        if overflow > 0:
            del self._actions[:overflow]
            self.history_index -= overflow
            logger.debug("History cap reached, dropped %d oldest entr(ies)", overflow)
        logger.debug("Recorded %s at index %d", action, self.history_index)

    def commit_batch(
        self, actions: Iterable[HistoryAction], description: str | None = None
    ) -> HistoryAction | None:
        """Record several actions as one undo step.

        No actions records nothing; a single action is pushed on its own;
        several are wrapped in a Batch.

        Returns:
            The recorded action, or None.
        """
        actions = list(actions)
        for action in actions:
            _require_action(action)
        if not actions:
            return None
        recorded = actions[0] if len(actions) == 1 else Batch(actions=actions, description=description)
        self.push(recorded)
        return recorded

    # ─────────────────────────────────────────────────────────────────────
    # Navigation
    # ─────────────────────────────────────────────────────────────────────

    def undo(self, graph: CanvasGraph) -> HistoryAction | None:
        """Apply the inverse of the action under the cursor.

        Returns:
            The undone action, or None at the start of history.
        """
        if self.history_index < 0:
            return None
        action = self._actions[self.history_index]
        _require_action(action)
        action.undo(graph)
        self.history_index -= 1
        logger.debug("Undid %s, cursor now %d", action, self.history_index)
        return action

    def redo(self, graph: CanvasGraph) -> HistoryAction | None:
        """Re-apply the action after the cursor.

        Returns:
            The redone action, or None at the tail of history.
        """
        if self.history_index >= len(self._actions) - 1:
            return None
        action = self._actions[self.history_index + 1]
        _require_action(action)
        action.redo(graph)
        self.history_index += 1
        logger.debug("Redid %s, cursor now %d", action, self.history_index)
        return action

    def can_undo(self) -> bool:
        return self.history_index >= 0

    def can_redo(self) -> bool:
        return self.history_index < len(self._actions) - 1

    def clear(self) -> None:
        """Forget all history and any gesture in progress."""
        self._actions = []
        self.history_index = -1
        self._drag_start = {}
        self._resize_start = {}

    def get(self, index: int) -> HistoryAction:
        """Return the action at `index` (raises IndexError when out of range)."""
        return self._actions[index]

    def labels(self) -> list[str]:
        """Human-readable labels, oldest first."""
        return [action.label for action in self._actions]

    def __len__(self) -> int:
        return len(self._actions)

    def __iter__(self) -> Iterator[HistoryAction]:
        return iter(list(self._actions))

    # ─────────────────────────────────────────────────────────────────────
    # Gesture coalescing
    # ─────────────────────────────────────────────────────────────────────

    def start_node_drag(self, graph: CanvasGraph, node_ids: Iterable[str]) -> None:
        """Snapshot positions at the start of a drag."""
        start: dict[str, Position] = {}
        for node_id in node_ids:
            node = graph.find_by_id(node_id)
            if node is not None:
                start[node_id] = Position(node.position.x, node.position.y)
        self._drag_start = start

    def commit_node_drag(
        self, graph: CanvasGraph, node_ids: Iterable[str]
    ) -> HistoryAction | None:
        """Record the net movement of a drag as one undo step.

        Nothing is recorded when no node actually moved.
        """
        moves: list[HistoryAction] = []
        for node_id in node_ids:
            before = self._drag_start.get(node_id)
            node = graph.find_by_id(node_id)
            if before is None or node is None:
                continue
            if before.x != node.position.x or before.y != node.position.y:
                moves.append(MoveNode(node_id=node_id, before=before, after=node.position))
        self._drag_start = {}
        return self.commit_batch(moves, description=f"Move {len(moves)} nodes")

    def start_node_resize(self, graph: CanvasGraph, node_id: str) -> None:
        """Snapshot dimensions at the start of a resize."""
        node = graph.find_by_id(node_id)
        self._resize_start = {node_id: node.size} if node is not None else {}

    def commit_node_resize(self, graph: CanvasGraph, node_id: str) -> HistoryAction | None:
        """Record the net dimension change of a resize."""
        before = self._resize_start.get(node_id)
        node = graph.find_by_id(node_id)
        self._resize_start = {}
        if before is None or node is None or before == node.size:
            return None
        action = ResizeNode(node_id=node_id, before=before, after=node.size)
        self.push(action)
        return action


def _require_action(action: object) -> None:
    if not isinstance(action, HistoryAction):
        raise TypeError(f"Expected a HistoryAction, got {type(action).__name__}")


__all__ = ["HistoryEngine", "DEFAULT_MAX_ENTRIES"]
