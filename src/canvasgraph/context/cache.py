"""Context cache keyed by a graph fingerprint.

Assembling context walks the graph, so results are cached per queried
node id. Each entry remembers the fingerprint it was computed under; a
lookup under a different fingerprint recomputes and replaces the entry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable

from canvasgraph.graph.builder import CanvasGraph

logger = logging.getLogger(__name__)


def node_fingerprint(graph: CanvasGraph) -> str:
    """``id:title[:20]:len(content)`` for every node, comma-joined."""
    return ",".join(
        f"{n.id}:{n.title[:20]}:{len(n.content)}"
        for n in graph.all_nodes()
    )


def edge_fingerprint(graph: CanvasGraph) -> str:
    """``source>target:active:direction:strength`` for every edge, comma-joined."""
    return ",".join(
        f"{e.source}>{e.target}:{'1' if e.is_active else '0'}:"
        f"{e.data.get('direction') or 'd'}:{e.data.get('strength') or 'n'}"
        for e in graph.all_edges()
    )


@dataclass
class GraphState:
    """Workspace-level inputs of the cache key beyond the graph itself."""

    workspace_id: str = ""
    last_saved: int = 0
    history_index: int = -1
    is_dirty: bool = False
    depth: int = 2
    revision: int = 0


def compute_cache_key(graph: CanvasGraph, state: GraphState) -> str:
    """Build the composite cache key for the current graph and settings.

    Graphs differing in any node's title prefix or content length, or in
    any edge's endpoints, activity, direction or strength, yield
    different keys. ``revision`` counts committed mutations so that a
    history cursor pinned at the cap still produces a fresh key.
    """
    return "|".join(
        [
            f"{graph.node_count()}:{graph.edge_count()}:{state.last_saved or 0}",
            state.workspace_id or "",
            str(state.history_index),
            "1" if state.is_dirty else "0",
            str(state.depth),
            node_fingerprint(graph),
            edge_fingerprint(graph),
            str(state.revision),
        ]
    )


class ContextCache:
    """One cached context string per queried node id.

    Attributes:
        hits: Lookups answered from the cache.
        misses: Lookups that had to compute.
    """

    def __init__(self) -> None:
        self._entries: dict[str, tuple[str, str]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, node_id: str, key: str, compute: Callable[[], str]) -> str:
        """Return the cached value for `node_id` under `key`, computing on a miss."""
        entry = self._entries.get(node_id)
        if entry is not None and entry[0] == key:
            self.hits += 1
            logger.debug("Context cache hit for %s", node_id)
            return entry[1]
        self.misses += 1
        logger.debug("Context cache miss for %s", node_id)
        value = compute()
        self._entries[node_id] = (key, value)
        return value

    def invalidate(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def retain(self, node_ids: Iterable[str]) -> None:
        """Drop entries for nodes not in `node_ids`."""
        live = set(node_ids)
        for node_id in [nid for nid in self._entries if nid not in live]:
            del self._entries[node_id]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._entries
