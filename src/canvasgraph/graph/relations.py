"""Relations - Edge types and relationship semantics.

This module defines the typed edges between canvas nodes:
- EdgeStrength: Context priority attached to an edge
- EdgeDirection: Whether context flows one way or both
- Edge: A directed edge between two nodes
- Helpers for legacy weight migration and handle normalization
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EdgeStrength(Enum):
    """Strength levels for context injection priority.

    - LIGHT: low priority, thin/dashed visual
    - NORMAL: medium priority, standard visual
    - STRONG: high priority, thick/prominent visual
    """

    LIGHT = "light"
    NORMAL = "normal"
    STRONG = "strong"

    @property
    def priority(self) -> int:
        """Numeric ranking used by context assembly (higher wins)."""
        return _STRENGTH_PRIORITY[self]

    @classmethod
    def from_weight(cls, weight: float | None) -> EdgeStrength:
        """Map a legacy 1-10 weight onto a strength bucket.

        A missing weight counts as the old default of 5.
        """
        if weight is None:
            weight = 5
        if weight <= 3:
            return cls.LIGHT
        if weight >= 8:
            return cls.STRONG
        return cls.NORMAL


_STRENGTH_PRIORITY = {
    EdgeStrength.STRONG: 3,
    EdgeStrength.NORMAL: 2,
    EdgeStrength.LIGHT: 1,
}


class EdgeDirection(Enum):
    """Direction of context flow along an edge."""

    UNIDIRECTIONAL = "unidirectional"
    BIDIRECTIONAL = "bidirectional"


DEFAULT_EDGE_DATA: dict[str, Any] = {
    "direction": EdgeDirection.UNIDIRECTIONAL.value,
    "strength": EdgeStrength.NORMAL.value,
    "active": True,
    "label": None,
    "color": None,
    "waypoints": None,
    "lineStyle": "solid",
    "strokePreset": "normal",
    "arrowStyle": "filled",
}


def default_edge_data(**overrides: Any) -> dict[str, Any]:
    """Return a fresh copy of the default edge data with overrides applied."""
    data = copy.deepcopy(DEFAULT_EDGE_DATA)
    data.update(overrides)
    return data


def migrate_edge_strength(data: dict[str, Any]) -> dict[str, Any]:
    """Return edge data with `strength` set, migrating a legacy `weight`.

    Data that already carries a strength is returned unchanged.
    """
    if data.get("strength"):
        return data
    migrated = dict(data)
    migrated["strength"] = EdgeStrength.from_weight(data.get("weight")).value
    return migrated


def strength_priority(data: dict[str, Any] | None) -> int:
    """Strength priority for edge data (strong=3, normal=2, light=1)."""
    if not data:
        return EdgeStrength.NORMAL.priority
    value = migrate_edge_strength(data).get("strength")
    try:
        return EdgeStrength(value).priority
    except ValueError:
        return EdgeStrength.NORMAL.priority


def swap_handle(handle: str | None, old_suffix: str, new_suffix: str) -> str | None:
    """Replace the first handle-role suffix, e.g. `top-target` -> `top-source`."""
    if not handle:
        return None
    return handle.replace(old_suffix, new_suffix, 1)


def normalize_handles(
    source_handle: str | None, target_handle: str | None
) -> tuple[str | None, str | None]:
    """Force source handles to `-source` and target handles to `-target`."""
    if source_handle and "-target" in source_handle:
        source_handle = swap_handle(source_handle, "-target", "-source")
    if target_handle and "-source" in target_handle:
        target_handle = swap_handle(target_handle, "-source", "-target")
    return source_handle, target_handle


def edge_id_for(source: str, target: str) -> str:
    """Canonical edge id for a (source, target) pair."""
    return f"{source}-{target}"


@dataclass
class Edge:
    """A directed edge between two canvas nodes.

    Context flows from `source` into `target`; bidirectional edges also
    let the source read the target.

    Attributes:
        id: Edge identifier (``source-target`` when created by the store).
        source: Source node id.
        target: Target node id.
        source_handle: Connection handle on the source node.
        target_handle: Connection handle on the target node.
        data: Edge payload (strength, direction, active, label, ...).
    """

    id: str
    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None
    data: dict[str, Any] = field(default_factory=default_edge_data)

    @property
    def strength(self) -> EdgeStrength:
        try:
            return EdgeStrength(migrate_edge_strength(self.data)["strength"])
        except ValueError:
            return EdgeStrength.NORMAL

    @property
    def direction(self) -> EdgeDirection:
        try:
            return EdgeDirection(self.data.get("direction"))
        except ValueError:
            return EdgeDirection.UNIDIRECTIONAL

    @property
    def is_active(self) -> bool:
        """False only when explicitly deactivated."""
        return self.data.get("active") is not False

    @property
    def is_bidirectional(self) -> bool:
        return self.data.get("direction") == EdgeDirection.BIDIRECTIONAL.value

    @property
    def pair(self) -> tuple[str, str]:
        return (self.source, self.target)

    def touches(self, node_id: str) -> bool:
        """Check whether either endpoint is `node_id`."""
        return self.source == node_id or self.target == node_id

    def clone(self) -> Edge:
        """Return a deep copy sharing no mutable state with this edge."""
        return copy.deepcopy(self)

    def __str__(self) -> str:
        return f"{self.source} --[{self.strength.value}]--> {self.target}"
