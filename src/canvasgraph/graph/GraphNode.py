"""GraphNode - Unified node representation for the canvas graph.

This module provides the core node data structures:
- NodeKind: Enum of node types
- Position / Size: Canvas geometry value objects
- GraphNode: Unified node with a kind-tagged data bag
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class NodeKind(Enum):
    """Types of nodes on the canvas."""

    CONVERSATION = "conversation"
    NOTE = "note"
    TASK = "task"
    PROJECT = "project"
    ARTIFACT = "artifact"
    WORKSPACE = "workspace"
    TEXT = "text"
    ACTION = "action"
    ORCHESTRATOR = "orchestrator"

    @classmethod
    def parse(cls, value: NodeKind | str) -> NodeKind:
        """Resolve a kind from an enum member or its string value.

        Raises:
            ValueError: If the value names no known kind.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown node kind: {value!r}") from None


@dataclass
class Position:
    """Absolute canvas position of a node's top-left corner."""

    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Position:
        if not data:
            return cls()
        return cls(x=data.get("x", 0.0), y=data.get("y", 0.0))


@dataclass
class Size:
    """Rendered node dimensions."""

    width: float
    height: float


@dataclass
class GraphNode:
    """A node on the canvas.

    GraphNode is the unified representation for all canvas entities. The
    `kind` field determines which keys of `data` are meaningful; `data`
    always carries `type == kind.value` so a serialized bag is self-describing.

    Attributes:
        id: Unique identifier for this node.
        kind: The type of node (conversation, note, task, etc.).
        position: Top-left canvas position.
        width: Rendered width.
        height: Rendered height.
        z_index: Stacking order (higher renders on top).
        selected: Whether the node is currently selected.
        data: Kind-specific payload plus shared context metadata.
    """

    id: str
    kind: NodeKind
    position: Position = field(default_factory=Position)
    width: float = 280
    height: float = 120
    z_index: int = 0
    selected: bool = False
    data: dict[str, Any] = field(default_factory=dict)

    def get_property(self, key: str, default: Any = None) -> Any:
        """Get a value from the open `properties` bag."""
        properties = self.data.get("properties") or {}
        return properties.get(key, default)

    # Convenience properties for common fields
    @property
    def title(self) -> str:
        return self.data.get("title") or ""

    @property
    def content(self) -> str:
        return self.data.get("content") or ""

    @property
    def parent_id(self) -> str | None:
        return self.data.get("parentId") or None

    @property
    def is_enabled(self) -> bool:
        """False only when explicitly disabled."""
        return self.data.get("enabled") is not False

    @property
    def include_in_context(self) -> bool:
        """False only when explicitly excluded from context assembly."""
        return self.data.get("includeInContext") is not False

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    def clone(self) -> GraphNode:
        """Return a deep copy sharing no mutable state with this node."""
        return copy.deepcopy(self)
