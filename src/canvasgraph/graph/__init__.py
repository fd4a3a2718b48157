"""Graph module - Core canvas graph data structures.

Exports:
- NodeKind: Enum of node types
- Position: Canvas position of a node
- GraphNode: Unified node representation
- Edge: Directed edge between nodes
- EdgeStrength / EdgeDirection: Edge semantics
- HistoryAction: Base of the undoable mutation records
- Batch: Composite history action
- TrashedItem: Soft-deleted node with its edges

Note: CanvasGraph is in canvasgraph.graph.builder and HistoryEngine in
canvasgraph.graph.history.
"""

from canvasgraph.graph.GraphNode import GraphNode, NodeKind, Position, Size
from canvasgraph.graph.mutations import Batch, HistoryAction, TrashedItem
from canvasgraph.graph.relations import Edge, EdgeDirection, EdgeStrength

__all__ = [
    "NodeKind",
    "Position",
    "Size",
    "GraphNode",
    "Edge",
    "EdgeStrength",
    "EdgeDirection",
    "HistoryAction",
    "Batch",
    "TrashedItem",
]
