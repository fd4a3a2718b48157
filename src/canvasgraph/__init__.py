"""
canvasgraph - Canvas graph state engine

Holds the nodes and edges of a spatial canvas, records every user-visible
change as an undoable action, and assembles the AI context that flows
into a node along its connections.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("canvasgraph")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"  # Not installed

from canvasgraph.context import ContextAssembler, ContextCache
from canvasgraph.graph import Edge, EdgeStrength, GraphNode, NodeKind, Position
from canvasgraph.graph.builder import CanvasGraph
from canvasgraph.graph.history import HistoryEngine
from canvasgraph.workspace import Workspace

__all__ = [
    "__version__",
    "CanvasGraph",
    "ContextAssembler",
    "ContextCache",
    "Edge",
    "EdgeStrength",
    "GraphNode",
    "HistoryEngine",
    "NodeKind",
    "Position",
    "Workspace",
]
