"""Context module - AI context assembly over the canvas graph.

Exports:
- ContextAssembler: BFS collection and ranking
- ContextItem: A node reached during traversal
- ContextCache: Per-node cache keyed by graph fingerprint
- RenderOptions: Rendering limits
"""

from canvasgraph.context.builder import ContextAssembler, ContextItem
from canvasgraph.context.cache import ContextCache, GraphState, compute_cache_key
from canvasgraph.context.render import RenderOptions, render_node

__all__ = [
    "ContextAssembler",
    "ContextItem",
    "ContextCache",
    "GraphState",
    "compute_cache_key",
    "RenderOptions",
    "render_node",
]
