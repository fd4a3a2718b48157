"""
canvasgraph.commands - CLI command implementations
"""

__all__ = [
    "context_cmd",
    "health",
    "info",
    "snapshot_io",
]
