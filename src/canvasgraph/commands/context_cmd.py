"""
canvasgraph.commands.context_cmd - Print the assembled context of a node.
"""

from __future__ import annotations

import argparse
import sys

from canvasgraph.commands.snapshot_io import open_workspace


def run(args: argparse.Namespace) -> int:
    """Run the context command."""
    workspace = open_workspace(args)

    if not workspace.graph.has_node(args.node_id):
        print(f"Error: Node not found: {args.node_id}", file=sys.stderr)
        return 1

    depth = getattr(args, "depth", None)
    if depth is not None:
        if depth < 0:
            print("Error: --depth must be zero or greater", file=sys.stderr)
            return 1
        workspace.update_context_settings(globalDepth=depth)

    text = workspace.get_context_for_node(args.node_id)
    if text:
        print(text)
    elif not getattr(args, "quiet", False):
        print("(no context)", file=sys.stderr)
    return 0
