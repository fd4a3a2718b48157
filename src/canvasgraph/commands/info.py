"""
canvasgraph.commands.info - Summarize a workspace snapshot.
"""

from __future__ import annotations

import argparse
import json
from typing import Any

from canvasgraph.commands.snapshot_io import open_workspace
from canvasgraph.workspace import Workspace


def summarize(workspace: Workspace) -> dict[str, Any]:
    """Counts and settings describing a loaded workspace."""
    graph = workspace.graph
    by_kind: dict[str, int] = {}
    for node in graph.all_nodes():
        by_kind[node.kind.value] = by_kind.get(node.kind.value, 0) + 1
    strengths: dict[str, int] = {}
    for edge in graph.all_edges():
        strengths[edge.strength.value] = strengths.get(edge.strength.value, 0) + 1
    return {
        "id": workspace.workspace_id,
        "name": workspace.name,
        "nodes": graph.node_count(),
        "edges": graph.edge_count(),
        "inactiveEdges": sum(1 for e in graph.all_edges() if not e.is_active),
        "trash": len(graph.trash),
        "nodesByKind": by_kind,
        "edgesByStrength": strengths,
        "contextSettings": dict(workspace.context_settings),
    }


def run(args: argparse.Namespace) -> int:
    """Run the info command."""
    summary = summarize(open_workspace(args))

    if getattr(args, "json", False):
        print(json.dumps(summary, indent=2))
        return 0

    print(f"Workspace: {summary['name']} ({summary['id']})")
    print(f"  Nodes: {summary['nodes']}")
    for kind, count in sorted(summary["nodesByKind"].items()):
        print(f"    {kind}: {count}")
    print(f"  Edges: {summary['edges']} ({summary['inactiveEdges']} inactive)")
    for strength, count in sorted(summary["edgesByStrength"].items()):
        print(f"    {strength}: {count}")
    print(f"  Trash: {summary['trash']}")
    print(f"  Context depth: {summary['contextSettings'].get('globalDepth')}")
    return 0
