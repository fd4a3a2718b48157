"""Activation conditions - derive a node's `enabled` flag from its inputs.

A node whose data carries an ``activationCondition`` is enabled or disabled
according to its inbound edges:

- any-connected: some inbound source node is enabled
- all-connected: every inbound source node is enabled (false with none)
- specific-node: the named source is connected and enabled
- edge-property: some inbound edge has ``data.properties[prop] == value``

``invert`` negates the result. Evaluation writes ``data.enabled`` directly
and is not recorded in history.
"""

from __future__ import annotations

import logging
from typing import Any

from canvasgraph.graph.builder import CanvasGraph
from canvasgraph.graph.GraphNode import GraphNode

logger = logging.getLogger(__name__)

TRIGGER_ANY_CONNECTED = "any-connected"
TRIGGER_ALL_CONNECTED = "all-connected"
TRIGGER_SPECIFIC_NODE = "specific-node"
TRIGGER_EDGE_PROPERTY = "edge-property"

_MISSING = object()


def condition_met(graph: CanvasGraph, node: GraphNode, condition: dict[str, Any]) -> bool:
    """Evaluate one activation condition against the current graph."""
    incoming = graph.incoming_edges(node.id)
    trigger = condition.get("trigger")

    def source_enabled(source_id: str) -> bool:
        source = graph.find_by_id(source_id)
        return source is not None and source.is_enabled

    if trigger == TRIGGER_ANY_CONNECTED:
        met = any(source_enabled(e.source) for e in incoming)
    elif trigger == TRIGGER_ALL_CONNECTED:
        met = bool(incoming) and all(source_enabled(e.source) for e in incoming)
    elif trigger == TRIGGER_SPECIFIC_NODE:
        wanted = condition.get("sourceNodeId")
        met = bool(wanted) and any(e.source == wanted for e in incoming) and source_enabled(wanted)
    elif trigger == TRIGGER_EDGE_PROPERTY:
        prop = condition.get("edgeProperty")
        met = bool(prop) and any(
            (e.data.get("properties") or {}).get(prop, _MISSING) == condition.get("edgePropertyValue")
            for e in incoming
        )
    else:
        met = False

    if condition.get("invert"):
        met = not met
    return met


def evaluate_node_activation(graph: CanvasGraph, node_id: str) -> bool:
    """Re-evaluate a single node's activation.

    Returns:
        True if the node's ``enabled`` flag changed.
    """
    node = graph.find_by_id(node_id)
    if node is None:
        return False
    condition = node.data.get("activationCondition")
    if not condition:
        return False
    enabled = condition_met(graph, node, condition)
    if node.data.get("enabled") is enabled:
        return False
    node.data["enabled"] = enabled
    return True


def evaluate_all_node_activations(graph: CanvasGraph) -> set[str]:
    """Run activation evaluation until no flag changes.

    Passes run in node order. Conditions that feed each other are bounded
    by the node count so an inverted cycle cannot loop forever.

    Returns:
        Ids of nodes whose ``enabled`` flag ended up different.
    """
    conditioned = [n.id for n in graph.all_nodes() if n.data.get("activationCondition")]
    if not conditioned:
        return set()
    initial = {nid: graph.find_by_id(nid).data.get("enabled") for nid in conditioned}

    for _ in range(len(conditioned) + 1):
        changed = False
        for node_id in conditioned:
            changed = evaluate_node_activation(graph, node_id) or changed
        if not changed:
            break
    else:
        logger.debug("Activation did not settle after %d passes", len(conditioned) + 1)

    return {
        nid for nid in conditioned if graph.find_by_id(nid).data.get("enabled") != initial[nid]
    }
