"""Tests for activation condition evaluation."""

from canvasgraph.graph import NodeKind
from canvasgraph.graph.activation import (
    condition_met,
    evaluate_all_node_activations,
    evaluate_node_activation,
)
from tests.graph.graph_test_helpers import build_graph, make_edge, make_node


def gated(node_id, **condition):
    return make_node(node_id, NodeKind.ACTION, activationCondition=condition)


class TestConditionMet:
    """Tests for each activation trigger."""

    def test_any_connected(self):
        graph = build_graph(
            [make_node("on"), make_node("off", enabled=False), gated("t", trigger="any-connected")],
            [make_edge("off", "t"), make_edge("on", "t")],
        )
        node = graph.find_by_id("t")
        assert condition_met(graph, node, node.data["activationCondition"]) is True

    def test_any_connected_without_inputs(self):
        graph = build_graph([gated("t", trigger="any-connected")])
        node = graph.find_by_id("t")
        assert condition_met(graph, node, {"trigger": "any-connected"}) is False

    def test_all_connected(self):
        graph = build_graph(
            [make_node("on"), make_node("off", enabled=False), gated("t")],
            [make_edge("on", "t"), make_edge("off", "t")],
        )
        node = graph.find_by_id("t")
        assert condition_met(graph, node, {"trigger": "all-connected"}) is False

        graph.find_by_id("off").data["enabled"] = True
        assert condition_met(graph, node, {"trigger": "all-connected"}) is True

    def test_all_connected_without_inputs(self):
        graph = build_graph([gated("t")])
        node = graph.find_by_id("t")
        assert condition_met(graph, node, {"trigger": "all-connected"}) is False

    def test_specific_node(self):
        graph = build_graph(
            [make_node("a"), make_node("b"), gated("t")],
            [make_edge("a", "t")],
        )
        node = graph.find_by_id("t")
        assert condition_met(graph, node, {"trigger": "specific-node", "sourceNodeId": "a"})
        assert not condition_met(graph, node, {"trigger": "specific-node", "sourceNodeId": "b"})

    def test_edge_property(self):
        graph = build_graph(
            [make_node("a"), gated("t")],
            [make_edge("a", "t", properties={"approved": True})],
        )
        node = graph.find_by_id("t")
        condition = {"trigger": "edge-property", "edgeProperty": "approved", "edgePropertyValue": True}
        assert condition_met(graph, node, condition) is True

        condition["edgePropertyValue"] = False
        assert condition_met(graph, node, condition) is False

    def test_invert(self):
        graph = build_graph([gated("t")])
        node = graph.find_by_id("t")
        assert condition_met(graph, node, {"trigger": "any-connected", "invert": True}) is True

    def test_unknown_trigger(self):
        graph = build_graph([gated("t")])
        node = graph.find_by_id("t")
        assert condition_met(graph, node, {"trigger": "sometimes"}) is False


class TestEvaluateNodeActivation:
    """Tests for evaluate_node_activation()."""

    def test_writes_enabled_flag(self):
        graph = build_graph([gated("t", trigger="any-connected")])

        assert evaluate_node_activation(graph, "t") is True
        assert graph.find_by_id("t").data["enabled"] is False
        assert evaluate_node_activation(graph, "t") is False

    def test_nodes_without_condition_untouched(self):
        graph = build_graph([make_node("a")])
        assert evaluate_node_activation(graph, "a") is False
        assert "enabled" not in graph.find_by_id("a").data


class TestEvaluateAll:
    """Tests for evaluate_all_node_activations()."""

    def test_chain_settles(self):
        # Node order puts the downstream node first, so one pass is not enough.
        graph = build_graph(
            [
                gated("c", trigger="any-connected"),
                gated("b", trigger="any-connected"),
                make_node("a", enabled=False),
            ],
            [make_edge("a", "b"), make_edge("b", "c")],
        )

        changed = evaluate_all_node_activations(graph)

        assert graph.find_by_id("b").data["enabled"] is False
        assert graph.find_by_id("c").data["enabled"] is False
        assert changed == {"b", "c"}

    def test_second_run_is_stable(self):
        graph = build_graph(
            [make_node("a"), gated("b", trigger="any-connected")],
            [make_edge("a", "b")],
        )
        assert evaluate_all_node_activations(graph) == {"b"}
        assert evaluate_all_node_activations(graph) == set()

    def test_inverted_cycle_terminates(self):
        graph = build_graph(
            [
                gated("x", trigger="any-connected", invert=True),
                gated("y", trigger="any-connected"),
            ],
            [make_edge("x", "y"), make_edge("y", "x")],
        )
        evaluate_all_node_activations(graph)
        assert isinstance(graph.find_by_id("x").data["enabled"], bool)
