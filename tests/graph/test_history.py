"""Tests for HistoryEngine undo/redo."""

import copy

import pytest

from canvasgraph.graph import Batch, Position
from canvasgraph.graph.builder import CanvasGraph
from canvasgraph.graph.history import HistoryEngine
from canvasgraph.graph.mutations import MoveNode, ResizeNode
from tests.graph.graph_test_helpers import build_graph, make_node


def graph_state(graph):
    """Node and edge content, ignoring selection."""
    nodes = [(n.id, n.kind, n.position, n.z_index, n.data) for n in graph.all_nodes()]
    edges = [(e.id, e.source, e.target, e.data) for e in graph.all_edges()]
    return copy.deepcopy((nodes, edges))


@pytest.fixture
def graph():
    return CanvasGraph()


class TestPush:
    """Tests for HistoryEngine.push()."""

    def test_cursor_tracks_tail(self, graph, history):
        history.push(graph.add_node("note"))
        history.push(graph.add_node("note"))

        assert len(history) == 2
        assert history.history_index == 1
        assert history.can_undo()
        assert not history.can_redo()

    def test_action_str_names_type_and_label(self, graph):
        assert str(graph.add_node("note")) == "ADD_NODE(Create node)"

    def test_rejects_non_actions(self, history):
        with pytest.raises(TypeError):
            history.push({"type": "ADD_NODE"})
        assert len(history) == 0

    def test_push_discards_redo_branch(self, graph, history):
        history.push(graph.add_node("note"))
        history.push(graph.add_node("task"))
        history.undo(graph)

        history.push(graph.add_node("project"))

        assert len(history) == 2
        assert history.labels() == ["Create node", "Create node"]
        assert not history.can_redo()

    def test_cap_drops_oldest(self, graph):
        history = HistoryEngine(max_entries=100)
        actions = [graph.add_node("note") for _ in range(101)]
        for action in actions:
            history.push(action)

        assert len(history) == 100
        assert history.history_index == 99
        assert history.get(0) is actions[1]

    def test_invalid_cap(self):
        with pytest.raises(ValueError):
            HistoryEngine(max_entries=0)


class TestUndoRedo:
    """Tests for HistoryEngine.undo() / redo()."""

    def test_boundaries_are_noops(self, graph, history):
        assert history.undo(graph) is None
        assert history.redo(graph) is None
        assert history.history_index == -1

    def test_undo_all_then_redo_all_round_trips(self, graph, history):
        first = graph.add_node("note")
        history.push(first)
        second = graph.add_node("task")
        history.push(second)
        history.push(graph.add_edge(first.node.id, second.node.id))
        history.push(graph.update_node(first.node.id, {"title": "Edited"}))
        history.push(graph.delete_nodes([second.node.id]))
        final = graph_state(graph)

        while history.can_undo():
            history.undo(graph)
        assert graph.node_count() == 0
        assert graph.edge_count() == 0

        while history.can_redo():
            history.redo(graph)
        assert graph_state(graph) == final

    def test_undo_returns_action(self, graph, history):
        action = graph.add_node("note")
        history.push(action)
        assert history.undo(graph) is action
        assert history.redo(graph) is action

    def test_history_does_not_alias_graph(self, graph, history):
        action = graph.add_node("note")
        history.push(action)
        graph.find_by_id(action.node.id).data["title"] = "mutated later"

        history.undo(graph)
        history.redo(graph)

        assert graph.find_by_id(action.node.id).data["title"] == "New Note"

    def test_clear(self, graph, history):
        history.push(graph.add_node("note"))
        history.clear()
        assert len(history) == 0
        assert history.history_index == -1


class TestCommitBatch:
    """Tests for HistoryEngine.commit_batch()."""

    def test_empty_records_nothing(self, history):
        assert history.commit_batch([]) is None
        assert len(history) == 0

    def test_single_action_unwrapped(self, graph, history):
        action = graph.add_node("note")
        assert history.commit_batch([action]) is action

    def test_batch_undo_in_reverse(self, graph, history):
        add = graph.add_node("note")
        update = graph.update_node(add.node.id, {"title": "Filled"})
        recorded = history.commit_batch([add, update], description="Create and fill")

        assert isinstance(recorded, Batch)
        assert recorded.label == "Create and fill"

        history.undo(graph)
        assert graph.node_count() == 0

        history.redo(graph)
        assert graph.find_by_id(add.node.id).title == "Filled"

    def test_rejects_non_action_members(self, graph, history):
        with pytest.raises(TypeError):
            history.commit_batch([graph.add_node("note"), "oops"])

    def test_batch_rejects_non_action_members(self):
        with pytest.raises(TypeError):
            Batch(actions=["oops"])


class TestGestures:
    """Tests for drag and resize coalescing."""

    @pytest.fixture
    def two_nodes(self):
        return build_graph([make_node("a"), make_node("b")])

    def test_drag_records_single_step(self, two_nodes, history):
        history.start_node_drag(two_nodes, ["a", "b"])
        for step in range(1, 20):
            two_nodes.move_node("a", Position(step, step))
            two_nodes.move_node("b", Position(-step, 0))
        recorded = history.commit_node_drag(two_nodes, ["a", "b"])

        assert len(history) == 1
        assert isinstance(recorded, Batch)
        assert recorded.label == "Move 2 nodes"

        history.undo(two_nodes)
        assert two_nodes.find_by_id("a").position == Position(0, 0)
        assert two_nodes.find_by_id("b").position == Position(0, 0)

    def test_drag_single_node(self, two_nodes, history):
        history.start_node_drag(two_nodes, ["a"])
        two_nodes.move_node("a", Position(5, 5))
        recorded = history.commit_node_drag(two_nodes, ["a"])
        assert isinstance(recorded, MoveNode)

    def test_drag_without_movement_records_nothing(self, two_nodes, history):
        history.start_node_drag(two_nodes, ["a"])
        assert history.commit_node_drag(two_nodes, ["a"]) is None
        assert len(history) == 0

    def test_resize_records_net_change(self, two_nodes, history):
        history.start_node_resize(two_nodes, "a")
        two_nodes.set_node_size("a", 300, 200)
        two_nodes.set_node_size("a", 400, 250)
        recorded = history.commit_node_resize(two_nodes, "a")

        assert isinstance(recorded, ResizeNode)
        assert (recorded.after.width, recorded.after.height) == (400, 250)

        history.undo(two_nodes)
        assert two_nodes.find_by_id("a").width == 280
