"""Tests for CanvasGraph mutations and queries."""

import pytest

from canvasgraph.graph import NodeKind, Position
from canvasgraph.graph.builder import CanvasGraph
from canvasgraph.graph.mutations import AddNode, Batch, DeleteEdge, ReconnectEdge, ReverseEdge
from tests.graph.graph_test_helpers import build_graph, make_edge, make_node


def node_ids(graph):
    return [n.id for n in graph.all_nodes()]


def edge_ids(graph):
    return [e.id for e in graph.all_edges()]


class TestAddNode:
    """Tests for CanvasGraph.add_node()."""

    def test_creates_node_with_kind_defaults(self):
        graph = CanvasGraph()
        action = graph.add_node("note", Position(10, 20))

        node = graph.find_by_id(action.node.id)
        assert isinstance(action, AddNode)
        assert node.kind == NodeKind.NOTE
        assert node.data["title"] == "New Note"
        assert node.data["type"] == "note"
        assert node.position == Position(10, 20)
        assert (node.width, node.height) == (280, 140)
        assert "createdAt" in node.data

    def test_z_index_above_existing_nodes(self):
        graph = build_graph([make_node("a", z_index=5), make_node("b", z_index=2)])
        action = graph.add_node(NodeKind.TASK)
        assert graph.find_by_id(action.node.id).z_index == 6

    def test_z_index_at_least_one_when_all_negative(self):
        graph = build_graph([make_node("a", z_index=-3)])
        action = graph.add_node(NodeKind.TASK)
        assert graph.find_by_id(action.node.id).z_index == 1

    def test_new_node_is_only_selection(self):
        graph = build_graph([make_node("a")])
        graph.find_by_id("a").selected = True

        action = graph.add_node("note")

        assert graph.find_by_id("a").selected is False
        assert graph.find_by_id(action.node.id).selected is True

    def test_unknown_kind_raises(self):
        graph = CanvasGraph()
        with pytest.raises(ValueError, match="Unknown node kind"):
            graph.add_node("spreadsheet")
        assert graph.node_count() == 0

    def test_property_schema_defaults(self):
        schema = {"defaults": {"task": {"status": "in-progress", "estimate": 3, "owner": ""}}}
        graph = CanvasGraph()
        action = graph.add_node("task", property_schema=schema)

        data = graph.find_by_id(action.node.id).data
        assert data["status"] == "in-progress"
        assert data["properties"] == {"estimate": 3}

    def test_undo_and_redo(self):
        graph = CanvasGraph()
        action = graph.add_node("note")

        action.undo(graph)
        assert graph.node_count() == 0

        action.redo(graph)
        assert graph.has_node(action.node.id)

    def test_factories_do_not_share_state(self):
        graph = CanvasGraph()
        first = graph.add_node("project").node.id
        second = graph.add_node("project").node.id

        graph.find_by_id(first).data["childNodeIds"].append("x")

        assert graph.find_by_id(second).data["childNodeIds"] == []


class TestUpdateNode:
    """Tests for CanvasGraph.update_node()."""

    def test_merges_fields_and_stamps(self):
        graph = build_graph([make_node("a", title="Old", content="body")])
        action = graph.update_node("a", {"title": "New"})

        data = graph.find_by_id("a").data
        assert data["title"] == "New"
        assert data["content"] == "body"
        assert "updatedAt" in data
        assert action.before["title"] == "Old"

    def test_unknown_node_returns_none(self):
        assert CanvasGraph().update_node("missing", {"title": "x"}) is None

    def test_type_change_converts_kind_and_undo_restores(self):
        graph = build_graph([make_node("a", title="Idea")])
        action = graph.update_node("a", {"type": "task"})
        assert graph.find_by_id("a").kind == NodeKind.TASK

        action.undo(graph)
        assert graph.find_by_id("a").kind == NodeKind.NOTE
        assert graph.find_by_id("a").data["title"] == "Idea"

    def test_bulk_update_skips_missing(self):
        graph = build_graph([make_node("a"), make_node("b")])
        action = graph.update_bulk_nodes(["a", "missing", "b"], {"color": "#fff"})

        assert len(action.updates) == 2
        assert action.label == "Edit 2 nodes"
        assert graph.find_by_id("b").data["color"] == "#fff"

        action.undo(graph)
        assert "color" not in graph.find_by_id("a").data


class TestResizeNode:
    """Tests for CanvasGraph.resize_node()."""

    def test_clamps_to_minimum(self):
        graph = build_graph([make_node("a")])
        graph.resize_node("a", 10, 10)
        node = graph.find_by_id("a")
        assert (node.width, node.height) == (150, 80)

    def test_unchanged_size_returns_none(self):
        graph = build_graph([make_node("a")])
        node = graph.find_by_id("a")
        assert graph.resize_node("a", node.width, node.height) is None

    def test_undo_restores_size(self):
        graph = build_graph([make_node("a")])
        action = graph.resize_node("a", 500, 400)
        action.undo(graph)
        node = graph.find_by_id("a")
        assert (node.width, node.height) == (280, 120)


class TestDeleteNodes:
    """Tests for CanvasGraph.delete_nodes()."""

    def test_removes_node_and_incident_edges(self, chain_graph):
        batch = chain_graph.delete_nodes(["b"])

        assert isinstance(batch, Batch)
        assert node_ids(chain_graph) == ["a", "c"]
        assert edge_ids(chain_graph) == []
        assert batch.label == "Delete node"
        assert len(batch) == 3

    def test_undo_restores_original_order(self, chain_graph):
        chain_graph.update_edge("a-b", {"strength": "strong", "label": "feeds"})
        edge_data = [dict(e.data) for e in chain_graph.all_edges()]

        batch = chain_graph.delete_nodes(["b"])
        batch.undo(chain_graph)

        assert node_ids(chain_graph) == ["a", "b", "c"]
        assert edge_ids(chain_graph) == ["a-b", "b-c"]
        assert [e.data for e in chain_graph.all_edges()] == edge_data
        assert chain_graph.find_edge("a-b").data["strength"] == "strong"

    def test_multiple_nodes_label(self, chain_graph):
        batch = chain_graph.delete_nodes(["a", "c"])
        assert batch.label == "Delete 2 nodes"
        assert node_ids(chain_graph) == ["b"]

        batch.undo(chain_graph)
        assert node_ids(chain_graph) == ["a", "b", "c"]

    def test_unknown_ids_return_none(self, chain_graph):
        assert chain_graph.delete_nodes(["zzz"]) is None
        assert chain_graph.node_count() == 3

    def test_deleting_project_detaches_children(self):
        graph = build_graph(
            [
                make_node("p", NodeKind.PROJECT, childNodeIds=["a"]),
                make_node("a", parentId="p"),
            ]
        )
        batch = graph.delete_nodes(["p"])
        assert "parentId" not in graph.find_by_id("a").data

        batch.undo(graph)
        assert graph.find_by_id("a").data["parentId"] == "p"

    def test_deleting_child_updates_project(self):
        graph = build_graph(
            [
                make_node("p", NodeKind.PROJECT, childNodeIds=["a", "b"]),
                make_node("a", parentId="p"),
                make_node("b", parentId="p"),
            ]
        )
        batch = graph.delete_nodes(["a"])
        assert graph.child_node_ids("p") == ["b"]

        batch.undo(graph)
        assert graph.child_node_ids("p") == ["a", "b"]


class TestAddEdge:
    """Tests for CanvasGraph.add_edge()."""

    def test_creates_edge_with_defaults(self):
        graph = build_graph([make_node("a"), make_node("b")])
        action = graph.add_edge("a", "b", "right-source", "left-target")

        edge = graph.find_edge("a-b")
        assert action.edge.id == "a-b"
        assert edge.data["strength"] == "normal"
        assert edge.data["direction"] == "unidirectional"
        assert edge.is_active
        assert edge.source_handle == "right-source"

    def test_duplicate_pair_rejected(self):
        graph = build_graph([make_node("a"), make_node("b")])
        graph.add_edge("a", "b")
        assert graph.add_edge("a", "b") is None
        assert graph.edge_count() == 1

    def test_reverse_pair_is_distinct(self):
        graph = build_graph([make_node("a"), make_node("b")])
        graph.add_edge("a", "b")
        assert graph.add_edge("b", "a") is not None
        assert graph.edge_count() == 2

    def test_missing_or_empty_endpoint_rejected(self):
        graph = build_graph([make_node("a")])
        assert graph.add_edge("a", "missing") is None
        assert graph.add_edge("", "a") is None
        assert graph.edge_count() == 0

    def test_intra_project_and_outgoing_color(self):
        graph = build_graph(
            [
                make_node("a", parentId="p", outgoingEdgeColor="#123456"),
                make_node("b", parentId="p"),
                make_node("c"),
            ]
        )
        graph.add_edge("a", "b")
        graph.add_edge("a", "c")

        assert graph.find_edge("a-b").data["intraProject"] is True
        assert graph.find_edge("a-b").data["color"] == "#123456"
        assert graph.find_edge("a-c").data["intraProject"] is False

    def test_delete_edges_batch_undo(self, chain_graph):
        batch = chain_graph.delete_edges(["a-b"])
        assert edge_ids(chain_graph) == ["b-c"]
        assert batch.label == "Delete connection"

        batch.undo(chain_graph)
        assert edge_ids(chain_graph) == ["a-b", "b-c"]


class TestReverseEdge:
    """Tests for CanvasGraph.reverse_edge()."""

    def test_swaps_endpoints_and_handles(self):
        graph = build_graph([make_node("a"), make_node("b")])
        graph.add_edge("a", "b", "right-source", "left-target")

        action = graph.reverse_edge("a-b")

        edge = graph.find_edge("a-b")
        assert isinstance(action, ReverseEdge)
        assert (edge.source, edge.target) == ("b", "a")
        assert edge.source_handle == "left-source"
        assert edge.target_handle == "right-target"

    def test_undo_restores_direction(self):
        graph = build_graph([make_node("a"), make_node("b")])
        graph.add_edge("a", "b", "right-source", "left-target")
        action = graph.reverse_edge("a-b")

        action.undo(graph)

        edge = graph.find_edge("a-b")
        assert (edge.source, edge.target) == ("a", "b")
        assert edge.source_handle == "right-source"

    def test_existing_reverse_pair_blocks(self):
        graph = build_graph([make_node("a"), make_node("b")], [make_edge("a", "b")])
        graph.insert_edge(make_edge("b", "a"))
        assert graph.reverse_edge("a-b") is None

    def test_re_adding_reversed_pair_gets_fresh_id(self):
        graph = build_graph([make_node("a"), make_node("b")])
        graph.add_edge("a", "b")
        graph.reverse_edge("a-b")

        action = graph.add_edge("a", "b")

        assert action.edge.id != "a-b"
        assert len(set(edge_ids(graph))) == 2

        action.undo(graph)
        assert edge_ids(graph) == ["a-b"]
        reversed_edge = graph.find_edge("a-b")
        assert (reversed_edge.source, reversed_edge.target) == ("b", "a")


class TestReconnectEdge:
    """Tests for CanvasGraph.reconnect_edge()."""

    def test_retargets_edge(self, chain_graph):
        action = chain_graph.reconnect_edge("a-b", "a", "c")

        assert isinstance(action, ReconnectEdge)
        assert edge_ids(chain_graph) == ["a-c", "b-c"]

        action.undo(chain_graph)
        assert edge_ids(chain_graph) == ["a-b", "b-c"]
        assert chain_graph.find_edge("a-b").target == "b"

    def test_existing_pair_drops_old_edge(self, chain_graph):
        action = chain_graph.reconnect_edge("a-b", "b", "c")

        assert isinstance(action, DeleteEdge)
        assert edge_ids(chain_graph) == ["b-c"]

        action.undo(chain_graph)
        assert edge_ids(chain_graph) == ["a-b", "b-c"]

    def test_missing_endpoint_is_noop(self, chain_graph):
        assert chain_graph.reconnect_edge("a-b", "a", "zzz") is None
        assert edge_ids(chain_graph) == ["a-b", "b-c"]

    def test_reconnect_onto_reversed_id_stays_unique(self, chain_graph):
        chain_graph.reverse_edge("a-b")

        action = chain_graph.reconnect_edge("b-c", "a", "b")

        assert isinstance(action, ReconnectEdge)
        ids = edge_ids(chain_graph)
        assert len(set(ids)) == 2
        assert ids[0] == "a-b"
        assert chain_graph.find_edge(ids[1]).source == "a"

        action.undo(chain_graph)
        assert edge_ids(chain_graph) == ["a-b", "b-c"]
        assert chain_graph.find_edge("a-b").source == "b"


class TestReorderLayers:
    """Tests for CanvasGraph.reorder_layers()."""

    @pytest.fixture
    def stacked(self):
        return build_graph(
            [make_node("a", z_index=1), make_node("b", z_index=2), make_node("c", z_index=3)]
        )

    def test_layer_order_top_first(self, stacked):
        assert stacked.layer_order() == ["c", "b", "a"]

    def test_bring_to_front(self, stacked):
        action = stacked.reorder_layers(["a"], 0)

        assert stacked.layer_order() == ["a", "c", "b"]
        assert [stacked.find_by_id(n).z_index for n in ("a", "b", "c")] == [3, 1, 2]
        assert action.label == "Reorder 3 layers"

    def test_send_to_back(self, stacked):
        stacked.reorder_layers(["c"], 3)
        assert stacked.layer_order() == ["b", "a", "c"]

    def test_undo_restores_z(self, stacked):
        action = stacked.reorder_layers(["a"], 0)
        action.undo(stacked)
        assert stacked.layer_order() == ["c", "b", "a"]

    def test_no_change_returns_none(self, stacked):
        assert stacked.reorder_layers(["c"], 0) is None


class TestMessages:
    """Tests for conversation message mutations."""

    @pytest.fixture
    def convo(self):
        return build_graph(
            [make_node("chat", NodeKind.CONVERSATION, title="New Conversation", messages=[])]
        )

    def test_first_user_message_sets_title(self, convo):
        convo.add_message("chat", "user", "How do I bake bread?")
        assert convo.find_by_id("chat").title == "How do I bake bread?"

    def test_long_title_truncated(self, convo):
        convo.add_message("chat", "user", "x" * 60)
        assert convo.find_by_id("chat").title == "x" * 50 + "..."

    def test_later_messages_keep_title(self, convo):
        convo.add_message("chat", "user", "First")
        convo.add_message("chat", "user", "Second")
        assert convo.find_by_id("chat").title == "First"

    def test_undo_removes_message_and_restores_title(self, convo):
        action = convo.add_message("chat", "user", "Hello")
        action.undo(convo)

        node = convo.find_by_id("chat")
        assert node.data["messages"] == []
        assert node.title == "New Conversation"
        assert action.label == "Add user message"

    def test_non_conversation_ignored(self):
        graph = build_graph([make_node("n")])
        assert graph.add_message("n", "user", "hi") is None

    def test_delete_message_undo_restores_position(self, convo):
        for text in ("one", "two", "three"):
            convo.add_message("chat", "user", text)

        action = convo.delete_message("chat", 1)
        contents = [m["content"] for m in convo.find_by_id("chat").data["messages"]]
        assert contents == ["one", "three"]

        action.undo(convo)
        contents = [m["content"] for m in convo.find_by_id("chat").data["messages"]]
        assert contents == ["one", "two", "three"]

    def test_streaming_helpers(self, convo):
        convo.add_message("chat", "assistant", "")
        assert convo.remove_last_message("chat") is True
        assert convo.find_by_id("chat").data["messages"] == []

        convo.add_message("chat", "assistant", "")
        convo.update_last_message("chat", "partial answer")
        assert convo.remove_last_message("chat") is False
        assert convo.find_by_id("chat").data["messages"][-1]["content"] == "partial answer"


class TestProjectMembership:
    """Tests for add_node_to_project() / remove_node_from_project()."""

    @pytest.fixture
    def projects(self):
        return build_graph(
            [
                make_node("p1", NodeKind.PROJECT, childNodeIds=[], color="#ff0000"),
                make_node("p2", NodeKind.PROJECT, childNodeIds=[]),
                make_node("a"),
                make_node("b"),
            ],
            [make_edge("a", "b")],
        )

    def test_membership_is_bidirectional(self, projects):
        assert projects.add_node_to_project("a", "p1") is not None

        assert projects.find_by_id("a").parent_id == "p1"
        assert projects.child_node_ids("p1") == ["a"]
        assert projects.find_by_id("a").data["color"] == "#ff0000"

    def test_intra_project_refreshed(self, projects):
        projects.add_node_to_project("a", "p1")
        assert projects.find_edge("a-b").data["intraProject"] is False

        projects.add_node_to_project("b", "p1")
        assert projects.find_edge("a-b").data["intraProject"] is True

    def test_moving_between_projects(self, projects):
        projects.add_node_to_project("a", "p1")
        projects.add_node_to_project("a", "p2")

        assert projects.child_node_ids("p1") == []
        assert projects.child_node_ids("p2") == ["a"]

    def test_projects_cannot_nest(self, projects):
        assert projects.add_node_to_project("p2", "p1") is None

    def test_remove_from_project(self, projects):
        projects.add_node_to_project("a", "p1")
        assert projects.remove_node_from_project("a") is not None
        assert projects.find_by_id("a").parent_id is None
        assert projects.child_node_ids("p1") == []
        assert projects.remove_node_from_project("a") is None

    def test_undo_move_restores_both_projects(self, projects):
        projects.add_node_to_project("a", "p1")
        batch = projects.add_node_to_project("a", "p2")

        batch.undo(projects)

        assert projects.find_by_id("a").parent_id == "p1"
        assert projects.child_node_ids("p1") == ["a"]
        assert projects.child_node_ids("p2") == []

        batch.redo(projects)
        assert projects.find_by_id("a").parent_id == "p2"
        assert projects.child_node_ids("p1") == []
        assert projects.child_node_ids("p2") == ["a"]

    def test_undo_remove_restores_intra_project_edges(self, projects):
        projects.add_node_to_project("a", "p1")
        projects.add_node_to_project("b", "p1")
        batch = projects.remove_node_from_project("b")
        assert projects.find_edge("a-b").data["intraProject"] is False

        batch.undo(projects)

        assert projects.find_by_id("b").parent_id == "p1"
        assert projects.child_node_ids("p1") == ["a", "b"]
        assert projects.find_edge("a-b").data["intraProject"] is True


class TestTrash:
    """Tests for soft delete and restore."""

    def test_soft_delete_moves_node_and_edges(self, chain_graph):
        items = chain_graph.soft_delete_nodes(["b"])

        assert len(items) == 1
        assert [e.id for e in items[0].edges] == ["a-b", "b-c"]
        assert node_ids(chain_graph) == ["a", "c"]
        assert chain_graph.edge_count() == 0

    def test_trash_capped_oldest_evicted(self):
        graph = build_graph([make_node(f"n{i}") for i in range(55)])
        for i in range(55):
            graph.soft_delete_nodes([f"n{i}"])

        assert len(graph.trash) == 50
        assert graph.trash[0].node.id == "n5"
        assert graph.trash[-1].node.id == "n54"

    def test_restore_prunes_edges_to_missing_nodes(self, chain_graph):
        chain_graph.soft_delete_nodes(["b"])
        chain_graph.soft_delete_nodes(["c"])

        restored = chain_graph.restore_from_trash(0)

        assert restored.id == "b"
        assert edge_ids(chain_graph) == ["a-b"]
        assert len(chain_graph.trash) == 1

    def test_restore_invalid_index_ignored(self, chain_graph):
        assert chain_graph.restore_from_trash(3) is None
        assert chain_graph.restore_from_trash(-1) is None

    def test_permanent_delete_and_empty(self, chain_graph):
        chain_graph.soft_delete_nodes(["a"])
        chain_graph.soft_delete_nodes(["c"])

        removed = chain_graph.permanently_delete(0)
        assert removed.node.id == "a"
        assert [item.node.id for item in chain_graph.trash] == ["c"]

        chain_graph.empty_trash()
        assert chain_graph.trash == []


class TestQueries:
    """Tests for read-only graph queries."""

    def test_connected_nodes(self, chain_graph):
        assert [n.id for n in chain_graph.connected_nodes("b")] == ["a", "c"]

    def test_incoming_and_outgoing(self, chain_graph):
        assert [e.id for e in chain_graph.incoming_edges("b")] == ["a-b"]
        assert [e.id for e in chain_graph.outgoing_edges("b")] == ["b-c"]

    def test_clone_is_independent(self, chain_graph):
        copy = chain_graph.clone()
        copy.find_by_id("a").data["title"] = "changed"
        copy.remove_edge("a-b")

        assert "title" not in chain_graph.find_by_id("a").data
        assert chain_graph.edge_count() == 2

    def test_edge_str_shows_strength(self, chain_graph):
        chain_graph.update_edge("b-c", {"strength": "strong"})
        assert str(chain_graph.find_edge("a-b")) == "a --[normal]--> b"
        assert str(chain_graph.find_edge("b-c")) == "b --[strong]--> c"
