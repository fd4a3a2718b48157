"""Shared fixtures for canvasgraph tests."""

import pytest

from canvasgraph.graph.history import HistoryEngine
from tests.graph.graph_test_helpers import build_graph, make_edge, make_node


@pytest.fixture
def chain_graph():
    """a -> b -> c"""
    return build_graph(
        [make_node("a"), make_node("b"), make_node("c")],
        [make_edge("a", "b"), make_edge("b", "c")],
    )


@pytest.fixture
def history():
    return HistoryEngine()
