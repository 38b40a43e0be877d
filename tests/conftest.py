"""Shared test fixtures for the concept map editor."""

import pytest

from conceptmap_core.config import EditorConfig
from conceptmap_core.models import Edge, Node, NodeData, Position
from conceptmap_backend.map_manager import MapManager

FAST_DEBOUNCE = 0.05


def make_node(node_id: str, x: float = 0.0, y: float = 0.0, label: str | None = None) -> Node:
    """A node with a fixed id and position."""
    return Node(id=node_id, position=Position(x=x, y=y), data=NodeData(label=label or node_id))


def make_edge(source: str, target: str, edge_id: str | None = None) -> Edge:
    return Edge(id=edge_id or f"{source}->{target}", source=source, target=target)


@pytest.fixture
def editor_config():
    """Editor config with a short debounce window so tests stay fast."""
    return EditorConfig(debounce_delay=FAST_DEBOUNCE, max_history=None)


@pytest.fixture
def manager(editor_config):
    """A fresh editing session."""
    session = MapManager(config=editor_config)
    yield session
    session.close()


@pytest.fixture
def abc_graph():
    """Nodes A, B, C with edges A->B and A->C."""
    nodes = [make_node("A", 10, 20), make_node("B", 30, 40), make_node("C", 50, 60)]
    edges = [make_edge("A", "B"), make_edge("A", "C")]
    return nodes, edges
