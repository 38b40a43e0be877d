"""Tests for the editing session manager."""

import asyncio
import json

import pytest

from conceptmap_backend.map_manager import describe_connection
from conceptmap_core.errors import (
    EdgeNotFoundError,
    MapImportError,
    NodeNotFoundError,
    UnknownLayoutError,
)
from conceptmap_core.models import DEFAULT_NODE_SHAPE, Position
from conceptmap_core.validation import IssueSeverity
from tests.conftest import FAST_DEBOUNCE

ABC_DOCUMENT = json.dumps({
    "nodes": [
        {"id": "A", "position": {"x": 10, "y": 20}, "data": {"label": "A"}},
        {"id": "B", "position": {"x": 30, "y": 40}, "data": {"label": "B"}},
        {"id": "C", "position": {"x": 50, "y": 60}, "data": {"label": "C"}},
    ],
    "edges": [
        {"id": "e1", "source": "A", "target": "B"},
        {"id": "e2", "source": "A", "target": "C"},
    ],
    "viewMode": "free-flow",
    "title": "Letters",
})


def positions_of(nodes):
    return {n.id: (n.position.x, n.position.y) for n in nodes}


async def settle():
    await asyncio.sleep(FAST_DEBOUNCE * 3)


@pytest.fixture
def abc_manager(manager):
    manager.import_json(ABC_DOCUMENT)
    return manager


class TestSeedState:
    def test_new_session(self, manager):
        assert [n.id for n in manager.nodes] == ["1"]
        assert manager.nodes[0].label == "Central Concept"
        assert manager.edges == []
        assert manager.view_mode == "free-flow"
        assert len(manager.history) == 1
        assert not manager.can_undo

    def test_reset(self, manager):
        manager.add_node(position=Position(x=1, y=1))
        manager.apply_layout("tree")
        manager.set_title("Scratch")

        manager.reset()

        assert [n.id for n in manager.nodes] == ["1"]
        assert manager.view_mode == "free-flow"
        assert manager.title == "Concept Map"
        assert len(manager.history) == 1
        assert len(manager.layout_engine.cache) == 0


class TestNodeOperations:
    def test_add_node_commits(self, manager):
        node = manager.add_node(shape="diamond", position=Position(x=5, y=6), label="Idea")

        assert node.data.shape == "diamond"
        assert node.label == "Idea"
        assert manager.get_node(node.id) is node
        assert len(manager.history) == 2

        manager.undo()
        assert manager.get_node(node.id) is None

    def test_add_node_random_position(self, manager):
        node = manager.add_node()
        assert 100 <= node.position.x < 600
        assert 100 <= node.position.y < 600
        assert node.label == "New Node"
        assert node.data.shape == DEFAULT_NODE_SHAPE

    def test_delete_node_removes_incident_edges(self, abc_manager):
        abc_manager.delete_node("A")

        assert [n.id for n in abc_manager.nodes] == ["B", "C"]
        assert abc_manager.edges == []
        assert abc_manager.get_edge("e1") is None

    def test_duplicate_node(self, manager):
        copy = manager.duplicate_node("1")

        assert copy.id != "1"
        assert copy.label == "Central Concept (Copy)"
        assert (copy.position.x, copy.position.y) == (350, 300)
        assert copy.data.tags == ["main"]
        assert manager.get_node("1").label == "Central Concept"

    def test_align_nodes(self, manager):
        manager.add_node(position=Position(x=350, y=0))

        assert manager.align_nodes() is True
        assert {n.position.x for n in manager.nodes} == {300}
        assert manager.align_nodes(["1"]) is False

    def test_missing_node(self, manager):
        with pytest.raises(NodeNotFoundError):
            manager.delete_node("ghost")
        with pytest.raises(NodeNotFoundError):
            manager.duplicate_node("ghost")
        assert len(manager.history) == 1


class TestEdgeOperations:
    def test_connect_copies_labels(self, abc_manager):
        edge = abc_manager.connect("B", "C", source_handle="right-source")

        assert edge.data.source_label == "B"
        assert edge.data.target_label == "C"
        assert edge.data.source_handle == "right-source"
        assert edge.data.target_handle == "top"
        assert abc_manager.get_edge(edge.id) is edge

    def test_parallel_edges_allowed(self, abc_manager):
        abc_manager.connect("A", "B")
        assert len([e for e in abc_manager.edges if (e.source, e.target) == ("A", "B")]) == 2

    def test_connect_missing_node(self, manager):
        with pytest.raises(NodeNotFoundError):
            manager.connect("1", "ghost")
        assert manager.edges == []

    def test_delete_edge(self, abc_manager):
        abc_manager.delete_edge("e1")
        assert [e.id for e in abc_manager.edges] == ["e2"]

        with pytest.raises(EdgeNotFoundError):
            abc_manager.delete_edge("e1")


@pytest.mark.parametrize("label,handle,expected", [
    ("Central Concept", "bottom-source", "Connection created from bottom of Central Concept"),
    ("Idea", "left", "Connection created from left of Idea"),
    ("Idea", None, "Connection created of Idea"),
    ("<b>Bold</b>", "top", "Connection created from top of bBold/b"),
])
def test_describe_connection(label, handle, expected):
    assert describe_connection(label, handle) == expected


class TestLayoutSwitching:
    def test_tree_layout(self, abc_manager):
        nodes = abc_manager.apply_layout("tree")

        assert abc_manager.view_mode == "tree"
        assert positions_of(nodes) == {"A": (400, 100), "B": (275, 250), "C": (525, 250)}

    def test_undo_restores_mode_and_positions(self, abc_manager):
        abc_manager.apply_layout("tree")

        abc_manager.undo()
        assert abc_manager.view_mode == "free-flow"
        assert positions_of(abc_manager.nodes) == {"A": (10, 20), "B": (30, 40), "C": (50, 60)}

        abc_manager.redo()
        assert abc_manager.view_mode == "tree"
        assert positions_of(abc_manager.nodes)["A"] == (400, 100)

    def test_toggling_is_lossless(self, abc_manager):
        original = positions_of(abc_manager.nodes)
        tree = positions_of(abc_manager.apply_layout("tree"))

        assert positions_of(abc_manager.apply_layout("free-flow")) == original
        assert positions_of(abc_manager.apply_layout("tree")) == tree
        assert set(abc_manager.layout_engine.cache.modes) == {"free-flow", "tree"}

    def test_same_mode_is_a_no_op(self, abc_manager):
        before = len(abc_manager.history)
        abc_manager.apply_layout("free-flow")
        assert len(abc_manager.history) == before

    def test_unknown_mode(self, abc_manager):
        with pytest.raises(UnknownLayoutError):
            abc_manager.apply_layout("spiral")
        assert abc_manager.view_mode == "free-flow"


class TestImportExport:
    def test_import_replaces_map_and_commits(self, manager):
        manager.import_json(ABC_DOCUMENT)

        assert [n.id for n in manager.nodes] == ["A", "B", "C"]
        assert manager.title == "Letters"
        assert len(manager.history) == 2

        manager.undo()
        assert [n.id for n in manager.nodes] == ["1"]

    def test_failed_import_leaves_state_untouched(self, manager):
        with pytest.raises(MapImportError):
            manager.import_json('{"nodes": []}')

        assert [n.id for n in manager.nodes] == ["1"]
        assert len(manager.history) == 1

    def test_export_round_trip(self, abc_manager):
        exported = json.loads(abc_manager.export_json())

        assert exported["title"] == "Letters"
        assert exported["viewMode"] == "free-flow"
        assert [n["id"] for n in exported["nodes"]] == ["A", "B", "C"]

    def test_export_csv_and_file_name(self, abc_manager):
        assert abc_manager.export_csv().count("\n") == 3
        assert abc_manager.export_file_name("csv") == "letters.csv"


class TestDebouncedEdits:
    @pytest.mark.asyncio
    async def test_typing_burst_is_one_undo_step(self, manager):
        for text in ("I", "Id", "Ide", "Idea"):
            manager.update_node("1", label=text)
            await asyncio.sleep(FAST_DEBOUNCE / 5)

        assert manager.nodes[0].label == "Idea"
        assert len(manager.history) == 1

        await settle()
        assert len(manager.history) == 2

        manager.undo()
        assert manager.nodes[0].label == "Central Concept"

    @pytest.mark.asyncio
    async def test_move_and_edit_share_a_commit(self, manager):
        manager.move_node("1", 10, 10)
        manager.update_node("1", color="#ff0000")
        await settle()

        assert len(manager.history) == 2
        current = manager.history.current.nodes[0]
        assert (current.position.x, current.position.y) == (10, 10)
        assert current.data.color == "#ff0000"

    @pytest.mark.asyncio
    async def test_update_edge(self, abc_manager):
        edge = abc_manager.update_edge("e1", connection_type="dashed", thickness=4)

        assert edge.data.connection_type == "dashed"
        assert abc_manager.get_state()["pending_commits"] == 1

        await settle()
        assert abc_manager.history.current.edges[0].data.thickness == 4

    @pytest.mark.asyncio
    async def test_reset_drops_pending_commits(self, manager):
        manager.update_node("1", label="Draft")
        manager.reset()
        await settle()

        assert len(manager.history) == 1
        assert manager.nodes[0].label == "Central Concept"

    def test_update_missing_node(self, manager):
        with pytest.raises(NodeNotFoundError):
            manager.update_node("ghost", label="x")

    def test_edits_without_event_loop_commit_immediately(self, abc_manager):
        before = len(abc_manager.history)

        abc_manager.update_node("A", label="Changed")
        abc_manager.move_node("A", 5, 5)
        abc_manager.update_edge("e1", color="#000000")

        assert len(abc_manager.history) == before + 3
        assert abc_manager.get_state()["pending_commits"] == 0

        abc_manager.undo()
        assert abc_manager.get_edge("e1").data.color == "#64748b"
        abc_manager.undo()
        assert positions_of(abc_manager.nodes)["A"] == (10, 20)
        abc_manager.undo()
        assert abc_manager.get_node("A").label == "A"


class TestReporting:
    def test_summary(self, abc_manager):
        summary = abc_manager.summary()

        assert summary.status_line() == "Mode: free-flow | Nodes: 3 | Connections: 2"
        assert summary.hubs[0].node_id == "A"
        assert summary.component_count == 1

    def test_validate_flags_self_loop(self, abc_manager):
        abc_manager.connect("B", "B")

        issues = abc_manager.validate()

        assert [i.severity for i in issues] == [IssueSeverity.WARNING]

    def test_get_state(self, abc_manager):
        abc_manager.apply_layout("radial")
        state = abc_manager.get_state()

        assert state["map"]["viewMode"] == "radial"
        assert state["can_undo"] is True
        assert state["can_redo"] is False
        assert state["history_length"] == 3
        assert state["history_cursor"] == 2
        assert sorted(state["cached_layouts"]) == ["free-flow", "radial"]
        assert state["pending_commits"] == 0
