"""Tests for map analysis and validation."""

from conceptmap_core.analysis import (
    find_connected_components,
    live_edges,
    node_connections,
    summarize_map,
)
from conceptmap_core.validation import IssueSeverity, validate_map, validation_summary
from tests.conftest import make_edge, make_node


def test_live_edges_drops_dangling(abc_graph):
    nodes, edges = abc_graph
    edges = edges + [make_edge("A", "ghost")]

    assert [e.id for e in live_edges(nodes, edges)] == ["A->B", "A->C"]


def test_self_loop_counts_once():
    nodes = [make_node("A")]
    info = node_connections(nodes, [make_edge("A", "A")])["A"]

    assert (info.incoming, info.outgoing, info.total) == (1, 1, 1)


def test_connected_components():
    nodes = [make_node("A"), make_node("B"), make_node("C"), make_node("D")]
    edges = [make_edge("B", "A"), make_edge("C", "D")]

    components = find_connected_components(nodes, edges)

    assert [sorted(c.node_ids) for c in components] == [["A", "B"], ["C", "D"]]
    assert [c.edge_count for c in components] == [1, 1]


def test_summary(abc_graph):
    nodes, edges = abc_graph
    nodes[0].data.tags = ["root", "main"]

    summary = summarize_map(nodes, edges, "tree")

    assert summary.node_count == 3
    assert summary.shapes == {"circle": 3}
    assert summary.tags == ["main", "root"]
    assert summary.hubs[0].node_id == "A"
    assert summary.orphan_count == 0
    assert summary.to_dict()["status"] == "Mode: tree | Nodes: 3 | Connections: 2"


class TestValidation:
    def test_clean_map(self, abc_graph):
        nodes, edges = abc_graph
        assert validate_map(nodes, edges) == []

    def test_empty_map(self):
        issues = validate_map([], [])
        assert [i.severity for i in issues] == [IssueSeverity.INFO]

    def test_reports_structural_problems(self):
        nodes = [make_node("A"), make_node("A"), make_node("B"), make_node("lonely")]
        edges = [
            make_edge("A", "B", edge_id="e1"),
            make_edge("A", "B", edge_id="e2"),
            make_edge("B", "B", edge_id="loop"),
            make_edge("A", "gone", edge_id="dangling"),
        ]

        issues = validate_map(nodes, edges)
        by_severity = {s: [i for i in issues if i.severity == s] for s in IssueSeverity}

        assert [i.node_id for i in by_severity[IssueSeverity.ERROR]] == ["A", None]
        assert by_severity[IssueSeverity.ERROR][1].edge_id == "dangling"
        assert {i.edge_id for i in by_severity[IssueSeverity.WARNING]} == {"loop", None}
        assert [i.edge_id for i in by_severity[IssueSeverity.INFO]] == ["e2"]

        summary = validation_summary(issues)
        assert summary["errors"] == 2
        assert summary["valid"] is False

    def test_single_node_is_not_an_orphan(self):
        assert validate_map([make_node("only")], []) == []
