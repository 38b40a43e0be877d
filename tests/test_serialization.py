"""Tests for JSON import/export and CSV export."""

import json

import pytest

from conceptmap_core.errors import MapImportError
from conceptmap_core.models import MapDocument, MapSettings, Node, NodeData
from conceptmap_core.serialization import (
    export_csv,
    export_json,
    import_json,
    sanitize_file_name,
)
from tests.conftest import make_edge, make_node


class TestCsvExport:
    def test_quotes_are_doubled(self):
        node = Node(id="n1", data=NodeData(label='He said "hi"'))

        lines = export_csv([node]).split("\n")

        assert lines[0] == "id,label,shape,color,tags,notes"
        assert '"He said ""hi"""' in lines[1].split(",")

    def test_row_layout(self):
        node = Node(id="n1", data=NodeData(label="Idea", tags=["a", "b"], notes="note"))

        assert export_csv([node]) == (
            "id,label,shape,color,tags,notes\n"
            '"n1","Idea","circle","#3b82f6","a;b","note"'
        )

    def test_empty_fields_use_defaults(self):
        node = Node(id="n1", data=NodeData(label="", shape="", color="", tags=[], notes=""))

        row = export_csv([node]).split("\n")[1]

        assert row == '"n1","","circle","#3b82f6","",""'

    def test_no_nodes_exports_header_only(self):
        assert export_csv([]) == "id,label,shape,color,tags,notes"


class TestJsonExport:
    def test_pretty_printed_camel_case(self):
        document = MapDocument(
            nodes=[make_node("A", 1, 2)],
            edges=[make_edge("A", "A")],
            view_mode="tree",
            settings=MapSettings(),
            title="My Map",
        )

        text = export_json(document)
        data = json.loads(text)

        assert text.startswith("{\n  ")
        assert data["viewMode"] == "tree"
        assert data["title"] == "My Map"
        assert data["settings"]["backgroundColor"] == "#ffffff"
        assert data["nodes"][0]["position"] == {"x": 1.0, "y": 2.0}
        assert data["edges"][0]["data"]["connectionType"] == "straight"

    def test_round_trip(self):
        document = MapDocument(
            nodes=[make_node("A", 1, 2), make_node("B", 3, 4)],
            edges=[make_edge("A", "B")],
            view_mode="radial",
            settings=MapSettings(snap_to_grid=True),
            title="Round",
        )

        assert import_json(export_json(document)) == document


class TestJsonImport:
    def test_optional_fields_may_be_missing(self):
        document = import_json('{"nodes": [], "edges": []}')

        assert document.view_mode is None
        assert document.settings is None
        assert document.title is None

    @pytest.mark.parametrize("text", [
        "not json",
        "[1, 2, 3]",
        '{"title": "no graph"}',
        '{"nodes": []}',
        '{"edges": []}',
        '{"nodes": null, "edges": []}',
        '{"nodes": [{"id": "a", "position": "left"}], "edges": []}',
    ])
    def test_rejects_malformed_documents(self, text):
        with pytest.raises(MapImportError):
            import_json(text)

    def test_accepts_legacy_fields(self):
        text = json.dumps({
            "nodes": [{"id": "a", "x": 5, "y": 6}, {"id": "b"}],
            "edges": [{"id": "e", "from": "a", "to": "b"}],
        })

        document = import_json(text)

        assert document.nodes[0].position.x == 5
        assert document.edges[0].source == "a"
        assert document.edges[0].target == "b"

    def test_preserves_opaque_display_data(self):
        text = json.dumps({
            "nodes": [{"id": "a", "data": {"label": "A", "emoji": "*"}}],
            "edges": [],
        })

        document = import_json(text)
        exported = json.loads(export_json(document))

        assert exported["nodes"][0]["data"]["emoji"] == "*"

    def test_dangling_edges_are_kept_and_logged(self, caplog):
        text = json.dumps({"nodes": [{"id": "a"}], "edges": [{"id": "e", "source": "a", "target": "gone"}]})

        document = import_json(text)

        assert len(document.edges) == 1
        assert "missing target node: gone" in caplog.text


@pytest.mark.parametrize("title,expected", [
    ("Concept Map", "concept-map"),
    ("My_Map-2", "my_map-2"),
    ("a/b\\c?", "a-b-c-"),
])
def test_sanitize_file_name(title, expected):
    assert sanitize_file_name(title) == expected
