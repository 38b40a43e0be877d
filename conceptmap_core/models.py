"""
Core data models for concept maps.

These models define the canonical schema shared by the layout engine,
the history manager and the JSON exchange format:
- Nodes with a 2-D position and opaque display data
- Edges connecting nodes (source/target), with styling data
- Snapshots stored by the layout cache and the edit history

Field Naming Convention:
- Python attributes are snake_case
- JSON uses camelCase (`viewMode`, `connectionType`, `sourceHandle`, ...)
- Both spellings are accepted on input
- For backward compatibility, flat `x`/`y` on nodes and `from`/`to` on
  edges are accepted on input and converted
"""

from enum import Enum
from typing import Any, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class LayoutMode(str, Enum):
    """Automatic arrangements of the same underlying graph."""
    TREE = "tree"
    RADIAL = "radial"
    NETWORK = "network"
    HISTOGRAM = "histogram"
    FREE_FLOW = "free-flow"


class NodeShape(str, Enum):
    """Visual shapes for nodes on the canvas."""
    CIRCLE = "circle"
    RECTANGLE = "rectangle"
    DIAMOND = "diamond"
    HEXAGON = "hexagon"
    STAR = "star"
    CLOUD = "cloud"
    TRIANGLE = "triangle"


class ConnectionType(str, Enum):
    """Line styles for edges (consumed only by rendering)."""
    STRAIGHT = "straight"
    CURVED = "curved"
    STEP = "step"
    ARROW = "arrow"
    CIRCLE = "circle"
    DOTTED = "dotted"
    DASHED = "dashed"


DEFAULT_NODE_SHAPE = NodeShape.CIRCLE.value
DEFAULT_NODE_COLOR = "#3b82f6"
DEFAULT_EDGE_COLOR = "#64748b"


def generate_node_id() -> str:
    """Generate a unique node ID."""
    return f"node-{uuid.uuid4().hex[:8]}"


def generate_edge_id() -> str:
    """Generate a unique edge ID."""
    return f"edge-{uuid.uuid4().hex[:8]}"


class CamelModel(BaseModel):
    """Base model that serializes with camelCase keys and accepts both."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        """Convert to a JSON-serializable dict with wire field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Position(CamelModel):
    x: float = 0.0
    y: float = 0.0


class NodeData(CamelModel):
    """Display data for a node. Only `label` is read by the engine."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    label: str = "New Node"
    shape: str = DEFAULT_NODE_SHAPE
    color: str = DEFAULT_NODE_COLOR
    icon: str = "Circle"
    tags: list[str] = Field(default_factory=list)
    notes: str = ""


class Node(CamelModel):
    """A node in the concept map."""
    id: str = Field(default_factory=generate_node_id)
    type: str = "custom"
    position: Position = Field(default_factory=Position)
    data: NodeData = Field(default_factory=NodeData)

    @model_validator(mode="before")
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Fold legacy flat 'x'/'y' fields into 'position'."""
        if isinstance(data, dict) and "position" not in data and ("x" in data or "y" in data):
            data = dict(data)
            data["position"] = {"x": data.pop("x", 0.0), "y": data.pop("y", 0.0)}
        return data

    @property
    def label(self) -> str:
        return self.data.label

    def with_position(self, x: float, y: float) -> "Node":
        """Return a deep copy of this node placed at (x, y)."""
        return self.model_copy(update={"position": Position(x=x, y=y)}, deep=True)


class EdgeData(CamelModel):
    """Display data for an edge. Never interpreted by the engine."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    connection_type: str = ConnectionType.STRAIGHT.value
    color: str = DEFAULT_EDGE_COLOR
    notes: str = ""
    thickness: float = 2
    source_handle: str = "bottom-source"
    target_handle: str = "top"
    source_label: str = "Unknown"
    target_label: str = "Unknown"


class Edge(CamelModel):
    """
    A directed edge connecting two nodes.

    Uses `source` and `target` as canonical field names.
    Accepts `from`/`to` on input for backward compatibility.
    """
    id: str = Field(default_factory=generate_edge_id)
    source: str
    target: str
    type: str = "custom"
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None
    data: EdgeData = Field(default_factory=EdgeData)

    @model_validator(mode="before")
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert legacy 'from'/'to' fields to 'source'/'target'."""
        if isinstance(data, dict):
            data = dict(data)
            if "from" in data and "source" not in data:
                data["source"] = data.pop("from")
            if "to" in data and "target" not in data:
                data["target"] = data.pop("to")
        return data


class MapSettings(CamelModel):
    """Canvas preferences carried along with exported maps."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    background_color: str = "#ffffff"
    background_pattern: str = "dots"
    theme: str = "system"
    auto_save: bool = True
    snap_to_grid: bool = False
    show_minimap: bool = False


class LayoutSnapshot(CamelModel):
    """Saved node positions for one layout mode (a layout cache entry)."""
    mode: str
    nodes: list[Node] = Field(default_factory=list)

    def positions(self) -> dict[str, Position]:
        return {n.id: n.position for n in self.nodes}


class HistorySnapshot(CamelModel):
    """One undo/redo entry. Holds its own copies of nodes and edges."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    view_mode: Optional[str] = None

    @classmethod
    def capture(cls, nodes: list[Node], edges: list[Edge], view_mode: Optional[str]) -> "HistorySnapshot":
        """Build a snapshot from value copies of the live graph."""
        return cls(
            nodes=[n.model_copy(deep=True) for n in nodes],
            edges=[e.model_copy(deep=True) for e in edges],
            view_mode=view_mode,
        )

    def copy_nodes(self) -> list[Node]:
        return [n.model_copy(deep=True) for n in self.nodes]

    def copy_edges(self) -> list[Edge]:
        return [e.model_copy(deep=True) for e in self.edges]


class MapDocument(CamelModel):
    """
    The JSON exchange shape for a whole map.

    `view_mode`, `settings` and `title` are optional on import and only
    applied when present.
    """
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    view_mode: Optional[str] = None
    settings: Optional[MapSettings] = None
    title: Optional[str] = None


def seed_nodes() -> list[Node]:
    """The single node every new (or reset) map starts with."""
    return [
        Node(
            id="1",
            position=Position(x=250, y=250),
            data=NodeData(
                label="Central Concept",
                shape=NodeShape.CIRCLE.value,
                color=DEFAULT_NODE_COLOR,
                icon="Brain",
                tags=["main"],
                notes="This is the central concept of your map",
            ),
        )
    ]


# --- API Request/Response Models ---

class CreateNodeRequest(CamelModel):
    """Request to create a new node."""
    shape: str = DEFAULT_NODE_SHAPE
    label: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None


class UpdateNodeRequest(CamelModel):
    """Request to update a node's display data (partial update)."""
    label: Optional[str] = None
    shape: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    tags: Optional[list[str]] = None
    notes: Optional[str] = None


class MoveNodeRequest(CamelModel):
    x: float
    y: float


class CreateEdgeRequest(CamelModel):
    """Request to connect two nodes."""
    source: str = ""
    target: str = ""
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert legacy 'from'/'to' fields to 'source'/'target'."""
        if isinstance(data, dict):
            data = dict(data)
            if "from" in data and "source" not in data:
                data["source"] = data.pop("from")
            if "to" in data and "target" not in data:
                data["target"] = data.pop("to")
        return data


class UpdateEdgeRequest(CamelModel):
    """Request to update an edge's display data (partial update)."""
    connection_type: Optional[ConnectionType] = None
    color: Optional[str] = None
    notes: Optional[str] = None
    thickness: Optional[float] = None


class LayoutRequest(CamelModel):
    mode: str


class AlignRequest(CamelModel):
    node_ids: Optional[list[str]] = None
    axis: str = "x"


class TitleRequest(CamelModel):
    title: str


class UpdateSettingsRequest(CamelModel):
    """Request to update canvas settings (partial update)."""
    background_color: Optional[str] = None
    background_pattern: Optional[str] = None
    theme: Optional[str] = None
    auto_save: Optional[bool] = None
    snap_to_grid: Optional[bool] = None
    show_minimap: Optional[bool] = None
