"""
Graph measurements shared by the layouts and the status bar.

`live_edges` and `node_connections` are the single source of truth for
which edges count (both endpoints present) and how degree ties resolve
(node insertion order), so every layout algorithm agrees on both.
"""

from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Edge, Node


@dataclass
class ConnectedComponent:
    """Nodes reachable from each other when edge direction is ignored."""
    node_ids: list[str] = field(default_factory=list)
    edge_count: int = 0

    @property
    def size(self) -> int:
        return len(self.node_ids)


@dataclass
class NodeConnectionInfo:
    node_id: str
    label: str
    incoming: int = 0
    outgoing: int = 0
    total: int = 0  # a self loop adds one, not two


@dataclass
class MapSummary:
    """Structure of a map as shown in the editor status bar."""
    view_mode: Optional[str]
    node_count: int
    edge_count: int
    shapes: dict[str, int]
    tags: list[str]
    component_count: int
    hubs: list[NodeConnectionInfo]
    orphan_count: int

    def status_line(self) -> str:
        return f"Mode: {self.view_mode} | Nodes: {self.node_count} | Connections: {self.edge_count}"

    def to_dict(self) -> dict:
        return {
            "view_mode": self.view_mode,
            "node_count": self.node_count,
            "edge_count": self.edge_count,
            "shapes": self.shapes,
            "tags": self.tags,
            "component_count": self.component_count,
            "hubs": [
                {"id": h.node_id, "label": h.label, "degree": h.total}
                for h in self.hubs
            ],
            "orphan_count": self.orphan_count,
            "status": self.status_line(),
        }


def live_edges(nodes: list["Node"], edges: list["Edge"]) -> list["Edge"]:
    """Edges whose source and target both exist. Others are ignored everywhere."""
    present = {n.id for n in nodes}
    return [e for e in edges if e.source in present and e.target in present]


def node_connections(nodes: list["Node"], edges: list["Edge"]) -> dict[str, NodeConnectionInfo]:
    """
    In/out/total degree per node, keyed by id in node insertion order.

    Callers picking a maximum with a strict `>` therefore get the first
    node on ties.
    """
    degrees = {n.id: NodeConnectionInfo(node_id=n.id, label=n.data.label) for n in nodes}

    for edge in live_edges(nodes, edges):
        source, target = degrees[edge.source], degrees[edge.target]
        source.outgoing += 1
        target.incoming += 1
        source.total += 1
        if target is not source:
            target.total += 1

    return degrees


def find_connected_components(nodes: list["Node"], edges: list["Edge"]) -> list[ConnectedComponent]:
    """Undirected components, ordered by their first node."""
    neighbours: dict[str, list[str]] = {n.id: [] for n in nodes}
    edges_from: Counter = Counter()

    for edge in live_edges(nodes, edges):
        neighbours[edge.source].append(edge.target)
        neighbours[edge.target].append(edge.source)
        edges_from[edge.source] += 1

    seen: set[str] = set()
    components: list[ConnectedComponent] = []

    for node in nodes:
        if node.id in seen:
            continue

        component = ConnectedComponent()
        pending = deque([node.id])
        seen.add(node.id)
        while pending:
            node_id = pending.popleft()
            component.node_ids.append(node_id)
            component.edge_count += edges_from[node_id]
            for other in neighbours[node_id]:
                if other not in seen:
                    seen.add(other)
                    pending.append(other)

        components.append(component)

    return components


def summarize_map(
    nodes: list["Node"],
    edges: list["Edge"],
    view_mode: Optional[str] = None,
    top_n: int = 5
) -> MapSummary:
    """Counts, tags, components and the `top_n` best connected nodes."""
    degrees = node_connections(nodes, edges)
    by_degree = sorted(degrees.values(), key=lambda d: d.total, reverse=True)

    return MapSummary(
        view_mode=view_mode,
        node_count=len(nodes),
        edge_count=len(edges),
        shapes=dict(Counter(n.data.shape for n in nodes)),
        tags=sorted({tag for n in nodes for tag in n.data.tags}),
        component_count=len(find_connected_components(nodes, edges)),
        hubs=[d for d in by_degree if d.total][:top_n],
        orphan_count=sum(1 for d in degrees.values() if not d.total),
    )
