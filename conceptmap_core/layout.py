"""
Layout algorithms for concept map nodes.

Provides the layout modes the editor can switch between:
- Tree: Hierarchical levels following edge direction
- Radial: Concentric rings around the most connected node
- Network: Force-directed relaxation (repulsion + edge springs)
- Histogram: Grid ordered by number of connections
- Free-flow: Deterministic spiral, independent of edges

All layout functions are pure: they read the nodes and edges and return a
mapping of node id -> new Position. Nodes missing from the mapping keep
their current position. Edges whose endpoints are missing are ignored.
Ties are broken by node insertion order.
"""

import math
from typing import Callable, Optional, TYPE_CHECKING

from .analysis import live_edges, node_connections
from .errors import UnknownLayoutError
from .models import LayoutMode, Position

if TYPE_CHECKING:
    from .models import Node, Edge


Positions = dict[str, Position]

# Canvas anchors
CANVAS_CENTER_X = 400
CANVAS_CENTER_Y = 300

# Tree parameters
TREE_ROOT_X = 400
TREE_ROOT_Y = 100
TREE_SPACING_X = 250
TREE_SPACING_Y = 150
TREE_MAX_LEVELS = 10

# Radial parameters
RADIAL_RING_SPACING = 150
RADIAL_MAX_RINGS = 5

# Force-directed parameters
FORCE_ITERATIONS = 50
FORCE_REPULSION = 5000
FORCE_ATTRACTION = 0.01
FORCE_STEP = 0.01
FORCE_MIN_DISTANCE = 1.0
FORCE_BOUNDS = (50, 750, 50, 550)  # min_x, max_x, min_y, max_y

# Histogram parameters
HISTOGRAM_COLUMNS = 5
HISTOGRAM_CELL_WIDTH = 150
HISTOGRAM_CELL_HEIGHT = 120
HISTOGRAM_START_X = 100
HISTOGRAM_START_Y = 100


def _bfs_buckets(
    root_id: str,
    neighbors: dict[str, list[str]],
    node_count: int,
    max_depth: int
) -> list[list[str]]:
    """
    Group nodes into BFS distance buckets starting from root_id.

    A node is assigned to the first bucket it is reached in and never
    re-assigned, so cycles cannot cause repeated descent. Traversal stops
    after max_depth buckets beyond the root; unreached nodes are left out.
    """
    buckets = [[root_id]]
    visited = {root_id}

    while len(visited) < node_count and len(buckets) <= max_depth:
        next_bucket = []
        for parent in buckets[-1]:
            for child in neighbors.get(parent, []):
                if child not in visited:
                    visited.add(child)
                    next_bucket.append(child)
        if not next_bucket:
            break
        buckets.append(next_bucket)

    return buckets


def tree_layout(
    nodes: list["Node"],
    edges: list["Edge"],
    root_x: float = TREE_ROOT_X,
    root_y: float = TREE_ROOT_Y,
    spacing_x: float = TREE_SPACING_X,
    spacing_y: float = TREE_SPACING_Y,
    max_levels: int = TREE_MAX_LEVELS
) -> Positions:
    """
    Arrange nodes in a hierarchical tree based on edge directions.

    The root is the first node with no incoming edge, or the first node
    when every node has one (cycles). Children are found by following
    outgoing edges breadth-first. Each level is a horizontal row whose
    nodes are spaced evenly and centred under the root.

    Args:
        nodes: Nodes to arrange
        edges: Edges defining the hierarchy
        root_x: X coordinate of the root (and centre of every level)
        root_y: Y coordinate of the root level
        spacing_x: Horizontal distance between siblings on a level
        spacing_y: Vertical distance between levels
        max_levels: Levels below the root to visit before giving up

    Returns:
        Mapping of node id -> Position for every reached node
    """
    if not nodes:
        return {}

    edges = live_edges(nodes, edges)

    children: dict[str, list[str]] = {n.id: [] for n in nodes}
    has_parent: set[str] = set()
    for edge in edges:
        children[edge.source].append(edge.target)
        has_parent.add(edge.target)

    root = next((n for n in nodes if n.id not in has_parent), nodes[0])
    levels = _bfs_buckets(root.id, children, len(nodes), max_levels)

    positions: Positions = {}
    for level, level_nodes in enumerate(levels):
        offset = (len(level_nodes) - 1) / 2
        for index, node_id in enumerate(level_nodes):
            positions[node_id] = Position(
                x=root_x + (index - offset) * spacing_x,
                y=root_y + level * spacing_y,
            )

    return positions


def radial_layout(
    nodes: list["Node"],
    edges: list["Edge"],
    center_x: float = CANVAS_CENTER_X,
    center_y: float = CANVAS_CENTER_Y,
    ring_spacing: float = RADIAL_RING_SPACING,
    max_rings: int = RADIAL_MAX_RINGS
) -> Positions:
    """
    Arrange nodes on concentric rings around the most connected node.

    Rings are BFS distances over edges taken in either direction. Ring k
    has radius k * ring_spacing and its nodes are spread evenly by angle.
    """
    if not nodes:
        return {}

    edges = live_edges(nodes, edges)
    connections = node_connections(nodes, edges)

    root = nodes[0]
    for node in nodes[1:]:
        if connections[node.id].total > connections[root.id].total:
            root = node

    adjacency: dict[str, list[str]] = {n.id: [] for n in nodes}
    for edge in edges:
        adjacency[edge.source].append(edge.target)
        adjacency[edge.target].append(edge.source)

    rings = _bfs_buckets(root.id, adjacency, len(nodes), max_rings)

    positions: Positions = {root.id: Position(x=center_x, y=center_y)}
    for ring, ring_nodes in enumerate(rings[1:], start=1):
        radius = ring_spacing * ring
        for index, node_id in enumerate(ring_nodes):
            angle = index * 2 * math.pi / len(ring_nodes)
            positions[node_id] = Position(
                x=center_x + radius * math.cos(angle),
                y=center_y + radius * math.sin(angle),
            )

    return positions


def force_layout(
    nodes: list["Node"],
    edges: list["Edge"],
    iterations: int = FORCE_ITERATIONS,
    repulsion: float = FORCE_REPULSION,
    attraction: float = FORCE_ATTRACTION,
    step: float = FORCE_STEP,
    min_distance: float = FORCE_MIN_DISTANCE,
    bounds: tuple[float, float, float, float] = FORCE_BOUNDS
) -> Positions:
    """
    Arrange nodes using a force-directed relaxation.

    Simulates physical forces, starting from the current positions:
    - All nodes repel each other (Coulomb: repulsion / distance^2)
    - Connected nodes attract each other (spring: attraction * offset),
      once for each endpoint of each edge

    Nodes are moved one at a time in insertion order, each seeing the
    already-moved positions of the nodes before it. There is no random
    jitter and no convergence test: the same input positions always give
    the same output after exactly `iterations` passes.

    Args:
        nodes: Nodes to arrange
        edges: Edges (connected nodes attract)
        iterations: Number of relaxation passes
        repulsion: Strength of repulsion between all node pairs
        attraction: Spring constant along edges
        step: Scale applied to the summed force before moving a node
        min_distance: Floor on pair distance to avoid singularities
        bounds: (min_x, max_x, min_y, max_y) every node is clamped to

    Returns:
        Mapping of node id -> Position for every node
    """
    if not nodes:
        return {}

    min_x, max_x, min_y, max_y = bounds
    current = {n.id: (n.position.x, n.position.y) for n in nodes}

    # Other endpoint of every edge touching a node, once per endpoint
    neighbors: dict[str, list[str]] = {n.id: [] for n in nodes}
    for edge in live_edges(nodes, edges):
        neighbors[edge.source].append(edge.target)
        neighbors[edge.target].append(edge.source)

    for _ in range(iterations):
        for node in nodes:
            ax, ay = current[node.id]
            fx = fy = 0.0

            for other in nodes:
                if other.id == node.id:
                    continue
                bx, by = current[other.id]
                dx = ax - bx
                dy = ay - by
                distance = max(min_distance, math.sqrt(dx * dx + dy * dy))
                force = repulsion / (distance * distance)
                fx += dx / distance * force
                fy += dy / distance * force

            for neighbor_id in neighbors[node.id]:
                bx, by = current[neighbor_id]
                fx += (bx - ax) * attraction
                fy += (by - ay) * attraction

            x = max(min_x, min(max_x, ax + fx * step))
            y = max(min_y, min(max_y, ay + fy * step))
            current[node.id] = (x, y)

    return {node_id: Position(x=x, y=y) for node_id, (x, y) in current.items()}


def histogram_layout(
    nodes: list["Node"],
    edges: list["Edge"],
    columns: int = HISTOGRAM_COLUMNS,
    cell_width: float = HISTOGRAM_CELL_WIDTH,
    cell_height: float = HISTOGRAM_CELL_HEIGHT,
    start_x: float = HISTOGRAM_START_X,
    start_y: float = HISTOGRAM_START_Y
) -> Positions:
    """Arrange nodes in a grid, most connected first (stable on ties)."""
    connections = node_connections(nodes, edges)
    ranked = sorted(nodes, key=lambda n: connections[n.id].total, reverse=True)

    positions: Positions = {}
    for rank, node in enumerate(ranked):
        row, col = divmod(rank, columns)
        positions[node.id] = Position(
            x=start_x + col * cell_width,
            y=start_y + row * cell_height,
        )
    return positions


def free_flow_layout(
    nodes: list["Node"],
    edges: Optional[list["Edge"]] = None,
    center_x: float = CANVAS_CENTER_X,
    center_y: float = CANVAS_CENTER_Y
) -> Positions:
    """
    Spread nodes on a deterministic spiral.

    Position depends only on the node's index, so re-applying to the same
    ordering reproduces the layout exactly. Edges are not consulted.
    """
    positions: Positions = {}
    for index, node in enumerate(nodes):
        angle = (index * 2.4) % (2 * math.pi)
        radius = 100 + (index * 20) % 200
        positions[node.id] = Position(
            x=center_x + radius * math.cos(angle),
            y=center_y + radius * math.sin(angle),
        )
    return positions


LAYOUT_ALGORITHMS: dict[str, Callable[..., Positions]] = {
    LayoutMode.TREE.value: tree_layout,
    LayoutMode.RADIAL.value: radial_layout,
    LayoutMode.NETWORK.value: force_layout,
    LayoutMode.HISTOGRAM.value: histogram_layout,
    LayoutMode.FREE_FLOW.value: free_flow_layout,
}


def normalize_mode(mode: "str | LayoutMode") -> str:
    """Return the mode name, raising UnknownLayoutError if it is not registered."""
    name = mode.value if isinstance(mode, LayoutMode) else mode
    if name not in LAYOUT_ALGORITHMS:
        raise UnknownLayoutError(str(name))
    return name


def compute_layout(mode: "str | LayoutMode", nodes: list["Node"], edges: list["Edge"]) -> Positions:
    """Run the algorithm registered for `mode`."""
    return LAYOUT_ALGORITHMS[normalize_mode(mode)](nodes, edges)


def apply_positions(nodes: list["Node"], positions: Positions) -> list["Node"]:
    """
    Return copies of `nodes` with `positions` applied.

    Ids in `positions` that match no node are ignored; nodes without an
    entry keep their current position.
    """
    return [
        node.with_position(positions[node.id].x, positions[node.id].y)
        if node.id in positions else node.model_copy(deep=True)
        for node in nodes
    ]


def align_nodes(
    nodes: list["Node"],
    node_ids: Optional[list[str]] = None,
    axis: str = "x"
) -> Positions:
    """
    Line up nodes on their mean coordinate.

    Args:
        nodes: All nodes in the map
        node_ids: IDs of nodes to align (all nodes if None)
        axis: "x" puts the nodes on one vertical line, "y" on one horizontal line

    Returns:
        New positions for the aligned nodes, or {} when fewer than two
        nodes match or the axis is unknown
    """
    targets = nodes if node_ids is None else [n for n in nodes if n.id in node_ids]
    if len(targets) < 2 or axis not in ("x", "y"):
        return {}

    if axis == "x":
        mean_x = sum(n.position.x for n in targets) / len(targets)
        return {n.id: Position(x=mean_x, y=n.position.y) for n in targets}

    mean_y = sum(n.position.y for n in targets) / len(targets)
    return {n.id: Position(x=n.position.x, y=mean_y) for n in targets}
