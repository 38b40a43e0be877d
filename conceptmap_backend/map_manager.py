"""
Map Manager - Live state of one concept map editing session.

This module implements:
- Single map state management (one map open at a time)
- O(1) node/edge lookups via index dictionaries
- Linear undo/redo history (committed immediately for structural edits,
  debounced for continuous property edits)
- Layout switching through the layout engine and its position cache
- JSON import/export and CSV export
"""

import asyncio
import logging
import random
import re
from typing import Any, Optional

from conceptmap_core.analysis import MapSummary, summarize_map
from conceptmap_core.config import EditorConfig, get_config
from conceptmap_core.errors import EdgeNotFoundError, NodeNotFoundError
from conceptmap_core.history import HistoryManager
from conceptmap_core.layout import align_nodes as core_align_nodes
from conceptmap_core.layout import apply_positions, normalize_mode
from conceptmap_core.layout_engine import LayoutEngine
from conceptmap_core.models import (
    DEFAULT_NODE_SHAPE, Edge, EdgeData, HistorySnapshot, MapDocument, MapSettings,
    Node, NodeData, Position, generate_node_id, seed_nodes,
)
from conceptmap_core.serialization import (
    export_csv as core_export_csv,
    export_json as core_export_json,
    import_json as core_import_json,
    sanitize_file_name,
)
from conceptmap_core.validation import ValidationIssue, validate_map

logger = logging.getLogger(__name__)

# Random placement window for new nodes without an explicit position
NEW_NODE_MIN = 100
NEW_NODE_SPREAD = 500

DUPLICATE_OFFSET_X = 100
DUPLICATE_OFFSET_Y = 50


def describe_connection(source_label: Optional[str], source_handle: Optional[str]) -> str:
    """Human readable message for a new connection, e.g. 'Connection created from bottom of Idea'."""
    direction = ""
    if source_handle:
        for side in ("top", "bottom", "left", "right"):
            if side in source_handle:
                direction = f"from {side}"
                break

    label = re.sub(r"[<>\"'&]", "", source_label or "node")
    parts = ["Connection created", direction, f"of {label}"]
    return " ".join(p for p in parts if p)


class MapManager:
    """
    Owns the live graph of one editing session.

    Structural mutations (add/delete node, connect, delete edge, layout,
    duplicate, align, import) commit a history entry immediately.
    Property edits (node data, edge data, node drag) change the graph at
    once but commit only after `debounce_delay` seconds without further
    edits to the same node or edge. With no running asyncio loop they
    commit at once.
    """

    def __init__(
        self,
        config: Optional[EditorConfig] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None
    ):
        self._config = config or get_config()
        self._nodes: list[Node] = seed_nodes()
        self._edges: list[Edge] = []
        self._view_mode: str = self._config.default_view_mode
        self._title: str = self._config.default_title
        self._settings = MapSettings()
        self._engine = LayoutEngine()
        self._history = HistoryManager(
            self._nodes, self._edges, self._view_mode,
            max_history=self._config.max_history,
            loop=loop,
        )

        # O(1) lookup indexes
        self._node_index: dict[str, Node] = {}          # node_id -> Node
        self._edge_index: dict[str, Edge] = {}          # edge_id -> Edge
        self._rebuild_indexes()

    # --- Index Management ---

    def _rebuild_indexes(self):
        """Rebuild all indexes from the current graph."""
        self._node_index = {n.id: n for n in self._nodes}
        self._edge_index = {e.id: e for e in self._edges}

    def _require_node(self, node_id: str) -> Node:
        node = self._node_index.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    def _require_edge(self, edge_id: str) -> Edge:
        edge = self._edge_index.get(edge_id)
        if edge is None:
            raise EdgeNotFoundError(edge_id)
        return edge

    # --- Properties ---

    @property
    def nodes(self) -> list[Node]:
        return self._nodes

    @property
    def edges(self) -> list[Edge]:
        return self._edges

    @property
    def view_mode(self) -> str:
        return self._view_mode

    @property
    def title(self) -> str:
        return self._title

    @property
    def settings(self) -> MapSettings:
        return self._settings

    @property
    def history(self) -> HistoryManager:
        return self._history

    @property
    def layout_engine(self) -> LayoutEngine:
        return self._engine

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    def get_node(self, node_id: str) -> Optional[Node]:
        """Get a node by ID (O(1) lookup)."""
        return self._node_index.get(node_id)

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        """Get an edge by ID (O(1) lookup)."""
        return self._edge_index.get(edge_id)

    # --- History Management ---

    def _capture(self) -> tuple[list[Node], list[Edge], str]:
        return self._nodes, self._edges, self._view_mode

    def _commit(self):
        self._history.commit(*self._capture())

    def _schedule_commit(self, key: str):
        self._history.schedule_commit(key, self._capture, self._config.debounce_delay)

    def _apply_snapshot(self, snapshot: HistorySnapshot):
        self._nodes = snapshot.copy_nodes()
        self._edges = snapshot.copy_edges()
        if snapshot.view_mode:
            self._view_mode = snapshot.view_mode
        self._rebuild_indexes()

    def undo(self) -> Optional[HistorySnapshot]:
        """Undo the last committed change. Returns None if there is nothing to undo."""
        snapshot = self._history.undo()
        if snapshot is None:
            return None
        self._apply_snapshot(snapshot)
        logger.info("Undone (history position %d of %d)", self._history.cursor + 1, len(self._history))
        return snapshot

    def redo(self) -> Optional[HistorySnapshot]:
        """Redo the last undone change. Returns None if there is nothing to redo."""
        snapshot = self._history.redo()
        if snapshot is None:
            return None
        self._apply_snapshot(snapshot)
        logger.info("Redone (history position %d of %d)", self._history.cursor + 1, len(self._history))
        return snapshot

    # --- Node Operations ---

    def add_node(
        self,
        shape: str = DEFAULT_NODE_SHAPE,
        position: Optional[Position] = None,
        label: Optional[str] = None
    ) -> Node:
        """Add a new node. Without a position it is dropped at a random spot."""
        if position is None:
            position = Position(
                x=random.random() * NEW_NODE_SPREAD + NEW_NODE_MIN,
                y=random.random() * NEW_NODE_SPREAD + NEW_NODE_MIN,
            )

        data = NodeData(shape=shape)
        if label is not None:
            data.label = label

        node = Node(id=generate_node_id(), position=position, data=data)
        self._nodes.append(node)
        self._node_index[node.id] = node
        self._commit()
        logger.info("Node added: %s (%s)", node.id, shape)
        return node

    def update_node(self, node_id: str, **updates: Any) -> Node:
        """
        Merge `updates` into a node's display data.

        The change is visible immediately; the history entry is debounced.
        """
        node = self._require_node(node_id)
        merged = {**node.data.model_dump(), **{k: v for k, v in updates.items() if v is not None}}
        node.data = NodeData.model_validate(merged)
        self._schedule_commit(f"node:{node_id}")
        return node

    def move_node(self, node_id: str, x: float, y: float) -> Node:
        """Move a node (drag). The history entry is debounced."""
        node = self._require_node(node_id)
        node.position = Position(x=x, y=y)
        self._schedule_commit(f"node:{node_id}")
        return node

    def delete_node(self, node_id: str) -> bool:
        """Delete a node and all edges touching it."""
        self._require_node(node_id)

        self._nodes = [n for n in self._nodes if n.id != node_id]
        self._edges = [e for e in self._edges if e.source != node_id and e.target != node_id]
        self._rebuild_indexes()
        self._commit()
        logger.info("Node deleted: %s", node_id)
        return True

    def duplicate_node(self, node_id: str) -> Node:
        """Copy a node next to the original, with ' (Copy)' appended to its label."""
        original = self._require_node(node_id)

        node = original.model_copy(deep=True)
        node.id = generate_node_id()
        node.position = Position(
            x=original.position.x + DUPLICATE_OFFSET_X,
            y=original.position.y + DUPLICATE_OFFSET_Y,
        )
        node.data.label = f"{original.data.label} (Copy)"

        self._nodes.append(node)
        self._node_index[node.id] = node
        self._commit()
        logger.info("Node duplicated: %s -> %s", node_id, node.id)
        return node

    def align_nodes(self, node_ids: Optional[list[str]] = None, axis: str = "x") -> bool:
        """Line up nodes on their mean x (or y). Returns False if nothing was aligned."""
        positions = core_align_nodes(self._nodes, node_ids, axis)
        if not positions:
            return False

        self._nodes = apply_positions(self._nodes, positions)
        self._rebuild_indexes()
        self._commit()
        logger.info("Aligned %d nodes on %s", len(positions), axis)
        return True

    # --- Edge Operations ---

    def connect(
        self,
        source: str,
        target: str,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None
    ) -> Edge:
        """Create an edge from `source` to `target`. Parallel edges are allowed."""
        source_node = self._require_node(source)
        target_node = self._require_node(target)

        edge = Edge(
            source=source,
            target=target,
            source_handle=source_handle,
            target_handle=target_handle,
            data=EdgeData(
                source_handle=source_handle or "bottom-source",
                target_handle=target_handle or "top",
                source_label=source_node.data.label or "Unknown",
                target_label=target_node.data.label or "Unknown",
            ),
        )
        self._edges.append(edge)
        self._edge_index[edge.id] = edge
        self._commit()
        logger.info("%s", describe_connection(source_node.data.label, source_handle))
        return edge

    def update_edge(self, edge_id: str, **updates: Any) -> Edge:
        """Merge `updates` into an edge's display data. The history entry is debounced."""
        edge = self._require_edge(edge_id)
        merged = {**edge.data.model_dump(), **{k: v for k, v in updates.items() if v is not None}}
        edge.data = EdgeData.model_validate(merged)
        self._schedule_commit(f"edge:{edge_id}")
        return edge

    def delete_edge(self, edge_id: str) -> bool:
        """Remove an edge; commits immediately."""
        self._require_edge(edge_id)

        self._edges = [e for e in self._edges if e.id != edge_id]
        self._rebuild_indexes()
        self._commit()
        logger.info("Connection deleted: %s", edge_id)
        return True

    # --- Layout ---

    def apply_layout(self, mode: str) -> list[Node]:
        """
        Switch the map to layout `mode`.

        Switching to the current mode does nothing. Otherwise the new
        positions (restored from the cache or computed) replace the live
        ones and a history entry is committed.
        """
        target = normalize_mode(mode)
        if target == self._view_mode:
            return self._nodes

        restored = target in self._engine.cache
        self._nodes = self._engine.apply_layout(self._nodes, self._edges, self._view_mode, target)
        self._view_mode = target
        self._rebuild_indexes()
        self._commit()

        if restored:
            logger.info("Switched back to %s layout", target)
        else:
            logger.info("Applied %s layout", target)
        return self._nodes

    # --- Map Info ---

    def set_title(self, title: str) -> str:
        self._title = title
        return self._title

    def update_settings(self, **updates: Any) -> MapSettings:
        """Update canvas settings (partial update)."""
        merged = {**self._settings.model_dump(), **{k: v for k, v in updates.items() if v is not None}}
        self._settings = MapSettings.model_validate(merged)
        logger.info("Settings updated")
        return self._settings

    def reset(self):
        """Return to the seed map: one node, no edges, empty cache, one history entry."""
        cancelled = self._history.cancel_pending()
        self._nodes = seed_nodes()
        self._edges = []
        self._view_mode = self._config.default_view_mode
        self._title = self._config.default_title
        self._engine.cache.clear()
        self._history.reset(self._nodes, self._edges, self._view_mode)
        self._rebuild_indexes()
        logger.info("Workspace reset to default (%d pending commits dropped)", cancelled)

    # --- Import / Export ---

    def to_document(self) -> MapDocument:
        return MapDocument(
            nodes=self._nodes,
            edges=self._edges,
            view_mode=self._view_mode,
            settings=self._settings,
            title=self._title,
        )

    def export_json(self) -> str:
        return core_export_json(self.to_document())

    def export_csv(self) -> str:
        return core_export_csv(self._nodes)

    def export_file_name(self, extension: str) -> str:
        return f"{sanitize_file_name(self._title)}.{extension}"

    def import_json(self, text: str | bytes) -> MapDocument:
        """
        Replace the live map with an imported document and commit it.

        Raises:
            MapImportError: if the document is malformed; the live map and
                history are left untouched
        """
        document = core_import_json(text)

        self._nodes = [n.model_copy(deep=True) for n in document.nodes]
        self._edges = [e.model_copy(deep=True) for e in document.edges]
        if document.view_mode:
            self._view_mode = document.view_mode
        if document.settings:
            self._settings = document.settings
        if document.title:
            self._title = document.title
        self._rebuild_indexes()
        self._commit()
        logger.info("Map imported: %d nodes, %d edges", len(self._nodes), len(self._edges))
        return document

    # --- Reporting ---

    def summary(self) -> MapSummary:
        return summarize_map(self._nodes, self._edges, self._view_mode)

    def validate(self) -> list[ValidationIssue]:
        return validate_map(self._nodes, self._edges)

    def get_state(self) -> dict:
        """Map document plus history and cache bookkeeping, as returned by the API."""
        return {
            "map": self.to_document().to_json_dict(),
            "can_undo": self.can_undo,
            "can_redo": self.can_redo,
            "history_length": len(self._history),
            "history_cursor": self._history.cursor,
            "cached_layouts": self._engine.cache.modes,
            "pending_commits": len(self._history.pending_commits),
        }

    def close(self):
        """Cancel pending debounced commits. Call when the session ends."""
        self._history.close()


# Global instance for the application
map_manager = MapManager()
