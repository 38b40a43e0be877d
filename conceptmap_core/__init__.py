"""
Concept Map Core - Models, layout engine, edit history and serialization.

This package is used by the backend session manager and has no web
dependencies, so the layout and history logic can be exercised on its own.
"""

from .models import (
    # Enums
    LayoutMode,
    NodeShape,
    ConnectionType,
    # Core models
    Position,
    NodeData,
    Node,
    EdgeData,
    Edge,
    MapSettings,
    LayoutSnapshot,
    HistorySnapshot,
    MapDocument,
    seed_nodes,
)

from .errors import (
    ConceptMapError,
    MapImportError,
    UnknownLayoutError,
    NodeNotFoundError,
    EdgeNotFoundError,
)
from .layout import (
    tree_layout,
    radial_layout,
    force_layout,
    histogram_layout,
    free_flow_layout,
    compute_layout,
    apply_positions,
    align_nodes,
)
from .layout_engine import LayoutCache, LayoutEngine
from .history import Debouncer, HistoryManager
from .serialization import export_json, import_json, export_csv, sanitize_file_name
from .validation import validate_map, validation_summary, ValidationIssue, IssueSeverity
from .analysis import summarize_map, node_connections, find_connected_components
from .config import EditorConfig, get_config

__all__ = [
    # Enums
    "LayoutMode",
    "NodeShape",
    "ConnectionType",
    # Models
    "Position",
    "NodeData",
    "Node",
    "EdgeData",
    "Edge",
    "MapSettings",
    "LayoutSnapshot",
    "HistorySnapshot",
    "MapDocument",
    "seed_nodes",
    # Errors
    "ConceptMapError",
    "MapImportError",
    "UnknownLayoutError",
    "NodeNotFoundError",
    "EdgeNotFoundError",
    # Layout
    "tree_layout",
    "radial_layout",
    "force_layout",
    "histogram_layout",
    "free_flow_layout",
    "compute_layout",
    "apply_positions",
    "align_nodes",
    "LayoutCache",
    "LayoutEngine",
    # History
    "Debouncer",
    "HistoryManager",
    # Serialization
    "export_json",
    "import_json",
    "export_csv",
    "sanitize_file_name",
    # Validation
    "validate_map",
    "validation_summary",
    "ValidationIssue",
    "IssueSeverity",
    # Analysis
    "summarize_map",
    "node_connections",
    "find_connected_components",
    # Config
    "EditorConfig",
    "get_config",
]
