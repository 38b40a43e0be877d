"""
Error types raised by the concept map core.

All errors derive from ValueError so callers that only care about
"bad input" (the REST layer maps these to HTTP 400) can catch one type.
"""


class ConceptMapError(ValueError):
    """Base class for concept map errors."""


class MapImportError(ConceptMapError):
    """An imported map document could not be parsed or is missing fields."""


class UnknownLayoutError(ConceptMapError):
    """A layout mode name that no algorithm is registered for."""

    def __init__(self, mode: str):
        super().__init__(f"Unknown layout mode: {mode}")
        self.mode = mode


class NodeNotFoundError(ConceptMapError):
    """A node id that is not present in the live graph."""

    def __init__(self, node_id: str):
        super().__init__(f"Node not found: {node_id}")
        self.node_id = node_id


class EdgeNotFoundError(ConceptMapError):
    """An edge id that is not present in the live graph."""

    def __init__(self, edge_id: str):
        super().__init__(f"Edge not found: {edge_id}")
        self.edge_id = edge_id
