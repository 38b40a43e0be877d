"""
Structural checks for concept maps.

Nothing reported here blocks editing: layouts skip dangling edges and
parallel edges are legal. The checks exist so imports can log problems
and the API can show them.
"""

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Node, Edge


class IssueSeverity(str, Enum):
    ERROR = "error"      # part of the map is ignored by the layouts
    WARNING = "warning"  # likely a mistake
    INFO = "info"        # allowed, possibly intentional


@dataclass
class ValidationIssue:
    """One finding, optionally pinned to a node and/or an edge."""
    severity: IssueSeverity
    message: str
    node_id: Optional[str] = None
    edge_id: Optional[str] = None

    def to_dict(self) -> dict:
        payload = {"severity": self.severity.value, "message": self.message}
        for key in ("node_id", "edge_id"):
            value = getattr(self, key)
            if value:
                payload[key] = value
        return payload


def _node_issues(nodes: list["Node"]) -> Iterator[ValidationIssue]:
    if not nodes:
        yield ValidationIssue(IssueSeverity.INFO, "Map has no nodes")

    counts = Counter(n.id for n in nodes)
    for node_id, count in counts.items():
        if count > 1:
            yield ValidationIssue(
                IssueSeverity.ERROR,
                f"Node id {node_id} is used by {count} nodes",
                node_id=node_id,
            )


def _edge_issues(node_ids: set[str], edges: list["Edge"]) -> Iterator[ValidationIssue]:
    pairs_seen: set[tuple[str, str]] = set()

    for edge in edges:
        for end, ref in (("source", edge.source), ("target", edge.target)):
            if ref not in node_ids:
                yield ValidationIssue(
                    IssueSeverity.ERROR,
                    f"Edge {edge.id} points to missing {end} node: {ref}",
                    edge_id=edge.id,
                )

        if edge.source == edge.target:
            yield ValidationIssue(
                IssueSeverity.WARNING,
                f"Edge {edge.id} connects {edge.source} to itself",
                node_id=edge.source,
                edge_id=edge.id,
            )

        pair = (edge.source, edge.target)
        if pair in pairs_seen:
            yield ValidationIssue(
                IssueSeverity.INFO,
                f"Edge {edge.id} repeats a connection from {edge.source} to {edge.target}",
                edge_id=edge.id,
            )
        pairs_seen.add(pair)


def _orphan_issues(nodes: list["Node"], edges: list["Edge"]) -> Iterator[ValidationIssue]:
    # A lone node is how every map starts
    if len(nodes) < 2:
        return

    touched = {e.source for e in edges} | {e.target for e in edges}
    orphans = [f"{n.data.label} ({n.id})" for n in nodes if n.id not in touched]
    if orphans:
        yield ValidationIssue(
            IssueSeverity.WARNING,
            f"Unconnected nodes: {', '.join(orphans)}",
        )


def validate_map(nodes: list["Node"], edges: list["Edge"]) -> list[ValidationIssue]:
    """
    Run every structural check over a map.

    Reports, in order: empty map (info), reused node ids (error), edges
    with a missing endpoint (error), self loops (warning), repeated
    source/target pairs (info), and unconnected nodes when the map has
    more than one node (warning).
    """
    node_ids = {n.id for n in nodes}
    return [
        *_node_issues(nodes),
        *_edge_issues(node_ids, edges),
        *_orphan_issues(nodes, edges),
    ]


def validation_summary(issues: list[ValidationIssue]) -> dict:
    """Counts per severity plus an overall `valid` flag (no errors)."""
    counts = Counter(issue.severity for issue in issues)
    return {
        "total": len(issues),
        "errors": counts[IssueSeverity.ERROR],
        "warnings": counts[IssueSeverity.WARNING],
        "info": counts[IssueSeverity.INFO],
        "valid": counts[IssueSeverity.ERROR] == 0,
    }
