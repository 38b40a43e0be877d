"""
Layout Engine - switches a map between layout modes.

Each visited mode remembers the node positions it last had, so toggling
between modes is lossless: returning to a mode restores its positions
instead of recomputing them.
"""

import logging
from typing import Optional, TYPE_CHECKING

from .layout import apply_positions, compute_layout, normalize_mode
from .models import LayoutMode, LayoutSnapshot

if TYPE_CHECKING:
    from .models import Node, Edge

logger = logging.getLogger(__name__)


class LayoutCache:
    """
    Last known node positions per layout mode.

    One entry per distinct mode visited; entries are replaced, never
    evicted (only `clear` empties the cache, on workspace reset). An
    entry's node ids need not match the live graph.
    """

    def __init__(self):
        self._entries: dict[str, LayoutSnapshot] = {}

    def __contains__(self, mode: str) -> bool:
        return mode in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def modes(self) -> list[str]:
        return list(self._entries)

    def get(self, mode: str) -> Optional[LayoutSnapshot]:
        return self._entries.get(mode)

    def put(self, mode: str, nodes: list["Node"]) -> LayoutSnapshot:
        """Store value copies of `nodes` as the entry for `mode`."""
        snapshot = LayoutSnapshot(mode=mode, nodes=[n.model_copy(deep=True) for n in nodes])
        self._entries[mode] = snapshot
        return snapshot

    def clear(self):
        self._entries.clear()


class LayoutEngine:
    """
    Decides whether a layout switch restores cached positions or recomputes.

    The engine never adds or removes nodes and never mutates the nodes it
    is given; `apply_layout` always returns new Node copies.
    """

    def __init__(self, cache: Optional[LayoutCache] = None):
        self._cache = cache if cache is not None else LayoutCache()

    @property
    def cache(self) -> LayoutCache:
        return self._cache

    def apply_layout(
        self,
        nodes: list["Node"],
        edges: list["Edge"],
        current_mode: "str | LayoutMode | None",
        target_mode: "str | LayoutMode"
    ) -> list["Node"]:
        """
        Switch the graph from `current_mode` to `target_mode`.

        - Same mode: nodes are returned unchanged (as copies).
        - Otherwise the current positions are stored under `current_mode`.
        - Cached target: positions are restored from the cache entry.
          Cached ids missing from the graph are dropped; graph nodes the
          entry does not cover keep their current position.
        - Uncached target: positions are computed by the target's algorithm
          from the current positions and edges, then cached.

        Raises:
            UnknownLayoutError: if target_mode has no algorithm
        """
        target = normalize_mode(target_mode)
        current = current_mode.value if isinstance(current_mode, LayoutMode) else current_mode

        if target == current:
            return [n.model_copy(deep=True) for n in nodes]

        if current:
            self._cache.put(current, nodes)

        cached = self._cache.get(target)
        if cached is not None:
            logger.debug("Layout %s restored from cache (%d nodes)", target, len(cached.nodes))
            return apply_positions(nodes, cached.positions())

        logger.debug("Layout %s computed for %d nodes, %d edges", target, len(nodes), len(edges))
        result = apply_positions(nodes, compute_layout(target, nodes, edges))
        self._cache.put(target, result)
        return result
