"""
Edit History - linear undo/redo over full map snapshots.

The history is a list of HistorySnapshot entries plus a cursor:
- `commit` drops everything after the cursor, appends, and moves the
  cursor to the new last entry (no history branches are kept)
- `undo` / `redo` move the cursor and return a copy of the snapshot to apply;
  at either boundary they do nothing and return None

Continuous edits (typing a label, dragging a colour swatch) go through
`schedule_commit`, which coalesces a burst of updates into one entry
committed after a quiet period. Timers are owned by a Debouncer so they
can be inspected and cancelled on teardown.
"""

import asyncio
import logging
from typing import Callable, Hashable, Optional, TYPE_CHECKING

from .models import HistorySnapshot

if TYPE_CHECKING:
    from .models import Node, Edge

logger = logging.getLogger(__name__)

GraphCapture = Callable[[], tuple[list["Node"], list["Edge"], Optional[str]]]


class Debouncer:
    """
    Per-key cancellable timers on an asyncio event loop.

    Scheduling a key that already has a pending timer cancels that timer
    first, so only the last call in a burst runs.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._timers: dict[Hashable, asyncio.TimerHandle] = {}

    @property
    def pending(self) -> set[Hashable]:
        """Keys with an armed timer."""
        return set(self._timers)

    def is_pending(self, key: Hashable) -> bool:
        return key in self._timers

    def has_loop(self) -> bool:
        """True if `schedule` can arm a timer (a loop was given or one is running)."""
        if self._loop is not None:
            return True
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return False
        return True

    def schedule(self, key: Hashable, fn: Callable[[], object], delay: float):
        """
        Run `fn` after `delay` seconds unless `key` is rescheduled first.

        Uses the loop given at construction, or the running loop.

        Raises:
            RuntimeError: if no loop was given and none is running
        """
        self.cancel(key)
        loop = self._loop or asyncio.get_running_loop()
        self._timers[key] = loop.call_later(delay, self._fire, key, fn)

    def cancel(self, key: Hashable) -> bool:
        """Cancel the pending timer for `key`. Returns True if one was pending."""
        handle = self._timers.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> int:
        """Cancel every pending timer. Returns how many were cancelled."""
        count = len(self._timers)
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        return count

    def _fire(self, key: Hashable, fn: Callable[[], object]):
        self._timers.pop(key, None)
        fn()


class HistoryManager:
    """
    Undo/redo stack of (nodes, edges, view_mode) snapshots.

    Snapshots are value copies: mutating the live graph after a commit
    never changes history. The manager always holds at least one entry
    (the state it was created or reset with) and 0 <= cursor < len.
    """

    def __init__(
        self,
        nodes: list["Node"],
        edges: list["Edge"],
        view_mode: Optional[str] = None,
        max_history: Optional[int] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None
    ):
        self._entries: list[HistorySnapshot] = []
        self._cursor = 0
        self._max_history = max_history
        self._debouncer = Debouncer(loop)
        self.reset(nodes, edges, view_mode)

    # --- Properties ---

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def entries(self) -> tuple[HistorySnapshot, ...]:
        return tuple(self._entries)

    @property
    def current(self) -> HistorySnapshot:
        return self._entries[self._cursor]

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._entries) - 1

    @property
    def pending_commits(self) -> set[Hashable]:
        """Keys of debounced commits that have not fired yet."""
        return self._debouncer.pending

    def __len__(self) -> int:
        return len(self._entries)

    # --- Mutations ---

    def reset(self, nodes: list["Node"], edges: list["Edge"], view_mode: Optional[str] = None):
        """Discard all entries and start over with a single one."""
        self._entries = [HistorySnapshot.capture(nodes, edges, view_mode)]
        self._cursor = 0

    def commit(self, nodes: list["Node"], edges: list["Edge"], view_mode: Optional[str] = None) -> HistorySnapshot:
        """Record the given state as the newest entry, discarding any redo branch."""
        del self._entries[self._cursor + 1:]

        snapshot = HistorySnapshot.capture(nodes, edges, view_mode)
        self._entries.append(snapshot)

        # Trim history if too long
        if self._max_history and len(self._entries) > self._max_history:
            del self._entries[:len(self._entries) - self._max_history]

        self._cursor = len(self._entries) - 1
        logger.debug("History commit: %d entries, cursor %d", len(self._entries), self._cursor)
        return snapshot

    def undo(self) -> Optional[HistorySnapshot]:
        """Step back one entry and return a copy of it, or None at the first entry."""
        if not self.can_undo:
            return None
        self._cursor -= 1
        logger.debug("History undo: cursor %d", self._cursor)
        return self._entries[self._cursor].model_copy(deep=True)

    def redo(self) -> Optional[HistorySnapshot]:
        """Step forward one entry and return a copy of it, or None at the last entry."""
        if not self.can_redo:
            return None
        self._cursor += 1
        logger.debug("History redo: cursor %d", self._cursor)
        return self._entries[self._cursor].model_copy(deep=True)

    # --- Debounced commits ---

    def schedule_commit(self, key: Hashable, capture: GraphCapture, delay: float) -> bool:
        """
        Commit after `delay` seconds of quiet for `key`.

        `capture` is called when the timer fires and returns the
        (nodes, edges, view_mode) to record, so the entry holds whatever
        the live graph looks like at that moment. Rescheduling the same
        key restarts the quiet period.

        Without an event loop there is no timer to wait on, so the commit
        happens at once. Returns True if the commit was deferred.
        """
        if not self._debouncer.has_loop():
            logger.debug("No event loop for %r, committing immediately", key)
            self.commit(*capture())
            return False

        self._debouncer.schedule(key, lambda: self.commit(*capture()), delay)
        return True

    def cancel_pending(self) -> int:
        """Cancel all pending debounced commits. Returns how many were dropped."""
        return self._debouncer.cancel_all()

    def close(self):
        """Release outstanding timers so nothing commits after teardown."""
        cancelled = self._debouncer.cancel_all()
        if cancelled:
            logger.debug("History closed with %d pending commits cancelled", cancelled)
