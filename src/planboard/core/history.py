"""undo/redo history with debounced coalescing.

history is a list of snapshots plus a cursor. structural edits commit
immediately; streams of small edits (dragging a node) commit through a
debounce window so a whole gesture becomes one entry.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Optional

from .models import Snapshot
from .timers import DebounceTimer, SchedulerProtocol

logger = logging.getLogger(__name__)


# --- configuration ---

HISTORY_LIMIT = 50
DEBOUNCE_SECONDS = 0.5


class HistoryState(Enum):
    AT_START = "at_start"
    MIDDLE = "middle"
    AT_END = "at_end"


class HistoryManager:
    """snapshot stack with a cursor and a single debounce timer.

    the owner must call ``dispose()`` when the editing session ends so a
    pending commit never fires afterwards.
    """

    def __init__(
        self,
        initial: Optional[Snapshot] = None,
        limit: int = HISTORY_LIMIT,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        scheduler: Optional[SchedulerProtocol] = None,
    ):
        self.limit = limit
        self._entries: list[Snapshot] = [initial if initial is not None else Snapshot.empty()]
        self._cursor = 0
        self._pending: Optional[Snapshot] = None
        # threading.Timer callbacks arrive on another thread
        self._lock = threading.RLock()
        self._timer = DebounceTimer(debounce_seconds, scheduler, lock=self._lock)
        self._disposed = False

    # --- inspection ---

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def entries(self) -> tuple[Snapshot, ...]:
        return tuple(self._entries)

    @property
    def current(self) -> Snapshot:
        """snapshot at the cursor."""
        return self._entries[self._cursor]

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    @property
    def state(self) -> HistoryState:
        if self._cursor == 0:
            return HistoryState.AT_START
        if self._cursor == len(self._entries) - 1:
            return HistoryState.AT_END
        return HistoryState.MIDDLE

    def __len__(self) -> int:
        return len(self._entries)

    def can_undo(self) -> bool:
        return self._cursor > 0

    def can_redo(self) -> bool:
        return self._cursor < len(self._entries) - 1

    # --- commits ---

    def commit(self, snapshot: Snapshot, immediate: bool = False) -> bool:
        """record ``snapshot``. returns True if an entry was pushed now.

        debounced commits replace any pending one and land after the
        coalescing window; immediate commits drop the pending one first.
        """
        with self._lock:
            if self._disposed:
                logger.warning("commit after dispose ignored")
                return False
            if immediate:
                self._timer.cancel()
                self._pending = None
                return self._push(snapshot)
            self._pending = snapshot
            self._timer.schedule(self._fire)
            return False

    def flush(self) -> bool:
        """push the pending debounced snapshot now, if there is one."""
        with self._lock:
            self._timer.cancel()
            snapshot, self._pending = self._pending, None
            if snapshot is None:
                return False
            return self._push(snapshot)

    def cancel_pending(self) -> None:
        with self._lock:
            self._timer.cancel()
            self._pending = None

    def _fire(self) -> None:
        # called by the timer with self._lock held
        with self._lock:
            snapshot, self._pending = self._pending, None
            if snapshot is not None and not self._disposed:
                self._push(snapshot)

    def _push(self, snapshot: Snapshot) -> bool:
        if snapshot == self._entries[self._cursor]:
            logger.debug("history push skipped: unchanged snapshot")
            return False
        del self._entries[self._cursor + 1:]
        self._entries.append(snapshot)
        if len(self._entries) > self.limit:
            del self._entries[: len(self._entries) - self.limit]
        self._cursor = len(self._entries) - 1
        logger.debug(f"history push: cursor={self._cursor} size={len(self._entries)}")
        return True

    # --- navigation ---

    def undo(self) -> Optional[Snapshot]:
        """step back one entry. returns the snapshot to apply, or None at the start."""
        with self._lock:
            self.flush()
            if not self.can_undo():
                return None
            self._cursor -= 1
            logger.debug(f"undo: cursor={self._cursor}")
            return self._entries[self._cursor]

    def redo(self) -> Optional[Snapshot]:
        """step forward one entry. returns the snapshot to apply, or None at the end."""
        with self._lock:
            self.flush()
            if not self.can_redo():
                return None
            self._cursor += 1
            logger.debug(f"redo: cursor={self._cursor}")
            return self._entries[self._cursor]

    def reset(self, snapshot: Snapshot) -> None:
        """replace the whole history with a single entry."""
        with self._lock:
            self._timer.cancel()
            self._pending = None
            self._entries = [snapshot]
            self._cursor = 0

    def dispose(self) -> None:
        """cancel the timer; later commits are ignored."""
        with self._lock:
            self._timer.cancel()
            self._pending = None
            self._disposed = True
