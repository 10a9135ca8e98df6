"""Bounded, newest-first log of recent edits.

The history is the only state that outlives a single request. It is written
by a save/edit observer (possibly from another thread) and read by the
aggregator, which always receives an immutable snapshot.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from collections.abc import Callable

from ctxpack.core.models import EditRecord

DEFAULT_HISTORY_CAPACITY = 10
SAVE_DESCRIPTION = "File saved"


def _now_ms() -> int:
    return int(time.time() * 1000)


class EditHistory:
    """Fixed-capacity edit log; recording past capacity evicts the oldest entry."""

    def __init__(
        self,
        capacity: int = DEFAULT_HISTORY_CAPACITY,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._clock = clock
        self._lock = threading.Lock()
        self._edits: deque[EditRecord] = deque(maxlen=capacity)

    def record(self, edit: EditRecord) -> None:
        with self._lock:
            self._edits.appendleft(edit)

    def record_save(self, file_path: str, description: str = SAVE_DESCRIPTION) -> EditRecord:
        """Record a save of ``file_path`` stamped with the current clock."""
        edit = EditRecord(file_path=file_path, description=description, timestamp_ms=self._clock())
        self.record(edit)
        return edit

    def recent(self) -> tuple[EditRecord, ...]:
        """Snapshot of the log, newest first."""
        with self._lock:
            return tuple(self._edits)

    def clear(self) -> None:
        with self._lock:
            self._edits.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._edits)


__all__ = ["DEFAULT_HISTORY_CAPACITY", "SAVE_DESCRIPTION", "EditHistory"]
