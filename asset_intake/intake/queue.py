"""
In-memory FIFO of captures waiting for operator review.

Producers (single captures, batch imports, late geolocation callbacks) may
enqueue from any thread; a single consumer, the intake workflow, removes the
head only when no other capture is being reviewed.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Callable, Deque, List, Optional

from ..models.records import PendingCapture

Listener = Callable[[], None]


class IntakeQueue:
    def __init__(self, *, max_pending: int = 0, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger("IntakeQueue")
        self.max_pending = max(0, int(max_pending))
        self._items: Deque[PendingCapture] = deque()
        self._lock = threading.Lock()
        self._listeners: List[Listener] = []

    def add_listener(self, listener: Listener) -> None:
        """Register a callback fired when the queue goes from empty to non-empty."""
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def enqueue(self, capture: PendingCapture) -> bool:
        with self._lock:
            if self.max_pending and len(self._items) >= self.max_pending:
                self.logger.warning(
                    "Intake queue full; refused capture=%s pending=%s",
                    capture.id,
                    len(self._items),
                )
                return False
            was_empty = not self._items
            self._items.append(capture)
            depth = len(self._items)
            listeners = list(self._listeners) if was_empty else []
        self.logger.info(
            "Capture queued id=%s plate=%s vin=%s depth=%s",
            capture.id,
            capture.recognition.plate,
            capture.recognition.vin,
            depth,
        )
        # Listeners run outside the lock so they may dequeue immediately.
        for listener in listeners:
            listener()
        return True

    def try_dequeue_next(self) -> Optional[PendingCapture]:
        with self._lock:
            if not self._items:
                return None
            return self._items.popleft()

    def clear(self) -> List[PendingCapture]:
        """Drop every pending capture and return them in queue order."""
        with self._lock:
            dropped = list(self._items)
            self._items.clear()
        if dropped:
            self.logger.info("Intake queue cleared; dropped %s capture(s)", len(dropped))
        return dropped

    def snapshot(self) -> List[PendingCapture]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __bool__(self) -> bool:
        return len(self) > 0
