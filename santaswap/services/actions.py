from __future__ import annotations

import threading
from contextlib import contextmanager

from ..exceptions import ActionInProgress


class ActionGuard:
    """
    One "in progress" flag per (action, actor). A second submission of the
    same action while the first is outstanding is refused instead of queued;
    different actions never block each other.
    """

    def __init__(self):
        self._active: set[tuple[str, str]] = set()
        self._lock = threading.Lock()

    def is_active(self, action: str, actor: str) -> bool:
        with self._lock:
            return (action, actor) in self._active

    @contextmanager
    def hold(self, action: str, actor: str):
        slot = (action, actor)
        with self._lock:
            if slot in self._active:
                raise ActionInProgress(action, actor)
            self._active.add(slot)
        try:
            yield
        finally:
            with self._lock:
                self._active.discard(slot)
