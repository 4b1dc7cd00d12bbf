"""
Document store clients.

A client stores whole JSON documents by key and pushes every committed
value to listeners registered with ``on_snapshot``. Writes replace whole
fields; there is no versioning and no transaction across a read and a
following write.
"""
from __future__ import annotations

import copy
import logging
import threading
from typing import Callable

from sqlalchemy.exc import OperationalError, ProgrammingError, SQLAlchemyError

from .exceptions import StoreError, StoreNotFound, StoreNotProvisioned, StoreUnavailable
from .extensions import db
from .models import EventDocument

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[dict | None], None]
ErrorCallback = Callable[[Exception], None]

# Driver messages that mean the collection table has not been created.
NOT_PROVISIONED_MARKERS = (
    "no such table",
    "does not exist",
    "doesn't exist",
    "undefined table",
)


def translate_error(exc: SQLAlchemyError) -> StoreError:
    message = str(getattr(exc, "orig", None) or exc)
    if isinstance(exc, (OperationalError, ProgrammingError)):
        lowered = message.lower()
        if any(marker in lowered for marker in NOT_PROVISIONED_MARKERS):
            return StoreNotProvisioned(message)
    return StoreUnavailable(message)


class _SnapshotFanout:
    """Listener registry shared by the store clients."""

    def __init__(self):
        self._listeners: dict[str, list[tuple[SnapshotCallback, ErrorCallback | None]]] = {}
        self._listeners_lock = threading.Lock()

    def on_snapshot(self, key: str, on_next: SnapshotCallback, on_error: ErrorCallback | None = None):
        """
        Register a listener for ``key`` and deliver the current value at once
        (``None`` when the document does not exist). Returns an unsubscribe
        callable. Read failures go to ``on_error``; the listener stays
        registered either way.
        """
        entry = (on_next, on_error)
        with self._listeners_lock:
            self._listeners.setdefault(key, []).append(entry)

        def unsubscribe():
            with self._listeners_lock:
                entries = self._listeners.get(key, [])
                if entry in entries:
                    entries.remove(entry)

        try:
            current = self.get(key)
        except StoreError as e:
            logger.warning(f"Initial snapshot for {key} failed: {e}")
            if on_error:
                on_error(e)
        else:
            on_next(current)
        return unsubscribe

    def listener_count(self, key: str) -> int:
        with self._listeners_lock:
            return len(self._listeners.get(key, []))

    def _notify(self, key: str, data: dict) -> None:
        with self._listeners_lock:
            entries = list(self._listeners.get(key, []))
        for on_next, _ in entries:
            try:
                on_next(copy.deepcopy(data))
            except Exception:
                # The write is already committed; one bad listener must not fail it.
                logger.exception(f"Snapshot listener for {key} raised")

    def get(self, key: str) -> dict | None:
        raise NotImplementedError


class SqlDocumentStore(_SnapshotFanout):
    """Documents kept as JSON rows in the ``event_documents`` table."""

    def get(self, key: str) -> dict | None:
        try:
            row = db.session.get(EventDocument, key)
            return copy.deepcopy(row.data) if row else None
        except SQLAlchemyError as e:
            db.session.rollback()
            raise translate_error(e) from e

    def set(self, key: str, data: dict) -> None:
        try:
            row = db.session.get(EventDocument, key)
            if row is None:
                db.session.add(EventDocument(key=key, data=copy.deepcopy(data)))
            else:
                row.data = copy.deepcopy(data)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise translate_error(e) from e
        self._notify(key, data)

    def update(self, key: str, fields: dict) -> None:
        try:
            row = db.session.get(EventDocument, key)
            if row is None:
                raise StoreNotFound(key)
            merged = {**row.data, **copy.deepcopy(fields)}
            row.data = merged
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise translate_error(e) from e
        self._notify(key, merged)


class MemoryDocumentStore(_SnapshotFanout):
    """Process-local documents; used with SANTA_STORE=memory and in tests."""

    def __init__(self):
        super().__init__()
        self._docs: dict[str, dict] = {}
        self._docs_lock = threading.Lock()

    def get(self, key: str) -> dict | None:
        with self._docs_lock:
            doc = self._docs.get(key)
            return copy.deepcopy(doc) if doc is not None else None

    def set(self, key: str, data: dict) -> None:
        with self._docs_lock:
            self._docs[key] = copy.deepcopy(data)
        self._notify(key, data)

    def update(self, key: str, fields: dict) -> None:
        with self._docs_lock:
            if key not in self._docs:
                raise StoreNotFound(key)
            merged = {**self._docs[key], **copy.deepcopy(fields)}
            self._docs[key] = merged
        self._notify(key, merged)
