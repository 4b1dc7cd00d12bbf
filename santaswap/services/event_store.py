from __future__ import annotations

import logging
from typing import Callable

from flask import current_app

from ..exceptions import StoreError, StoreNotProvisioned
from ..models import Assignment, Event, User

logger = logging.getLogger(__name__)

EXTENSION_KEY = "santaswap.events"

# Message fragments that identify an unprovisioned backing store when the
# error did not come through our own translation.
SETUP_NEEDED_MARKERS = (
    "no such table",
    "does not exist",
    "not-found",
    "has not been used",
)


def is_setup_needed(error: BaseException) -> bool:
    if isinstance(error, StoreNotProvisioned):
        return True
    message = str(error).lower()
    return any(marker in message for marker in SETUP_NEEDED_MARKERS)


class EventStore:
    """
    Owns the single shared Event document.

    Every mutation is read -> compute -> write the full field. There is no
    version check: two writers racing inside one round trip can lose an
    update, and the last write the store sees wins.
    """

    def __init__(self, client, key: str):
        self.client = client
        self.key = key

    def subscribe(self, on_update: Callable[[Event], None], on_error: Callable[[Exception], None] | None = None):
        """
        Live feed of the Event. ``on_update`` fires immediately and then after
        every committed write. A missing document is delivered as the empty
        Event and created in the store; a failed creation is reported to
        ``on_error`` without taking back the delivered value.
        """
        def handle_snapshot(raw):
            if raw is not None:
                on_update(Event.from_dict(raw))
                return
            initial = Event.initial()
            on_update(initial)
            try:
                self.client.set(self.key, initial.to_dict())
            except StoreError as e:
                logger.error(f"Could not create event document {self.key}: {e}")
                if on_error:
                    on_error(e)

        def handle_error(error):
            logger.error(f"Event sync error: {error}")
            if on_error:
                on_error(error)

        return self.client.on_snapshot(self.key, handle_snapshot, handle_error)

    def read(self) -> Event:
        raw = self.client.get(self.key)
        if raw is None:
            initial = Event.initial()
            self.client.set(self.key, initial.to_dict())
            return initial
        return Event.from_dict(raw)

    def replace_users(self, users: list[User]) -> None:
        self.client.update(self.key, {"users": [u.to_dict() for u in users]})

    def replace_assignments(self, assignments: list[Assignment], is_draw_complete: bool) -> None:
        self.client.update(self.key, {
            "assignments": [a.to_dict() for a in assignments],
            "isDrawComplete": is_draw_complete,
        })

    def replace_all(self, event: Event) -> None:
        self.client.set(self.key, event.to_dict())


def get_event_store() -> EventStore:
    return current_app.extensions[EXTENSION_KEY]
