"""
Which screen a client should be on.

The screen is a pure function of the latest Event, the local identity and
the previous screen. ``ScreenTracker`` feeds it a stream of snapshots and
identity changes and reports each transition.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass

from ..models import Event


class Screen(enum.Enum):
    LOGIN = "LOGIN"
    LOBBY = "LOBBY"
    RESULT = "RESULT"


@dataclass(frozen=True)
class ScreenChange:
    previous: Screen | None
    current: Screen
    # RESULT -> LOBBY because the admin reset the event; cached hints are stale.
    draw_reopened: bool = False


def derive_screen(event: Event | None, identity: str | None, previous: Screen | None = None) -> ScreenChange:
    if not identity:
        current = Screen.LOGIN
    elif event is not None and event.is_draw_complete:
        current = Screen.RESULT
    else:
        current = Screen.LOBBY
    reopened = previous is Screen.RESULT and current is Screen.LOBBY and bool(identity)
    return ScreenChange(previous=previous, current=current, draw_reopened=reopened)


class ScreenTracker:
    def __init__(self, identity: str | None = None, event: Event | None = None):
        self.identity = identity
        self.event = event
        self.screen = derive_screen(event, identity).current

    def _advance(self) -> ScreenChange:
        change = derive_screen(self.event, self.identity, self.screen)
        self.screen = change.current
        return change

    def observe_event(self, event: Event) -> ScreenChange:
        self.event = event
        return self._advance()

    def observe_identity(self, identity: str | None) -> ScreenChange:
        self.identity = identity
        return self._advance()
