from __future__ import annotations

import logging
import random

from ..exceptions import DrawRejected
from ..models import Assignment, Event
from .event_store import EventStore

logger = logging.getLogger(__name__)

MIN_PARTICIPANTS = 2


def build_cycle(names: list[str], rng: random.Random | None = None) -> list[Assignment]:
    """
    Shuffle the names and chain them into one closed loop: each name gives
    to the next one in shuffled order and the last gives to the first.
    With two names this is a mutual pair.
    """
    if len(names) < MIN_PARTICIPANTS:
        raise DrawRejected(f"Need at least {MIN_PARTICIPANTS} participants to draw, got {len(names)}.")

    shuffled = list(names)
    (rng or random).shuffle(shuffled)
    n = len(shuffled)
    return [Assignment(giver=shuffled[i], receiver=shuffled[(i + 1) % n]) for i in range(n)]


def perform_draw(store: EventStore, rng: random.Random | None = None) -> list[Assignment]:
    # No completion check here: a second call re-draws and overwrites.
    event = store.read()
    assignments = build_cycle([u.name for u in event.users], rng)
    store.replace_assignments(assignments, is_draw_complete=True)
    logger.info(f"Draw complete for {len(assignments)} participants")
    return assignments


def get_assignment(event: Event, name: str) -> str | None:
    match = next((a for a in event.assignments if a.giver == name), None)
    return match.receiver if match else None
