from __future__ import annotations

import enum
import logging

from ..exceptions import StoreError, StoreNotProvisioned
from ..models import Event, User
from .event_store import EventStore

logger = logging.getLogger(__name__)


class LoginResult(enum.Enum):
    SUCCESS = "SUCCESS"
    WRONG_PASSWORD = "WRONG_PASSWORD"
    GAME_CLOSED = "GAME_CLOSED"
    ERROR = "ERROR"


def normalize(raw_name: str) -> str:
    """'  juan   PEREZ ' -> 'Juan Perez'. This is the participant's identity key."""
    words = (raw_name or "").strip().lower().split()
    return " ".join(w[:1].title() + w[1:] for w in words)


def validate_credentials(name: str, password: str) -> tuple[str, str] | None:
    """Trimmed (name, password), or None when either is empty."""
    name = (name or "").strip()
    password = (password or "").strip()
    if not name or not password:
        return None
    return name, password


def is_administrator(name: str, admin_name: str) -> bool:
    admin = normalize(admin_name)
    return bool(admin) and normalize(name) == admin


def register_or_login(
    store: EventStore,
    name: str,
    password: str,
    admin_name: str,
    admin_password: str,
) -> LoginResult:
    """
    Log in an existing participant, or register a new one while the draw is
    still open. The reserved admin name must also present the admin secret,
    whether or not it is already in the participant list.
    """
    normalized = normalize(name)

    if is_administrator(normalized, admin_name) and password != admin_password:
        return LoginResult.WRONG_PASSWORD

    try:
        event = store.read()

        existing = event.find_user(normalized)
        if existing:
            if existing.password == password:
                return LoginResult.SUCCESS
            return LoginResult.WRONG_PASSWORD

        if event.is_draw_complete:
            return LoginResult.GAME_CLOSED

        store.replace_users([*event.users, User(name=normalized, password=password)])
        logger.info(f"Registered participant {normalized} ({len(event.users) + 1} total)")
        return LoginResult.SUCCESS

    except StoreNotProvisioned:
        raise
    except StoreError as e:
        logger.error(f"Error registering {normalized}: {e}", exc_info=True)
        return LoginResult.ERROR


def remove_user(store: EventStore, name: str) -> None:
    """
    Drop a participant by trimmed, case-insensitive name. Assignments are
    left as they are, even after a draw.
    """
    target = (name or "").strip().lower()
    event = store.read()
    remaining = [u for u in event.users if u.name.strip().lower() != target]
    store.replace_users(remaining)
    if len(remaining) != len(event.users):
        logger.info(f"Removed participant {name}")


def reset_event(store: EventStore) -> None:
    store.replace_all(Event.initial())
    logger.warning("Event reset: all participants and assignments cleared")
