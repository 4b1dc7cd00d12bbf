from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from flask_login import UserMixin

from .extensions import db, login_manager


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EventDocument(db.Model):
    """
    One JSON document per key. This table is the store's "collection";
    the app only ever uses a single key.
    """
    __tablename__ = "event_documents"

    key = db.Column(db.String(128), primary_key=True)
    data = db.Column(db.JSON, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


# --- Event document records ---

@dataclass(frozen=True)
class User:
    name: str
    # None for legacy entries stored as bare names; those can never log in.
    password: str | None = None

    @classmethod
    def from_dict(cls, raw) -> "User":
        if isinstance(raw, str):
            return cls(name=raw)
        return cls(name=raw.get("name", ""), password=raw.get("password"))

    def to_dict(self) -> dict:
        out = {"name": self.name}
        if self.password is not None:
            out["password"] = self.password
        return out


@dataclass(frozen=True)
class Assignment:
    giver: str
    receiver: str

    @classmethod
    def from_dict(cls, raw: dict) -> "Assignment":
        return cls(giver=raw["giver"], receiver=raw["receiver"])

    def to_dict(self) -> dict:
        return {"giver": self.giver, "receiver": self.receiver}


@dataclass(frozen=True)
class Event:
    users: list[User] = field(default_factory=list)
    assignments: list[Assignment] = field(default_factory=list)
    is_draw_complete: bool = False

    @classmethod
    def initial(cls) -> "Event":
        return cls()

    @classmethod
    def from_dict(cls, raw: dict | None) -> "Event":
        if not raw:
            return cls.initial()
        return cls(
            users=[User.from_dict(u) for u in raw.get("users") or []],
            assignments=[Assignment.from_dict(a) for a in raw.get("assignments") or []],
            is_draw_complete=bool(raw.get("isDrawComplete", False)),
        )

    def to_dict(self) -> dict:
        return {
            "users": [u.to_dict() for u in self.users],
            "assignments": [a.to_dict() for a in self.assignments],
            "isDrawComplete": self.is_draw_complete,
        }

    def to_public_dict(self) -> dict:
        """
        What browsers may see: names and draw status. Passwords and the
        giver -> receiver pairs stay on the server.
        """
        return {
            "users": [{"name": u.name} for u in self.users],
            "isDrawComplete": self.is_draw_complete,
        }

    def find_user(self, name: str) -> User | None:
        return next((u for u in self.users if u.name == name), None)


# --- Session principal ---

class SessionUser(UserMixin):
    """The acting participant, identified only by normalized name."""

    def __init__(self, name: str):
        self.name = name

    def get_id(self) -> str:
        return self.name


@login_manager.user_loader
def load_user(user_id: str):
    return SessionUser(user_id) if user_id else None
