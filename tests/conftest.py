from __future__ import annotations

import pytest

from santaswap import create_app
from santaswap.documents import MemoryDocumentStore
from santaswap.extensions import db
from santaswap.models import User
from santaswap.services.event_store import EventStore
from tests._support.helpers import ADMIN_NAME, ADMIN_PASSWORD


def make_app(tmp_path, **overrides):
    config = {
        "TESTING": True,
        "SECRET_KEY": "test",
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'santaswap-test.db'}",
        "WTF_CSRF_ENABLED": False,
        "SANTA_ADMIN_NAME": ADMIN_NAME,
        "SANTA_ADMIN_PASSWORD": ADMIN_PASSWORD,
        "SANTA_STORE": "sql",
        "SANTA_STREAM_KEEPALIVE": 0.05,
        "OPENAI_API_KEY": None,
    }
    config.update(overrides)
    return create_app(config)


@pytest.fixture
def app(tmp_path):
    app = make_app(tmp_path)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def unprovisioned_app(tmp_path):
    """Database reachable but the event_documents table was never created."""
    return make_app(tmp_path)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_store(app):
    """The app's own EventStore, inside an app context."""
    with app.app_context():
        yield app.extensions["santaswap.events"]


@pytest.fixture
def store():
    return EventStore(MemoryDocumentStore(), "test-event")


@pytest.fixture
def seed_users(store):
    def seed(*names, password="pw"):
        store.replace_users([*store.read().users, *(User(name=n, password=password) for n in names)])
    return seed
