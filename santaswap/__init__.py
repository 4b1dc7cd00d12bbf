from __future__ import annotations

import os

from flask import Flask, render_template

from .documents import MemoryDocumentStore, SqlDocumentStore
from .exceptions import StoreNotProvisioned, StoreUnavailable
from .extensions import db, login_manager, migrate, csrf
from .policies import is_admin_user
from .services.actions import ActionGuard
from .services.event_store import EXTENSION_KEY, EventStore
from .services.hints import DEFAULT_MODEL, HintService
from .views.auth import auth_bp
from .views.feed import feed_bp
from .views.santa import santa_bp


def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__)

    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get("DATABASE_URL", "sqlite:///santaswap.db")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    # The admin is whoever logs in with this name (after normalization) and password
    app.config["SANTA_ADMIN_NAME"] = os.environ.get("SANTA_ADMIN_NAME", "Admin").strip()
    app.config["SANTA_ADMIN_PASSWORD"] = os.environ.get("SANTA_ADMIN_PASSWORD", "change-me")

    app.config["SANTA_EVENT_KEY"] = os.environ.get("SANTA_EVENT_KEY", "navidad2025")
    app.config["SANTA_STORE"] = os.environ.get("SANTA_STORE", "sql")
    app.config["SANTA_HINT_LANGUAGE"] = os.environ.get("SANTA_HINT_LANGUAGE", "Spanish")
    app.config["SANTA_STREAM_KEEPALIVE"] = float(os.environ.get("SANTA_STREAM_KEEPALIVE", "15"))
    app.config["OPENAI_API_KEY"] = os.environ.get("OPENAI_API_KEY")
    app.config["OPENAI_MODEL"] = os.environ.get("OPENAI_MODEL", DEFAULT_MODEL)

    if overrides:
        app.config.update(overrides)

    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    client = MemoryDocumentStore() if app.config["SANTA_STORE"] == "memory" else SqlDocumentStore()
    app.extensions[EXTENSION_KEY] = EventStore(client, app.config["SANTA_EVENT_KEY"])
    app.extensions["santaswap.actions"] = ActionGuard()
    app.extensions["santaswap.hints"] = HintService(
        api_key=app.config["OPENAI_API_KEY"],
        model=app.config["OPENAI_MODEL"],
        language=app.config["SANTA_HINT_LANGUAGE"],
    )

    # Blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(santa_bp)
    app.register_blueprint(feed_bp)

    @app.context_processor
    def inject_global_state():
        return {"is_admin": is_admin_user()}

    # Missing collection: operator has to run `flask db upgrade`; not retried.
    @app.errorhandler(StoreNotProvisioned)
    def handle_not_provisioned(e):
        app.logger.error(f"Event store not provisioned: {e}")
        return render_template("setup_needed.html", detail=str(e)), 503

    @app.errorhandler(StoreUnavailable)
    def handle_unavailable(e):
        app.logger.error(f"Event store unavailable: {e}")
        return render_template("connection_error.html", detail=str(e)), 503

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return app
