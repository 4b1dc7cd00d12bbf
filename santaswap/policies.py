from __future__ import annotations

from flask import current_app, redirect, url_for, flash
from flask.views import MethodView
from flask_login import current_user

from .services.access import is_administrator


def is_admin_user() -> bool:
    return current_user.is_authenticated and is_administrator(
        current_user.name, current_app.config.get("SANTA_ADMIN_NAME") or ""
    )


def current_identity() -> str | None:
    return current_user.name if current_user.is_authenticated else None


class LoginRequiredMixin(MethodView):
    def dispatch_request(self, *args, **kwargs):
        if not current_user.is_authenticated:
            return redirect(url_for("auth.login"))
        return super().dispatch_request(*args, **kwargs)


class AdminRequiredMixin(LoginRequiredMixin):
    """
    Admin actions are only checked here, in the web layer. The services and
    the store accept writes from anyone who can call them.
    """
    def dispatch_request(self, *args, **kwargs):
        if not is_admin_user():
            flash("Not authorized.", "error")
            return redirect(url_for("santa.lobby"))
        return super().dispatch_request(*args, **kwargs)
