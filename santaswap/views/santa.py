from __future__ import annotations

import logging

from flask import Blueprint, current_app, render_template, redirect, url_for, flash, request, session
from flask.views import MethodView
from flask_login import logout_user

from ..exceptions import ActionInProgress, DrawRejected, StoreError, StoreNotProvisioned
from ..models import Event
from ..policies import LoginRequiredMixin, AdminRequiredMixin, current_identity
from ..services.access import remove_user, reset_event
from ..services.draw import MIN_PARTICIPANTS, get_assignment, perform_draw
from ..services.event_store import get_event_store
from ..services.screens import Screen, derive_screen

santa_bp = Blueprint("santa", __name__)
logger = logging.getLogger(__name__)

SCREEN_ENDPOINTS = {
    Screen.LOGIN: "auth.login",
    Screen.LOBBY: "santa.lobby",
    Screen.RESULT: "santa.result",
}


def track_screen(event: Event) -> Screen:
    """Advance this browser's screen from the latest Event; drop the hint on reopen."""
    previous = session.get("screen")
    change = derive_screen(event, current_identity(), Screen(previous) if previous else None)
    if change.draw_reopened:
        session.pop("hint", None)
    session["screen"] = change.current.value
    return change.current


def _confirmed() -> bool:
    return request.form.get("confirm") == "yes"


class HomeView(MethodView):
    def get(self):
        screen = track_screen(get_event_store().read())
        return redirect(url_for(SCREEN_ENDPOINTS[screen]))


class LobbyView(LoginRequiredMixin):
    def get(self):
        event = get_event_store().read()
        screen = track_screen(event)
        if screen is not Screen.LOBBY:
            return redirect(url_for(SCREEN_ENDPOINTS[screen]))
        return render_template(
            "santa/lobby.html",
            users=event.users,
            current_name=current_identity(),
            can_draw=len(event.users) >= MIN_PARTICIPANTS,
        )


class ResultView(LoginRequiredMixin):
    def get(self):
        event = get_event_store().read()
        screen = track_screen(event)
        if screen is not Screen.RESULT:
            return redirect(url_for(SCREEN_ENDPOINTS[screen]))

        receiver = get_assignment(event, current_identity())
        hint = None
        if receiver:
            cached = session.get("hint") or {}
            if cached.get("receiver") == receiver:
                hint = cached["text"]
            else:
                hint = current_app.extensions["santaswap.hints"].generate_hint(receiver)
                session["hint"] = {"receiver": receiver, "text": hint}

        return render_template("santa/result.html", receiver=receiver, hint=hint)


class AdminDeleteParticipantView(AdminRequiredMixin):
    def post(self, name: str):
        if not _confirmed():
            flash(f"Confirm to remove {name} from the list.", "error")
            return redirect(url_for("santa.lobby"))

        guard = current_app.extensions["santaswap.actions"]
        try:
            with guard.hold("delete", name.strip().lower()):
                remove_user(get_event_store(), name)
        except ActionInProgress:
            flash(f"Already removing {name}.", "info")
        except StoreNotProvisioned:
            raise
        except StoreError as e:
            logger.error(f"Error removing user {name}: {e}", exc_info=True)
            flash(f"Could not remove {name}; nothing was changed. Please try again.", "error")
        else:
            flash(f"Removed {name}.", "success")
        return redirect(url_for("santa.lobby"))


class AdminDrawView(AdminRequiredMixin):
    def post(self):
        store = get_event_store()
        event = store.read()

        if event.is_draw_complete:
            flash("The draw has already been done.", "info")
            return redirect(url_for("santa.home"))
        if len(event.users) < MIN_PARTICIPANTS:
            flash(f"At least {MIN_PARTICIPANTS} people are needed for the draw.", "error")
            return redirect(url_for("santa.lobby"))
        if not _confirmed():
            flash("Confirm the draw: it closes registration and assigns the gifts.", "error")
            return redirect(url_for("santa.lobby"))

        guard = current_app.extensions["santaswap.actions"]
        try:
            with guard.hold("draw", "event"):
                # Another admin may have finished a draw since the check above.
                if store.read().is_draw_complete:
                    flash("The draw has already been done.", "info")
                    return redirect(url_for("santa.home"))
                perform_draw(store)
        except ActionInProgress:
            flash("The draw is already running.", "info")
            return redirect(url_for("santa.lobby"))
        except DrawRejected as e:
            flash(str(e), "error")
            return redirect(url_for("santa.lobby"))
        except StoreNotProvisioned:
            raise
        except StoreError as e:
            logger.error(f"Error drawing: {e}", exc_info=True)
            flash("The draw failed. Please try again.", "error")
            return redirect(url_for("santa.lobby"))

        return redirect(url_for("santa.result"))


class AdminResetView(AdminRequiredMixin):
    def post(self):
        if not _confirmed():
            flash("Confirm the reset: it deletes every participant and assignment.", "error")
            return redirect(url_for("santa.lobby"))

        try:
            reset_event(get_event_store())
        except StoreNotProvisioned:
            raise
        except StoreError as e:
            logger.error(f"Error resetting: {e}", exc_info=True)
            flash("Reset failed. Please try again.", "error")
            return redirect(url_for("santa.lobby"))

        logout_user()
        session.pop("hint", None)
        session.pop("screen", None)
        flash("The event has been reset.", "success")
        return redirect(url_for("auth.login"))


# Register routes
santa_bp.add_url_rule("/", view_func=HomeView.as_view("home"))
santa_bp.add_url_rule("/lobby", view_func=LobbyView.as_view("lobby"))
santa_bp.add_url_rule("/result", view_func=ResultView.as_view("result"))

santa_bp.add_url_rule("/admin/draw", view_func=AdminDrawView.as_view("admin_draw"), methods=["POST"])
santa_bp.add_url_rule("/admin/reset", view_func=AdminResetView.as_view("admin_reset"), methods=["POST"])
santa_bp.add_url_rule(
    "/admin/participants/<path:name>/delete",
    view_func=AdminDeleteParticipantView.as_view("admin_delete_participant"),
    methods=["POST"],
)
