from __future__ import annotations

from flask import Blueprint, current_app, render_template, redirect, url_for, flash, request, session
from flask.views import MethodView
from flask_login import login_user, logout_user, current_user

from ..exceptions import ActionInProgress
from ..models import SessionUser
from ..services.access import LoginResult, is_administrator, normalize, register_or_login, validate_credentials
from ..services.event_store import get_event_store


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

LOGIN_ERRORS = {
    LoginResult.WRONG_PASSWORD: "That name already exists and the password does not match.",
    LoginResult.GAME_CLOSED: "The draw has already happened; no new registrations are accepted.",
    LoginResult.ERROR: "Connection error. Please try again.",
}


class LoginView(MethodView):
    """
    One form for both: a new name registers, a known name logs in.
    """
    def get(self):
        if current_user.is_authenticated:
            return redirect(url_for("santa.home"))
        return render_template("auth/login.html")

    def post(self):
        if current_user.is_authenticated:
            return redirect(url_for("santa.home"))

        credentials = validate_credentials(request.form.get("name"), request.form.get("password"))
        if credentials is None:
            flash("Name and password are required.", "error")
            return render_template("auth/login.html"), 400
        raw_name, password = credentials
        name = normalize(raw_name)

        guard = current_app.extensions["santaswap.actions"]
        try:
            with guard.hold("register", name):
                result = register_or_login(
                    get_event_store(),
                    name,
                    password,
                    admin_name=current_app.config["SANTA_ADMIN_NAME"],
                    admin_password=current_app.config["SANTA_ADMIN_PASSWORD"],
                )
        except ActionInProgress:
            flash("Already signing you in, please wait.", "info")
            return render_template("auth/login.html", name=raw_name), 409

        if result is LoginResult.SUCCESS:
            login_user(SessionUser(name), remember=False)
            session.pop("hint", None)
            return redirect(url_for("santa.home"))

        if result is LoginResult.WRONG_PASSWORD and is_administrator(name, current_app.config["SANTA_ADMIN_NAME"]):
            flash("Incorrect administrator password.", "error")
        else:
            flash(LOGIN_ERRORS[result], "error")
        return render_template("auth/login.html", name=raw_name), 400


class LogoutView(MethodView):
    def get(self):
        if current_user.is_authenticated:
            logout_user()
        session.pop("hint", None)
        session.pop("screen", None)
        return redirect(url_for("auth.login"))


auth_bp.add_url_rule("/login", view_func=LoginView.as_view("login"), methods=["GET", "POST"])
auth_bp.add_url_rule("/logout", view_func=LogoutView.as_view("logout"), methods=["GET"])
