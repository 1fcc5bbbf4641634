"""Admin session endpoints."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify
from flask_login import login_user, logout_user

from core.exceptions import AuthenticationError
from web.auth import AdminUser, validate_credentials
from web.routes.common import json_body, record_activity


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.route("/login", methods=["POST"])
def login():
    data = json_body()
    username = str(data.get("username", "")).strip()
    credentials = current_app.config["ADMIN_CREDENTIALS"]
    if not validate_credentials(credentials, username, str(data.get("password", ""))):
        raise AuthenticationError("Invalid username or password")

    login_user(AdminUser(credentials.username), remember=bool(data.get("remember")))
    record_activity("Login", f"Admin '{credentials.username}' signed in")
    return jsonify({"message": "Login successful", "user": {"username": credentials.username}})


@auth_bp.route("/logout", methods=["POST"])
def logout():
    logout_user()
    return jsonify({"message": "Logged out"})
