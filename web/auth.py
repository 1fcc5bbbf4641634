"""Authentication utilities for the back-office API.

A single configured administrator signs in with username and password.
Sellers and operators are identified per request by the ``sellerId`` or
``operatorId`` they send, not by the session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from flask import jsonify
from flask_login import LoginManager, UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

logger = logging.getLogger(__name__)


@dataclass
class AdminCredentials:
    username: str
    password_hash: str


login_manager = LoginManager()


class AdminUser(UserMixin):
    """Represents an authenticated admin user."""
    def __init__(self, username: str) -> None:
        self.id = username
        self.username = username


def init_login_manager(app, credentials: AdminCredentials) -> AdminCredentials:
    """Initialize Flask-Login and store hashed admin credentials in the app config."""
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id: str) -> Optional[AdminUser]:
        if user_id == credentials.username:
            return AdminUser(username=user_id)
        return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "authentication_required", "message": "Login required", "details": {}}), 401

    # Check if password needs to be hashed (only if it's not already hashed)
    if not credentials.password_hash.startswith(("pbkdf2:", "scrypt:")):
        credentials.password_hash = generate_password_hash(credentials.password_hash)
        logger.info("Password hashed for admin user '%s'", credentials.username)

    app.config["ADMIN_CREDENTIALS"] = credentials
    return credentials


def validate_credentials(credentials: AdminCredentials, username: str, password: str) -> bool:
    """Simple username/password check against the configured admin."""
    if not username or username.lower() != credentials.username.lower():
        logger.info("Login rejected: unknown username '%s'", username)
        return False

    result = check_password_hash(credentials.password_hash, password or "")
    if not result:
        logger.info("Login rejected: wrong password for '%s'", username)
    return result
