"""Flask application factory for the back-office JSON API."""

from __future__ import annotations

from flask import Flask, jsonify, request
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from werkzeug.exceptions import HTTPException

from core.exceptions import ApplicationError
from web.auth import AdminCredentials, init_login_manager
from web.config_middleware import (
    configure_app,
    setup_extensions,
    setup_security_headers,
    setup_metrics,
)
from web.routes import register_routes


def create_app(config, testing=False) -> Flask:
    """Create and configure Flask application.

    Args:
        config: Application configuration
        testing: Whether running in testing mode (disables login and CSRF)

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)

    # Configure application
    configure_app(app, config, testing)

    # Setup extensions
    setup_extensions(app, testing)

    # Setup middleware
    setup_security_headers(app)
    setup_metrics(app)

    # Initialize authentication
    credentials = AdminCredentials(
        username=config.admin_username,
        password_hash=config.admin_password
    )
    init_login_manager(app, credentials)

    # Register routes
    register_routes(app)

    _setup_routes(app)
    _setup_error_handlers(app)

    return app


def _setup_routes(app: Flask) -> None:
    @app.route('/')
    def root():
        return jsonify({"service": "lottery back office", "status": "ok"})

    @app.route('/metrics')
    def metrics():
        """Expose Prometheus metrics."""
        data = generate_latest()
        return data, 200, {'Content-Type': CONTENT_TYPE_LATEST}


def _setup_error_handlers(app: Flask) -> None:
    """Render every error as ``{"error", "message", "details"}`` JSON."""
    @app.errorhandler(ApplicationError)
    def application_error(error: ApplicationError):
        if error.http_status >= 500:
            app.logger.error(f"{error.kind} on {request.method} {request.path}: {error.message}")
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        kind = (error.name or "error").lower().replace(" ", "_")
        return jsonify({"error": kind, "message": error.description, "details": {}}), error.code

    @app.errorhandler(Exception)
    def internal_error(error: Exception):
        app.logger.exception(f"Unhandled error on {request.method} {request.path}")
        return jsonify({
            "error": "internal_error",
            "message": "Internal server error",
            "details": {},
        }), 500
