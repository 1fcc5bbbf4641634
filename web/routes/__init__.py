"""Route registration for the Flask app."""

from __future__ import annotations

from flask import Flask

from web.config_middleware import csrf
from .auth import auth_bp
from .health import health_bp
from .lotteries import lotteries_bp
from .operator import operator_bp
from .reports import reports_bp
from .tickets import tickets_bp

API_BLUEPRINTS = (auth_bp, lotteries_bp, operator_bp, reports_bp, tickets_bp)


def register_routes(app: Flask) -> None:
    app.register_blueprint(health_bp)
    for blueprint in API_BLUEPRINTS:
        # JSON API: no form CSRF token
        csrf.exempt(blueprint)
        app.register_blueprint(blueprint)
