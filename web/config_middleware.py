"""Flask application configuration and middleware setup."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from flask import Flask, g, request
from flask_wtf.csrf import CSRFProtect
from prometheus_client import Counter, Histogram

if TYPE_CHECKING:
    from config import Config

# Global instances
csrf = CSRFProtect()

# Prometheus metrics
REQUEST_LATENCY = Histogram(
    "http_request_latency_seconds",
    "HTTP request latency",
    ["method", "path"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5),
)
REQUEST_ERRORS = Counter(
    "http_request_errors_total",
    "Total number of 5xx responses",
    ["method", "path"],
)


def configure_app(app: Flask, config: Config, testing: bool = False) -> None:
    """Configure Flask application settings."""
    app.config.update(
        SECRET_KEY=config.secret_key,
        MAX_CONTENT_LENGTH=1024 * 1024,
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SECURE=(config.environment != "development"),
        SESSION_COOKIE_SAMESITE="Lax",
        DATABASE_PATH=config.database_path,
        TESTING=testing,
        LOGIN_DISABLED=testing,
        JSON_SORT_KEYS=False,
        WTF_CSRF_TIME_LIMIT=None,
        POLL_INTERVAL_MS=config.poll_interval_ms,
        POLL_JITTER_MS=config.poll_jitter_ms,
        SELL_RATE_LIMIT=config.sell_rate_limit,
        SELL_RATE_WINDOW=config.sell_rate_window,
        TREND_CLAMP=config.trend_clamp,
    )

    # Warn if insecure defaults detected
    if config.environment == "production":
        if config.admin_username == "admin" and config.admin_password in {"123456", "secure_password_change_me"}:
            app.logger.warning("Insecure admin credentials detected in production")
        if config.secret_key.startswith("production_secret_key_must_be_changed"):
            app.logger.warning("SECRET_KEY is not set properly")


def setup_extensions(app: Flask, testing: bool = False) -> None:
    """Setup Flask extensions."""
    # JSON API blueprints are exempted when they are registered
    if not testing:
        csrf.init_app(app)

    from web.performance_middleware import init_performance_middleware
    init_performance_middleware(app)


def setup_security_headers(app: Flask) -> None:
    @app.after_request
    def add_security_headers(response):
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "same-origin")
        response.headers.setdefault("Cache-Control", "no-store")
        return response


def setup_metrics(app: Flask) -> None:
    """Setup Prometheus metrics middleware."""
    @app.before_request
    def before_metrics():
        g._metrics_start = time.perf_counter()

    @app.after_request
    def after_metrics(response):
        start = getattr(g, "_metrics_start", None)
        path = getattr(request.url_rule, "rule", "unmatched")
        if start is not None:
            REQUEST_LATENCY.labels(method=request.method, path=path).observe(time.perf_counter() - start)
        if response.status_code >= 500:
            REQUEST_ERRORS.labels(method=request.method, path=path).inc()
        return response
