"""
Franchise Education Admin
Flask Application Factory.

Usage:
    from eduadmin import create_app
    app = create_app()           # APP_ENV, defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from eduadmin.config import config
from eduadmin.middleware.caller_context import init_caller_context
from eduadmin.middleware.logging_config import configure_logging
from eduadmin.middleware.rate_limiter import init_rate_limits
from eduadmin.middleware.security_headers import init_security_headers
from eduadmin.middleware.timing import init_request_timing
from eduadmin.models import db
from eduadmin.services.entity_registry import ENTITY_DEFINITIONS
from eduadmin.services.entity_service import EntityService
from eduadmin.services.repository import build_store
from eduadmin.services.seed import seed_demo_data
from eduadmin.utils.errors import E, api_error

logger = logging.getLogger(__name__)

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # per-blueprint limits only; storage from RATELIMIT_STORAGE_URI
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: One of "development", "testing", "production".
                     Defaults to the APP_ENV env var, or "development".

    Returns:
        Configured Flask application instance. The access layer is
        available as ``app.extensions["eduadmin"]``.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    config_cls = config[config_name]
    # ProductionConfig validates the environment on instantiation
    app.config.from_object(config_cls())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Middleware ───────────────────────────────────────────────────────
    init_security_headers(app)
    init_request_timing(app)
    init_caller_context(app)
    app.config.setdefault("MAX_CONTENT_LENGTH", 2 * 1024 * 1024)  # 2 MB

    # ── Entity store + access layer ──────────────────────────────────────
    backend = app.config["REPOSITORY_BACKEND"]
    if backend == "sql":
        from eduadmin.models import record as _record_models  # noqa: F401

        with app.app_context():
            db.create_all()
    store = build_store(backend, ENTITY_DEFINITIONS.values())
    app.extensions["eduadmin"] = EntityService(
        store, enforce_scope_ownership=app.config["ENFORCE_SCOPE_OWNERSHIP"],
    )

    # ── Blueprints ───────────────────────────────────────────────────────
    from eduadmin.blueprints.entity_bp import entity_bp
    from eduadmin.blueprints.health_bp import health_bp
    from eduadmin.blueprints.teacher_bp import teacher_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(teacher_bp)
    app.register_blueprint(entity_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-demo")
    @click.option("--keep", is_flag=True, help="Add to existing records instead of clearing them.")
    def seed_demo_cmd(keep):
        """Load the demo dataset into the configured repository."""
        counts = seed_demo_data(store, reset=not keep)
        click.echo(", ".join(f"{name}={n}" for name, n in counts.items()))

    if app.config.get("SEED_DEMO_DATA"):
        with app.app_context():
            seed_demo_data(store)

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error(E.METHOD_NOT_ALLOWED, "Method not allowed")

    @app.errorhandler(429)
    def rate_limited(e):
        return api_error(E.RATE_LIMITED, "Too many requests", details={"limit": str(e.description)})

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error on %s: %s", request.path, e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
