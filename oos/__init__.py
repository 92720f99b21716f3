"""
OOS WebApp
Flask Application Factory.

Usage:
    from oos import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event
from werkzeug.exceptions import HTTPException

from oos.config import config
from oos.middleware.jwt_auth import init_jwt_middleware
from oos.middleware.logging_config import configure_logging
from oos.middleware.rate_limiter import init_rate_limits
from oos.middleware.security_headers import init_security_headers
from oos.middleware.timing import init_request_timing
from oos.models import db
from oos.utils.errors import register_error_handlers

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # per-blueprint limits only
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # Instantiate so ProductionConfig can refuse missing secrets
    app.config.from_object(config[config_name]())
    app.config.setdefault("RATELIMIT_STORAGE_URI", app.config["REDIS_URL"])

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Middleware ───────────────────────────────────────────────────────
    init_security_headers(app)
    init_request_timing(app)
    init_jwt_middleware(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from oos.models import ai as _ai_models                 # noqa: F401
    from oos.models import auth as _auth_models             # noqa: F401
    from oos.models import donation as _donation_models     # noqa: F401
    from oos.models import meeting as _meeting_models       # noqa: F401
    from oos.models import startup as _startup_models       # noqa: F401
    from oos.models import workspace as _workspace_models   # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        db.create_all()

    # ── Blueprints ───────────────────────────────────────────────────────
    from oos.blueprints.admin_bp import admin_bp
    from oos.blueprints.ai_bp import ai_bp
    from oos.blueprints.auth_bp import auth_bp
    from oos.blueprints.health_bp import health_bp
    from oos.blueprints.payment_bp import payment_bp
    from oos.blueprints.startup_bp import startup_bp
    from oos.blueprints.uploads_bp import uploads_bp
    from oos.blueprints.video_bp import video_bp
    from oos.blueprints.workspace_bp import workspace_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(workspace_bp)
    app.register_blueprint(startup_bp)
    app.register_blueprint(payment_bp)
    app.register_blueprint(video_bp)
    app.register_blueprint(ai_bp)
    app.register_blueprint(uploads_bp)
    app.register_blueprint(health_bp)

    # ── Error handlers ───────────────────────────────────────────────────
    register_error_handlers(app)

    @app.errorhandler(HTTPException)
    def http_error(e):
        body = {"error": e.description or e.name}
        if e.code == 429:
            body["error"] = "Too many requests"
            body["retry_after"] = e.description
        return body, e.code

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error"}, 500

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
