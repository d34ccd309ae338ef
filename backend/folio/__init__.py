# backend/folio/__init__.py
import time
import traceback
import uuid

from flask import Flask, request, g, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .config import Config
from .extensions import db, migrate


def _caller_is_admin() -> bool:
    user = getattr(g, "current_user", None)
    return bool(user is not None and user.is_admin and user.is_active)


def _register_error_handlers(app: Flask) -> None:
    from .services.identity_service import IdentityProviderError

    def _internal_error(e: Exception, error: str):
        db.session.rollback()
        app.logger.exception("Unhandled %s on %s %s", type(e).__name__, request.method, request.path)
        body = {"error": error}
        # Detail only for active admins, and only when explicitly enabled
        if app.config.get("EXPOSE_ERROR_DETAILS") and _caller_is_admin():
            body["message"] = str(e)
            body["traceback"] = traceback.format_exception(type(e), e, e.__traceback__)
        return jsonify(body), 500

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e):
        return _internal_error(e, "Database error")

    @app.errorhandler(IdentityProviderError)
    def handle_identity_provider_error(e):
        return _internal_error(e, "Identity provider error")

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        if isinstance(e, HTTPException):
            return e
        return _internal_error(e, "Internal server error")


def create_app(config_overrides=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .services.identity_service import EXTENSION_KEY, build_provider
    app.extensions[EXTENSION_KEY] = build_provider(app.config)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.self_service import self_bp
    from .routes.users import users_bp
    from .routes.permissions import permissions_bp
    from .routes.audit import audit_bp
    from .routes.dashboard import dashboard_bp
    from .routes.portfolio import portfolio_bp
    from .routes.dictionaries import dictionaries_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(self_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(permissions_bp)
    app.register_blueprint(audit_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(portfolio_bp)
    app.register_blueprint(dictionaries_bp)

    _register_error_handlers(app)

    @app.before_request
    def assign_request_id():
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        g.request_started = time.time()

    @app.after_request
    def log_request(response):
        started = getattr(g, "request_started", None)
        elapsed_ms = (time.time() - started) * 1000 if started else 0.0
        app.logger.info(
            "request completed id=%s method=%s path=%s status=%s duration_ms=%.1f",
            getattr(g, "request_id", "-"), request.method, request.path, response.status_code, elapsed_ms,
        )
        if getattr(g, "request_id", None):
            response.headers["X-Request-ID"] = g.request_id
        return response

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in set(app.config.get("FRONTEND_ORIGINS", [])):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
