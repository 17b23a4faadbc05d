import logging
import os

from flask import Flask, jsonify, request
from flask_caching import Cache
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_wtf.csrf import CSRFProtect

from config import config

logger = logging.getLogger(__name__)

db = SQLAlchemy()
login_manager = LoginManager()
cache = Cache()
migrate = Migrate()
csrf = CSRFProtect()


def get_real_ip():
    """
    Get the real client IP address, accounting for reverse proxies like Traefik.
    Checks X-Forwarded-For, X-Real-IP, and falls back to remote_addr.
    """
    # X-Forwarded-For: client, proxy1, proxy2, ...
    # We want the leftmost (original client) IP
    if request.headers.get("X-Forwarded-For"):
        return request.headers.get("X-Forwarded-For").split(",")[0].strip()
    if request.headers.get("X-Real-IP"):
        return request.headers.get("X-Real-IP")
    return get_remote_address()


# Storage backend comes from RATELIMIT_STORAGE_URI in the app config
limiter = Limiter(
    key_func=get_real_ip,
    default_limits=["10000 per day", "1000 per hour"],
)


def create_app(config_name=None):
    app = Flask(__name__)

    if config_name is None:
        config_name = os.environ.get("FLASK_CONFIG", "default")

    app.config.from_object(config[config_name]())

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)
    cache.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    limiter.init_app(app)

    # Engine settings are resolved once and handed to services explicitly
    from tipping.settings import EngineSettings

    app.extensions["tipping"] = EngineSettings.from_config(app.config)

    from tipping.routes.api import bp as api_bp

    # Bearer-token API, no browser session to protect
    csrf.exempt(api_bp)
    app.register_blueprint(api_bp, url_prefix="/api")

    register_error_handlers(app)

    from tipping.utils.logging_config import setup_logging

    setup_logging(app)

    show_config_warnings(app, config_name)

    with app.app_context():
        db.create_all()

    return app


@login_manager.request_loader
def load_participant_from_request(req):
    """Resolve the acting participant from an ``Authorization: Bearer`` header"""
    from tipping.models import Participant

    header = req.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return Participant.verify_auth_token(token.strip())


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "UNAUTHORIZED", "message": "Authentication required"}), 401


def show_config_warnings(app, config_name):
    """Log configuration status at startup"""
    settings = app.extensions["tipping"]

    logger.info(f"Tipping engine starting with '{config_name}' configuration")
    logger.info(
        f"Draw scoring: {settings.draw_policy.value} "
        f"(version {settings.draw_policy.version}, correct draw = "
        f"{settings.draw_policy.draw_points} points)"
    )

    if config_name == "production" and app.config.get("DEBUG"):
        logger.warning("DEBUG mode is enabled in production!")

    if not settings.admin_emails:
        logger.warning("No ADMIN_EMAILS configured; results can only be recorded from the CLI")

    db_url = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if "sqlite" in db_url:
        logger.info("Using SQLite database (row locks are not enforced)")
    elif "postgresql" in db_url:
        logger.info("Using PostgreSQL database")
    else:
        logger.info(
            f"Using database: {db_url.split('://')[0] if '://' in db_url else 'Unknown'}"
        )


def register_error_handlers(app):
    """Register global error handlers"""
    from tipping.errors import PickError, StorageFailure

    @app.after_request
    def after_request(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"

        if not app.config.get("DEBUG"):
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response

    @app.errorhandler(PickError)
    def handle_pick_error(error):
        if isinstance(error, StorageFailure):
            app.logger.error(f"Storage failure on {request.method} {request.path}")
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({"error": "NOT_FOUND", "message": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return jsonify({"error": "METHOD_NOT_ALLOWED", "message": "Method not allowed"}), 405

    @app.errorhandler(400)
    def bad_request_error(error):
        app.logger.warning(
            f"400 Bad Request: {str(error)} - Path: {request.path} - Method: {request.method}"
        )
        return jsonify({"error": "BAD_REQUEST", "message": "Bad request"}), 400

    @app.errorhandler(429)
    def too_many_requests_error(error):
        return jsonify({"error": "RATE_LIMITED", "message": "Too many requests"}), 429

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({"error": "INTERNAL", "message": "Internal server error"}), 500


from tipping import models  # noqa: F401, E402 - imported for model registration
