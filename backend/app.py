"""
Flask Application Factory - Campsite candidate ingestion & review

Serves the admin review API (/api/admin/candidates/*). Candidate sync runs
are triggered through the same API or the CLI (cli.py).
"""

import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS
from flask_migrate import Migrate
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from config import Config, _get_database_url
from models.database import db

logger = logging.getLogger(__name__)

# Initialize Flask-Migrate (will be initialized in create_app)
migrate = Migrate()


def _is_production() -> bool:
    env = (os.environ.get("ENV") or os.environ.get("FLASK_ENV") or os.environ.get("APP_ENV") or "").lower()
    return env in {"prod", "production"}


def create_app(config_object=None):
    app = Flask(__name__)
    app.config.from_object(config_object or Config)

    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        app.config["SQLALCHEMY_DATABASE_URI"] = _get_database_url()

    CORS(app,
         resources={r"/api/*": {"origins": "*"}},
         methods=["GET", "POST", "OPTIONS"],
         allow_headers=["Content-Type", "Authorization", "X-Request-ID", "X-Admin-Id"],
         expose_headers=["X-Request-ID"],
         supports_credentials=False,
         send_wildcard=True)

    # === MIDDLEWARE ===
    # Request ID + acting admin injection
    from api.middleware import setup_request_id_middleware
    setup_request_id_middleware(app)

    # Admin write audit + request sampling
    from api.middleware import setup_request_logging_middleware
    setup_request_logging_middleware(app)

    # Standardized error envelope for HTTP and unhandled errors
    from api.middleware import setup_error_handlers
    setup_error_handlers(app)

    # Initialize SQLAlchemy
    db.init_app(app)

    # Initialize Flask-Migrate for database migrations
    migrate.init_app(app, db)

    with app.app_context():
        # Import all models before create_all to ensure tables are created
        import models  # noqa: F401

        allow_create = app.config.get("TESTING") or (
            app.config.get("AUTO_CREATE_TABLES", True) and not _is_production()
        )
        if allow_create:
            db.create_all()
            logger.info("Database initialized (create_all)")
        else:
            logger.info("Database ready (schema creation disabled; run migrations)")

    # Register routes
    from routes.candidates import candidates_bp
    app.register_blueprint(candidates_bp, url_prefix='/api/admin')

    @app.route("/api/ping", methods=["GET"])
    def ping():
        """Connectivity check - no DB required."""
        return jsonify({"ok": True})

    @app.route("/api/health", methods=["GET"])
    def health():
        try:
            db.session.execute(text("SELECT 1"))
            return jsonify({"status": "healthy", "database": "ok"})
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Health check failed: {e}")
            return jsonify({"status": "unhealthy", "database": "unavailable"}), 503

    return app


def run_app():
    """Main entry point for local development - starts server with Flask's dev server."""
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app()
    app.run(debug=app.config.get("DEBUG", False), host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))


if __name__ == "__main__":
    run_app()
