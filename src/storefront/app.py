import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from flask import Flask, g, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from storefront import db
from storefront.core.config import config
from storefront.core.exceptions import BaseAPIException, InternalServerError
from storefront.routes import cart_bp, categories_bp, orders_bp, products_bp

logging.basicConfig(
    level=getattr(logging, config.app.log_level.upper(), logging.INFO),
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)

logger = logging.getLogger(__name__)


def _error(code: str, message: str, status: int, details: Any = None):
    body = {
        "success": False,
        "error": {"code": code, "message": message, "details": details or []},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    return jsonify(body), status


def create_app(overrides: Optional[Dict[str, Any]] = None) -> Flask:
    """
    Application factory.

    overrides is merged into app.config; DATABASE_URL points the engine at
    another database and CREATE_TABLES creates the schema on startup.
    """
    app = Flask(__name__)
    app.config.update(
        DATABASE_URL=config.database.url,
        CREATE_TABLES=config.is_development,
    )
    if overrides:
        app.config.update(overrides)

    config.validate()
    # an engine already bound to this URL is reused so callers can share it
    if db.engine is None or db.engine.url.render_as_string(hide_password=False) != app.config["DATABASE_URL"]:
        db.init_engine(app.config["DATABASE_URL"])
    if app.config["CREATE_TABLES"]:
        db.create_all()

    # ------------------------------------------------------------------ #
    # Blueprints, each domain registered under /api/v1/                   #
    # ------------------------------------------------------------------ #
    app.register_blueprint(products_bp,   url_prefix="/api/v1/products")
    app.register_blueprint(categories_bp, url_prefix="/api/v1/categories")
    app.register_blueprint(cart_bp,       url_prefix="/api/v1/cart")
    app.register_blueprint(orders_bp,     url_prefix="/api/v1/orders")

    @app.teardown_appcontext
    def close_session(exc):
        session = g.pop("db_session", None)
        if session is not None:
            if exc is not None:
                session.rollback()
            session.close()

    # ------------------------------------------------------------------ #
    # Error handlers, one JSON error envelope                             #
    # ------------------------------------------------------------------ #
    @app.errorhandler(BaseAPIException)
    def api_error(e):
        if e.status_code >= 500:
            logger.error(f"{type(e).__name__}: {e.internal_message}")
        body = e.to_dict()
        body["timestamp"] = datetime.now(timezone.utc).isoformat()
        return jsonify(body), e.status_code

    @app.errorhandler(400)
    def bad_request(e):
        return _error("BAD_REQUEST", str(e.description), 400)

    @app.errorhandler(401)
    def unauthorized(e):
        return _error("UNAUTHORIZED", str(e.description), 401)

    @app.errorhandler(404)
    def not_found(e):
        return _error("NOT_FOUND", str(e.description), 404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return _error("METHOD_NOT_ALLOWED", str(e.description), 405)

    @app.errorhandler(SQLAlchemyError)
    def db_error(e):
        logger.error(f"Unhandled database error: {e}")
        return _error("DATABASE_ERROR", "A database error occurred.", 500)

    @app.errorhandler(500)
    def internal_error(e):
        original = getattr(e, "original_exception", None)
        error = InternalServerError(str(original or e))
        logger.error(f"Unhandled error: {error.internal_message}")
        return _error(error.error_code, error.message, 500)

    @app.errorhandler(HTTPException)
    def http_error(e):
        return _error(e.name.upper().replace(" ", "_"), str(e.description), e.code or 500)

    # ------------------------------------------------------------------ #
    # Health check                                                        #
    # ------------------------------------------------------------------ #
    @app.get("/health")
    def health():
        """Liveness and readiness check. Returns 503 if the DB is unreachable."""
        try:
            with db.get_engine().connect() as conn:
                conn.execute(text("SELECT 1"))
            return jsonify({
                "status": "ok",
                "database": "reachable",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }), 200
        except SQLAlchemyError as exc:
            logger.error(f"Health check failed: {exc}")
            return jsonify({"status": "error", "database": "unreachable"}), 503

    return app


if __name__ == "__main__":
    application = create_app()
    application.run(debug=config.app.debug, host=config.app.host, port=config.app.port)
