"""Flask application factory."""
import logging
import os
import uuid

from flask import Flask, current_app, g, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.middleware.proxy_fix import ProxyFix

from mika.config import config
from mika.errors import register_error_handlers
from mika.extensions import cors, db, limiter
from mika.log_config import configure_logging
from mika.models.base import utcnow
from mika.tracking.workspace_cache import init_workspace_cache

logger = logging.getLogger(__name__)

# Beacon endpoints are called cross-origin from customer landing pages.
CORS_RESOURCES = {
    r"/api/track": {"origins": "*"},
    r"/api/leads": {"origins": "*"},
}


def create_app(config_name=None):
    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "production")

    app = Flask(__name__)

    # --------------------------------------------------
    # Configuration
    # --------------------------------------------------
    app.config.from_object(config[config_name])
    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    app.wsgi_app = ProxyFix(
        app.wsgi_app,
        x_for=1,
        x_proto=1,
        x_host=1,
        x_port=1,
    )

    # --------------------------------------------------
    # Extensions
    # --------------------------------------------------
    db.init_app(app)
    limiter.init_app(app)
    cors.init_app(app, resources=CORS_RESOURCES)
    init_workspace_cache(app)
    register_error_handlers(app)

    # --------------------------------------------------
    # Request ids
    # --------------------------------------------------
    @app.before_request
    def assign_request_id():
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

    @app.after_request
    def echo_request_id(response):
        request_id = getattr(g, "request_id", None)
        if request_id:
            response.headers["X-Request-ID"] = request_id
        return response

    @app.teardown_request
    def rollback_on_error(_exception=None):
        if _exception:
            try:
                db.session.rollback()
            except SQLAlchemyError as exc:
                logger.warning("Rollback on teardown failed: %s", exc)

    # --------------------------------------------------
    # Blueprints
    # --------------------------------------------------
    from mika.blueprints.analytics.routes import analytics_bp
    from mika.blueprints.leads.routes import leads_bp
    from mika.blueprints.redirect.routes import redirect_bp
    from mika.blueprints.track.routes import track_bp
    from mika.blueprints.transactions.routes import transactions_bp

    app.register_blueprint(track_bp)
    app.register_blueprint(leads_bp)
    app.register_blueprint(redirect_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(analytics_bp)

    # --------------------------------------------------
    # Database
    # --------------------------------------------------
    with app.app_context():
        import mika.models  # noqa
        db.create_all()

    # --------------------------------------------------
    # Health Endpoints
    # --------------------------------------------------
    @app.route("/health", methods=["GET"])
    def health():
        try:
            db.session.execute(text("SELECT 1"))
            db_ok = True
        except SQLAlchemyError as exc:
            logger.warning("Health check database probe failed: %s", exc)
            db.session.rollback()
            db_ok = False

        return jsonify({
            "status": "ok" if db_ok else "degraded",
            "db_ok": db_ok,
            "version": current_app.config.get("APP_VERSION", "unknown"),
            "timestamp": utcnow().isoformat(),
        }), 200

    # Alias for load balancers / CI
    @app.route("/healthz", methods=["GET"])
    def healthz():
        return health()

    @app.route("/__version", methods=["GET"])
    def version():
        return jsonify({
            "app": "mika",
            "version": current_app.config.get("APP_VERSION", "unknown"),
            "git_sha": os.getenv("GITHUB_SHA", "unknown"),
        }), 200

    logger.info("Mika tracking initialized (%s)", config_name)
    return app
