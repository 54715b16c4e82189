"""Error taxonomy for the tracking core and its JSON rendering."""
import logging

from flask import jsonify
from sqlalchemy.exc import SQLAlchemyError

from mika.extensions import db

logger = logging.getLogger(__name__)


class MikaError(Exception):
    """Base exception carrying a machine-readable code and HTTP status."""

    status_code = 500
    default_code = "internal_error"

    def __init__(self, message, code=None, status_code=None, details=None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self):
        payload = {"success": False, "error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(MikaError):
    """Missing or malformed input (identity, email, destination, ...)."""

    status_code = 400
    default_code = "validation_error"


class NotFoundError(MikaError):
    """A referenced entity does not exist in the workspace."""

    status_code = 404
    default_code = "not_found"

    def __init__(self, resource_type, resource_id, message=None):
        super().__init__(
            message or f"{resource_type} '{resource_id}' not found",
            details={"resource_type": resource_type, "resource_id": resource_id},
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ConflictError(MikaError):
    """Duplicate-key race; resolved internally by lookup-and-reuse."""

    status_code = 409
    default_code = "conflict"


class InternalError(MikaError):
    """Storage/backend failure."""

    status_code = 500
    default_code = "internal_error"


def register_error_handlers(app):
    @app.errorhandler(MikaError)
    def handle_mika_error(exc):
        if exc.status_code >= 500:
            logger.error("%s: %s", exc.code, exc.message)
        try:
            db.session.rollback()
        except SQLAlchemyError:
            logger.warning("Rollback after %s failed", exc.code)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_storage_error(exc):
        logger.exception("Storage failure")
        try:
            db.session.rollback()
        except SQLAlchemyError:
            logger.warning("Rollback after storage failure also failed")
        return jsonify(InternalError("Failed to persist request").to_dict()), 500

    @app.errorhandler(404)
    def handle_not_found(_error):
        return jsonify({"success": False, "error": "not_found", "message": "Resource not found"}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(_error):
        return jsonify({"success": False, "error": "method_not_allowed", "message": "Method not allowed"}), 405

    @app.errorhandler(429)
    def handle_rate_limited(error):
        return jsonify({
            "success": False,
            "error": "rate_limited",
            "message": f"Rate limit exceeded: {getattr(error, 'description', '')}",
        }), 429
