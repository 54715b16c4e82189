"""Beacon ingestion endpoint."""
from flask import Blueprint, current_app, jsonify, request

from mika.extensions import db, limiter
from mika.tracking.payloads import TrackPayload
from mika.tracking.pipeline import track_event

track_bp = Blueprint("track", __name__)


def _track_rate_limit():
    return current_app.config.get("TRACK_RATE_LIMIT", "600 per minute")


@track_bp.route("/api/track", methods=["POST"])
@limiter.limit(_track_rate_limit)
def track():
    payload = TrackPayload.from_json(request.get_json(silent=True))
    body = track_event(payload, workspace_id=request.headers.get("X-Workspace-ID"))
    db.session.commit()
    return jsonify(body), 200
