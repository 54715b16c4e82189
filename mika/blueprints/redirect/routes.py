"""Tracked outbound redirects."""
from urllib.parse import urlparse

from flask import Blueprint, redirect, request

from mika.errors import ValidationError
from mika.extensions import db
from mika.tracking.best_effort import best_effort
from mika.tracking.clicks import record_click

redirect_bp = Blueprint("redirect", __name__)


def _destination():
    dest = (request.args.get("dest") or "").strip()
    if not dest:
        raise ValidationError("dest is required", code="destination_required")
    parsed = urlparse(dest)
    if parsed.scheme in ("http", "https"):
        if not parsed.netloc:
            raise ValidationError("dest must be an http(s) URL", code="invalid_destination")
    elif parsed.scheme or parsed.netloc or dest.startswith(("//", "/\\", "\\")):
        # Relative destinations must stay on this host.
        raise ValidationError("dest must be an http(s) URL", code="invalid_destination")
    return dest


@redirect_bp.route("/api/redirect/<lead_id>", methods=["GET"])
def follow(lead_id):
    dest = _destination()

    with best_effort(f"redirect lead={lead_id}"):
        record_click(
            lead_id,
            dest,
            campaign_id=request.args.get("cid"),
            landing_page_id=request.args.get("lpid"),
            affiliate_id=request.args.get("aid"),
            source=request.args.get("src"),
            medium=request.args.get("med"),
        )
        db.session.commit()

    return redirect(dest, code=302)
