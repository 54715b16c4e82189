"""Read-side analytics endpoints."""
from datetime import datetime

from flask import Blueprint, jsonify, request

from mika.analytics.query_service import AnalyticsQueryService
from mika.analytics.time_range import parse_time_range
from mika.errors import ValidationError
from mika.leads.capture import get_lead
from mika.tracking.attribution import rebuild_from_events

analytics_bp = Blueprint("analytics", __name__)


def _workspace_id():
    workspace_id = request.args.get("workspaceId") or request.headers.get("X-Workspace-ID")
    if not workspace_id:
        raise ValidationError("workspaceId is required", code="workspace_required")
    return workspace_id


def _parse_date(value):
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Invalid date '{value}', expected YYYY-MM-DD", code="invalid_date")


def _touch_dict(touch):
    if touch is None:
        return None
    return {
        "source": touch.source,
        "medium": touch.medium,
        "campaign": touch.campaign,
        "content": touch.content,
        "term": touch.term,
    }


@analytics_bp.route("/api/analytics/summary", methods=["GET"])
def summary():
    workspace_id = _workspace_id()
    try:
        range_result = parse_time_range(
            request.args.get("range", "last_30_days"),
            request.args.get("compare"),
            custom_start=_parse_date(request.args.get("start")),
            custom_end=_parse_date(request.args.get("end")),
        )
    except ValueError as exc:
        raise ValidationError(str(exc), code="invalid_range")

    start, end = range_result.start, range_result.end
    body = {
        "success": True,
        "range": range_result.as_dict(),
        "summary": AnalyticsQueryService.summary(workspace_id, start, end),
        "eventsByType": AnalyticsQueryService.events_by_type(workspace_id, start, end),
        "firstTouch": AnalyticsQueryService.attribution_breakdown(workspace_id, start, end, "first"),
        "lastTouch": AnalyticsQueryService.attribution_breakdown(workspace_id, start, end, "last"),
    }
    if range_result.compare_start:
        body["compare"] = AnalyticsQueryService.summary(
            workspace_id, range_result.compare_start, range_result.compare_end
        )
    return jsonify(body), 200


@analytics_bp.route("/api/analytics/visitors/<visitor_id>/timeline", methods=["GET"])
def visitor_timeline(visitor_id):
    workspace_id = _workspace_id()
    limit = request.args.get("limit", 200, type=int)
    events = AnalyticsQueryService.visitor_timeline(workspace_id, visitor_id, limit=max(1, min(limit, 1000)))
    return jsonify({"success": True, "events": events}), 200


@analytics_bp.route("/api/analytics/leads/<lead_id>/attribution", methods=["GET"])
def lead_attribution(lead_id):
    workspace_id = _workspace_id()
    lead = get_lead(workspace_id, lead_id=lead_id)
    rebuilt = rebuild_from_events(workspace_id, lead.id)
    return jsonify({
        "success": True,
        "stored": {
            "first": {"source": lead.first_source, "medium": lead.first_medium, "campaign": lead.first_campaign},
            "last": {"source": lead.last_source, "medium": lead.last_medium, "campaign": lead.last_campaign},
        },
        "rebuilt": {"first": _touch_dict(rebuilt["first"]), "last": _touch_dict(rebuilt["last"])},
    }), 200
