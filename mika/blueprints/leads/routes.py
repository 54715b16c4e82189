"""Lead capture, lookup and stage changes."""
from flask import Blueprint, jsonify, request

from mika.errors import ValidationError
from mika.extensions import db
from mika.leads.capture import capture_lead, get_lead
from mika.leads.stages import change_stage
from mika.tracking.payloads import LeadPayload
from mika.tracking.pipeline import resolve_workspace

leads_bp = Blueprint("leads", __name__)


def _workspace_header():
    return request.headers.get("X-Workspace-ID")


@leads_bp.route("/api/leads", methods=["POST"])
def create_lead():
    payload = LeadPayload.from_json(request.get_json(silent=True))
    workspace_id = resolve_workspace(
        payload.workspace_id or _workspace_header(),
        landing_page_id=payload.landing_page_id,
        visitor_id=payload.visitor_id,
    )
    lead_id, is_new = capture_lead(workspace_id, payload)
    db.session.commit()
    return jsonify({
        "success": True,
        "leadId": lead_id,
        "isNew": is_new,
        "message": "Lead captured" if is_new else "Lead updated",
    }), 201 if is_new else 200


@leads_bp.route("/api/leads", methods=["GET"])
def fetch_lead():
    workspace_id = request.args.get("workspaceId") or _workspace_header()
    if not workspace_id:
        raise ValidationError("workspaceId is required", code="workspace_required")
    lead = get_lead(
        workspace_id,
        lead_id=request.args.get("id"),
        email=request.args.get("email"),
    )
    return jsonify({"success": True, "lead": lead.to_dict()}), 200


@leads_bp.route("/api/leads", methods=["PATCH"])
def update_lead_stage():
    data = request.get_json(silent=True) or {}
    workspace_id = _workspace_header() or data.get("workspaceId")
    if not workspace_id:
        raise ValidationError("X-Workspace-ID header is required", code="workspace_required")
    if not data.get("leadId") or not data.get("stage"):
        raise ValidationError("leadId and stage are required", code="stage_change_invalid")

    lead = change_stage(
        workspace_id,
        data["leadId"],
        data["stage"],
        changed_by=data.get("changedBy"),
        reason=data.get("reason"),
    )
    db.session.commit()
    return jsonify({"success": True, "lead": lead.to_dict()}), 200
