"""Purchase and refund recording."""
from flask import Blueprint, jsonify, request

from mika.errors import ValidationError
from mika.extensions import db
from mika.leads.transactions import record_transaction
from mika.tracking.pipeline import resolve_workspace

transactions_bp = Blueprint("transactions", __name__)


@transactions_bp.route("/api/transactions", methods=["POST"])
def create_transaction():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object", code="invalid_body")
    lead_id = data.get("leadId")
    if not lead_id:
        raise ValidationError("leadId is required", code="lead_required")

    workspace_id = resolve_workspace(
        data.get("workspaceId") or request.headers.get("X-Workspace-ID"),
        lead_id=lead_id,
    )
    txn = record_transaction(
        workspace_id,
        lead_id,
        data.get("amount"),
        type=data.get("type") or "sale",
        currency=data.get("currency"),
        external_id=data.get("externalId"),
        status=data.get("status"),
        campaign_id=data.get("campaignId"),
        landing_page_id=data.get("landingPageId"),
        session_id=data.get("sessionId"),
    )
    db.session.commit()
    return jsonify({"success": True, "transaction": txn.to_dict()}), 201
