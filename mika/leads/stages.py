"""Lead lifecycle stages and their history."""
from __future__ import annotations

import logging

from flask import current_app

from mika.errors import NotFoundError, ValidationError
from mika.extensions import db
from mika.models.base import utcnow
from mika.models.leads import LEAD_STAGES, Lead, LeadStageHistory

logger = logging.getLogger(__name__)

TERMINAL_STAGE = "churned"
_PIPELINE_ORDER = {stage: index for index, stage in enumerate(LEAD_STAGES) if stage != TERMINAL_STAGE}


def is_forward_transition(from_stage: str | None, to_stage: str) -> bool:
    """Strict policy: forward along the pipeline, or churn from any live stage."""
    if from_stage is None:
        return True
    if from_stage == TERMINAL_STAGE:
        return False
    if to_stage == TERMINAL_STAGE:
        return True
    return _PIPELINE_ORDER[to_stage] > _PIPELINE_ORDER[from_stage]


def enter_stage(lead: Lead, to_stage: str, changed_by: str | None = None,
                reason: str | None = None, now=None) -> LeadStageHistory:
    """Close the lead's open history row and append one for ``to_stage``."""
    now = now or utcnow()
    open_row = (
        LeadStageHistory.query.filter_by(workspace_id=lead.workspace_id, lead_id=lead.id, exited_at=None)
        .order_by(LeadStageHistory.entered_at.desc())
        .first()
    )
    if open_row is not None:
        open_row.exited_at = now
        open_row.duration_seconds = max(int((now - open_row.entered_at).total_seconds()), 0)

    row = LeadStageHistory(
        workspace_id=lead.workspace_id,
        lead_id=lead.id,
        from_stage=open_row.to_stage if open_row is not None else None,
        to_stage=to_stage,
        entered_at=now,
        changed_by=changed_by,
        reason=reason,
    )
    db.session.add(row)
    lead.stage = to_stage
    lead.stage_changed_at = now
    return row


def change_stage(workspace_id, lead_id, to_stage, changed_by=None, reason=None, strict=None) -> Lead:
    if to_stage not in LEAD_STAGES:
        raise ValidationError(f"Unknown stage '{to_stage}'", code="invalid_stage")

    lead = Lead.query.filter_by(workspace_id=workspace_id, id=lead_id).first()
    if lead is None:
        raise NotFoundError("lead", lead_id)
    if lead.stage == to_stage:
        return lead

    if strict is None:
        strict = current_app.config.get("STRICT_STAGE_TRANSITIONS", False)
    if strict and not is_forward_transition(lead.stage, to_stage):
        raise ValidationError(
            f"Cannot move lead from {lead.stage} to {to_stage}",
            code="invalid_stage_transition",
        )

    from_stage = lead.stage
    now = utcnow()
    enter_stage(lead, to_stage, changed_by=changed_by, reason=reason, now=now)
    if to_stage == "customer" and lead.converted_at is None:
        lead.converted_at = now
    db.session.flush()
    logger.info("Lead %s stage %s -> %s", lead.id, from_stage, to_stage)
    return lead
