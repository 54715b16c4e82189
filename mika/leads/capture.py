"""Lead capture and merge, keyed by normalized email per workspace."""
from __future__ import annotations

import logging
import re

from sqlalchemy.exc import IntegrityError

from mika.analytics.rollups import bump_campaign, bump_landing_page
from mika.errors import NotFoundError, ValidationError
from mika.extensions import db
from mika.leads.stages import enter_stage
from mika.models.base import new_id, utcnow
from mika.models.leads import Lead
from mika.models.tracking import Visitor
from mika.tracking.attribution import Touch, apply_first_touch, apply_last_touch
from mika.tracking.events import log_event
from mika.tracking.identity import find_visitor, identify
from mika.tracking.workspace_cache import owned_landing_page

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email) -> str:
    normalized = (email or "").strip().lower()
    if not normalized:
        raise ValidationError("email is required", code="email_required")
    if not EMAIL_RE.match(normalized):
        raise ValidationError("email is not a valid address", code="invalid_email")
    return normalized


def get_lead(workspace_id, lead_id=None, email=None) -> Lead:
    query = Lead.query.filter_by(workspace_id=workspace_id)
    if lead_id:
        lead = query.filter_by(id=lead_id).first()
        if lead is None:
            raise NotFoundError("lead", lead_id)
        return lead
    if email:
        normalized = normalize_email(email)
        lead = find_lead_by_email(workspace_id, normalized)
        if lead is None:
            raise NotFoundError("lead", normalized)
        return lead
    raise ValidationError("id or email is required", code="lead_lookup_required")


def find_lead_by_email(workspace_id, email) -> Lead | None:
    return Lead.query.filter_by(workspace_id=workspace_id, email=email).first()


def _known_visitor(workspace_id, visitor_id=None, cookie_id=None) -> Visitor | None:
    """Look up, never create, the visitor a capture refers to."""
    if visitor_id:
        visitor = Visitor.query.filter_by(workspace_id=workspace_id, id=visitor_id).first()
        if visitor is not None:
            return visitor
    if cookie_id:
        return find_visitor(workspace_id, cookie_id=cookie_id)
    return None


def ensure_lead_visitor(lead: Lead, cookie_id=None, touch=None) -> str:
    """Return a visitor id for the lead's events, creating a placeholder if none exists."""
    if lead.visitor_id:
        return lead.visitor_id
    visitor_id, _created = identify(lead.workspace_id, cookie_id=cookie_id or f"lead:{lead.id}", touch=touch)
    lead.visitor_id = visitor_id
    return visitor_id


def _link_visitor(visitor: Visitor, lead: Lead, now) -> None:
    visitor.converted_to_lead_id = lead.id
    visitor.converted_at = now


def _union_tags(existing, incoming) -> list:
    merged = list(existing or [])
    for tag in incoming:
        if tag not in merged:
            merged.append(tag)
    return merged


def _merge(lead: Lead, payload, touch: Touch) -> str:
    now = utcnow()
    if payload.name:
        lead.name = payload.name
    if payload.phone:
        lead.phone = payload.phone
    apply_last_touch(lead, touch)
    if payload.custom_fields:
        lead.custom_fields = {**(lead.custom_fields or {}), **payload.custom_fields}
    if payload.tags:
        lead.tags = _union_tags(lead.tags, payload.tags)

    visitor = _known_visitor(lead.workspace_id, payload.visitor_id, payload.cookie_id)
    if visitor is not None:
        _link_visitor(visitor, lead, now)
        if not lead.visitor_id:
            lead.visitor_id = visitor.id
        visitor_id = visitor.id
    else:
        visitor_id = ensure_lead_visitor(lead, cookie_id=payload.cookie_id, touch=touch)

    log_event(
        lead.workspace_id,
        visitor_id,
        "lead_recaptured",
        name=payload.captured_via,
        lead_id=lead.id,
        landing_page_id=owned_landing_page(lead.workspace_id, payload.landing_page_id),
        campaign_id=payload.campaign_id,
        metadata={"capturedVia": payload.captured_via} if payload.captured_via else None,
        touch=touch,
    )
    logger.info("Merged capture into lead %s", lead.id)
    return lead.id


def _create(workspace_id, email: str, payload, touch: Touch) -> str:
    now = utcnow()
    lead_id = new_id()
    landing_page_id = owned_landing_page(workspace_id, payload.landing_page_id)
    visitor = _known_visitor(workspace_id, payload.visitor_id, payload.cookie_id)
    if visitor is None:
        visitor_id, _created = identify(
            workspace_id,
            cookie_id=payload.cookie_id or f"lead:{lead_id}",
            touch=touch,
        )
        visitor = db.session.get(Visitor, visitor_id)

    # A visitor's recorded origin outranks whatever the form submission carries.
    first = Touch.from_visitor(visitor).prefer(touch)
    lead = Lead(
        id=lead_id,
        workspace_id=workspace_id,
        visitor_id=visitor.id,
        email=email,
        name=payload.name,
        phone=payload.phone,
        captured_via=payload.captured_via,
        stage="captured",
        stage_changed_at=now,
        first_landing_page_id=landing_page_id,
        custom_fields=dict(payload.custom_fields),
        tags=_union_tags([], payload.tags),
    )
    apply_first_touch(lead, first)
    if not apply_last_touch(lead, touch):
        apply_last_touch(lead, first)
    db.session.add(lead)
    db.session.flush()

    enter_stage(lead, "captured", changed_by="system", reason="lead captured", now=now)
    _link_visitor(visitor, lead, now)
    log_event(
        workspace_id,
        visitor.id,
        "lead_captured",
        name=payload.captured_via,
        lead_id=lead.id,
        landing_page_id=landing_page_id,
        campaign_id=payload.campaign_id,
        metadata={"capturedVia": payload.captured_via} if payload.captured_via else None,
        touch=touch,
    )
    bump_landing_page(workspace_id, landing_page_id, leads=1)
    bump_campaign(workspace_id, touch.campaign or first.campaign, leads=1)
    logger.info("Captured new lead %s (%s) in workspace %s", lead.id, email, workspace_id)
    return lead.id


def capture_lead(workspace_id, payload) -> tuple[str, bool]:
    """Create or merge a lead. Returns ``(lead_id, is_new)``."""
    email = normalize_email(payload.email)
    touch = Touch.from_utm(payload.utm, payload.campaign_id)

    lead = find_lead_by_email(workspace_id, email)
    if lead is not None:
        return _merge(lead, payload, touch), False

    try:
        return _create(workspace_id, email, payload, touch), True
    except IntegrityError:
        # Same email captured concurrently; treat this request as the recapture.
        db.session.rollback()
        lead = find_lead_by_email(workspace_id, email)
        if lead is None:
            raise
        logger.info("Lead creation race for workspace %s, merging into %s", workspace_id, lead.id)
        return _merge(lead, payload, touch), False
