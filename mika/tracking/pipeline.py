"""The /api/track write pipeline.

Fixed order per request: workspace, identity, session, event, rollups.
Every step runs in the request's transaction; the caller commits.
"""
from __future__ import annotations

import logging

from mika.analytics.rollups import bump_campaign, bump_landing_page
from mika.errors import NotFoundError, ValidationError
from mika.extensions import db
from mika.models.leads import Lead
from mika.models.tenancy import Workspace
from mika.models.tracking import Session, Visitor
from mika.tracking import sessions
from mika.tracking.attribution import Touch, apply_last_touch
from mika.tracking.events import log_event
from mika.tracking.identity import identify
from mika.tracking.workspace_cache import get_workspace_cache, owned_landing_page

logger = logging.getLogger(__name__)

_LANDING_PAGE_COUNTERS = {
    "page_view": "page_views",
    "form_start": "form_starts",
    "form_submit": "form_submits",
    "click": "clicks",
}


def resolve_workspace(explicit_id=None, landing_page_id=None, session_id=None, lead_id=None,
                      visitor_id=None) -> str:
    """Tenant for a request: explicit id, landing page, then a known session, lead or visitor."""
    if explicit_id:
        if db.session.get(Workspace, explicit_id) is None:
            raise NotFoundError("workspace", explicit_id)
        return explicit_id

    workspace_id = get_workspace_cache().get(landing_page_id)
    if workspace_id:
        return workspace_id

    if session_id:
        session = db.session.get(Session, session_id)
        if session is not None:
            return session.workspace_id
    if lead_id:
        lead = db.session.get(Lead, lead_id)
        if lead is not None:
            return lead.workspace_id
    if visitor_id:
        visitor = db.session.get(Visitor, visitor_id)
        if visitor is not None:
            return visitor.workspace_id

    if landing_page_id:
        raise NotFoundError("landing_page", landing_page_id)
    raise ValidationError(
        "workspaceId or a known landingPageId is required",
        code="workspace_required",
    )


def track_event(payload, workspace_id=None) -> dict:
    """Run one beacon event through the pipeline and return the response body."""
    workspace_id = resolve_workspace(
        payload.workspace_id or workspace_id,
        landing_page_id=payload.landing_page_id,
        session_id=payload.session_id,
        lead_id=payload.lead_id,
        visitor_id=payload.visitor_id,
    )
    touch = Touch.from_utm(payload.utm, payload.campaign_id)
    landing_page_id = owned_landing_page(workspace_id, payload.landing_page_id)

    known_session = sessions.get_session(workspace_id, payload.session_id)
    if payload.has_identity:
        visitor_id, new_visitor = identify(
            workspace_id,
            cookie_id=payload.cookie_id,
            fingerprint_hash=payload.fingerprint_hash,
            visitor_id=payload.visitor_id,
            touch=touch,
            referrer=payload.referrer,
            landing_url=payload.entry_url,
        )
    elif known_session is not None:
        visitor_id, new_visitor = known_session.visitor_id, False
    else:
        raise ValidationError(
            "One of visitorId, cookieId or fingerprintHash is required",
            code="identity_required",
        )

    lead = None
    if payload.lead_id:
        lead = Lead.query.filter_by(workspace_id=workspace_id, id=payload.lead_id).first()
        if lead is None:
            logger.info("Ignoring unknown lead %s on track event", payload.lead_id)
    if lead is None:
        converted_to = db.session.query(Visitor.converted_to_lead_id).filter_by(id=visitor_id).scalar()
        if converted_to:
            lead = db.session.get(Lead, converted_to)
    lead_id = lead.id if lead is not None else None

    session_id, opened = sessions.track(
        workspace_id, visitor_id, payload, touch, lead_id=lead_id, landing_page_id=landing_page_id,
    )
    if opened and lead is not None:
        apply_last_touch(lead, touch)

    event = log_event(
        workspace_id,
        visitor_id,
        payload.type,
        name=payload.name,
        value=payload.value,
        url=payload.url,
        session_id=session_id,
        lead_id=lead_id,
        landing_page_id=landing_page_id,
        campaign_id=payload.campaign_id,
        metadata=payload.metadata,
        scroll_depth=payload.scroll_depth,
        time_on_page=payload.time_on_page,
        element_clicked=payload.element_clicked,
        touch=touch,
    )

    counters = {}
    if new_visitor:
        counters["visitors"] = 1
    counter = _LANDING_PAGE_COUNTERS.get(payload.type)
    if counter:
        counters[counter] = 1
    bump_landing_page(workspace_id, landing_page_id, **counters)
    bump_campaign(
        workspace_id,
        touch.campaign,
        visitors=counters.get("visitors", 0),
        clicks=counters.get("clicks", 0),
    )

    return {
        "success": True,
        "eventId": event.id,
        "visitorId": visitor_id,
        "sessionId": session_id,
    }
