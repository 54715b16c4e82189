"""Session tracking: open on page_view, then accumulate per event."""
from __future__ import annotations

import logging

from sqlalchemy import case, update

from mika.extensions import db
from mika.models.base import utcnow
from mika.models.tracking import Session
from mika.tracking.attribution import Touch

logger = logging.getLogger(__name__)


def get_session(workspace_id: str, session_id: str | None) -> Session | None:
    if not session_id:
        return None
    return Session.query.filter_by(id=session_id, workspace_id=workspace_id).first()


def open_session(workspace_id: str, visitor_id: str, payload, touch: Touch,
                 lead_id: str | None = None, landing_page_id: str | None = None) -> Session:
    now = utcnow()
    session = Session(
        workspace_id=workspace_id,
        visitor_id=visitor_id,
        lead_id=lead_id,
        source=touch.source,
        medium=touch.medium,
        campaign=touch.campaign,
        content=touch.content,
        term=touch.term,
        referrer=payload.referrer,
        landing_page_id=landing_page_id,
        entry_url=payload.entry_url,
        exit_url=payload.url,
        device=payload.device.type,
        browser=payload.device.browser,
        os=payload.device.os,
        country=payload.geo.country,
        region=payload.geo.region,
        city=payload.geo.city,
        page_views=0,
        event_count=0,
        duration=0,
        started_at=now,
        ended_at=now,
    )
    db.session.add(session)
    db.session.flush()
    logger.debug("Opened session %s for visitor %s", session.id, visitor_id)
    return session


def record_activity(session: Session, event_type: str, url: str | None = None,
                    scroll_depth: float | None = None, lead_id: str | None = None) -> None:
    """Apply one event's increments to a session as a single UPDATE."""
    now = utcnow()
    values = {
        "event_count": Session.event_count + 1,
        "ended_at": now,
        "duration": max(int((now - session.started_at).total_seconds()), 0),
    }
    if event_type == "page_view":
        values["page_views"] = Session.page_views + 1
    if url:
        values["exit_url"] = url
    if scroll_depth is not None:
        values["max_scroll_depth"] = case(
            (Session.max_scroll_depth.is_(None), scroll_depth),
            (Session.max_scroll_depth < scroll_depth, scroll_depth),
            else_=Session.max_scroll_depth,
        )
    if lead_id and not session.lead_id:
        values["lead_id"] = lead_id

    db.session.execute(
        update(Session)
        .where(Session.id == session.id, Session.workspace_id == session.workspace_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    db.session.expire(session)


def track(workspace_id: str, visitor_id: str, payload, touch: Touch | None = None,
          lead_id: str | None = None, landing_page_id: str | None = None) -> tuple[str | None, bool]:
    """Reuse or open the session for an event. Returns ``(session_id, opened)``.

    A session owned by another visitor counts as unknown. Only a page_view
    without a known session opens one; any other event without a session is
    logged unlinked.
    """
    session = get_session(workspace_id, payload.session_id)
    if session is None and payload.session_id:
        logger.info("Unknown session %s in workspace %s", payload.session_id, workspace_id)
    elif session is not None and session.visitor_id != visitor_id:
        logger.warning(
            "Session %s belongs to visitor %s, not %s; ignoring it",
            session.id, session.visitor_id, visitor_id,
        )
        session = None
    opened = False
    if session is None:
        if payload.type != "page_view":
            return None, False
        session = open_session(
            workspace_id, visitor_id, payload, touch or Touch(),
            lead_id=lead_id, landing_page_id=landing_page_id,
        )
        opened = True

    record_activity(
        session,
        payload.type,
        url=payload.url,
        scroll_depth=payload.scroll_depth,
        lead_id=lead_id,
    )
    return session.id, opened
