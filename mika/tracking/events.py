"""Append-only event log."""
from __future__ import annotations

from mika.extensions import db
from mika.models.base import utcnow
from mika.models.tracking import Event
from mika.tracking.attribution import Touch, touch_metadata


def log_event(
    workspace_id: str,
    visitor_id: str,
    type: str,
    name: str | None = None,
    value: float | None = None,
    url: str | None = None,
    session_id: str | None = None,
    lead_id: str | None = None,
    landing_page_id: str | None = None,
    campaign_id: str | None = None,
    metadata: dict | None = None,
    scroll_depth: float | None = None,
    time_on_page: float | None = None,
    element_clicked: str | None = None,
    touch: Touch | None = None,
) -> Event:
    """Insert one event row and flush it so its id is available."""
    bag = dict(metadata or {})
    if scroll_depth is not None:
        bag["scrollDepth"] = scroll_depth
    if time_on_page is not None:
        bag["timeOnPage"] = time_on_page
    if element_clicked:
        bag["elementClicked"] = element_clicked
    if touch is not None:
        bag.update(touch_metadata(touch))

    event = Event(
        workspace_id=workspace_id,
        visitor_id=visitor_id,
        session_id=session_id,
        lead_id=lead_id,
        landing_page_id=landing_page_id,
        campaign_id=campaign_id,
        type=type,
        name=name,
        value=value,
        url=url,
        event_metadata=bag,
        timestamp=utcnow(),
    )
    db.session.add(event)
    db.session.flush()
    return event


def events_for(workspace_id, visitor_id=None, session_id=None, lead_id=None):
    query = Event.query.filter(Event.workspace_id == workspace_id)
    if visitor_id:
        query = query.filter(Event.visitor_id == visitor_id)
    if session_id:
        query = query.filter(Event.session_id == session_id)
    if lead_id:
        query = query.filter(Event.lead_id == lead_id)
    return query.order_by(Event.timestamp.asc(), Event.id.asc()).all()
