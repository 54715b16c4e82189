"""First-touch / last-touch attribution.

First touch is sticky: it is written once, at the earliest point of contact
(visitor creation, or lead creation when no visitor came first), and is
copied downstream rather than referenced, so later edits to a visitor never
rewrite a lead's recorded origin. Last touch is volatile and follows the
most recent session, redirect or lead capture.

The denormalized columns on ``Lead`` are a read cache. ``rebuild_from_events``
derives the same chain from the event stream alone.
"""
from __future__ import annotations

from dataclasses import dataclass

from mika.extensions import db
from mika.models.leads import Lead
from mika.models.tracking import Event, Visitor


@dataclass(frozen=True)
class Touch:
    source: str | None = None
    medium: str | None = None
    campaign: str | None = None
    content: str | None = None
    term: str | None = None

    @classmethod
    def from_utm(cls, utm, campaign_id: str | None = None) -> "Touch":
        """Build a touch from wire UTM params; an explicit campaign id wins over utm.campaign."""
        return cls(
            source=utm.source,
            medium=utm.medium,
            campaign=campaign_id or utm.campaign,
            content=utm.content,
            term=utm.term,
        )

    @classmethod
    def from_visitor(cls, visitor: Visitor | None) -> "Touch":
        if visitor is None:
            return cls()
        return cls(
            source=visitor.first_source,
            medium=visitor.first_medium,
            campaign=visitor.first_campaign,
            content=visitor.first_content,
            term=visitor.first_term,
        )

    def is_empty(self) -> bool:
        return not (self.source or self.medium or self.campaign)

    def prefer(self, fallback: "Touch") -> "Touch":
        """Return self unless it carries no attribution, then fallback."""
        return fallback if self.is_empty() else self


def apply_first_touch(lead: Lead, touch: Touch) -> None:
    """Set first-touch fields once; a lead that already has them is left alone."""
    if lead.first_source or lead.first_medium or lead.first_campaign:
        return
    lead.first_source = touch.source
    lead.first_medium = touch.medium
    lead.first_campaign = touch.campaign


def apply_last_touch(lead: Lead, touch: Touch) -> bool:
    """Overwrite last-touch fields from a non-empty touch. Returns True when applied."""
    if touch.is_empty():
        return False
    lead.last_source = touch.source
    lead.last_medium = touch.medium
    lead.last_campaign = touch.campaign
    return True


def touch_metadata(touch: Touch) -> dict:
    """Event metadata fragment recording the touch an event carried."""
    if touch.is_empty():
        return {}
    return {
        "utm": {
            key: value
            for key, value in (
                ("source", touch.source),
                ("medium", touch.medium),
                ("campaign", touch.campaign),
                ("content", touch.content),
                ("term", touch.term),
            )
            if value
        }
    }


def rebuild_from_events(workspace_id: str, lead_id: str) -> dict:
    """Reconstruct first/last touch for a lead from the event stream alone.

    Considers every event of the lead, and of the visitor it converted from,
    whose metadata recorded a touch; ordering is (timestamp, id).
    """
    lead = Lead.query.filter_by(workspace_id=workspace_id, id=lead_id).first()
    if lead is None:
        return {"first": None, "last": None}

    owner = Event.lead_id == lead.id
    if lead.visitor_id:
        owner = db.or_(owner, Event.visitor_id == lead.visitor_id)
    events = (
        Event.query.filter(Event.workspace_id == workspace_id, owner)
        .order_by(Event.timestamp.asc(), Event.id.asc())
        .all()
    )

    touches = []
    for event in events:
        utm = (event.event_metadata or {}).get("utm") or {}
        touch = Touch(
            source=utm.get("source"),
            medium=utm.get("medium"),
            campaign=utm.get("campaign"),
            content=utm.get("content"),
            term=utm.get("term"),
        )
        if not touch.is_empty():
            touches.append(touch)

    if not touches:
        return {"first": None, "last": None}
    return {"first": touches[0], "last": touches[-1]}
