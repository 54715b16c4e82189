"""Analytics query service with workspace-scoped metrics."""
from __future__ import annotations

from collections import defaultdict
from datetime import datetime

from sqlalchemy import func

from mika.extensions import db
from mika.models.leads import Lead
from mika.models.tracking import Event, Session, Visitor


class AnalyticsQueryService:
    """Central analytics query helper."""

    @staticmethod
    def _count(column, *criteria) -> int:
        return int(db.session.query(func.count(column)).filter(*criteria).scalar() or 0)

    @staticmethod
    def summary(workspace_id: str, start: datetime, end: datetime) -> dict:
        count = AnalyticsQueryService._count
        visitors = count(
            Visitor.id,
            Visitor.workspace_id == workspace_id,
            Visitor.first_seen_at >= start,
            Visitor.first_seen_at <= end,
        )
        leads = count(
            Lead.id,
            Lead.workspace_id == workspace_id,
            Lead.created_at >= start,
            Lead.created_at <= end,
        )
        return {
            "visitors": visitors,
            "sessions": count(
                Session.id,
                Session.workspace_id == workspace_id,
                Session.started_at >= start,
                Session.started_at <= end,
            ),
            "leads": leads,
            "events": count(
                Event.id,
                Event.workspace_id == workspace_id,
                Event.timestamp >= start,
                Event.timestamp <= end,
            ),
            "page_views": count(
                Event.id,
                Event.workspace_id == workspace_id,
                Event.type == "page_view",
                Event.timestamp >= start,
                Event.timestamp <= end,
            ),
            "lead_rate": round(leads / visitors, 4) if visitors else 0.0,
        }

    @staticmethod
    def events_by_type(workspace_id: str, start: datetime, end: datetime) -> dict:
        rows = (
            db.session.query(Event.type, func.count(Event.id).label("hits"))
            .filter(
                Event.workspace_id == workspace_id,
                Event.timestamp >= start,
                Event.timestamp <= end,
            )
            .group_by(Event.type)
            .all()
        )
        return {row.type: int(row.hits or 0) for row in rows}

    @staticmethod
    def attribution_breakdown(workspace_id: str, start: datetime, end: datetime, kind: str = "first") -> dict:
        if kind not in ("first", "last"):
            raise ValueError("kind must be 'first' or 'last'")
        source = getattr(Lead, f"{kind}_source")
        medium = getattr(Lead, f"{kind}_medium")
        campaign = getattr(Lead, f"{kind}_campaign")
        rows = (
            db.session.query(source, medium, campaign, func.count(Lead.id).label("leads"))
            .filter(
                Lead.workspace_id == workspace_id,
                Lead.created_at >= start,
                Lead.created_at <= end,
            )
            .group_by(source, medium, campaign)
            .all()
        )
        grouped = defaultdict(int)
        for row_source, row_medium, row_campaign, hits in rows:
            key = f"{row_source or 'direct'} / {row_medium or 'none'} / {row_campaign or 'none'}"
            grouped[key] += int(hits or 0)
        return dict(grouped)

    @staticmethod
    def visitor_timeline(workspace_id: str, visitor_id: str, limit: int = 200) -> list[dict]:
        events = (
            Event.query.filter(Event.workspace_id == workspace_id, Event.visitor_id == visitor_id)
            .order_by(Event.timestamp.asc(), Event.id.asc())
            .limit(limit)
            .all()
        )
        return [event.to_dict() for event in events]
