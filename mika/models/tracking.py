"""Visitor, session and event models (workspace-partitioned)."""
from mika.extensions import db
from mika.models.base import TimestampMixin, new_id, utcnow

EVENT_TYPES = (
    "session_start",
    "session_end",
    "page_view",
    "scroll",
    "click",
    "form_start",
    "form_submit",
    "video_play",
    "video_progress",
    "video_complete",
    "download",
    "share",
    "purchase",
    "refund",
    "email_open",
    "email_click",
    "lead_captured",
    "lead_recaptured",
    "custom",
)


class Visitor(TimestampMixin, db.Model):
    __tablename__ = "visitors"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    workspace_id = db.Column(db.String(36), db.ForeignKey("workspaces.id"), nullable=False, index=True)

    # Identity
    cookie_id = db.Column(db.String(128))
    fingerprint_hash = db.Column(db.String(128))

    # First touch attribution
    first_source = db.Column(db.String(120))
    first_medium = db.Column(db.String(120))
    first_campaign = db.Column(db.String(200))
    first_content = db.Column(db.String(200))
    first_term = db.Column(db.String(200))
    first_referrer = db.Column(db.Text)
    first_landing_url = db.Column(db.Text)

    # Back-reference, not ownership
    converted_to_lead_id = db.Column(db.String(36), index=True)
    converted_at = db.Column(db.DateTime)

    first_seen_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    last_seen_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("workspace_id", "cookie_id", name="uq_visitors_workspace_cookie"),
        db.UniqueConstraint("workspace_id", "fingerprint_hash", name="uq_visitors_workspace_fingerprint"),
        db.Index("ix_visitors_first_seen", "workspace_id", "first_seen_at"),
    )

    def __repr__(self):
        return f"<Visitor {self.id} workspace={self.workspace_id}>"


class Session(db.Model):
    __tablename__ = "sessions"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    workspace_id = db.Column(db.String(36), db.ForeignKey("workspaces.id"), nullable=False, index=True)
    visitor_id = db.Column(db.String(36), db.ForeignKey("visitors.id"), nullable=False, index=True)
    lead_id = db.Column(db.String(36), db.ForeignKey("leads.id"), index=True)

    # Attribution
    source = db.Column(db.String(120))
    medium = db.Column(db.String(120))
    campaign = db.Column(db.String(200))
    content = db.Column(db.String(200))
    term = db.Column(db.String(200))
    referrer = db.Column(db.Text)

    # Landing
    landing_page_id = db.Column(db.String(36), index=True)
    entry_url = db.Column(db.Text)
    exit_url = db.Column(db.Text)

    # Device & geo snapshot
    device = db.Column(db.String(32))
    browser = db.Column(db.String(64))
    os = db.Column(db.String(64))
    country = db.Column(db.String(64))
    region = db.Column(db.String(120))
    city = db.Column(db.String(120))

    # Engagement
    page_views = db.Column(db.Integer, default=0, nullable=False)
    event_count = db.Column(db.Integer, default=0, nullable=False)
    duration = db.Column(db.Integer)
    max_scroll_depth = db.Column(db.Float)

    started_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    ended_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        db.Index("ix_sessions_started", "workspace_id", "started_at"),
        db.Index("ix_sessions_source", "workspace_id", "source"),
    )


class Event(db.Model):
    """Append-only fact. Ordered by (timestamp, id)."""

    __tablename__ = "events"

    id = db.Column(db.Integer, primary_key=True)
    workspace_id = db.Column(db.String(36), db.ForeignKey("workspaces.id"), nullable=False, index=True)

    visitor_id = db.Column(db.String(36), db.ForeignKey("visitors.id"), nullable=False, index=True)
    session_id = db.Column(db.String(36), db.ForeignKey("sessions.id"), index=True)
    lead_id = db.Column(db.String(36), db.ForeignKey("leads.id"), index=True)
    landing_page_id = db.Column(db.String(36))
    campaign_id = db.Column(db.String(200))

    type = db.Column(db.String(32), nullable=False, index=True)
    name = db.Column(db.String(200))
    value = db.Column(db.Float)

    url = db.Column(db.Text)
    event_metadata = db.Column("metadata", db.JSON, default=dict, nullable=False)

    timestamp = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        db.Index("ix_events_funnel", "workspace_id", "landing_page_id", "type", "timestamp"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "workspaceId": self.workspace_id,
            "visitorId": self.visitor_id,
            "sessionId": self.session_id,
            "leadId": self.lead_id,
            "landingPageId": self.landing_page_id,
            "campaignId": self.campaign_id,
            "type": self.type,
            "name": self.name,
            "value": self.value,
            "url": self.url,
            "metadata": self.event_metadata or {},
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
