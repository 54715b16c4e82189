"""Daily rollups (derived aggregates, tenant-scoped)."""
from mika.extensions import db
from mika.models.base import utcnow


class LandingPageDailyMetrics(db.Model):
    __tablename__ = "landing_page_daily_metrics"

    id = db.Column(db.Integer, primary_key=True)
    workspace_id = db.Column(db.String(36), nullable=False, index=True)
    landing_page_id = db.Column(db.String(36), nullable=False)
    day = db.Column(db.Date, nullable=False, index=True)

    visitors = db.Column(db.Integer, default=0, nullable=False)
    page_views = db.Column(db.Integer, default=0, nullable=False)
    form_starts = db.Column(db.Integer, default=0, nullable=False)
    form_submits = db.Column(db.Integer, default=0, nullable=False)
    leads = db.Column(db.Integer, default=0, nullable=False)
    clicks = db.Column(db.Integer, default=0, nullable=False)

    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("workspace_id", "landing_page_id", "day", name="uq_landing_page_daily"),
    )


class CampaignDailyMetrics(db.Model):
    __tablename__ = "campaign_daily_metrics"

    id = db.Column(db.Integer, primary_key=True)
    workspace_id = db.Column(db.String(36), nullable=False, index=True)
    campaign_id = db.Column(db.String(200), nullable=False)
    day = db.Column(db.Date, nullable=False, index=True)

    visitors = db.Column(db.Integer, default=0, nullable=False)
    leads = db.Column(db.Integer, default=0, nullable=False)
    clicks = db.Column(db.Integer, default=0, nullable=False)
    customers = db.Column(db.Integer, default=0, nullable=False)
    revenue = db.Column(db.Numeric(12, 2), default=0, nullable=False)

    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("workspace_id", "campaign_id", "day", name="uq_campaign_daily"),
    )
