"""Tenant records read by the tracking core."""
from mika.extensions import db
from mika.models.base import TimestampMixin, new_id


class Workspace(TimestampMixin, db.Model):
    __tablename__ = "workspaces"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(120), unique=True, nullable=False)

    def __repr__(self):
        return f"<Workspace {self.slug}>"


class Campaign(TimestampMixin, db.Model):
    __tablename__ = "campaigns"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    workspace_id = db.Column(db.String(36), db.ForeignKey("workspaces.id"), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(120), nullable=False)
    status = db.Column(db.String(20), default="draft", nullable=False)

    # UTM defaults
    utm_source = db.Column(db.String(120))
    utm_medium = db.Column(db.String(120))
    utm_campaign = db.Column(db.String(120))

    __table_args__ = (
        db.UniqueConstraint("workspace_id", "slug", name="uq_campaigns_workspace_slug"),
    )


class LandingPage(TimestampMixin, db.Model):
    __tablename__ = "landing_pages"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    workspace_id = db.Column(db.String(36), db.ForeignKey("workspaces.id"), nullable=False, index=True)
    campaign_id = db.Column(db.String(36), db.ForeignKey("campaigns.id"), index=True)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(120), nullable=False)
    status = db.Column(db.String(20), default="draft", nullable=False)

    __table_args__ = (
        db.UniqueConstraint("workspace_id", "slug", name="uq_landing_pages_workspace_slug"),
    )
