"""Lead, stage history and transaction models."""
from mika.extensions import db
from mika.models.base import TimestampMixin, new_id, utcnow

LEAD_STAGES = ("captured", "engaged", "qualified", "opportunity", "customer", "churned")
TRANSACTION_TYPES = ("sale", "refund", "subscription")


class Lead(TimestampMixin, db.Model):
    __tablename__ = "leads"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    workspace_id = db.Column(db.String(36), db.ForeignKey("workspaces.id"), nullable=False, index=True)
    visitor_id = db.Column(db.String(36), db.ForeignKey("visitors.id"), index=True)

    # Contact
    email = db.Column(db.String(320), nullable=False)
    name = db.Column(db.String(200))
    phone = db.Column(db.String(64))
    captured_via = db.Column(db.String(120))

    # Lifecycle
    stage = db.Column(db.String(20), default="captured", nullable=False, index=True)
    stage_changed_at = db.Column(db.DateTime, default=utcnow)

    # Scoring
    behavior_score = db.Column(db.Integer, default=0, nullable=False)
    demographic_score = db.Column(db.Integer, default=0, nullable=False)
    total_score = db.Column(db.Integer, default=0, nullable=False)

    # Attribution (denormalized for reads; events are the source of truth)
    first_source = db.Column(db.String(120))
    first_medium = db.Column(db.String(120))
    first_campaign = db.Column(db.String(200))
    first_landing_page_id = db.Column(db.String(36))
    last_source = db.Column(db.String(120))
    last_medium = db.Column(db.String(120))
    last_campaign = db.Column(db.String(200))

    # Revenue
    lifetime_value = db.Column(db.Numeric(12, 2), default=0, nullable=False)
    purchase_count = db.Column(db.Integer, default=0, nullable=False)

    custom_fields = db.Column(db.JSON, default=dict, nullable=False)
    tags = db.Column(db.JSON, default=list, nullable=False)

    converted_at = db.Column(db.DateTime)

    __table_args__ = (
        db.UniqueConstraint("workspace_id", "email", name="uq_leads_workspace_email"),
        db.Index("ix_leads_first_source", "workspace_id", "first_source"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "workspaceId": self.workspace_id,
            "visitorId": self.visitor_id,
            "email": self.email,
            "name": self.name,
            "phone": self.phone,
            "capturedVia": self.captured_via,
            "stage": self.stage,
            "stageChangedAt": self.stage_changed_at.isoformat() if self.stage_changed_at else None,
            "behaviorScore": self.behavior_score,
            "demographicScore": self.demographic_score,
            "totalScore": self.total_score,
            "firstSource": self.first_source,
            "firstMedium": self.first_medium,
            "firstCampaign": self.first_campaign,
            "firstLandingPageId": self.first_landing_page_id,
            "lastSource": self.last_source,
            "lastMedium": self.last_medium,
            "lastCampaign": self.last_campaign,
            "lifetimeValue": float(self.lifetime_value or 0),
            "purchaseCount": self.purchase_count,
            "customFields": self.custom_fields or {},
            "tags": self.tags or [],
            "convertedAt": self.converted_at.isoformat() if self.converted_at else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


class LeadStageHistory(db.Model):
    __tablename__ = "lead_stage_history"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    workspace_id = db.Column(db.String(36), db.ForeignKey("workspaces.id"), nullable=False, index=True)
    lead_id = db.Column(db.String(36), db.ForeignKey("leads.id"), nullable=False, index=True)

    from_stage = db.Column(db.String(20))
    to_stage = db.Column(db.String(20), nullable=False, index=True)

    entered_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    exited_at = db.Column(db.DateTime)
    duration_seconds = db.Column(db.Integer)

    changed_by = db.Column(db.String(120))
    reason = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)


class Transaction(db.Model):
    __tablename__ = "transactions"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    workspace_id = db.Column(db.String(36), db.ForeignKey("workspaces.id"), nullable=False, index=True)
    lead_id = db.Column(db.String(36), db.ForeignKey("leads.id"), nullable=False, index=True)

    # Last touch
    campaign_id = db.Column(db.String(200), index=True)
    landing_page_id = db.Column(db.String(36))
    session_id = db.Column(db.String(36))

    # First touch, copied from the lead
    first_touch_campaign = db.Column(db.String(200), index=True)
    first_touch_landing_page_id = db.Column(db.String(36))

    type = db.Column(db.String(20), default="sale", nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    currency = db.Column(db.String(8), default="BRL", nullable=False)
    external_id = db.Column(db.String(200))
    status = db.Column(db.String(40), default="completed", nullable=False)

    transaction_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "leadId": self.lead_id,
            "type": self.type,
            "amount": float(self.amount),
            "currency": self.currency,
            "campaignId": self.campaign_id,
            "landingPageId": self.landing_page_id,
            "sessionId": self.session_id,
            "firstTouchCampaign": self.first_touch_campaign,
            "firstTouchLandingPageId": self.first_touch_landing_page_id,
            "externalId": self.external_id,
            "status": self.status,
            "transactionAt": self.transaction_at.isoformat() if self.transaction_at else None,
        }
