"""Models package - Import all models here for easy access."""
from mika.models.tenancy import Campaign, LandingPage, Workspace
from mika.models.tracking import EVENT_TYPES, Event, Session, Visitor
from mika.models.leads import LEAD_STAGES, TRANSACTION_TYPES, Lead, LeadStageHistory, Transaction
from mika.models.metrics import CampaignDailyMetrics, LandingPageDailyMetrics

__all__ = [
    "Workspace",
    "Campaign",
    "LandingPage",
    "Visitor",
    "Session",
    "Event",
    "EVENT_TYPES",
    "Lead",
    "LeadStageHistory",
    "Transaction",
    "LEAD_STAGES",
    "TRANSACTION_TYPES",
    "LandingPageDailyMetrics",
    "CampaignDailyMetrics",
]
