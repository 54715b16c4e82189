"""Outbound click tracking behind the redirect endpoint."""
from __future__ import annotations

import logging

from mika.analytics.rollups import bump_campaign, bump_landing_page
from mika.extensions import db
from mika.leads.capture import ensure_lead_visitor
from mika.models.leads import Lead
from mika.tracking.attribution import Touch, apply_last_touch
from mika.tracking.events import log_event
from mika.tracking.workspace_cache import owned_landing_page

logger = logging.getLogger(__name__)

DEFAULT_CLICK_MEDIUM = "affiliate"


def record_click(lead_id, destination_url, campaign_id=None, landing_page_id=None,
                 affiliate_id=None, source=None, medium=None):
    """Log an affiliate click for a lead. Returns the event, or None for an unknown lead."""
    lead = db.session.get(Lead, lead_id)
    if lead is None:
        logger.warning("Redirect for unknown lead %s, click not recorded", lead_id)
        return None

    touch = None
    if campaign_id:
        touch = Touch(source=source, medium=medium or DEFAULT_CLICK_MEDIUM, campaign=campaign_id)
        apply_last_touch(lead, touch)

    workspace_id = lead.workspace_id
    landing_page_id = owned_landing_page(workspace_id, landing_page_id)
    event = log_event(
        workspace_id,
        ensure_lead_visitor(lead),
        "click",
        name="affiliate_redirect",
        url=destination_url,
        lead_id=lead.id,
        landing_page_id=landing_page_id,
        campaign_id=campaign_id,
        metadata={"affiliateId": affiliate_id, "destinationUrl": destination_url},
        touch=touch,
    )

    bump_campaign(workspace_id, campaign_id, clicks=1)
    bump_landing_page(workspace_id, landing_page_id, clicks=1)
    return event
