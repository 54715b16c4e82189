"""Purchases and refunds attributed to a lead."""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from mika.analytics.rollups import bump_campaign
from mika.errors import NotFoundError, ValidationError
from mika.extensions import db
from mika.leads.capture import ensure_lead_visitor
from mika.models.base import utcnow
from mika.models.leads import TRANSACTION_TYPES, Lead, Transaction
from mika.tracking.events import log_event
from mika.tracking.sessions import get_session
from mika.tracking.workspace_cache import owned_landing_page

logger = logging.getLogger(__name__)


def _amount(value) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError("amount must be a number", code="invalid_amount")
    try:
        amount = Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        raise ValidationError("amount must be a number", code="invalid_amount")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("amount must be greater than zero", code="invalid_amount")
    return amount


def record_transaction(
    workspace_id,
    lead_id,
    amount,
    type="sale",
    currency=None,
    external_id=None,
    status="completed",
    campaign_id=None,
    landing_page_id=None,
    session_id=None,
) -> Transaction:
    """Record a sale/subscription/refund and roll it into the lead's value.

    First touch is copied from the lead; last touch is the campaign/landing
    page/session the caller reports, falling back to the lead's last campaign.
    """
    if type not in TRANSACTION_TYPES:
        raise ValidationError(f"Unknown transaction type '{type}'", code="invalid_transaction_type")
    if amount is None:
        raise ValidationError("amount is required", code="amount_required")
    amount = _amount(amount)

    lead = Lead.query.filter_by(workspace_id=workspace_id, id=lead_id).first()
    if lead is None:
        raise NotFoundError("lead", lead_id)

    landing_page_id = owned_landing_page(workspace_id, landing_page_id)
    if session_id and get_session(workspace_id, session_id) is None:
        logger.info("Ignoring unknown session %s on transaction for lead %s", session_id, lead.id)
        session_id = None

    now = utcnow()
    txn = Transaction(
        workspace_id=workspace_id,
        lead_id=lead.id,
        type=type,
        amount=amount,
        currency=(currency or "BRL").upper(),
        external_id=external_id,
        status=status or "completed",
        campaign_id=campaign_id or lead.last_campaign,
        landing_page_id=landing_page_id,
        session_id=session_id,
        first_touch_campaign=lead.first_campaign,
        first_touch_landing_page_id=lead.first_landing_page_id,
        transaction_at=now,
    )
    db.session.add(txn)

    first_purchase = False
    current_value = Decimal(lead.lifetime_value or 0)
    if type == "refund":
        lead.lifetime_value = current_value - amount
        signed = -amount
    else:
        first_purchase = not lead.purchase_count
        lead.lifetime_value = current_value + amount
        lead.purchase_count = (lead.purchase_count or 0) + 1
        if lead.converted_at is None:
            lead.converted_at = now
        signed = amount
    db.session.flush()

    log_event(
        workspace_id,
        ensure_lead_visitor(lead),
        "refund" if type == "refund" else "purchase",
        name=type,
        value=float(signed),
        session_id=session_id,
        lead_id=lead.id,
        landing_page_id=landing_page_id,
        campaign_id=txn.campaign_id,
        metadata={"transactionId": txn.id, "currency": txn.currency, "externalId": external_id},
    )
    bump_campaign(workspace_id, txn.campaign_id, revenue=signed, customers=1 if first_purchase else 0)
    logger.info("Recorded %s %s for lead %s", type, amount, lead.id)
    return txn
