"""Visitor identity resolution.

Every write in the pipeline hangs off a visitor id, so this runs first in a
request. Lookup is cookie id, then fingerprint hash, always scoped to the
workspace; the unique constraints on both keys catch concurrent creation.
"""
from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from mika.errors import NotFoundError, ValidationError
from mika.extensions import db
from mika.models.base import utcnow
from mika.models.tracking import Visitor
from mika.tracking.attribution import Touch

logger = logging.getLogger(__name__)


def find_visitor(workspace_id: str, cookie_id: str | None = None,
                 fingerprint_hash: str | None = None) -> Visitor | None:
    """Return the visitor matching the first identity key that hits."""
    for column, value in (
        (Visitor.cookie_id, cookie_id),
        (Visitor.fingerprint_hash, fingerprint_hash),
    ):
        if not value:
            continue
        visitor = Visitor.query.filter(Visitor.workspace_id == workspace_id, column == value).first()
        if visitor is not None:
            return visitor
    return None


def _unclaimed(workspace_id: str, column, value: str) -> bool:
    """True when no visitor in the workspace holds this identity key yet."""
    with db.session.no_autoflush:
        owner = db.session.query(Visitor.id).filter(Visitor.workspace_id == workspace_id, column == value).first()
    return owner is None


def _backfill(visitor: Visitor, cookie_id: str | None, fingerprint_hash: str | None) -> None:
    """Copy identity keys the visitor lacks, skipping any another visitor already owns."""
    for attr, column, value in (
        ("cookie_id", Visitor.cookie_id, cookie_id),
        ("fingerprint_hash", Visitor.fingerprint_hash, fingerprint_hash),
    ):
        if not value or getattr(visitor, attr):
            continue
        if _unclaimed(visitor.workspace_id, column, value):
            setattr(visitor, attr, value)
        else:
            logger.info("Not backfilling %s on visitor %s: key held by another visitor", attr, visitor.id)


def _touch_last_seen(workspace_id: str, visitor_id: str) -> bool:
    result = db.session.execute(
        update(Visitor)
        .where(Visitor.id == visitor_id, Visitor.workspace_id == workspace_id)
        .values(last_seen_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0


def identify(
    workspace_id: str,
    cookie_id: str | None = None,
    fingerprint_hash: str | None = None,
    visitor_id: str | None = None,
    touch: Touch | None = None,
    referrer: str | None = None,
    landing_url: str | None = None,
) -> tuple[str, bool]:
    """Resolve or create a visitor. Returns ``(visitor_id, created)``."""
    if not (visitor_id or cookie_id or fingerprint_hash):
        raise ValidationError(
            "One of visitorId, cookieId or fingerprintHash is required",
            code="identity_required",
        )

    if visitor_id:
        if _touch_last_seen(workspace_id, visitor_id):
            return visitor_id, False
        if not (cookie_id or fingerprint_hash):
            raise NotFoundError("visitor", visitor_id)
        logger.info("Unknown visitor id %s, falling back to cookie/fingerprint", visitor_id)

    visitor = find_visitor(workspace_id, cookie_id, fingerprint_hash)
    if visitor is not None:
        visitor.last_seen_at = utcnow()
        _backfill(visitor, cookie_id, fingerprint_hash)
        return visitor.id, False

    touch = touch or Touch()
    now = utcnow()
    visitor = Visitor(
        workspace_id=workspace_id,
        cookie_id=cookie_id,
        fingerprint_hash=fingerprint_hash,
        first_source=touch.source,
        first_medium=touch.medium,
        first_campaign=touch.campaign,
        first_content=touch.content,
        first_term=touch.term,
        first_referrer=referrer,
        first_landing_url=landing_url,
        first_seen_at=now,
        last_seen_at=now,
    )
    db.session.add(visitor)
    try:
        db.session.flush()
    except IntegrityError:
        # Concurrent request created the same cookie/fingerprint first.
        db.session.rollback()
        existing = find_visitor(workspace_id, cookie_id, fingerprint_hash)
        if existing is None:
            raise
        logger.info("Visitor creation race in workspace %s, reusing %s", workspace_id, existing.id)
        existing.last_seen_at = utcnow()
        return existing.id, False

    logger.debug("Created visitor %s in workspace %s", visitor.id, workspace_id)
    return visitor.id, True


def resolve_visitor(workspace_id, cookie_id=None, fingerprint_hash=None, visitor_id=None,
                    touch=None, referrer=None, landing_url=None) -> str:
    """Return a visitor id usable for every later write in the request."""
    visitor_id, _created = identify(
        workspace_id,
        cookie_id=cookie_id,
        fingerprint_hash=fingerprint_hash,
        visitor_id=visitor_id,
        touch=touch,
        referrer=referrer,
        landing_url=landing_url,
    )
    return visitor_id
