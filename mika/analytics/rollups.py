"""Daily rollup counters.

Each increment is one parameterized statement executed in the caller's
transaction, so a rollup never drifts from the Event/Lead write it counts.
"""
from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import and_, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from mika.extensions import db
from mika.models.base import utcnow
from mika.models.metrics import CampaignDailyMetrics, LandingPageDailyMetrics

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "sqlite": sqlite_insert,
    "postgresql": pg_insert,
}


def increment(model, key: dict, day: date, **counters) -> None:
    """Add ``counters`` to the (key, day) row of ``model``, creating it if needed."""
    counters = {name: amount for name, amount in counters.items() if amount}
    if not counters:
        return

    table = model.__table__
    insert = _UPSERT_DIALECTS.get(db.session.get_bind().dialect.name)
    if insert is not None:
        stmt = insert(table).values(**key, day=day, **counters)
        set_ = {name: table.c[name] + stmt.excluded[name] for name in counters}
        set_["updated_at"] = utcnow()
        stmt = stmt.on_conflict_do_update(index_elements=[*key, "day"], set_=set_)
        db.session.execute(stmt)
        return

    match = and_(*(table.c[name] == value for name, value in key.items()), table.c.day == day)
    values = {name: table.c[name] + amount for name, amount in counters.items()}
    values["updated_at"] = utcnow()
    result = db.session.execute(update(table).where(match).values(values))
    if result.rowcount == 0:
        db.session.add(model(**key, day=day, **counters))
        db.session.flush()


def bump_landing_page(workspace_id: str, landing_page_id: str | None, **counters) -> None:
    if not landing_page_id:
        return
    increment(
        LandingPageDailyMetrics,
        {"workspace_id": workspace_id, "landing_page_id": landing_page_id},
        utcnow().date(),
        **counters,
    )


def bump_campaign(workspace_id: str, campaign_id: str | None, **counters) -> None:
    if not campaign_id:
        return
    increment(
        CampaignDailyMetrics,
        {"workspace_id": workspace_id, "campaign_id": campaign_id},
        utcnow().date(),
        **counters,
    )
