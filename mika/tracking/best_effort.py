"""Swallow-and-log lane for tracking side effects of a user-facing action."""
import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from mika.extensions import db

logger = logging.getLogger(__name__)


@contextmanager
def best_effort(context=""):
    """Run the block; on any failure log it, roll back and carry on.

    Only wrap work whose failure must not change the response, e.g. the
    click logging behind a redirect. Track/lead writes never go through here.
    """
    try:
        yield
    except Exception as exc:
        logger.warning(
            "Best-effort tracking failed%s: %s",
            f" ({context})" if context else "",
            exc,
            exc_info=True,
        )
        try:
            db.session.rollback()
        except SQLAlchemyError as rollback_exc:
            logger.error("Rollback after best-effort failure failed: %s", rollback_exc)
