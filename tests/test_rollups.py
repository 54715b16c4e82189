from datetime import date
from decimal import Decimal

from mika.analytics.rollups import increment
from mika.extensions import db
from mika.models import CampaignDailyMetrics, LandingPageDailyMetrics


def test_increment_creates_then_adds(app, workspace):
    key = {"workspace_id": "ws1", "landing_page_id": "lp1"}
    increment(LandingPageDailyMetrics, key, date(2024, 5, 8), page_views=1, visitors=1)
    increment(LandingPageDailyMetrics, key, date(2024, 5, 8), page_views=2)
    db.session.commit()

    row = LandingPageDailyMetrics.query.filter_by(landing_page_id="lp1").one()
    assert row.page_views == 3
    assert row.visitors == 1
    assert row.leads == 0


def test_increment_keeps_days_apart(app, workspace):
    key = {"workspace_id": "ws1", "campaign_id": "camp1"}
    increment(CampaignDailyMetrics, key, date(2024, 5, 8), clicks=1)
    increment(CampaignDailyMetrics, key, date(2024, 5, 9), clicks=1)
    db.session.commit()

    assert CampaignDailyMetrics.query.filter_by(campaign_id="camp1").count() == 2


def test_same_campaign_name_is_counted_per_workspace(app, workspace, other_workspace):
    increment(CampaignDailyMetrics, {"workspace_id": "ws1", "campaign_id": "spring"}, date(2024, 5, 8), leads=1)
    increment(CampaignDailyMetrics, {"workspace_id": "ws2", "campaign_id": "spring"}, date(2024, 5, 8), leads=1)
    db.session.commit()

    rows = CampaignDailyMetrics.query.filter_by(campaign_id="spring").all()
    assert sorted(row.workspace_id for row in rows) == ["ws1", "ws2"]
    assert all(row.leads == 1 for row in rows)


def test_revenue_accumulates_decimals(app, workspace):
    key = {"workspace_id": "ws1", "campaign_id": "camp1"}
    increment(CampaignDailyMetrics, key, date(2024, 5, 8), revenue=Decimal("10.50"))
    increment(CampaignDailyMetrics, key, date(2024, 5, 8), revenue=Decimal("-0.50"))
    db.session.commit()

    assert CampaignDailyMetrics.query.one().revenue == Decimal("10.00")


def test_zero_counters_write_nothing(app, workspace):
    increment(LandingPageDailyMetrics, {"workspace_id": "ws1", "landing_page_id": "lp1"}, date(2024, 5, 8), clicks=0)
    db.session.commit()

    assert LandingPageDailyMetrics.query.count() == 0
