import pytest

from mika import create_app
from mika.extensions import db
from mika.models import Campaign, LandingPage, Workspace


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def workspace(app):
    workspace = Workspace(id="ws1", name="Acme", slug="acme")
    campaign = Campaign(id="camp1", workspace_id="ws1", name="Spring", slug="spring", status="active")
    page = LandingPage(id="lp1", workspace_id="ws1", campaign_id="camp1", name="Webinar", slug="webinar")
    db.session.add_all([workspace, campaign, page])
    db.session.commit()
    return workspace


@pytest.fixture
def other_workspace(app):
    workspace = Workspace(id="ws2", name="Globex", slug="globex")
    page = LandingPage(id="lp2", workspace_id="ws2", name="Promo", slug="promo")
    db.session.add_all([workspace, page])
    db.session.commit()
    return workspace
