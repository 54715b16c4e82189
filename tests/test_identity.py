import pytest

from mika.errors import NotFoundError, ValidationError
from mika.extensions import db
from mika.models import Visitor
from mika.tracking import identity
from mika.tracking.attribution import Touch
from mika.tracking.identity import identify, resolve_visitor


def test_same_cookie_twice_creates_one_visitor(client, workspace):
    first = client.post("/api/track", json={"type": "session_start", "cookieId": "c1", "landingPageId": "lp1"})
    second = client.post("/api/track", json={"type": "session_start", "cookieId": "c1", "landingPageId": "lp1"})

    assert first.status_code == 200
    assert second.status_code == 200
    assert first.get_json()["visitorId"] == second.get_json()["visitorId"]
    assert Visitor.query.filter_by(workspace_id="ws1", cookie_id="c1").count() == 1


def test_second_resolution_only_touches_last_seen(app, workspace):
    visitor_id = resolve_visitor("ws1", cookie_id="c1", touch=Touch(source="google"))
    db.session.commit()
    before = db.session.get(Visitor, visitor_id).last_seen_at

    again = resolve_visitor("ws1", cookie_id="c1", touch=Touch(source="meta"))
    db.session.commit()

    visitor = db.session.get(Visitor, visitor_id)
    assert again == visitor_id
    assert visitor.first_source == "google"
    assert visitor.last_seen_at >= before


def test_new_visitor_records_first_touch_context(app, workspace):
    visitor_id, created = identify(
        "ws1",
        cookie_id="c9",
        touch=Touch(source="google", medium="cpc", campaign="spring"),
        referrer="https://google.com/",
        landing_url="https://acme.test/webinar",
    )
    db.session.commit()

    visitor = db.session.get(Visitor, visitor_id)
    assert created is True
    assert (visitor.first_source, visitor.first_medium, visitor.first_campaign) == ("google", "cpc", "spring")
    assert visitor.first_referrer == "https://google.com/"
    assert visitor.first_landing_url == "https://acme.test/webinar"


def test_cookie_is_scoped_to_workspace(app, workspace, other_workspace):
    first = resolve_visitor("ws1", cookie_id="shared")
    second = resolve_visitor("ws2", cookie_id="shared")
    db.session.commit()

    assert first != second


def test_fingerprint_fallback_backfills_cookie(app, workspace):
    visitor_id = resolve_visitor("ws1", fingerprint_hash="fp1")
    db.session.commit()

    again = resolve_visitor("ws1", cookie_id="c-new", fingerprint_hash="fp1")
    db.session.commit()

    assert again == visitor_id
    assert db.session.get(Visitor, visitor_id).cookie_id == "c-new"


def test_trusted_visitor_id_is_returned(app, workspace):
    visitor_id = resolve_visitor("ws1", cookie_id="c1")
    db.session.commit()

    assert resolve_visitor("ws1", visitor_id=visitor_id) == visitor_id
    assert Visitor.query.count() == 1


def test_unknown_visitor_id_without_fallback_is_not_found(app, workspace):
    with pytest.raises(NotFoundError):
        resolve_visitor("ws1", visitor_id="missing")


def test_unknown_visitor_id_falls_back_to_cookie(app, workspace):
    visitor_id = resolve_visitor("ws1", cookie_id="c1")
    db.session.commit()

    assert resolve_visitor("ws1", visitor_id="missing", cookie_id="c1") == visitor_id


def test_identity_is_mandatory(app, workspace):
    with pytest.raises(ValidationError) as excinfo:
        resolve_visitor("ws1")
    assert excinfo.value.code == "identity_required"


def test_creation_race_reuses_existing_visitor(app, workspace, monkeypatch):
    existing = Visitor(workspace_id="ws1", cookie_id="c-race")
    db.session.add(existing)
    db.session.commit()
    existing_id = existing.id

    real_find = identity.find_visitor
    calls = {"n": 0}

    def miss_once(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return real_find(*args, **kwargs)

    monkeypatch.setattr(identity, "find_visitor", miss_once)

    visitor_id, created = identify("ws1", cookie_id="c-race")

    assert visitor_id == existing_id
    assert created is False
    assert Visitor.query.filter_by(workspace_id="ws1", cookie_id="c-race").count() == 1


def test_track_without_identity_is_rejected(client, workspace):
    response = client.post("/api/track", json={"type": "page_view", "landingPageId": "lp1"})

    assert response.status_code == 400
    assert response.get_json()["error"] == "identity_required"


def test_backfill_skips_fingerprint_owned_by_another_visitor(client, workspace):
    by_cookie = client.post("/api/track", json={"type": "session_start", "cookieId": "c1", "workspaceId": "ws1"})
    by_print = client.post("/api/track", json={"type": "session_start", "fingerprintHash": "f1", "workspaceId": "ws1"})

    both = client.post(
        "/api/track",
        json={"type": "page_view", "cookieId": "c1", "fingerprintHash": "f1", "workspaceId": "ws1"},
    )

    assert both.status_code == 200
    assert both.get_json()["visitorId"] == by_cookie.get_json()["visitorId"]
    cookie_visitor = db.session.get(Visitor, by_cookie.get_json()["visitorId"])
    print_visitor = db.session.get(Visitor, by_print.get_json()["visitorId"])
    assert cookie_visitor.fingerprint_hash is None
    assert print_visitor.fingerprint_hash == "f1"
    assert print_visitor.cookie_id is None


def test_backfill_skips_cookie_owned_by_another_visitor(app, workspace):
    print_only = resolve_visitor("ws1", fingerprint_hash="f1")
    cookie_owner = resolve_visitor("ws1", cookie_id="c1")
    db.session.commit()

    visitor = db.session.get(Visitor, print_only)
    identity._backfill(visitor, "c1", None)
    db.session.commit()

    assert db.session.get(Visitor, print_only).cookie_id is None
    assert db.session.get(Visitor, cookie_owner).cookie_id == "c1"
