from mika.analytics.query_service import AnalyticsQueryService
from mika.analytics.time_range import parse_time_range


def _seed(client):
    client.post(
        "/api/track",
        json={"type": "page_view", "cookieId": "c1", "landingPageId": "lp1", "utm": {"source": "google", "medium": "cpc"}},
    )
    client.post("/api/track", json={"type": "page_view", "cookieId": "c2", "landingPageId": "lp1"})
    client.post("/api/track", json={"type": "click", "cookieId": "c2", "landingPageId": "lp1"})
    client.post("/api/leads", json={"workspaceId": "ws1", "email": "ana@example.com", "cookieId": "c1"})


def test_summary_endpoint(client, workspace):
    _seed(client)

    response = client.get("/api/analytics/summary?workspaceId=ws1&range=last_7_days")

    assert response.status_code == 200
    body = response.get_json()
    assert body["summary"]["visitors"] == 2
    assert body["summary"]["sessions"] == 2
    assert body["summary"]["leads"] == 1
    assert body["summary"]["page_views"] == 2
    assert body["summary"]["lead_rate"] == 0.5
    assert body["eventsByType"] == {"page_view": 2, "click": 1, "lead_captured": 1}
    assert body["firstTouch"] == {"google / cpc / none": 1}


def test_summary_with_compare_period(client, workspace):
    _seed(client)

    response = client.get("/api/analytics/summary?workspaceId=ws1&range=last_30_days&compare=previous_period")

    assert response.get_json()["compare"]["events"] == 0


def test_summary_requires_workspace(client, workspace):
    response = client.get("/api/analytics/summary")

    assert response.status_code == 400
    assert response.get_json()["error"] == "workspace_required"


def test_summary_rejects_unknown_range(client, workspace):
    response = client.get("/api/analytics/summary?workspaceId=ws1&range=forever")

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_range"


def test_summary_is_workspace_scoped(client, workspace, other_workspace):
    _seed(client)
    client.post("/api/track", json={"type": "page_view", "cookieId": "c1", "landingPageId": "lp2"})

    rng = parse_time_range("last_7_days")
    assert AnalyticsQueryService.summary("ws2", rng.start, rng.end)["visitors"] == 1
    assert AnalyticsQueryService.summary("ws1", rng.start, rng.end)["visitors"] == 2


def test_visitor_timeline_is_ordered(client, workspace):
    visitor_id = client.post(
        "/api/track", json={"type": "page_view", "cookieId": "c1", "landingPageId": "lp1"}
    ).get_json()["visitorId"]
    client.post("/api/track", json={"type": "scroll", "cookieId": "c1", "landingPageId": "lp1", "scrollDepth": 30})
    client.post("/api/track", json={"type": "click", "cookieId": "c1", "landingPageId": "lp1"})

    response = client.get(f"/api/analytics/visitors/{visitor_id}/timeline?workspaceId=ws1")

    assert [event["type"] for event in response.get_json()["events"]] == ["page_view", "scroll", "click"]
