def test_healthz_endpoint(client):
    response = client.get("/healthz")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["status"] in {"ok", "degraded"}
    assert payload["db_ok"] is True


def test_version_endpoint_defaults(client):
    response = client.get("/__version")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["app"] == "mika"
    assert "version" in payload
    assert "git_sha" in payload


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"


def test_request_id_generated_when_missing(client):
    response = client.get("/health")

    assert response.headers.get("X-Request-ID")


def test_unknown_route_renders_json(client):
    response = client.get("/nope")

    assert response.status_code == 404
    assert response.get_json()["error"] == "not_found"
