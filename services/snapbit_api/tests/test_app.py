from fastapi.testclient import TestClient

from .helpers import make_settings


def test_health_is_open(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_metrics_endpoint_is_gated(client, auth_headers):
    assert client.get("/metrics").status_code == 401

    response = client.get("/metrics", headers=auth_headers)

    assert response.status_code == 200
    assert "http_requests_total" in response.text


def test_correlation_id_is_echoed(client):
    response = client.get("/health", headers={"X-Correlation-ID": "abc-123"})

    assert response.headers["X-Correlation-ID"] == "abc-123"
    assert response.headers["X-Request-ID"]


def test_cors_preflight_allows_front_end_origin(client):
    response = client.options(
        "/tokens/add",
        headers={
            "Origin": "https://portal.test",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Authorization, Content-Type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "https://portal.test"


def test_cors_rejects_unknown_origin(client):
    response = client.options(
        "/tokens/add",
        headers={"Origin": "https://evil.test", "Access-Control-Request-Method": "POST"},
    )

    assert response.status_code == 400
    assert "access-control-allow-origin" not in response.headers


def test_docs_routes_respect_toggle(app_factory):
    with TestClient(app_factory(make_settings(enable_docs=True))) as client:
        for endpoint in ("/docs", "/openapi.json"):
            assert client.get(endpoint, headers={"Authorization": "Bearer test-api-key"}).status_code == 200

    with TestClient(app_factory(make_settings(enable_docs=False))) as client:
        for endpoint in ("/docs", "/redoc", "/openapi.json"):
            assert client.get(endpoint, headers={"Authorization": "Bearer test-api-key"}).status_code == 404
