"""
Application-level endpoints and the error envelope.
"""

from tests.conftest import API


class TestAppEndpoints:
    """Tests for /health and the API root"""

    def test_health(self, client):
        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"

    def test_api_root(self, client):
        resp = client.get(API)

        assert resp.status_code == 200
        assert resp.json()["status"] == "success"

    def test_unknown_route_uses_error_envelope(self, client):
        resp = client.get(f"{API}/does-not-exist")

        assert resp.status_code == 404
        assert resp.json() == {"status": "error", "message": "Not Found"}

    def test_malformed_body_is_a_400_with_details(self, client):
        resp = client.post(f"{API}/auth/login", json={"email": "a@example.com"})

        assert resp.status_code == 400
        body = resp.json()
        assert body["message"] == "Validation error"
        assert any("password" in detail for detail in body["details"])
