import pytest

class TestRouting:
    """Top-level routing tests"""

    def test_health_check(self, client):
        """Test health check endpoint"""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "service" in data
        assert "version" in data

    def test_unknown_endpoint(self, client):
        """Unmatched path segments are reported as not found"""
        response = client.get("/api/nonexistent")
        assert response.status_code == 404
        assert response.json() == {"message": "Endpoint not found"}

    def test_unknown_endpoint_post(self, client, auth_headers):
        response = client.post("/api/nonexistent", json={}, headers=auth_headers)
        assert response.status_code == 404

    @pytest.mark.parametrize("method", ["OPTIONS", "HEAD", "PATCH"])
    def test_unknown_endpoint_any_method(self, client, method):
        """Unmatched paths answer 404 whatever the method"""
        response = client.request(method, "/api/nonexistent")
        assert response.status_code == 404
        if method != "HEAD":
            assert response.json() == {"message": "Endpoint not found"}

    @pytest.mark.parametrize("path", ["/api/general?type=logo", "/api/subscription", "/api/welcome"])
    def test_resources_are_routed(self, client, path):
        response = client.get(path)
        assert response.status_code == 200

class TestCORS:
    """CORS negotiation tests"""

    def test_preflight_short_circuits(self, client):
        """Preflight answers 200 with an empty body and no auth"""
        response = client.options(
            "/api/general",
            headers={"Origin": "https://admin.example.com", "Access-Control-Request-Method": "DELETE"}
        )
        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "https://admin.example.com"
        assert response.headers["access-control-allow-methods"] == "GET, POST, PUT, DELETE, OPTIONS"
        assert response.headers["access-control-allow-headers"] == "Content-Type, Authorization"
        assert response.headers["access-control-allow-credentials"] == "true"

    def test_disallowed_origin_not_reflected(self, client):
        response = client.options("/api/users", headers={"Origin": "https://evil.example.com"})
        assert response.status_code == 200
        assert "access-control-allow-origin" not in response.headers
        assert response.headers["access-control-allow-credentials"] == "true"

    def test_welcome_advertises_its_own_methods(self, client):
        response = client.options("/api/welcome")
        assert response.headers["access-control-allow-methods"] == "GET, POST, PUT, OPTIONS"

    def test_cors_headers_on_error_responses(self, client):
        """Error responses still carry the CORS headers"""
        response = client.post("/api/general?type=youtube", json={}, headers={"Origin": "https://www.example.com"})
        assert response.status_code == 401
        assert response.headers["access-control-allow-origin"] == "https://www.example.com"

class TestAuthentication:
    """Every mutating request needs the API key"""

    @pytest.mark.parametrize("method,path", [
        ("POST", "/api/general?type=youtube"),
        ("PUT", "/api/general?type=logo"),
        ("DELETE", "/api/general?type=pdf&id=64b7f0c2a1b2c3d4e5f60718"),
        ("POST", "/api/subscription"),
        ("DELETE", "/api/subscription?id=64b7f0c2a1b2c3d4e5f60718"),
        ("PUT", "/api/subscription?type=expire&email=a@b.co"),
        ("POST", "/api/users"),
        ("PUT", "/api/users?email=a@b.co"),
        ("DELETE", "/api/users?email=a@b.co"),
        ("POST", "/api/welcome"),
        ("PUT", "/api/welcome"),
    ])
    def test_missing_token(self, client, count_documents, method, path):
        response = client.request(method, path, json={"title": "x", "url": "y", "email": "a@b.co", "name": "n"})
        assert response.status_code == 401
        assert response.json() == {"message": "Unauthorized"}
        assert count_documents() == 0

    def test_wrong_token(self, client, db, run):
        response = client.put(
            "/api/general?type=sitename",
            json={"name": "Other"},
            headers={"Authorization": "Bearer wrong-key"}
        )
        assert response.status_code == 401
        assert run(db.site_name.count_documents({})) == 0

    def test_non_bearer_scheme(self, client):
        response = client.put(
            "/api/general?type=sitename",
            json={"name": "Other"},
            headers={"Authorization": "Basic test-api-key"}
        )
        assert response.status_code == 401

class TestErrorHandling:
    """Error handling tests"""

    def test_malformed_json(self, client, auth_headers):
        response = client.post(
            "/api/subscription",
            content=b"{not json",
            headers={**auth_headers, "Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid request body"}

    def test_non_object_body(self, client, auth_headers):
        response = client.put("/api/welcome", json=["title", "message"], headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid request body"}

    def test_unsupported_method(self, client, auth_headers):
        response = client.patch("/api/subscription", json={}, headers=auth_headers)
        assert response.status_code == 405
        assert response.json() == {"message": "Method Not Allowed"}

    def test_persistence_failure_verbose_outside_production(self, client, failing_gateway):
        failing_gateway(RuntimeError("disk on fire"))
        response = client.get("/api/welcome")
        assert response.status_code == 500
        assert response.json() == {"message": "disk on fire"}

    def test_persistence_failure_generic_in_production(self, client, failing_gateway, monkeypatch):
        from sitecms.config import settings

        failing_gateway(RuntimeError("disk on fire"))
        monkeypatch.setattr(settings, "ENVIRONMENT", "production")
        response = client.get("/api/welcome")
        assert response.status_code == 500
        assert response.json() == {"message": "Internal server error"}
