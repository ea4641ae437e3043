"""
Tests for Gateway service.
"""

import json

import pytest
import httpx
from fastapi.testclient import TestClient

from shared.test_helpers import FakeStore, create_mock_user, make_config, routed_transport

from service_gateway.app.main import create_app


class TestGatewayService:
    """Test cases for the download link route."""

    @pytest.fixture
    def store(self):
        """Create a fake store with one user and one bundle."""
        store = FakeStore()
        store.users["good-token"] = create_mock_user("user-1")
        store.add_org("org-1", created_by="owner")
        store.add_app("app123", owner_org="org-1")
        store.add_bundle(5, "app123", "org-1")
        return store

    @pytest.fixture
    def grants(self):
        """(user_id, app_id) pairs the fake Entitlements service allows."""
        return {("user-1", "app123")}

    @pytest.fixture
    def signer_state(self):
        """Status and requests of the fake URL signer."""
        return {"status": 200, "url": "https://cdn.test/5.zip?sig=abc", "requests": []}

    @pytest.fixture
    def client(self, store, grants, signer_state):
        """Create test client wired to fakes."""
        def entitlements_handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/health":
                return httpx.Response(200, json={"status": "ok"})
            body = json.loads(request.content)
            return httpx.Response(200, json={"allowed": (body["user_id"], body["app_id"]) in grants})

        def signer_handler(request: httpx.Request) -> httpx.Response:
            signer_state["requests"].append(json.loads(request.content))
            return httpx.Response(signer_state["status"], json={"url": signer_state["url"]})

        transport = routed_transport({
            "store.test": store.handler,
            "entitlements.test": entitlements_handler,
            "signer.test": signer_handler,
        })
        return TestClient(create_app(config=make_config("gateway", 8000), transport=transport))

    @pytest.fixture
    def body(self):
        """Download link request body."""
        return {"app_id": "app123", "storage_provider": "r2", "id": 5}

    def test_root_endpoint(self, client):
        """Test root endpoint."""
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "gateway"

    def test_health_endpoint(self, client):
        """Test health endpoint checks the Entitlements service."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["dependencies"] == {"entitlements": "ok"}

    def test_download_link(self, client, body, signer_state):
        """Test a permitted caller gets the signed URL."""
        response = client.post(
            "/private/download_link", json=body, headers={"Authorization": "Bearer good-token"}
        )

        assert response.status_code == 200
        assert response.json() == {"url": "https://cdn.test/5.zip?sig=abc"}
        assert signer_state["requests"][0]["org_id"] == "org-1"
        assert signer_state["requests"][0]["expires_in"] == 3600

    def test_no_authorization(self, client, body):
        """Test a request without header."""
        response = client.post("/private/download_link", json=body)
        assert response.status_code == 400
        assert response.json() == {"status": "Cannot find authorization"}

    def test_invalid_token(self, client, body):
        """Test a request with an unknown token."""
        response = client.post(
            "/private/download_link", json=body, headers={"Authorization": "Bearer bad-token"}
        )
        assert response.status_code == 400
        assert response.json() == {"status": "not authorize"}

    def test_read_right_denied(self, client, body, grants):
        """Test a caller without read right on the app."""
        grants.clear()
        response = client.post(
            "/private/download_link", json=body, headers={"Authorization": "Bearer good-token"}
        )
        assert response.status_code == 400
        assert response.json() == {"status": "You can't access this app", "app_id": "app123"}

    def test_unresolved_owner(self, client, body, store, signer_state):
        """Test a bundle whose owning org is missing."""
        store.tables["orgs"].clear()
        response = client.post(
            "/private/download_link", json=body, headers={"Authorization": "Bearer good-token"}
        )
        assert response.status_code == 500
        assert response.json() == {"status": "Error unknow"}
        assert signer_state["requests"] == []

    def test_unknown_bundle(self, client, body):
        """Test a bundle id that does not exist."""
        body["id"] = 99
        response = client.post(
            "/private/download_link", json=body, headers={"Authorization": "Bearer good-token"}
        )
        assert response.status_code == 500
        assert response.json() == {"status": "Error unknow"}

    def test_signer_failure(self, client, body, signer_state):
        """Test a failing URL signer."""
        signer_state["status"] = 503
        response = client.post(
            "/private/download_link", json=body, headers={"Authorization": "Bearer good-token"}
        )
        assert response.status_code == 500
        assert response.json() == {"status": "Error unknow"}

    def test_invalid_body(self, client):
        """Test malformed bodies."""
        headers = {"Authorization": "Bearer good-token"}
        missing = client.post("/private/download_link", json={"app_id": "app123"}, headers=headers)
        garbage = client.post("/private/download_link", content=b"not json", headers=headers)

        assert missing.status_code == 400
        assert missing.json() == {"status": "Invalid body"}
        assert garbage.status_code == 400
        assert garbage.json() == {"status": "Invalid body"}

    def test_decisions_exposed(self, client, body):
        """Test download decisions appear in the metrics."""
        client.post("/private/download_link", json=body)
        response = client.get("/metrics")
        assert 'download_decisions_total{stage="unauthenticated",reason="no authorization"} 1.0' in response.text

    def test_missing_header_checked_before_body(self, client):
        """Test a request without header is refused as such whatever its body."""
        garbage = client.post("/private/download_link", content=b"not json")
        missing = client.post("/private/download_link", json={"app_id": "app123"})

        assert garbage.status_code == 400
        assert garbage.json() == {"status": "Cannot find authorization"}
        assert missing.status_code == 400
        assert missing.json() == {"status": "Cannot find authorization"}

    def test_refusals_counted_by_error_kind(self, client, body, store):
        """Test refusals are counted as validation, authorization or integrity errors."""
        headers = {"Authorization": "Bearer good-token"}
        client.post("/private/download_link", content=b"{}", headers=headers)
        client.post("/private/download_link", json=body)
        store.tables["orgs"].clear()
        client.post("/private/download_link", json=body, headers=headers)

        registry = client.app.state.gateway_service.metrics.registry
        for code in ("VALIDATION_ERROR", "AUTHORIZATION_ERROR", "INTEGRITY_ERROR"):
            assert registry.get_sample_value("errors_total", {"error_type": code, "service": "gateway"}) == 1
