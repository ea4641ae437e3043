"""
Unit tests for Gateway adapters.
"""

import json

import pytest
import httpx

from shared.errors import ExternalServiceError
from shared.store import StoreClient
from shared.test_helpers import ENTITLEMENTS_URL, SIGNER_URL, FakeStore, create_mock_user, make_config

from service_gateway.app.adapters.auth_client import IdentityClient
from service_gateway.app.adapters.bundle_client import Bundle, BundleClient
from service_gateway.app.adapters.entitlements_client import EntitlementsClient
from service_gateway.app.adapters.url_signer import BundleUrlSigner


class TestIdentityClient:
    """Test cases for IdentityClient."""

    @pytest.fixture
    def store(self):
        """Create a fake store knowing one token."""
        store = FakeStore()
        store.users["good-token"] = create_mock_user("user-1")
        return store

    @pytest.fixture
    def identity(self, store):
        """Create IdentityClient over the fake store."""
        return IdentityClient(make_config(), transport=store.transport)

    @pytest.mark.asyncio
    async def test_valid_token(self, identity, store):
        """Test a valid token resolves to its user with the least-privilege key."""
        user = await identity.get_user("good-token")

        assert user["id"] == "user-1"
        method, path, headers = store.calls[-1]
        assert path == "/auth/v1/user"
        assert headers["apikey"] == "anon-key"
        assert headers["authorization"] == "Bearer good-token"

    @pytest.mark.asyncio
    async def test_invalid_token(self, identity):
        """Test an unknown token resolves to nothing."""
        assert await identity.get_user("bad-token") is None

    @pytest.mark.asyncio
    async def test_missing_token(self, identity, store):
        """Test a missing token is not sent anywhere."""
        assert await identity.get_user(None) is None
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_identity_outage(self, identity, store):
        """Test an unreachable identity provider resolves to nothing."""
        store.fail("auth", httpx.ConnectError("refused"))
        assert await identity.get_user("good-token") is None


class TestEntitlementsClient:
    """Test cases for EntitlementsClient."""

    def make_client(self, handler):
        return EntitlementsClient(ENTITLEMENTS_URL, timeout=1.0, transport=httpx.MockTransport(handler))

    @pytest.mark.asyncio
    async def test_allowed(self):
        """Test an allowed check."""
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"allowed": True})

        assert await self.make_client(handler).check_app_right("user-1", "app-1") is True
        assert seen == [{"user_id": "user-1", "app_id": "app-1", "right": "read"}]

    @pytest.mark.asyncio
    async def test_denied(self):
        """Test a denied check."""
        client = self.make_client(lambda request: httpx.Response(200, json={"allowed": False}))
        assert await client.check_app_right("user-1", "app-1") is False

    @pytest.mark.asyncio
    async def test_error_status_denies(self):
        """Test an error status reads as a denial."""
        client = self.make_client(lambda request: httpx.Response(500, json={"allowed": True}))
        assert await client.check_app_right("user-1", "app-1") is False

    @pytest.mark.asyncio
    async def test_timeout_denies(self):
        """Test a timeout reads as a denial."""
        def handler(request):
            raise httpx.ReadTimeout("timed out")

        assert await self.make_client(handler).check_app_right("user-1", "app-1") is False

    @pytest.mark.asyncio
    async def test_non_object_body_denies(self):
        """Test a well-formed body that is not an object reads as a denial."""
        for body in ([True], True, "allowed", None):
            client = self.make_client(lambda request, body=body: httpx.Response(200, json=body))
            assert await client.check_app_right("user-1", "app-1") is False

    @pytest.mark.asyncio
    async def test_invalid_json_denies(self):
        """Test an unparsable body reads as a denial."""
        client = self.make_client(lambda request: httpx.Response(200, content=b"allowed"))
        assert await client.check_app_right("user-1", "app-1") is False


class TestBundleClient:
    """Test cases for BundleClient."""

    @pytest.fixture
    def store(self):
        """Create a fake store with one bundle."""
        store = FakeStore()
        store.add_org("org-1", created_by="owner")
        store.add_bundle(5, "app-1", "org-1", r2_path="orgs/org-1/apps/app-1/5.zip")
        return store

    @pytest.fixture
    def bundles(self, store):
        """Create BundleClient with the elevated store client."""
        return BundleClient(StoreClient.admin(make_config(), transport=store.transport))

    @pytest.mark.asyncio
    async def test_bundle_with_owner(self, bundles, store):
        """Test the bundle and its owning org are read together."""
        bundle = await bundles.get_bundle("app-1", 5)

        assert bundle.id == 5
        assert bundle.r2_path == "orgs/org-1/apps/app-1/5.zip"
        assert bundle.owner_org_id == "org-1"
        assert bundle.owner_created_by == "owner"
        method, path, headers = store.calls[-1]
        assert headers["apikey"] == "service-role-key"

    @pytest.mark.asyncio
    async def test_missing_bundle(self, bundles):
        """Test a bundle of another app is not found."""
        assert await bundles.get_bundle("app-2", 5) is None

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, bundles, store):
        """Test store failures reach the caller."""
        store.fail("app_versions", 500)
        with pytest.raises(ExternalServiceError):
            await bundles.get_bundle("app-1", 5)

    def test_bundle_without_owner(self):
        """Test a row whose owner does not resolve."""
        bundle = Bundle.from_row({"id": 1, "app_id": "app-1", "owner_org": None})
        assert bundle.owner_org_id is None


class TestBundleUrlSigner:
    """Test cases for BundleUrlSigner."""

    @pytest.fixture
    def bundle(self):
        """Create a resolved bundle."""
        return Bundle(id=5, app_id="app-1", r2_path="orgs/org-1/apps/app-1/5.zip",
                      storage_provider="r2", owner_org_id="org-1")

    def make_signer(self, handler):
        return BundleUrlSigner(SIGNER_URL, timeout=1.0, expires_in=600, transport=httpx.MockTransport(handler))

    @pytest.mark.asyncio
    async def test_sign(self, bundle):
        """Test the signer is asked for a URL scoped to the org."""
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"url": "https://cdn.test/5.zip?sig=abc"})

        url = await self.make_signer(handler).sign("org-1", bundle)

        assert url == "https://cdn.test/5.zip?sig=abc"
        assert seen[0]["org_id"] == "org-1"
        assert seen[0]["bundle_id"] == 5
        assert seen[0]["expires_in"] == 600

    @pytest.mark.asyncio
    async def test_empty_url(self, bundle):
        """Test an empty URL is a signer failure."""
        signer = self.make_signer(lambda request: httpx.Response(200, json={"url": ""}))
        with pytest.raises(ExternalServiceError):
            await signer.sign("org-1", bundle)

    @pytest.mark.asyncio
    async def test_signer_error(self, bundle):
        """Test an error status is a signer failure."""
        signer = self.make_signer(lambda request: httpx.Response(502))
        with pytest.raises(ExternalServiceError):
            await signer.sign("org-1", bundle)
