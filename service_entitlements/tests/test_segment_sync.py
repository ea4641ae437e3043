"""
Unit tests for the segmentation system client.
"""

import json

import pytest
import httpx

from shared.errors import ExternalServiceError
from shared.retry import RetryConfig
from shared.test_helpers import SEGMENTS_URL

from service_entitlements.app.segments.sync import SegmentSyncClient


class TestSegmentSyncClient:
    """Test cases for SegmentSyncClient."""

    @pytest.fixture
    def requests(self):
        """Requests seen by the fake segmentation system."""
        return []

    def make_client(self, requests, responses):
        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            outcome = responses.pop(0) if len(responses) > 1 else responses[0]
            if isinstance(outcome, Exception):
                raise outcome
            return httpx.Response(outcome, json={})

        return SegmentSyncClient(
            SEGMENTS_URL,
            "segments-key",
            timeout=1.0,
            retry_config=RetryConfig(max_attempts=3, base_delay=0, jitter=False),
            transport=httpx.MockTransport(handler)
        )

    @pytest.mark.asyncio
    async def test_add_segments(self, requests):
        """Test tags are added for the contact with the API key."""
        client = self.make_client(requests, [200])

        await client.add_segments("org-1", ("ota", "paying"))

        assert len(requests) == 1
        assert requests[0].url.path == "/v1/segments/add"
        assert requests[0].headers["authorization"] == "Bearer segments-key"
        assert json.loads(requests[0].content) == {"contact": "org-1", "segments": ["ota", "paying"]}

    @pytest.mark.asyncio
    async def test_remove_segments(self, requests):
        """Test tags are removed for the contact."""
        client = self.make_client(requests, [200])
        await client.remove_segments("org-1", ["trial"])
        assert requests[0].url.path == "/v1/segments/remove"

    @pytest.mark.asyncio
    async def test_empty_set_sends_nothing(self, requests):
        """Test an empty tag set is not sent."""
        client = self.make_client(requests, [200])
        await client.remove_segments("org-1", [])
        assert requests == []

    @pytest.mark.asyncio
    async def test_server_error_retried(self, requests):
        """Test server errors are retried until success."""
        client = self.make_client(requests, [503, 200])
        await client.add_segments("org-1", ["ota"])
        assert len(requests) == 2

    @pytest.mark.asyncio
    async def test_transport_error_exhausts_retries(self, requests):
        """Test persistent transport errors surface as ExternalServiceError."""
        client = self.make_client(requests, [httpx.ConnectError("refused")])

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.add_segments("org-1", ["ota"])

        assert exc_info.value.service == "segments"
        assert len(requests) == 3

    @pytest.mark.asyncio
    async def test_rejection_not_retried(self, requests):
        """Test client errors fail at once."""
        client = self.make_client(requests, [422])

        with pytest.raises(ExternalServiceError):
            await client.add_segments("org-1", ["ota"])

        assert len(requests) == 1
