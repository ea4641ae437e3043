"""
Segmentation system client for Entitlements Service.
"""

from typing import Iterable, Optional

import httpx

from shared.errors import ExternalServiceError
from shared.logging import get_logger
from shared.retry import RetryConfig, RetryError, retry_on_exception


class SegmentSyncClient:
    """Adds and removes tags on an organization's marketing contact.

    Both operations converge when repeated, so transport failures and server
    errors are retried with backoff. Anything left failing surfaces as
    ``ExternalServiceError``.
    """

    def __init__(self, base_url: str, api_key: str,
                 timeout: float = 10.0,
                 retry_config: Optional[RetryConfig] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._api_key = api_key
        self._transport = transport
        self.logger = get_logger("entitlements.segment_sync")
        self._post = retry_on_exception(
            (httpx.TransportError, httpx.HTTPStatusError),
            config=retry_config or RetryConfig()
        )(self._post_once)

    async def add_segments(self, contact: str, segments: Iterable[str]):
        """Tag the contact with every given segment."""
        await self._send("/v1/segments/add", contact, segments)

    async def remove_segments(self, contact: str, segments: Iterable[str]):
        """Remove every given segment from the contact."""
        await self._send("/v1/segments/remove", contact, segments)

    async def _send(self, path: str, contact: str, segments: Iterable[str]):
        payload = {"contact": contact, "segments": list(segments)}
        if not payload["segments"]:
            return
        try:
            await self._post(path, payload)
        except RetryError as e:
            raise ExternalServiceError(
                "segments",
                "Segmentation system unavailable",
                details={"path": path, "contact": contact, "error": str(e.last_exception)}
            ) from e

    async def _post_once(self, path: str, payload: dict):
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport
        ) as client:
            response = await client.post(
                path,
                json=payload,
                headers={"Authorization": f"Bearer {self._api_key}"}
            )

        if response.status_code >= 500:
            # retried
            response.raise_for_status()
        if response.status_code >= 400:
            self.logger.error(
                "Segmentation system rejected request",
                path=path,
                status_code=response.status_code,
                body=response.text[:200]
            )
            raise ExternalServiceError(
                "segments",
                f"Segmentation system rejected request: {response.status_code}",
                details={"path": path, "status_code": response.status_code}
            )
