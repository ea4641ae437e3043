"""
Bundle URL signer client for Gateway.
"""

from typing import Optional

import httpx

from shared.errors import ExternalServiceError
from shared.logging import get_logger

from .bundle_client import Bundle


class BundleUrlSigner:
    """Asks the URL signer for a time-bound download URL of a bundle."""

    def __init__(self, signer_url: str,
                 timeout: float = 5.0,
                 expires_in: int = 3600,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.signer_url = signer_url.rstrip("/")
        self.timeout = timeout
        self.expires_in = expires_in
        self.transport = transport
        self.logger = get_logger("gateway.url_signer")

    async def sign(self, org_id: str, bundle: Bundle) -> str:
        """Signed URL for the bundle, scoped to its owning org."""
        payload = {
            "org_id": org_id,
            "app_id": bundle.app_id,
            "bundle_id": bundle.id,
            "r2_path": bundle.r2_path,
            "bucket_id": bundle.bucket_id,
            "storage_provider": bundle.storage_provider,
            "expires_in": self.expires_in,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(f"{self.signer_url}/sign", json=payload)
        except httpx.HTTPError as e:
            self.logger.error("URL signer HTTP error", error=str(e), bundle_id=bundle.id)
            raise ExternalServiceError(
                "url_signer",
                "URL signer unavailable",
                details={"http_error": str(e)}
            ) from e

        if response.status_code != 200:
            raise ExternalServiceError(
                "url_signer",
                f"URL signer error: {response.status_code}",
                details={"status_code": response.status_code}
            )

        try:
            url = response.json().get("url")
        except ValueError:
            url = None
        if not url:
            raise ExternalServiceError(
                "url_signer",
                "URL signer returned no URL",
                details={"bundle_id": bundle.id}
            )
        return url
