"""
Entitlements service client for Gateway.
"""

from typing import Optional

import httpx

from shared.logging import get_logger


class EntitlementsClient:
    """Client for communicating with Entitlements service.

    Every failure reads as a denial.
    """

    def __init__(self, entitlements_service_url: str,
                 timeout: float = 5.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.entitlements_service_url = entitlements_service_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self.logger = get_logger("gateway.entitlements_client")

    async def check_app_right(self, user_id: str, app_id: str, right: str = "read") -> bool:
        """Whether the user holds at least ``right`` on the app."""
        payload = {"user_id": user_id, "app_id": app_id, "right": right}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.entitlements_service_url}/rights/app/check",
                    json=payload
                )
        except httpx.HTTPError as e:
            self.logger.error("Entitlements service HTTP error", error=str(e), app_id=app_id)
            return False

        if response.status_code != 200:
            self.logger.error(
                "Entitlements service error",
                status_code=response.status_code,
                app_id=app_id
            )
            return False

        try:
            data = response.json()
        except ValueError:
            self.logger.error("Entitlements service returned invalid JSON", app_id=app_id)
            return False

        if not isinstance(data, dict):
            self.logger.error("Entitlements service returned unexpected body", app_id=app_id)
            return False
        return data.get("allowed") is True
