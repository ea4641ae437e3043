"""
Identity client for Gateway.
"""

from typing import Any, Dict, Optional

import httpx

from shared.config import BaseConfig
from shared.logging import get_logger
from shared.store import StoreClient


class IdentityClient:
    """Resolves bearer tokens to users through the identity provider.

    Tokens are introspected with the least-privilege store credential
    carrying the caller's own token; the elevated key is never used here.
    """

    def __init__(self, config: BaseConfig,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.transport = transport
        self.logger = get_logger("gateway.identity_client")

    async def get_user(self, token: Optional[str]) -> Optional[Dict[str, Any]]:
        """User the token belongs to, or None if it is invalid or cannot be checked."""
        if not token:
            return None
        store = StoreClient.for_user(self.config, f"Bearer {token}", transport=self.transport)
        try:
            user = await store.get_auth_user()
        except Exception as e:
            self.logger.error("Token verification failed", error=str(e))
            return None

        if not user or not user.get("id"):
            self.logger.warning("Token rejected")
            return None
        return user
