"""
API Gateway service for the OTA Access Layer.
"""

from typing import Dict, Optional

import httpx
from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import ValidationError

from .adapters.auth_client import IdentityClient
from .adapters.bundle_client import BundleClient
from .adapters.entitlements_client import EntitlementsClient
from .adapters.url_signer import BundleUrlSigner
from .domain.download import (
    DenialReason, DownloadAuthorizer, DownloadDecision, DownloadLinkRequest
)

# Client-facing bodies of refused download requests
DENIAL_BODIES = {
    DenialReason.NO_AUTHORIZATION: {"status": "Cannot find authorization"},
    DenialReason.NOT_AUTHORIZED: {"status": "not authorize"},
    DenialReason.INSUFFICIENT_RIGHT: {"status": "You can't access this app"},
}
SERVER_ERROR_BODY = {"status": "Error unknow"}


def parse_download_body(raw: bytes) -> DownloadLinkRequest:
    """Parse a download link body, raising ValidationError when it is malformed."""
    try:
        return DownloadLinkRequest.model_validate_json(raw)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid download link body",
            details={"fields": [".".join(str(p) for p in err["loc"]) for err in e.errors()]}
        ) from e


class GatewayService(BaseService):
    """API Gateway service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__("gateway", 8000, config=config, transport=transport)
        self._setup_gateway_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.gateway_service = self

    def download_authorizer(self) -> DownloadAuthorizer:
        """Authorizer wired to fresh clients for one request."""
        return DownloadAuthorizer(
            identity=IdentityClient(self.config, transport=self.transport),
            entitlements=EntitlementsClient(
                self.config.entitlements_service_url,
                timeout=self.config.entitlements_timeout_seconds,
                transport=self.transport
            ),
            bundles=BundleClient(self.admin_store()),
            signer=BundleUrlSigner(
                self.config.url_signer_url,
                timeout=self.config.url_signer_timeout_seconds,
                expires_in=self.config.download_url_ttl_seconds,
                transport=self.transport
            ),
            metrics=self.metrics
        )

    def _setup_gateway_routes(self):
        """Set up gateway-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "gateway",
                "message": "OTA Access Layer - API Gateway",
                "version": "1.0.0"
            }

        @self.app.post("/private/download_link")
        async def download_link(request: Request):
            """Issue a time-bound download URL for a bundle."""
            authorization = request.headers.get("authorization")
            if not authorization:
                return self._download_response(self.download_authorizer().refuse_unauthenticated())

            try:
                body = parse_download_body(await request.body())
            except ValidationError as e:
                self.logger.warning("Invalid download link body", error=e.message, details=e.details)
                self.metrics.record_error(e.code)
                return JSONResponse(status_code=400, content={"status": "Invalid body"})

            try:
                decision = await self.download_authorizer().authorize(authorization, body)
            except Exception as e:
                self.logger.error("Download link failed", app_id=body.app_id, error=str(e), exc_info=True)
                self.metrics.record_error("DOWNLOAD_LINK_ERROR")
                return JSONResponse(status_code=500, content=SERVER_ERROR_BODY)

            return self._download_response(decision)

    def _download_response(self, decision: DownloadDecision) -> JSONResponse:
        if decision.allowed:
            return JSONResponse(status_code=200, content={"url": decision.url})

        error = decision.error()
        self.metrics.record_error(error.code)
        if error.status_code >= 500 or decision.reason not in DENIAL_BODIES:
            return JSONResponse(status_code=500, content=SERVER_ERROR_BODY)

        content = dict(DENIAL_BODIES[decision.reason])
        if decision.reason == DenialReason.INSUFFICIENT_RIGHT:
            content["app_id"] = error.resource_id
        return JSONResponse(status_code=error.status_code, content=content)

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check gateway dependencies."""
        dependencies = {}

        try:
            async with httpx.AsyncClient(
                timeout=self.config.entitlements_timeout_seconds,
                transport=self.transport
            ) as client:
                response = await client.get(f"{self.config.entitlements_service_url}/health")
            dependencies["entitlements"] = "ok" if response.status_code == 200 else "error"
        except httpx.HTTPError:
            dependencies["entitlements"] = "error"

        return dependencies


def create_app(config: Optional[ServiceConfig] = None,
               transport: Optional[httpx.AsyncBaseTransport] = None):
    """Create gateway service application."""
    service = GatewayService(config=config, transport=transport)
    return service.app


if __name__ == "__main__":
    service = GatewayService()
    service.run()
