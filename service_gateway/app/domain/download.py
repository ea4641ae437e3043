"""
Download link authorization for Gateway.

A download link is issued through a linear sequence of hard gates:

    UNAUTHENTICATED -> TOKEN_VALIDATED -> RIGHT_CHECKED -> BUNDLE_RESOLVED -> URL_ISSUED

A request stops at the first gate it fails. The resulting decision records
the last stage reached and why it stopped there; nothing is written.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from shared.errors import (
    AccessLayerException, AuthorizationError, ExternalServiceError, IntegrityError
)
from shared.logging import get_logger, set_user_context
from shared.metrics import MetricsCollector
from shared.tracing import get_tracer

from ..adapters.auth_client import IdentityClient
from ..adapters.bundle_client import Bundle, BundleClient
from ..adapters.entitlements_client import EntitlementsClient
from ..adapters.url_signer import BundleUrlSigner


class DownloadStage(str, Enum):
    """Last gate a download request got through."""
    UNAUTHENTICATED = "unauthenticated"
    TOKEN_VALIDATED = "token_validated"
    RIGHT_CHECKED = "right_checked"
    BUNDLE_RESOLVED = "bundle_resolved"
    URL_ISSUED = "url_issued"


class DenialReason(str, Enum):
    """Why a download request was stopped."""
    NO_AUTHORIZATION = "no authorization"
    NOT_AUTHORIZED = "not authorized"
    INSUFFICIENT_RIGHT = "insufficient right"
    INTERNAL_INVARIANT_VIOLATION = "internal invariant violation"
    URL_SIGNER_FAILURE = "url signer failure"


# Reasons that point at the server rather than the caller
SERVER_FAULTS = frozenset({
    DenialReason.INTERNAL_INVARIANT_VIOLATION,
    DenialReason.URL_SIGNER_FAILURE,
})


class DownloadLinkRequest(BaseModel):
    """Request model for a bundle download link."""
    app_id: str = Field(..., description="App ID")
    storage_provider: str = Field(..., description="Storage the bundle lives in")
    id: int = Field(..., description="Bundle ID")
    user_id: Optional[str] = Field(None, description="Ignored; the user comes from the token")


@dataclass(frozen=True)
class DownloadDecision:
    """Outcome of a download link request."""
    stage: DownloadStage
    url: Optional[str] = None
    reason: Optional[DenialReason] = None
    app_id: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.stage == DownloadStage.URL_ISSUED and bool(self.url)

    @property
    def server_fault(self) -> bool:
        return self.reason in SERVER_FAULTS

    def error(self) -> Optional[AccessLayerException]:
        """The error a refused decision stands for; None once a URL is issued."""
        if self.allowed:
            return None
        details = {"stage": self.stage.value, "app_id": self.app_id}
        if self.reason == DenialReason.URL_SIGNER_FAILURE:
            return ExternalServiceError("url_signer", "Bundle URL signing failed", details)
        if self.reason in SERVER_FAULTS or self.reason is None:
            return IntegrityError("Download decision without a resolvable bundle", details)
        return AuthorizationError(self.reason.value, resource_id=self.app_id, details=details)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token of a ``Bearer`` authorization header."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[len("Bearer "):].strip() or None


class DownloadAuthorizer:
    """Decides whether a caller gets a download URL for a bundle."""

    def __init__(self,
                 identity: IdentityClient,
                 entitlements: EntitlementsClient,
                 bundles: BundleClient,
                 signer: BundleUrlSigner,
                 metrics: Optional[MetricsCollector] = None):
        self.identity = identity
        self.entitlements = entitlements
        self.bundles = bundles
        self.signer = signer
        self.metrics = metrics
        self.logger = get_logger("gateway.download")
        self.tracer = get_tracer("gateway.download")

    async def authorize(self, authorization: Optional[str],
                        request: DownloadLinkRequest) -> DownloadDecision:
        """Run every gate for the request and return the decision."""
        start_time = time.time()
        with self.tracer.start_as_current_span("download.authorize") as span:
            span.set_attribute("app_id", request.app_id)
            span.set_attribute("bundle_id", request.id)

            decision = await self._decide(authorization, request)

            span.set_attribute("download.stage", decision.stage.value)
            if decision.reason:
                span.set_attribute("download.reason", decision.reason.value)

        self._record(decision, time.time() - start_time)
        return decision

    def refuse_unauthenticated(self) -> DownloadDecision:
        """Decision for a request that carries no Authorization header at all."""
        decision = self._reject(DownloadStage.UNAUTHENTICATED, DenialReason.NO_AUTHORIZATION)
        self._record(decision, 0.0)
        return decision

    async def _decide(self, authorization: Optional[str],
                      request: DownloadLinkRequest) -> DownloadDecision:
        stage = DownloadStage.UNAUTHENTICATED
        if not authorization:
            return self._reject(stage, DenialReason.NO_AUTHORIZATION)

        user = await self.identity.get_user(bearer_token(authorization))
        if not user:
            return self._reject(stage, DenialReason.NOT_AUTHORIZED)
        user_id = user["id"]
        set_user_context(user_id=user_id)
        stage = DownloadStage.TOKEN_VALIDATED

        if not await self.entitlements.check_app_right(user_id, request.app_id, "read"):
            return self._reject(stage, DenialReason.INSUFFICIENT_RIGHT, app_id=request.app_id)
        stage = DownloadStage.RIGHT_CHECKED

        try:
            bundle = await self._resolve_bundle(request)
        except IntegrityError as e:
            self.logger.error(e.message, **e.details)
            return self._reject(stage, DenialReason.INTERNAL_INVARIANT_VIOLATION, app_id=request.app_id)
        set_user_context(org_id=bundle.owner_org_id)
        stage = DownloadStage.BUNDLE_RESOLVED

        try:
            url = await self.signer.sign(bundle.owner_org_id, bundle)
        except Exception as e:
            self.logger.error("Bundle URL signing failed", app_id=request.app_id, bundle_id=bundle.id, error=str(e))
            return self._reject(stage, DenialReason.URL_SIGNER_FAILURE, app_id=request.app_id)

        self.logger.info("Download link issued", app_id=request.app_id, bundle_id=bundle.id)
        return DownloadDecision(stage=DownloadStage.URL_ISSUED, url=url, app_id=request.app_id)

    async def _resolve_bundle(self, request: DownloadLinkRequest) -> Bundle:
        try:
            bundle = await self.bundles.get_bundle(request.app_id, request.id)
        except Exception as e:
            raise IntegrityError(
                "Bundle lookup failed",
                details={"app_id": request.app_id, "bundle_id": request.id, "error": str(e)}
            ) from e

        if bundle is None or not bundle.owner_org_id:
            raise IntegrityError(
                "Cannot resolve bundle owner",
                details={"app_id": request.app_id, "bundle_id": request.id, "found": bundle is not None}
            )
        return bundle

    def _reject(self, stage: DownloadStage, reason: DenialReason,
                app_id: Optional[str] = None) -> DownloadDecision:
        self.logger.info("Download link refused", stage=stage.value, reason=reason.value, app_id=app_id)
        return DownloadDecision(stage=stage, reason=reason, app_id=app_id)

    def _record(self, decision: DownloadDecision, duration: float):
        if not self.metrics:
            return
        self.metrics.increment_counter(
            "download_decisions_total",
            stage=decision.stage.value,
            reason=decision.reason.value if decision.reason else "none"
        )
        metric = self.metrics.get_metric("download_decision_duration_seconds")
        if metric is not None:
            metric.observe(duration)
