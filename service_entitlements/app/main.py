"""
Entitlements service for the OTA Access Layer.
"""

import asyncio
from typing import Dict, Optional

import httpx

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.logging import set_user_context
from shared.store import StoreClient

from .rights.models import (
    AppOwnerCheckRequest, AppRightCheckRequest, OrgRightCheckRequest, Principal,
    RightCheckResponse, RightScope
)
from .rights.resolver import RightsResolver
from .quota.billing import BillingStatus
from .quota.evaluator import PlanQuotaEvaluator
from .quota.models import (
    AdminStatusResponse, BillingFlagsResponse, PlanStatusResponse, PlanTotal, PlanUsage
)
from .segments.engine import SegmentEngine
from .segments.models import SegmentRequest, SegmentSetResponse, SegmentSyncResponse
from .segments.sync import SegmentSyncClient


class EntitlementsService(BaseService):
    """Entitlements service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__("entitlements", 8011, config=config, transport=transport)
        self._setup_entitlements_routes()

    # Components are built per request around a fresh store client.

    def rights_resolver(self, store: StoreClient) -> RightsResolver:
        return RightsResolver(store, metrics=self.metrics)

    def quota_evaluator(self, store: StoreClient) -> PlanQuotaEvaluator:
        return PlanQuotaEvaluator(store, default_plan_name=self.config.default_plan_name)

    def segment_engine(self, store: StoreClient) -> SegmentEngine:
        sync_client = None
        if self.config.segment_sync_url:
            sync_client = SegmentSyncClient(
                self.config.segment_sync_url,
                self.config.segment_sync_api_key.get_secret_value(),
                timeout=self.config.segment_sync_timeout_seconds,
                transport=self.transport
            )
        return SegmentEngine(
            BillingStatus(store),
            self.quota_evaluator(store),
            sync_client=sync_client,
            base_tag=self.config.segment_base_tag,
            metrics=self.metrics
        )

    def _setup_entitlements_routes(self):
        """Set up entitlements-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "entitlements",
                "message": "OTA Access Layer - Entitlements Service",
                "version": "1.0.0",
                "capabilities": ["rights", "plan_quota", "segments"]
            }

        @self.app.post("/rights/app/check", response_model=RightCheckResponse)
        async def check_app_right(request: AppRightCheckRequest):
            """Check a user's right over an app."""
            set_user_context(user_id=request.user_id)
            resolver = self.rights_resolver(self.admin_store())
            allowed = await resolver.check_app_right(
                Principal(user_id=request.user_id), request.app_id, request.right
            )
            return RightCheckResponse(allowed=allowed)

        @self.app.post("/rights/org/check", response_model=RightCheckResponse)
        async def check_org_right(request: OrgRightCheckRequest):
            """Check a user's right within an org, optionally narrowed to an app or channel."""
            set_user_context(user_id=request.user_id, org_id=request.org_id)
            scope = None
            if request.app_id is not None or request.channel_id is not None:
                scope = RightScope(app_id=request.app_id, channel_id=request.channel_id)
            resolver = self.rights_resolver(self.admin_store())
            allowed = await resolver.check_org_right(
                Principal(user_id=request.user_id), request.org_id, request.right, scope
            )
            return RightCheckResponse(allowed=allowed)

        @self.app.post("/rights/app/owner", response_model=RightCheckResponse)
        async def check_app_owner(request: AppOwnerCheckRequest):
            """Check whether a user created the org owning an app."""
            set_user_context(user_id=request.user_id)
            resolver = self.rights_resolver(self.admin_store())
            allowed = await resolver.check_app_owner(Principal(user_id=request.user_id), request.app_id)
            return RightCheckResponse(allowed=allowed)

        @self.app.get("/orgs/{org_id}/billing", response_model=BillingFlagsResponse)
        async def get_billing_flags(org_id: str):
            """Billing flags of an org."""
            set_user_context(org_id=org_id)
            billing = BillingStatus(self.admin_store())
            onboarded, onboarding_needed, canceled, paying, allowed_action, trial_days_left = await asyncio.gather(
                billing.is_onboarded(org_id),
                billing.is_onboarding_needed(org_id),
                billing.is_canceled(org_id),
                billing.is_paying(org_id),
                billing.is_allowed_action(org_id),
                billing.trial_days_left(org_id)
            )
            return BillingFlagsResponse(
                onboarded=onboarded,
                onboarding_needed=onboarding_needed,
                canceled=canceled,
                paying=paying,
                allowed_action=allowed_action,
                trial_days_left=trial_days_left
            )

        @self.app.get("/users/{user_id}/admin", response_model=AdminStatusResponse)
        async def get_admin_status(user_id: str):
            """Whether a user is a platform administrator."""
            set_user_context(user_id=user_id)
            admin = await BillingStatus(self.admin_store()).is_admin(user_id)
            return AdminStatusResponse(user_id=user_id, admin=admin)

        @self.app.get("/orgs/{org_id}/usage/total", response_model=PlanTotal)
        async def get_total_stats(org_id: str):
            """Usage totals of an org."""
            set_user_context(org_id=org_id)
            return await self.quota_evaluator(self.admin_store()).get_total_stats(org_id)

        @self.app.get("/orgs/{org_id}/usage/percent", response_model=PlanUsage)
        async def get_plan_usage_percent(org_id: str):
            """Usage of an org relative to its plan."""
            set_user_context(org_id=org_id)
            return await self.quota_evaluator(self.admin_store()).get_plan_usage_percent(org_id)

        @self.app.get("/orgs/{org_id}/plan", response_model=PlanStatusResponse)
        async def get_plan_status(org_id: str):
            """Current plan of an org and whether usage fits it."""
            set_user_context(org_id=org_id)
            evaluator = self.quota_evaluator(self.admin_store())
            return PlanStatusResponse(
                name=await evaluator.get_current_plan_name(org_id),
                good_plan=await evaluator.is_good_plan(org_id)
            )

        @self.app.post("/orgs/{org_id}/segments", response_model=SegmentSetResponse)
        async def compute_org_segments(org_id: str, request: Optional[SegmentRequest] = None):
            """Compute the segments of an org without pushing them."""
            set_user_context(org_id=org_id)
            store = self.admin_store()
            plan = await self.quota_evaluator(store).get_plan(org_id)
            segment_set = await self.segment_engine(store).segments_for_org(
                org_id, request.price_id if request else None, plan
            )
            return SegmentSetResponse(**segment_set.to_dict())

        @self.app.post("/orgs/{org_id}/segments/sync", response_model=SegmentSyncResponse)
        async def sync_org_segments(org_id: str, request: Optional[SegmentRequest] = None):
            """Compute the segments of an org and push them."""
            set_user_context(org_id=org_id)
            store = self.admin_store()
            plan = await self.quota_evaluator(store).get_plan(org_id)
            result = await self.segment_engine(store).sync_org(
                org_id, request.price_id if request else None, plan
            )
            return SegmentSyncResponse(synced=result.synced, **result.segments.to_dict())

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check entitlements service dependencies."""
        dependencies = {}

        try:
            await self.admin_store().count("plans")
            dependencies["store"] = "ok"
        except Exception:
            dependencies["store"] = "error"

        return dependencies


def create_app(config: Optional[ServiceConfig] = None,
               transport: Optional[httpx.AsyncBaseTransport] = None):
    """Create entitlements service application."""
    service = EntitlementsService(config=config, transport=transport)
    return service.app


if __name__ == "__main__":
    service = EntitlementsService()
    service.run()
