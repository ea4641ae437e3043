"""
Plan quota evaluation for Entitlements Service.

Totals, plan-relative percentages and the plan verdict are computed by the
store (``get_total_metrics``, ``get_plan_usage_percent_detailed``,
``is_good_plan_v5_org``). Readers that feed dashboards fall back to zeros;
``is_good_plan`` gates further usage and therefore fails closed.
"""

from typing import Any, Dict, Optional

from shared.logging import get_logger
from shared.store import StoreClient
from shared.store.operations import (
    GetCurrentPlanNameOrg, GetPlanUsagePercentDetailed, GetTotalMetrics, IsGoodPlanOrg
)

from .models import Plan, PlanTotal, PlanUsage


class PlanQuotaEvaluator:
    """Evaluates an organization's usage against its plan."""

    def __init__(self, store: StoreClient, default_plan_name: str = "Solo"):
        self.store = store
        self.default_plan_name = default_plan_name
        self.logger = get_logger("entitlements.quota")

    async def get_total_stats(self, org_id: Optional[str] = None) -> PlanTotal:
        """Usage totals of the org; all zeros when absent or unavailable."""
        if not org_id:
            return PlanTotal()
        try:
            return await self._load_total(org_id)
        except Exception as e:
            self.logger.error("Error loading usage totals", org_id=org_id, error=str(e))
            return PlanTotal()

    async def get_plan_usage_percent(self, org_id: Optional[str] = None) -> PlanUsage:
        """Usage of the org relative to its plan; all zeros when absent or unavailable."""
        if not org_id:
            return PlanUsage()
        try:
            data = await self.store.rpc(GetPlanUsagePercentDetailed(org_id=org_id))
            return PlanUsage.model_validate(_first_row(data) or {})
        except Exception as e:
            self.logger.error("Error loading plan usage", org_id=org_id, error=str(e))
            return PlanUsage()

    async def is_good_plan(self, org_id: Optional[str]) -> bool:
        """Whether the org's usage is within every ceiling of its plan."""
        if not org_id:
            return False
        try:
            verdict = await self.store.rpc(IsGoodPlanOrg(org_id=org_id))
        except Exception as e:
            self.logger.error("Error checking plan quota, denying", org_id=org_id, error=str(e))
            return False

        if verdict is not True:
            self.logger.info("Plan quota exceeded or unknown", org_id=org_id, verdict=verdict)
            return False
        return True

    async def get_current_plan_name(self, org_id: Optional[str] = None) -> str:
        """Name of the org's plan, or the baseline tier when unknown."""
        if not org_id:
            return self.default_plan_name
        try:
            return await self._load_plan_name(org_id)
        except Exception as e:
            self.logger.error("Error loading plan name", org_id=org_id, error=str(e))
            return self.default_plan_name

    async def get_plan(self, org_id: Optional[str] = None) -> Optional[Plan]:
        """Plan row of the org, or None when it cannot be loaded."""
        try:
            if not org_id:
                return await self._plan_by_name(self.default_plan_name)
            return await self._load_plan(org_id)
        except Exception as e:
            self.logger.error("Error loading plan", org_id=org_id, error=str(e))
            return None

    async def get_default_plan(self) -> Optional[Plan]:
        """The baseline plan row."""
        try:
            return await self._plan_by_name(self.default_plan_name)
        except Exception as e:
            self.logger.error("Error loading default plan", plan=self.default_plan_name, error=str(e))
            return None

    async def _load_total(self, org_id: str) -> PlanTotal:
        data = await self.store.rpc(GetTotalMetrics(org_id=org_id))
        return PlanTotal.model_validate(_first_row(data) or {})

    async def _load_plan_name(self, org_id: str) -> str:
        name = await self.store.rpc(GetCurrentPlanNameOrg(org_id=org_id))
        if isinstance(name, str) and name:
            return name
        return self.default_plan_name

    async def _load_plan(self, org_id: str) -> Optional[Plan]:
        name = await self._load_plan_name(org_id)
        plan = await self._plan_by_name(name)
        if plan is None and name != self.default_plan_name:
            self.logger.warning("Plan missing, using default", org_id=org_id, plan=name)
            plan = await self._plan_by_name(self.default_plan_name)
        return plan

    async def _plan_by_name(self, name: str) -> Optional[Plan]:
        row = await self.store.select("plans", filters={"name": name}, single=True)
        if not row:
            return None
        return Plan.model_validate(row)


def _first_row(data: Any) -> Optional[Dict[str, Any]]:
    if isinstance(data, list):
        return data[0] if data else None
    return data
