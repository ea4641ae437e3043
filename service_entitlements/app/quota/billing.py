"""
Billing flag queries for Entitlements Service.
"""

from typing import Any

from shared.logging import get_logger
from shared.store import RpcOperation, StoreClient
from shared.store.operations import (
    IsAdmin, IsAllowedActionOrg, IsCanceledOrg, IsOnboardedOrg,
    IsOnboardingNeededOrg, IsPayingOrg, IsTrialOrg
)


class BillingStatus:
    """Billing state of organizations, as flagged by the store.

    A failed lookup reads as the flag being unset.
    """

    def __init__(self, store: StoreClient):
        self.store = store
        self.logger = get_logger("entitlements.billing")

    async def is_onboarded(self, org_id: str) -> bool:
        return bool(await self._flag(IsOnboardedOrg(org_id=org_id), False))

    async def is_onboarding_needed(self, org_id: str) -> bool:
        return bool(await self._flag(IsOnboardingNeededOrg(org_id=org_id), False))

    async def is_canceled(self, org_id: str) -> bool:
        return bool(await self._flag(IsCanceledOrg(org_id=org_id), False))

    async def is_paying(self, org_id: str) -> bool:
        return bool(await self._flag(IsPayingOrg(org_id=org_id), False))

    async def is_allowed_action(self, org_id: str) -> bool:
        return bool(await self._flag(IsAllowedActionOrg(org_id=org_id), False))

    async def trial_days_left(self, org_id: str) -> int:
        """Days of trial left; 0 once the trial is over."""
        days = await self._flag(IsTrialOrg(org_id=org_id), 0)
        try:
            return max(int(days or 0), 0)
        except (TypeError, ValueError):
            self.logger.warning("Unexpected trial value", org_id=org_id, value=days)
            return 0

    async def is_admin(self, user_id: str) -> bool:
        """Whether the user is a platform administrator."""
        return bool(await self._flag(IsAdmin(user_id=user_id), False))

    async def _flag(self, operation: RpcOperation, default: Any) -> Any:
        try:
            return await self.store.rpc(operation)
        except Exception as e:
            self.logger.error(
                "Billing flag lookup failed",
                procedure=operation.procedure,
                params=operation.params(),
                error=str(e)
            )
            return default
