"""
Rights resolution for Entitlements Service.

A principal's right over an app is the right it holds in the app's owning
organization, possibly narrowed to the app or one of its channels. The store
evaluates grants through ``has_app_right_userid`` and ``check_min_rights``;
this module only shapes the question and fails closed. A missing record, an
unknown right or any store failure yields False and is logged, never raised.
"""

import time
from typing import Any, Awaitable, Callable, Optional, Union

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.store import StoreClient
from shared.store.operations import CheckMinRights, HasAppRightUserid

from .models import Principal, Right, RightScope


class RightsResolver:
    """Resolves a principal's right over apps and orgs."""

    def __init__(self, store: StoreClient, metrics: Optional[MetricsCollector] = None):
        self.store = store
        self.metrics = metrics
        self.logger = get_logger("entitlements.rights")

    async def check_app_right(self, principal: Optional[Principal], app_id: Optional[str],
                              required: Union[Right, str]) -> bool:
        """Whether the principal holds at least ``required`` on the app."""
        return await self._guarded(
            lambda right: self._app_right(principal, app_id, right),
            scope="app",
            principal=principal,
            resource=app_id,
            required=required
        )

    async def check_org_right(self, principal: Optional[Principal], org_id: Optional[str],
                              required: Union[Right, str], scope: Optional[RightScope] = None) -> bool:
        """Whether the principal holds at least ``required`` in the org.

        Without a scope only org-wide grants count.
        """
        return await self._guarded(
            lambda right: self._org_right(principal, org_id, right, scope),
            scope="org",
            principal=principal,
            resource=org_id,
            required=required
        )

    async def check_app_owner(self, principal: Optional[Principal], app_id: Optional[str]) -> bool:
        """Whether the principal created the org that owns the app."""
        return await self._guarded(
            lambda right: self._app_owner(principal, app_id),
            scope="owner",
            principal=principal,
            resource=app_id,
            required=Right.ADMIN
        )

    async def _guarded(self, decide: Callable[[Right], Awaitable[Any]], scope: str,
                       principal: Optional[Principal], resource: Optional[str],
                       required: Union[Right, str]) -> bool:
        start_time = time.time()
        user_id = principal.user_id if principal else None
        required_name = str(required)
        try:
            right = Right(required)
            required_name = right.value
            allowed = await decide(right) is True
        except Exception as e:
            self.logger.error(
                "Right check failed, denying",
                scope=scope,
                resource=resource,
                user_id=user_id,
                required=required_name,
                error=str(e)
            )
            allowed = False

        if not allowed:
            self.logger.info(
                "Right denied",
                scope=scope,
                resource=resource,
                user_id=user_id,
                required=required_name,
                duration_ms=round((time.time() - start_time) * 1000, 2)
            )
        if self.metrics:
            self.metrics.increment_counter(
                "rights_checks_total",
                scope=scope,
                decision="allow" if allowed else "deny"
            )
        return allowed

    async def _app_right(self, principal: Optional[Principal], app_id: Optional[str],
                         required: Right) -> bool:
        if not principal or not principal.user_id or not app_id:
            return False
        return await self.store.rpc(HasAppRightUserid(
            app_id=app_id, right=required.value, user_id=principal.user_id
        ))

    async def _org_right(self, principal: Optional[Principal], org_id: Optional[str],
                         required: Right, scope: Optional[RightScope]) -> bool:
        if not principal or not principal.user_id or not org_id:
            return False
        return await self.store.rpc(CheckMinRights(
            min_right=required.value,
            org_id=org_id,
            user_id=principal.user_id,
            app_id=scope.app_id if scope else None,
            channel_id=scope.channel_id if scope else None
        ))

    async def _app_owner(self, principal: Optional[Principal], app_id: Optional[str]) -> bool:
        if not principal or not principal.user_id or not app_id:
            return False

        app = await self.store.select(
            "apps", columns="app_id,owner_org(id,created_by)", filters={"app_id": app_id}, single=True
        )
        owner = (app or {}).get("owner_org") or {}
        return owner.get("created_by") == principal.user_id
