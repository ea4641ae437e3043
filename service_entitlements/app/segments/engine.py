"""
Segment computation for Entitlements Service.

``classify`` picks the lifecycle state of an organization; ``compute_segments``
projects it onto the full tag set so that every boolean tag is either added
or removed. Both are pure. ``SegmentEngine`` gathers the inputs from the
store and reconciles the result with the segmentation system.
"""

import asyncio
from typing import Optional

from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..quota.billing import BillingStatus
from ..quota.evaluator import PlanQuotaEvaluator
from ..quota.models import Plan
from .models import (
    SEGMENT_FLAGS, AccountLifecycleState, InconsistentBilling, NotOnboarded,
    PayingOverQuota, PayingWithinQuota, SegmentInputs, SegmentSet, SyncResult,
    TrialEndingSoon, TrialExhausted, TrialLastDay
)
from .sync import SegmentSyncClient

DEFAULT_BASE_TAG = "ota"


def classify(inputs: SegmentInputs) -> AccountLifecycleState:
    """Lifecycle state of an organization. The first matching rule wins."""
    if not inputs.onboarded:
        return NotOnboarded()
    if not inputs.paying and 1 < inputs.trial_days_left <= 7:
        return TrialEndingSoon(days_left=inputs.trial_days_left)
    if not inputs.paying and inputs.trial_days_left == 1:
        return TrialLastDay()
    if not inputs.paying and not inputs.can_use_more:
        return TrialExhausted()
    if inputs.paying and inputs.plan_name:
        if not inputs.can_use_more:
            return PayingOverQuota(plan_name=inputs.plan_name)
        return PayingWithinQuota(plan_name=inputs.plan_name)
    return InconsistentBilling()


def compute_segments(inputs: SegmentInputs, base_tag: str = DEFAULT_BASE_TAG) -> SegmentSet:
    """Tags to add and remove for the given inputs."""
    state = classify(inputs)
    flags = dict.fromkeys(SEGMENT_FLAGS, False)
    flags.update(dict.fromkeys(state.tags, True))
    flags["onboarded"] = inputs.onboarded
    flags["canceled"] = inputs.canceled
    flags["payingMonthly"] = inputs.paying_monthly

    segments = [base_tag]
    delete_segments = []
    for flag, value in flags.items():
        (segments if value else delete_segments).append(flag)
        if flag == "payingMonthly" and inputs.plan_name:
            segments.append(f"plan:{inputs.plan_name}")

    return SegmentSet(
        segments=tuple(segments),
        delete_segments=tuple(delete_segments),
        state=state
    )


class SegmentEngine:
    """Computes and reconciles the segments of organizations."""

    def __init__(self,
                 billing: BillingStatus,
                 quota: PlanQuotaEvaluator,
                 sync_client: Optional[SegmentSyncClient] = None,
                 base_tag: str = DEFAULT_BASE_TAG,
                 metrics: Optional[MetricsCollector] = None):
        self.billing = billing
        self.quota = quota
        self.sync_client = sync_client
        self.base_tag = base_tag
        self.metrics = metrics
        self.logger = get_logger("entitlements.segments")

    async def inputs_for_org(self, org_id: str, price_id: Optional[str] = None,
                             plan: Optional[Plan] = None) -> SegmentInputs:
        """Current billing state of the org."""
        onboarded, canceled, paying, trial_days_left, can_use_more = await asyncio.gather(
            self.billing.is_onboarded(org_id),
            self.billing.is_canceled(org_id),
            self.billing.is_paying(org_id),
            self.billing.trial_days_left(org_id),
            self.quota.is_good_plan(org_id),
        )
        return SegmentInputs(
            onboarded=onboarded,
            canceled=canceled,
            paying=paying,
            trial_days_left=trial_days_left,
            can_use_more=can_use_more,
            plan_name=plan.name if plan else "",
            paying_monthly=bool(plan and price_id and plan.price_m_id == price_id)
        )

    async def segments_for_org(self, org_id: str, price_id: Optional[str] = None,
                               plan: Optional[Plan] = None) -> SegmentSet:
        inputs = await self.inputs_for_org(org_id, price_id, plan)
        segment_set = compute_segments(inputs, self.base_tag)

        if isinstance(segment_set.state, InconsistentBilling):
            self.logger.warning("Inconsistent billing state", org_id=org_id, inputs=inputs.__dict__)
        else:
            self.logger.debug("Segments computed", org_id=org_id, state=segment_set.state_name)
        if self.metrics:
            self.metrics.increment_counter("segment_computations_total", state=segment_set.state_name)
        return segment_set

    async def sync_org(self, org_id: str, price_id: Optional[str] = None,
                       plan: Optional[Plan] = None) -> SyncResult:
        """Compute the org's segments and push them. Never raises on sync failure."""
        segment_set = await self.segments_for_org(org_id, price_id, plan)
        if self.sync_client is None:
            self.logger.warning("No segmentation client configured", org_id=org_id)
            return self._sync_outcome(SyncResult(segments=segment_set, synced=False, error="not configured"))

        try:
            await self.sync_client.add_segments(org_id, segment_set.segments)
            await self.sync_client.remove_segments(org_id, segment_set.delete_segments)
        except Exception as e:
            self.logger.error("Segment sync failed", org_id=org_id, error=str(e))
            return self._sync_outcome(SyncResult(segments=segment_set, synced=False, error=str(e)))

        self.logger.info("Segments synced", org_id=org_id, state=segment_set.state_name)
        return self._sync_outcome(SyncResult(segments=segment_set, synced=True))

    def _sync_outcome(self, result: SyncResult) -> SyncResult:
        if self.metrics:
            self.metrics.increment_counter(
                "segment_syncs_total",
                outcome="synced" if result.synced else "failed"
            )
        return result
