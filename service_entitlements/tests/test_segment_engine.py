"""
Unit tests for segment classification, projection and reconciliation.
"""

import pytest
from unittest.mock import AsyncMock

from shared.errors import ExternalServiceError
from shared.metrics import MetricsCollector

from service_entitlements.app.quota.models import Plan
from service_entitlements.app.segments.engine import SegmentEngine, classify, compute_segments
from service_entitlements.app.segments.models import (
    SEGMENT_FLAGS, InconsistentBilling, NotOnboarded, PayingOverQuota, PayingWithinQuota,
    SegmentInputs, TrialEndingSoon, TrialExhausted, TrialLastDay
)


def inputs(**overrides) -> SegmentInputs:
    values = dict(
        onboarded=True,
        canceled=False,
        paying=False,
        trial_days_left=0,
        can_use_more=True,
        plan_name="",
        paying_monthly=False,
    )
    values.update(overrides)
    return SegmentInputs(**values)


class TestClassify:
    """Test cases for lifecycle classification."""

    @pytest.mark.parametrize("overrides,expected", [
        (dict(onboarded=False, paying=True, plan_name="Solo"), NotOnboarded),
        (dict(trial_days_left=7), TrialEndingSoon),
        (dict(trial_days_left=2), TrialEndingSoon),
        (dict(trial_days_left=1), TrialLastDay),
        (dict(trial_days_left=0, can_use_more=False), TrialExhausted),
        (dict(trial_days_left=12, can_use_more=False), TrialExhausted),
        (dict(paying=True, can_use_more=False, plan_name="Solo"), PayingOverQuota),
        (dict(paying=True, can_use_more=True, plan_name="Solo"), PayingWithinQuota),
        (dict(paying=True, can_use_more=True), InconsistentBilling),
        (dict(trial_days_left=12, can_use_more=True), InconsistentBilling),
    ])
    def test_first_match_wins(self, overrides, expected):
        """Test each rule in evaluation order."""
        assert isinstance(classify(inputs(**overrides)), expected)

    def test_paying_skips_trial_rules(self):
        """Test a paying org is never classified as trial."""
        assert isinstance(classify(inputs(paying=True, trial_days_left=3, plan_name="Solo")), PayingWithinQuota)


class TestComputeSegments:
    """Test cases for the segment projection."""

    def test_segments_partition_boolean_tags(self):
        """Test every boolean tag lands in exactly one of the two sets."""
        for days in range(0, 10):
            for paying in (True, False):
                for can_use_more in (True, False):
                    result = compute_segments(inputs(
                        trial_days_left=days, paying=paying, can_use_more=can_use_more, plan_name="Solo"
                    ))
                    booleans = [s for s in result.segments if not s.startswith("plan:")]
                    assert set(booleans).isdisjoint(result.delete_segments)
                    assert set(booleans) | set(result.delete_segments) == {"ota", *SEGMENT_FLAGS}

    def test_trial_tiers_mutually_exclusive(self):
        """Test at most one trial tier is ever set."""
        for days in range(-1, 15):
            result = compute_segments(inputs(trial_days_left=days, can_use_more=False))
            assert len({"trial7", "trial1", "trial0"} & set(result.segments)) <= 1

    def test_paying_over_quota(self):
        """Test a paying org over its ceilings."""
        result = compute_segments(inputs(paying=True, can_use_more=False, plan_name="Maker"))

        assert {"overuse", "paying"} <= set(result.segments)
        assert {"trial", "trial7", "trial1", "trial0", "issueSegment"} <= set(result.delete_segments)

    def test_projection_order(self):
        """Test tags follow the projection order with the plan after payingMonthly."""
        result = compute_segments(inputs(
            paying=True, plan_name="Maker", paying_monthly=True, canceled=True
        ))

        assert result.segments == ("ota", "onboarded", "paying", "payingMonthly", "plan:Maker", "canceled")
        assert result.delete_segments == (
            "trial", "trial7", "trial1", "trial0", "overuse", "issueSegment"
        )

    def test_not_onboarded_only_base_flags(self):
        """Test a not onboarded org carries only its independent flags."""
        result = compute_segments(inputs(onboarded=False, canceled=True, paying=True, plan_name="Solo"))

        assert result.segments == ("ota", "plan:Solo", "canceled")
        assert "onboarded" in result.delete_segments
        assert "paying" in result.delete_segments

    def test_empty_plan_omitted(self):
        """Test an empty plan name appears in neither set."""
        result = compute_segments(inputs(trial_days_left=3))
        assert not [s for s in result.segments + result.delete_segments if s.startswith("plan")]

    def test_custom_base_tag(self):
        """Test the base tag is configurable and always set."""
        result = compute_segments(inputs(onboarded=False), base_tag="capgo")
        assert result.segments[0] == "capgo"

    def test_to_dict(self):
        """Test the wire representation of a segment set."""
        result = compute_segments(inputs(trial_days_left=1))
        assert result.to_dict() == {
            "segments": ["ota", "onboarded", "trial", "trial1"],
            "deleteSegments": [
                "trial7", "trial0", "paying", "payingMonthly", "overuse", "canceled", "issueSegment"
            ],
        }


class TestSegmentEngine:
    """Test cases for SegmentEngine."""

    @pytest.fixture
    def billing(self):
        """Mock billing flags of a paying org."""
        billing = AsyncMock()
        billing.is_onboarded.return_value = True
        billing.is_canceled.return_value = False
        billing.is_paying.return_value = True
        billing.trial_days_left.return_value = 0
        return billing

    @pytest.fixture
    def quota(self):
        """Mock quota evaluator of an org over its ceilings."""
        quota = AsyncMock()
        quota.is_good_plan.return_value = False
        return quota

    @pytest.fixture
    def sync_client(self):
        """Mock segmentation client."""
        return AsyncMock()

    @pytest.fixture
    def metrics(self):
        """Create an entitlements metrics collector."""
        return MetricsCollector("entitlements")

    @pytest.fixture
    def engine(self, billing, quota, sync_client, metrics):
        """Create SegmentEngine over mocks."""
        return SegmentEngine(billing, quota, sync_client=sync_client, metrics=metrics)

    @pytest.fixture
    def plan(self):
        """Create a plan."""
        return Plan(name="Maker", price_m_id="price_m", price_y_id="price_y")

    @pytest.mark.asyncio
    async def test_segments_for_org(self, engine, plan, billing, quota):
        """Test inputs are gathered for the org and projected."""
        result = await engine.segments_for_org("org-1", "price_m", plan)

        assert isinstance(result.state, PayingOverQuota)
        assert "payingMonthly" in result.segments
        assert "plan:Maker" in result.segments
        billing.is_onboarded.assert_awaited_once_with("org-1")
        quota.is_good_plan.assert_awaited_once_with("org-1")

    @pytest.mark.asyncio
    async def test_yearly_price_is_not_monthly(self, engine, plan):
        """Test payingMonthly follows the plan's monthly price id."""
        result = await engine.segments_for_org("org-1", "price_y", plan)
        assert "payingMonthly" in result.delete_segments

    @pytest.mark.asyncio
    async def test_sync_org_pushes_both_sets(self, engine, plan, sync_client, metrics):
        """Test a sync adds the segments and removes the rest."""
        result = await engine.sync_org("org-1", "price_m", plan)

        assert result.synced is True
        sync_client.add_segments.assert_awaited_once_with("org-1", result.segments.segments)
        sync_client.remove_segments.assert_awaited_once_with("org-1", result.segments.delete_segments)
        assert metrics.registry.get_sample_value("segment_syncs_total", {"outcome": "synced"}) == 1
        assert metrics.registry.get_sample_value(
            "segment_computations_total", {"state": "PayingOverQuota"}
        ) == 1

    @pytest.mark.asyncio
    async def test_sync_failure_does_not_raise(self, engine, plan, sync_client, metrics):
        """Test a failing segmentation system yields synced=False."""
        sync_client.add_segments.side_effect = ExternalServiceError("segments", "down")

        result = await engine.sync_org("org-1", "price_m", plan)

        assert result.synced is False
        assert result.error
        assert "overuse" in result.segments.segments
        assert metrics.registry.get_sample_value("segment_syncs_total", {"outcome": "failed"}) == 1

    @pytest.mark.asyncio
    async def test_sync_without_client(self, billing, quota, plan):
        """Test an unconfigured segmentation client is reported, not raised."""
        engine = SegmentEngine(billing, quota)
        result = await engine.sync_org("org-1", None, plan)
        assert result.synced is False
