"""
Segment data models for Entitlements Service.

An organization's billing state is first classified into exactly one
lifecycle state; the tag sets pushed to the segmentation system are a
projection of that state plus a few independent flags.
"""

from dataclasses import dataclass
from typing import ClassVar, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

# Projection order of the boolean tags after the base tag. The plan tag is
# emitted right after payingMonthly.
SEGMENT_FLAGS = (
    "onboarded",
    "trial",
    "trial7",
    "trial1",
    "trial0",
    "paying",
    "payingMonthly",
    "overuse",
    "canceled",
    "issueSegment",
)


@dataclass(frozen=True)
class SegmentInputs:
    """Everything the segment projection depends on."""
    onboarded: bool
    canceled: bool
    paying: bool
    trial_days_left: int
    can_use_more: bool
    plan_name: str = ""
    paying_monthly: bool = False


@dataclass(frozen=True)
class NotOnboarded:
    tags: ClassVar[Tuple[str, ...]] = ()


@dataclass(frozen=True)
class TrialEndingSoon:
    tags: ClassVar[Tuple[str, ...]] = ("trial", "trial7")

    days_left: int


@dataclass(frozen=True)
class TrialLastDay:
    tags: ClassVar[Tuple[str, ...]] = ("trial", "trial1")


@dataclass(frozen=True)
class TrialExhausted:
    tags: ClassVar[Tuple[str, ...]] = ("trial", "trial0")


@dataclass(frozen=True)
class PayingOverQuota:
    tags: ClassVar[Tuple[str, ...]] = ("overuse", "paying")

    plan_name: str


@dataclass(frozen=True)
class PayingWithinQuota:
    tags: ClassVar[Tuple[str, ...]] = ("paying",)

    plan_name: str


@dataclass(frozen=True)
class InconsistentBilling:
    """No trial or paying condition holds; the billing data needs a look."""
    tags: ClassVar[Tuple[str, ...]] = ("issueSegment",)


AccountLifecycleState = Union[
    NotOnboarded,
    TrialEndingSoon,
    TrialLastDay,
    TrialExhausted,
    PayingOverQuota,
    PayingWithinQuota,
    InconsistentBilling,
]


@dataclass(frozen=True)
class SegmentSet:
    """Tags to add and tags to remove; together they cover every boolean tag."""
    segments: Tuple[str, ...]
    delete_segments: Tuple[str, ...]
    state: AccountLifecycleState

    @property
    def state_name(self) -> str:
        return type(self.state).__name__

    def to_dict(self) -> dict:
        return {
            "segments": list(self.segments),
            "deleteSegments": list(self.delete_segments),
        }


@dataclass(frozen=True)
class SyncResult:
    """Outcome of pushing a segment set."""
    segments: SegmentSet
    synced: bool
    error: Optional[str] = None


class SegmentRequest(BaseModel):
    """Request model for segment computation."""
    price_id: Optional[str] = Field(None, description="Price the org subscribes with")


class SegmentSetResponse(BaseModel):
    """Response model for a computed segment set."""
    model_config = ConfigDict(populate_by_name=True)

    segments: List[str]
    delete_segments: List[str] = Field(..., alias="deleteSegments")


class SegmentSyncResponse(SegmentSetResponse):
    """Response model for a segment sync."""
    synced: bool
