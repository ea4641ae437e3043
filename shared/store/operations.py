"""
Typed remote procedure descriptors for the data store.

Each remote procedure is one class. Field names are Python names; aliases
are the parameter names the procedure declares. ``StoreClient.rpc`` is the
only thing that executes them.
"""

from typing import Any, ClassVar, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class RpcOperation(BaseModel):
    """A named remote procedure with typed parameters."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    procedure: ClassVar[str]
    # Set-returning procedures are read as a single row
    returns_row: ClassVar[bool] = False

    def params(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# Right checks

class HasAppRightUserid(RpcOperation):
    """Whether the user holds at least ``right`` on the app, through its owning org."""

    procedure: ClassVar[str] = "has_app_right_userid"

    app_id: str = Field(alias="appid")
    right: str
    user_id: str = Field(alias="userid")


class CheckMinRights(RpcOperation):
    """Whether the user holds at least ``min_right`` in the org, optionally for one app or channel."""

    procedure: ClassVar[str] = "check_min_rights"

    min_right: str
    org_id: str
    user_id: str
    app_id: Optional[str] = None
    channel_id: Optional[int] = None


# Plan and usage aggregation

class GetTotalMetrics(RpcOperation):
    procedure: ClassVar[str] = "get_total_metrics"
    returns_row: ClassVar[bool] = True

    org_id: str


class GetPlanUsagePercentDetailed(RpcOperation):
    procedure: ClassVar[str] = "get_plan_usage_percent_detailed"
    returns_row: ClassVar[bool] = True

    org_id: str = Field(alias="orgid")


class IsGoodPlanOrg(RpcOperation):
    """Whether the org's usage fits every ceiling of its plan."""

    procedure: ClassVar[str] = "is_good_plan_v5_org"

    org_id: str = Field(alias="orgid")


class GetCurrentPlanNameOrg(RpcOperation):
    procedure: ClassVar[str] = "get_current_plan_name_org"

    org_id: str = Field(alias="orgid")


# Billing flags

class IsOnboardedOrg(RpcOperation):
    procedure: ClassVar[str] = "is_onboarded_org"

    org_id: str = Field(alias="orgid")


class IsOnboardingNeededOrg(RpcOperation):
    procedure: ClassVar[str] = "is_onboarding_needed_org"

    org_id: str = Field(alias="orgid")


class IsCanceledOrg(RpcOperation):
    procedure: ClassVar[str] = "is_canceled_org"

    org_id: str = Field(alias="orgid")


class IsPayingOrg(RpcOperation):
    procedure: ClassVar[str] = "is_paying_org"

    org_id: str = Field(alias="orgid")


class IsTrialOrg(RpcOperation):
    """Days of trial left; 0 once the trial is over."""

    procedure: ClassVar[str] = "is_trial_org"

    org_id: str = Field(alias="orgid")


class IsAllowedActionOrg(RpcOperation):
    procedure: ClassVar[str] = "is_allowed_action_org"

    org_id: str = Field(alias="orgid")


class IsAdmin(RpcOperation):
    procedure: ClassVar[str] = "is_admin"

    user_id: str = Field(alias="userid")


# Period usage reads

class _PeriodUsage(RpcOperation):
    app_id: str = Field(alias="p_app_id")
    period_start: str = Field(alias="p_period_start")
    period_end: str = Field(alias="p_period_end")


class ReadDeviceUsage(_PeriodUsage):
    procedure: ClassVar[str] = "read_device_usage"


class ReadBandwidthUsage(_PeriodUsage):
    procedure: ClassVar[str] = "read_bandwidth_usage"


class ReadStorageUsage(_PeriodUsage):
    procedure: ClassVar[str] = "read_storage_usage"


class ReadVersionUsage(_PeriodUsage):
    procedure: ClassVar[str] = "read_version_usage"
