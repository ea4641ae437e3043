"""
Plan and usage data models for Entitlements Service.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PlanTotal(BaseModel):
    """Aggregated usage of an organization over its billing period."""
    model_config = ConfigDict(extra="ignore")

    mau: int = 0
    bandwidth: int = 0
    storage: int = 0
    get: int = 0
    fail: int = 0
    install: int = 0
    uninstall: int = 0


class PlanUsage(BaseModel):
    """Usage relative to the plan ceilings, in percent."""
    total_percent: float = 0
    mau_percent: float = 0
    bandwidth_percent: float = 0
    storage_percent: float = 0


class Plan(BaseModel):
    """A billing tier and its usage ceilings."""
    model_config = ConfigDict(extra="ignore")

    name: str
    stripe_id: Optional[str] = None
    price_m_id: Optional[str] = None
    price_y_id: Optional[str] = None
    mau: int = 0
    bandwidth: int = 0
    storage: int = 0
    get: Optional[int] = None
    fail: Optional[int] = None
    install: Optional[int] = None
    uninstall: Optional[int] = None


class PlanStatusResponse(BaseModel):
    """Response model for an organization's plan."""
    name: str = Field(..., description="Current plan name")
    good_plan: bool = Field(..., description="Whether usage is within every ceiling")


class BillingFlagsResponse(BaseModel):
    """Response model for an organization's billing flags."""
    onboarded: bool
    onboarding_needed: bool
    canceled: bool
    paying: bool
    allowed_action: bool
    trial_days_left: int


class AdminStatusResponse(BaseModel):
    """Response model for a platform admin lookup."""
    user_id: str
    admin: bool
