"""
Plan quota and billing state for Entitlements Service.

- models: Plan rows, usage totals and percentages.
- evaluator: Usage totals, percentages and plan verdicts from the store.
- billing: Onboarding, trial, paying and cancellation flags.
"""

from .models import (
    AdminStatusResponse, BillingFlagsResponse, Plan, PlanStatusResponse, PlanTotal, PlanUsage
)
from .evaluator import PlanQuotaEvaluator
from .billing import BillingStatus

__all__ = [
    "Plan",
    "PlanTotal",
    "PlanUsage",
    "PlanStatusResponse",
    "BillingFlagsResponse",
    "AdminStatusResponse",
    "PlanQuotaEvaluator",
    "BillingStatus",
]
