"""
Rights resolution for Entitlements Service.
"""

from .models import Right, Principal, RightScope
from .resolver import RightsResolver

__all__ = [
    "Right",
    "Principal",
    "RightScope",
    "RightsResolver",
]
