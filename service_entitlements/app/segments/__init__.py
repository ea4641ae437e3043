"""
Account lifecycle segments for Entitlements Service.

- models: Segment inputs, lifecycle states and tag sets.
- engine: Classification, tag projection and org reconciliation.
- sync: Client for the marketing segmentation system.
"""

from .models import SegmentInputs, SegmentSet, SyncResult
from .engine import SegmentEngine, classify, compute_segments
from .sync import SegmentSyncClient

__all__ = [
    "SegmentInputs",
    "SegmentSet",
    "SyncResult",
    "SegmentEngine",
    "classify",
    "compute_segments",
    "SegmentSyncClient",
]
