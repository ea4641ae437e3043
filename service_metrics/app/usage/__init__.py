"""
Usage tracking for Metrics Service.

- models: Usage events and device heartbeats.
- recorder: Append-only event writes and device upserts.
- reader: Period usage series and device counts.
"""

from .models import DeviceHeartbeat, StatsAction, UsageKind, VersionAction
from .recorder import UsageRecorder
from .reader import UsageReader

__all__ = [
    "DeviceHeartbeat",
    "StatsAction",
    "UsageKind",
    "VersionAction",
    "UsageRecorder",
    "UsageReader",
]
