"""
Usage event ingestion for Metrics Service.

Events are appended to their usage tables and never modified. Device
heartbeats are the exception: ``devices`` keeps one row per
``(device_id, app_id)`` that every heartbeat overwrites through the store's
atomic upsert, so concurrent heartbeats need no coordination here.
The retried upsert as a whole is bounded by ``write_deadline``.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Dict, Optional

from shared.errors import TransientStoreError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.retry import RetryConfig, RetryError, retry_on_exception
from shared.store import StoreClient

from .models import DeviceHeartbeat, StatsAction, VersionAction

DEVICE_KEY = ("device_id", "app_id")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class UsageRecorder:
    """Writes usage events with the elevated store credential.

    Write failures propagate to the caller; wrap a call in ``best_effort``
    when the write must not fail the request it belongs to.
    """

    def __init__(self, store: StoreClient,
                 metrics: Optional[MetricsCollector] = None,
                 retry_config: Optional[RetryConfig] = None,
                 write_deadline: Optional[float] = None):
        self.store = store
        self.metrics = metrics
        self.write_deadline = write_deadline
        self.retry_config = retry_config or RetryConfig()
        self.logger = get_logger("metrics.usage_recorder")
        # Only the upsert converges when repeated
        self._upsert_device = retry_on_exception(
            (TransientStoreError,),
            config=self.retry_config
        )(self.store.upsert)

    async def track_bandwidth_usage(self, device_id: str, app_id: str, file_size: int):
        await self._insert("bandwidth_usage", {
            "device_id": device_id,
            "app_id": app_id,
            "file_size": file_size,
        })

    async def track_version_usage(self, version_id: int, app_id: str, action: VersionAction):
        await self._insert("version_usage", {
            "version_id": version_id,
            "app_id": app_id,
            "action": VersionAction(action).value,
        })

    async def track_device_usage(self, device_id: str, app_id: str):
        await self._insert("device_usage", {
            "device_id": device_id,
            "app_id": app_id,
        })

    async def track_meta(self, app_id: str, version_id: int, size: int):
        await self._insert("version_meta", {
            "app_id": app_id,
            "version_id": version_id,
            "size": size,
        })

    async def track_log(self, app_id: str, device_id: str, action: StatsAction, version_id: int):
        """Append a device-reported action to the stats log."""
        await self._insert("stats", {
            "app_id": app_id,
            "created_at": _now(),
            "device_id": device_id,
            "action": StatsAction(action).value,
            "version": version_id,
        })

    async def track_device(self, heartbeat: DeviceHeartbeat):
        """Create or overwrite the device's row; the last heartbeat wins."""
        row = heartbeat.model_dump(mode="json")
        row["updated_at"] = _now()
        try:
            await asyncio.wait_for(
                self._upsert_device("devices", row, on_conflict=DEVICE_KEY),
                timeout=self.write_deadline
            )
        except asyncio.TimeoutError as e:
            self._count("devices", "error")
            raise TransientStoreError(
                "Device upsert exceeded its deadline",
                details={"deadline_seconds": self.write_deadline}
            ) from e
        except RetryError as e:
            self._count("devices", "error")
            raise e.last_exception from e
        except Exception:
            self._count("devices", "error")
            raise
        self._count("devices", "ok")

    async def best_effort(self, write: Awaitable[Any], event: str) -> bool:
        """Await a write, logging instead of raising when it fails."""
        try:
            await write
            return True
        except Exception as e:
            self.logger.warning("Usage write dropped", usage_event=event, error=str(e))
            return False

    async def _insert(self, table: str, row: Dict[str, Any]):
        try:
            await self.store.insert(table, [row])
        except Exception:
            self._count(table, "error")
            raise
        self._count(table, "ok")

    def _count(self, kind: str, outcome: str):
        if self.metrics:
            self.metrics.increment_counter("usage_writes_total", kind=kind, outcome=outcome)
