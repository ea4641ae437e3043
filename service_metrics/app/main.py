"""
Metrics service for the OTA Access Layer.
"""

from typing import Dict, Optional

import httpx
from fastapi import Query

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.retry import RetryConfig
from shared.store import StoreClient

from .usage.models import (
    BandwidthUsageEvent, DeviceCountResponse, DeviceHeartbeat, DevicesQuery, DeviceUsageEvent,
    RecordedResponse, RowsResponse, StatsEvent, StatsQuery, UsageKind, VersionMetaEvent,
    VersionUsageEvent
)
from .usage.reader import UsageReader
from .usage.recorder import UsageRecorder


class MetricsService(BaseService):
    """Metrics service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__("metrics", 8012, config=config, transport=transport)
        self._setup_metrics_routes()

    def usage_recorder(self, store: StoreClient) -> UsageRecorder:
        return UsageRecorder(
            store,
            metrics=self.metrics,
            retry_config=RetryConfig(max_attempts=self.config.usage_write_attempts),
            write_deadline=self.config.usage_write_deadline_seconds
        )

    def usage_reader(self, store: StoreClient) -> UsageReader:
        return UsageReader(store)

    def _setup_metrics_routes(self):
        """Set up metrics-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "metrics",
                "message": "OTA Access Layer - Metrics Service",
                "version": "1.0.0",
                "capabilities": ["usage_ingestion", "device_tracking", "usage_reads"]
            }

        @self.app.post("/usage/bandwidth", status_code=202, response_model=RecordedResponse)
        async def track_bandwidth(event: BandwidthUsageEvent):
            """Record bytes served to a device."""
            recorder = self.usage_recorder(self.admin_store())
            recorded = await recorder.best_effort(
                recorder.track_bandwidth_usage(event.device_id, event.app_id, event.file_size),
                "bandwidth"
            )
            return RecordedResponse(recorded=recorded)

        @self.app.post("/usage/version", status_code=202, response_model=RecordedResponse)
        async def track_version(event: VersionUsageEvent):
            """Record a lifecycle action on a bundle version."""
            recorder = self.usage_recorder(self.admin_store())
            recorded = await recorder.best_effort(
                recorder.track_version_usage(event.version_id, event.app_id, event.action),
                "version"
            )
            return RecordedResponse(recorded=recorded)

        @self.app.post("/usage/device-usage", status_code=202, response_model=RecordedResponse)
        async def track_device_usage(event: DeviceUsageEvent):
            """Record a device seen for an app."""
            recorder = self.usage_recorder(self.admin_store())
            recorded = await recorder.best_effort(
                recorder.track_device_usage(event.device_id, event.app_id),
                "device_usage"
            )
            return RecordedResponse(recorded=recorded)

        @self.app.post("/usage/meta", status_code=202, response_model=RecordedResponse)
        async def track_meta(event: VersionMetaEvent):
            """Record the stored size of a bundle version."""
            recorder = self.usage_recorder(self.admin_store())
            recorded = await recorder.best_effort(
                recorder.track_meta(event.app_id, event.version_id, event.size),
                "meta"
            )
            return RecordedResponse(recorded=recorded)

        @self.app.post("/usage/stats", status_code=202, response_model=RecordedResponse)
        async def track_log(event: StatsEvent):
            """Record a device-reported action."""
            recorder = self.usage_recorder(self.admin_store())
            recorded = await recorder.best_effort(
                recorder.track_log(event.app_id, event.device_id, event.action, event.version_id),
                "stats"
            )
            return RecordedResponse(recorded=recorded)

        @self.app.post("/usage/devices", status_code=202, response_model=RecordedResponse)
        async def track_device(heartbeat: DeviceHeartbeat):
            """Record a device heartbeat."""
            recorder = self.usage_recorder(self.admin_store())
            recorded = await recorder.best_effort(recorder.track_device(heartbeat), "device")
            return RecordedResponse(recorded=recorded)

        @self.app.get("/usage/{app_id}/devices/count", response_model=DeviceCountResponse)
        async def count_devices(app_id: str):
            """Number of devices seen for an app."""
            count = await self.usage_reader(self.admin_store()).count_devices(app_id)
            return DeviceCountResponse(app_id=app_id, count=count)

        @self.app.post("/usage/{app_id}/stats/query", response_model=RowsResponse)
        async def read_stats(app_id: str, query: StatsQuery):
            """Stats log rows of an app."""
            rows = await self.usage_reader(self.admin_store()).read_stats(
                app_id,
                period_start=query.period_start,
                period_end=query.period_end,
                device_ids=query.device_ids,
                search=query.search,
                order=query.order,
                limit=query.limit
            )
            return RowsResponse(app_id=app_id, data=rows)

        @self.app.post("/usage/{app_id}/devices/query", response_model=RowsResponse)
        async def read_devices(app_id: str, query: DevicesQuery):
            """Devices of an app."""
            rows = await self.usage_reader(self.admin_store()).read_devices(
                app_id,
                range_start=query.range_start,
                range_end=query.range_end,
                version=query.version,
                device_ids=query.device_ids,
                search=query.search,
                order=query.order,
                limit=query.limit
            )
            return RowsResponse(app_id=app_id, data=rows)

        @self.app.get("/usage/{app_id}/{kind}")
        async def read_usage(
            app_id: str,
            kind: UsageKind,
            period_start: str = Query(..., description="Period start (ISO date)"),
            period_end: str = Query(..., description="Period end (ISO date)")
        ):
            """Daily usage of an app over a period."""
            rows = await self.usage_reader(self.admin_store()).read(kind, app_id, period_start, period_end)
            return {
                "app_id": app_id,
                "kind": kind.value,
                "period_start": period_start,
                "period_end": period_end,
                "data": rows
            }

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check metrics service dependencies."""
        dependencies = {}

        try:
            await self.admin_store().count("devices")
            dependencies["store"] = "ok"
        except Exception:
            dependencies["store"] = "error"

        return dependencies


def create_app(config: Optional[ServiceConfig] = None,
               transport: Optional[httpx.AsyncBaseTransport] = None):
    """Create metrics service application."""
    service = MetricsService(config=config, transport=transport)
    return service.app


if __name__ == "__main__":
    service = MetricsService()
    service.run()
