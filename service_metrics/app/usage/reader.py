"""
Usage reads for Metrics Service.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from shared.logging import get_logger
from shared.store import Condition, StoreClient
from shared.store.operations import (
    ReadBandwidthUsage, ReadDeviceUsage, ReadStorageUsage, ReadVersionUsage
)

from .models import DEFAULT_READ_LIMIT, SortColumn, SortOrder, UsageKind

_OPERATIONS = {
    UsageKind.DEVICES: ReadDeviceUsage,
    UsageKind.BANDWIDTH: ReadBandwidthUsage,
    UsageKind.STORAGE: ReadStorageUsage,
    UsageKind.VERSIONS: ReadVersionUsage,
}


class UsageReader:
    """Reads usage series, stats log rows and devices of an app. Failures read as no rows."""

    def __init__(self, store: StoreClient):
        self.store = store
        self.logger = get_logger("metrics.usage_reader")

    async def read_device_usage(self, app_id: str, period_start: str, period_end: str) -> List[Dict[str, Any]]:
        return await self.read(UsageKind.DEVICES, app_id, period_start, period_end)

    async def read_bandwidth_usage(self, app_id: str, period_start: str, period_end: str) -> List[Dict[str, Any]]:
        return await self.read(UsageKind.BANDWIDTH, app_id, period_start, period_end)

    async def read_storage_usage(self, app_id: str, period_start: str, period_end: str) -> List[Dict[str, Any]]:
        return await self.read(UsageKind.STORAGE, app_id, period_start, period_end)

    async def read_version_usage(self, app_id: str, period_start: str, period_end: str) -> List[Dict[str, Any]]:
        return await self.read(UsageKind.VERSIONS, app_id, period_start, period_end)

    async def read(self, kind: UsageKind, app_id: str,
                   period_start: str, period_end: str) -> List[Dict[str, Any]]:
        operation = _OPERATIONS[kind](
            app_id=app_id, period_start=period_start, period_end=period_end
        )
        try:
            rows = await self.store.rpc(operation)
        except Exception as e:
            self.logger.error("Usage read failed", kind=kind.value, app_id=app_id, error=str(e))
            return []
        return rows if isinstance(rows, list) else []


    async def read_stats(self, app_id: str,
                         period_start: Optional[str] = None,
                         period_end: Optional[str] = None,
                         device_ids: Sequence[str] = (),
                         search: Optional[str] = None,
                         order: Sequence[SortColumn] = (),
                         limit: int = DEFAULT_READ_LIMIT) -> List[Dict[str, Any]]:
        """Rows of the app's stats log, optionally within ``[period_start, period_end)``.

        ``search`` is a prefix of the native build version, or of the device id
        too when no devices are named.
        """
        where = []
        if period_start:
            where.append(Condition.gte("created_at", period_start))
        if period_end:
            where.append(Condition.lt("created_at", period_end))
        any_of = self._narrow(where, device_ids, search, "version_build")
        return await self._rows(
            "stats", app_id,
            where=where,
            any_of=any_of,
            order=_ordering(order),
            limit=limit
        )

    async def read_devices(self, app_id: str,
                           range_start: int = 0,
                           range_end: int = DEFAULT_READ_LIMIT - 1,
                           version: Optional[int] = None,
                           device_ids: Sequence[str] = (),
                           search: Optional[str] = None,
                           order: Sequence[SortColumn] = (),
                           limit: int = DEFAULT_READ_LIMIT) -> List[Dict[str, Any]]:
        """Devices of the app between two row positions, both included.

        ``search`` is a prefix of the custom id, or of the device id too when
        no devices are named.
        """
        if range_end < range_start:
            return []
        where = []
        any_of = self._narrow(where, device_ids, search, "custom_id")
        return await self._rows(
            "devices", app_id,
            filters={"version": version} if version is not None else None,
            where=where,
            any_of=any_of,
            order=_ordering(order),
            limit=min(limit, range_end - range_start + 1),
            offset=range_start
        )

    async def count_devices(self, app_id: str) -> int:
        """Number of devices ever seen for the app."""
        try:
            return await self.store.count("devices", {"app_id": app_id})
        except Exception as e:
            self.logger.error("Device count failed", app_id=app_id, error=str(e))
            return 0

    @staticmethod
    def _narrow(where: List[Condition], device_ids: Sequence[str],
                search: Optional[str], search_column: str) -> List[Condition]:
        if len(device_ids) == 1:
            where.append(Condition.eq("device_id", device_ids[0]))
        elif device_ids:
            where.append(Condition.in_("device_id", device_ids))

        if not search:
            return []
        if device_ids:
            where.append(Condition.prefix(search_column, search))
            return []
        return [Condition.prefix("device_id", search), Condition.prefix(search_column, search)]

    async def _rows(self, table: str, app_id: str,
                    filters: Optional[Dict[str, Any]] = None, **query) -> List[Dict[str, Any]]:
        try:
            rows = await self.store.select(table, filters={"app_id": app_id, **(filters or {})}, **query)
        except Exception as e:
            self.logger.error("Usage list read failed", table=table, app_id=app_id, error=str(e))
            return []
        return rows if isinstance(rows, list) else []


def _ordering(order: Sequence[SortColumn]) -> List[Tuple[str, bool]]:
    return [(column.key, column.sortable == SortOrder.ASC) for column in order if column.sortable]
