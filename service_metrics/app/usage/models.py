"""
Usage event models for Metrics Service.
"""

from enum import Enum

# Most rows a list read returns
DEFAULT_READ_LIMIT = 1000
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class VersionAction(str, Enum):
    """Bundle lifecycle actions counted per version."""
    GET = "get"
    FAIL = "fail"
    INSTALL = "install"
    UNINSTALL = "uninstall"


class StatsAction(str, Enum):
    """Actions a device reports to the stats log."""
    DELETE = "delete"
    RESET = "reset"
    SET = "set"
    GET = "get"
    SET_FAIL = "set_fail"
    UPDATE_FAIL = "update_fail"
    DOWNLOAD_FAIL = "download_fail"
    WINDOWS_PATH_FAIL = "windows_path_fail"
    CANONICAL_PATH_FAIL = "canonical_path_fail"
    DIRECTORY_PATH_FAIL = "directory_path_fail"
    UNZIP_FAIL = "unzip_fail"
    LOW_MEM_FAIL = "low_mem_fail"
    DOWNLOAD_10 = "download_10"
    DOWNLOAD_20 = "download_20"
    DOWNLOAD_30 = "download_30"
    DOWNLOAD_40 = "download_40"
    DOWNLOAD_50 = "download_50"
    DOWNLOAD_60 = "download_60"
    DOWNLOAD_70 = "download_70"
    DOWNLOAD_80 = "download_80"
    DOWNLOAD_90 = "download_90"
    DOWNLOAD_COMPLETE = "download_complete"
    DECRYPT_FAIL = "decrypt_fail"
    CHECKSUM_FAIL = "checksum_fail"
    APP_MOVED_TO_FOREGROUND = "app_moved_to_foreground"
    APP_MOVED_TO_BACKGROUND = "app_moved_to_background"
    UNINSTALL = "uninstall"
    NEED_PLAN_UPGRADE = "needPlanUpgrade"
    MISSING_BUNDLE = "missingBundle"
    NO_NEW = "noNew"
    DISABLE_PLATFORM_IOS = "disablePlatformIos"
    DISABLE_PLATFORM_ANDROID = "disablePlatformAndroid"
    DISABLE_AUTO_UPDATE_TO_MAJOR = "disableAutoUpdateToMajor"
    DISABLE_AUTO_UPDATE_TO_MINOR = "disableAutoUpdateToMinor"
    DISABLE_AUTO_UPDATE_TO_PATCH = "disableAutoUpdateToPatch"
    DISABLE_AUTO_UPDATE_UNDER_NATIVE = "disableAutoUpdateUnderNative"
    DISABLE_AUTO_UPDATE_METADATA = "disableAutoUpdateMetadata"
    DISABLE_DEV_BUILD = "disableDevBuild"
    DISABLE_EMULATOR = "disableEmulator"
    CANNOT_UPDATE_VIA_PRIVATE_CHANNEL = "cannotUpdateViaPrivateChannel"
    CANNOT_GET_BUNDLE = "cannotGetBundle"
    CHANNEL_MISCONFIGURED = "channelMisconfigured"
    NO_CHANNEL_OR_OVERRIDE = "NoChannelOrOverride"
    SET_CHANNEL = "setChannel"
    GET_CHANNEL = "getChannel"
    RATE_LIMITED = "rateLimited"


class Platform(str, Enum):
    """Device operating systems."""
    IOS = "ios"
    ANDROID = "android"


class UsageKind(str, Enum):
    """Period usage series that can be read back."""
    DEVICES = "devices"
    BANDWIDTH = "bandwidth"
    STORAGE = "storage"
    VERSIONS = "versions"


class SortOrder(str, Enum):
    """Direction of a sort column."""
    ASC = "asc"
    DESC = "desc"


class SortColumn(BaseModel):
    """A column to order list reads by. Columns without a direction are skipped."""
    key: str = Field(..., pattern=r"^[A-Za-z_][A-Za-z0-9_]*$", description="Column name")
    sortable: Optional[SortOrder] = Field(None, description="Sort direction")


class BandwidthUsageEvent(BaseModel):
    """Bytes served to a device."""
    device_id: str = Field(..., description="Device ID")
    app_id: str = Field(..., description="App ID")
    file_size: int = Field(..., ge=0, description="Bytes served")


class VersionUsageEvent(BaseModel):
    """A lifecycle action on a bundle version."""
    version_id: int = Field(..., description="Bundle ID")
    app_id: str = Field(..., description="App ID")
    action: VersionAction = Field(..., description="Action taken")


class DeviceUsageEvent(BaseModel):
    """A device seen for an app; feeds monthly active users."""
    device_id: str = Field(..., description="Device ID")
    app_id: str = Field(..., description="App ID")


class VersionMetaEvent(BaseModel):
    """Stored size of a bundle version; feeds storage."""
    app_id: str = Field(..., description="App ID")
    version_id: int = Field(..., description="Bundle ID")
    size: int = Field(..., description="Size in bytes; negative when a bundle is removed")


class StatsEvent(BaseModel):
    """A device-reported action."""
    app_id: str = Field(..., description="App ID")
    device_id: str = Field(..., description="Device ID")
    action: StatsAction = Field(..., description="Reported action")
    version_id: int = Field(..., description="Bundle ID the device runs")


class DeviceHeartbeat(BaseModel):
    """Current state of a device; the latest heartbeat wins."""
    app_id: str = Field(..., description="App ID")
    device_id: str = Field(..., description="Device ID")
    version: int = Field(..., description="Bundle ID the device runs")
    platform: Platform = Field(..., description="Device OS")
    plugin_version: str = Field(..., description="Updater plugin version")
    os_version: Optional[str] = Field(None, description="OS version")
    version_build: Optional[str] = Field(None, description="Native build version")
    custom_id: str = Field("", description="Caller-assigned device label")
    is_prod: bool = Field(True, description="Production build")
    is_emulator: bool = Field(False, description="Running in an emulator")


class RecordedResponse(BaseModel):
    """Response model for usage writes."""
    recorded: bool


class DeviceCountResponse(BaseModel):
    """Response model for device counts."""
    app_id: str
    count: int


class ListQuery(BaseModel):
    """Narrowing shared by list reads."""
    device_ids: List[str] = Field(default_factory=list, description="Only these devices")
    search: Optional[str] = Field(
        None, pattern=r"^[^,()*]*$", description="Prefix searched in identifying columns"
    )
    order: List[SortColumn] = Field(default_factory=list, description="Sort columns, first wins")
    limit: int = Field(DEFAULT_READ_LIMIT, gt=0, le=DEFAULT_READ_LIMIT, description="Most rows returned")


class StatsQuery(ListQuery):
    """Stats log read."""
    period_start: Optional[str] = Field(None, description="Earliest created_at, included")
    period_end: Optional[str] = Field(None, description="Latest created_at, excluded")


class DevicesQuery(ListQuery):
    """Device list read."""
    range_start: int = Field(0, ge=0, description="First row position")
    range_end: int = Field(DEFAULT_READ_LIMIT - 1, ge=0, description="Last row position, included")
    version: Optional[int] = Field(None, description="Only devices running this bundle")

    @model_validator(mode="after")
    def _check_range(self) -> "DevicesQuery":
        if self.range_end < self.range_start:
            raise ValueError("range_end must not precede range_start")
        return self


class RowsResponse(BaseModel):
    """Response model for list reads."""
    app_id: str
    data: List[Dict[str, Any]]
