"""
Rights data models for Entitlements Service.
"""

from typing import Optional
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field


class Right(str, Enum):
    """Ordered capability levels. A higher right implies every lower one."""
    READ = "read"
    UPLOAD = "upload"
    WRITE = "write"
    ADMIN = "admin"


@dataclass(frozen=True)
class Principal:
    """Authenticated user a right is checked against."""
    user_id: str
    email: Optional[str] = None


@dataclass(frozen=True)
class RightScope:
    """Narrows an org check to one app, or one channel of that app."""
    app_id: Optional[str] = None
    channel_id: Optional[int] = None


class AppRightCheckRequest(BaseModel):
    """Request model for an app right check."""
    user_id: str = Field(..., description="User ID")
    app_id: str = Field(..., description="App ID")
    right: Right = Field(Right.READ, description="Minimum right required")


class AppOwnerCheckRequest(BaseModel):
    """Request model for an app ownership check."""
    user_id: str = Field(..., description="User ID")
    app_id: str = Field(..., description="App ID")


class OrgRightCheckRequest(BaseModel):
    """Request model for an org right check."""
    user_id: str = Field(..., description="User ID")
    org_id: str = Field(..., description="Organization ID")
    right: Right = Field(Right.READ, description="Minimum right required")
    app_id: Optional[str] = Field(None, description="Narrow the check to one app")
    channel_id: Optional[int] = Field(None, description="Narrow the check to one channel")


class RightCheckResponse(BaseModel):
    """Response model for right checks."""
    allowed: bool
