"""Location feed schemas."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from safewatch.schemas.common import UtcDatetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LocationFix(BaseModel):
    """One position sample from the device."""

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy: float | None = Field(default=None, ge=0)
    speed: float | None = None
    timestamp: UtcDatetime = Field(default_factory=_utcnow)


class PermissionUpdate(BaseModel):
    granted: bool


class LocationErrorReport(BaseModel):
    message: str = Field(min_length=1, max_length=300)


class LocationStatus(BaseModel):
    permission: str  # granted | denied | unknown
    last_fix: LocationFix | None = None
