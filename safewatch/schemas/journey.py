"""Journey monitoring, live share and unsafe-timer schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from safewatch.schemas.common import UtcDatetime

TransportMode = Literal["walk", "bike", "car", "public"]
JourneyState = Literal["inactive", "moving", "stationary", "pre_alarm", "escalated"]


class JourneyDestination(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    address: str | None = Field(default=None, max_length=255)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    transport: TransportMode
    estimated_arrival: UtcDatetime | None = None


class JourneyStatus(BaseModel):
    """Snapshot of a seeker's journey monitor."""

    state: JourneyState
    is_active: bool
    destination: JourneyDestination | None = None
    start_time: datetime | None = None
    last_movement: datetime | None = None
    is_stationary: bool = False
    stationary_duration_ms: int = 0
    movement_threshold_ms: int
    pre_alarm_triggered: bool = False
    pre_alarm_remaining: int | None = None
    alert_id: str | None = None


class MovementUpdate(BaseModel):
    has_movement: bool


class ShareStartRequest(BaseModel):
    destination: JourneyDestination


class ShareOut(BaseModel):
    journey_id: int
    share_token: str


class JourneyFeedPoint(BaseModel):
    lat: float
    lon: float
    speed: float | None = None
    ts: UtcDatetime

    model_config = {"from_attributes": True}


class JourneyFeedOut(BaseModel):
    destination_name: str
    dest_lat: float
    dest_lon: float
    transport: str
    is_active: bool
    started_at: UtcDatetime
    ended_at: UtcDatetime | None = None
    points: list[JourneyFeedPoint] = Field(default_factory=list)


class UnsafeTimerStatus(BaseModel):
    active: bool
    remaining: int | None = None
    phase: Literal["countdown", "pre_alarm"] | None = None
    alert_id: str | None = None
