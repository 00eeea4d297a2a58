"""Alert and alert response schemas."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from safewatch.schemas.common import UtcDatetime
from safewatch.schemas.location import LocationFix

AlertStatus = Literal["active", "acknowledged", "resolved"]
ResponseAction = Literal["acknowledge", "respond"]


class AlertRecord(BaseModel):
    """Full alert record as stored and as served on the feed."""

    id: str = Field(min_length=1, max_length=64)
    user_id: int
    title: str
    description: str = ""
    timestamp: UtcDatetime
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    address: str | None = None
    status: AlertStatus = "active"
    response_deadline: UtcDatetime | None = None
    current_batch: int = Field(default=1, ge=1)
    max_batches: int = Field(default=5, ge=1)
    responders_per_batch: int = Field(default=10, ge=1)
    total_responders: int = Field(default=0, ge=0)
    audio_url: str | None = None
    emergency_escalated: bool = False
    created_at: UtcDatetime | None = None
    updated_at: UtcDatetime | None = None

    model_config = {"from_attributes": True}


class AlertResponseRecord(BaseModel):
    id: str
    alert_id: str
    responder_id: int
    action: ResponseAction
    timestamp: UtcDatetime

    model_config = {"from_attributes": True}


class AlertWithResponses(AlertRecord):
    responses: list[AlertResponseRecord] = Field(default_factory=list)


class TriggerAlertRequest(BaseModel):
    """Optional inline fix; without it the last reported position is used."""

    location: LocationFix | None = None
    address: str | None = Field(default=None, max_length=255)


class RespondRequest(BaseModel):
    action: ResponseAction


class AudioAttachRequest(BaseModel):
    audio_url: str = Field(min_length=1, max_length=1024)
