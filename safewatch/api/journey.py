"""Journey monitoring and live share API."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from safewatch.api.errors import http_error
from safewatch.core.deps import get_safety, require_seeker
from safewatch.core.errors import SafeWatchError
from safewatch.models.user import User
from safewatch.schemas.journey import (
    JourneyDestination,
    JourneyFeedOut,
    JourneyStatus,
    MovementUpdate,
    ShareOut,
    ShareStartRequest,
)
from safewatch.services.safety_service import SafetyService

router = APIRouter(prefix="/journey", tags=["journey"])


@router.post("/start", response_model=JourneyStatus)
def start_journey(
    destination: JourneyDestination,
    safety: SafetyService = Depends(get_safety),
    current_user: User = Depends(require_seeker),
):
    """Start monitoring a journey. A no-op if one is already active."""
    try:
        return safety.start_journey(current_user.id, destination)
    except SafeWatchError as e:
        raise http_error(e)


@router.post("/stop", response_model=JourneyStatus)
def stop_journey(
    safety: SafetyService = Depends(get_safety),
    current_user: User = Depends(require_seeker),
):
    """Stop monitoring and end any live share."""
    return safety.stop_journey(current_user.id)


@router.post("/movement", response_model=JourneyStatus)
def update_movement(
    data: MovementUpdate,
    safety: SafetyService = Depends(get_safety),
    current_user: User = Depends(require_seeker),
):
    return safety.update_movement(current_user.id, data.has_movement)


@router.get("/status", response_model=JourneyStatus)
def journey_status(
    safety: SafetyService = Depends(get_safety),
    current_user: User = Depends(require_seeker),
):
    return safety.journey_status(current_user.id)


@router.post("/share", response_model=ShareOut)
def start_share(
    data: ShareStartRequest,
    safety: SafetyService = Depends(get_safety),
    current_user: User = Depends(require_seeker),
):
    """Start sharing live position; returns the token to hand out."""
    try:
        return safety.begin_share(current_user.id, data.destination)
    except SafeWatchError as e:
        raise http_error(e)


@router.delete("/share")
def stop_share(
    safety: SafetyService = Depends(get_safety),
    current_user: User = Depends(require_seeker),
) -> dict:
    return {"ended": safety.end_share(current_user.id)}


@router.get("/feed/{token}", response_model=JourneyFeedOut)
def journey_feed(
    token: str,
    safety: SafetyService = Depends(get_safety),
):
    """Public view of a shared journey. No auth: the token is the capability."""
    try:
        return safety.journey_feed(token)
    except SafeWatchError as e:
        raise http_error(e)
