"""'I feel unsafe' countdown API."""

from fastapi import APIRouter, Depends

from safewatch.api.errors import http_error
from safewatch.core.deps import get_safety, require_seeker
from safewatch.core.errors import SafeWatchError
from safewatch.models.user import User
from safewatch.schemas.journey import UnsafeTimerStatus
from safewatch.services.safety_service import SafetyService

router = APIRouter(prefix="/unsafe", tags=["unsafe"])


@router.post("/start", response_model=UnsafeTimerStatus)
def start_countdown(
    safety: SafetyService = Depends(get_safety),
    current_user: User = Depends(require_seeker),
):
    """Start (or restart) the countdown. An alert is raised when it runs out."""
    try:
        return safety.start_unsafe_countdown(current_user.id)
    except SafeWatchError as e:
        raise http_error(e)


@router.post("/cancel", response_model=UnsafeTimerStatus)
def cancel_countdown(
    safety: SafetyService = Depends(get_safety),
    current_user: User = Depends(require_seeker),
):
    return safety.cancel_unsafe_countdown(current_user.id)


@router.get("/status", response_model=UnsafeTimerStatus)
def countdown_status(
    safety: SafetyService = Depends(get_safety),
    current_user: User = Depends(require_seeker),
):
    return safety.unsafe_status(current_user.id)
