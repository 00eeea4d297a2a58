"""Device location feed API."""

from fastapi import APIRouter, Depends, status

from safewatch.core.deps import get_safety, require_seeker
from safewatch.models.user import User
from safewatch.schemas.location import LocationErrorReport, LocationFix, LocationStatus, PermissionUpdate
from safewatch.services.safety_service import SafetyService

router = APIRouter(prefix="/location", tags=["location"])


@router.post("", status_code=status.HTTP_204_NO_CONTENT)
def report_fix(
    data: LocationFix,
    safety: SafetyService = Depends(get_safety),
    current_user: User = Depends(require_seeker),
):
    """Push one position sample from the device."""
    safety.record_location(current_user.id, data)


@router.post("/permission", response_model=LocationStatus)
def set_permission(
    data: PermissionUpdate,
    safety: SafetyService = Depends(get_safety),
    current_user: User = Depends(require_seeker),
):
    return safety.set_location_permission(current_user.id, data.granted)


@router.post("/error", status_code=status.HTTP_204_NO_CONTENT)
def report_error(
    data: LocationErrorReport,
    safety: SafetyService = Depends(get_safety),
    current_user: User = Depends(require_seeker),
):
    """The device could not get a fix (timeout, no signal)."""
    safety.report_location_error(current_user.id, data.message)


@router.get("", response_model=LocationStatus)
def get_status(
    safety: SafetyService = Depends(get_safety),
    current_user: User = Depends(require_seeker),
):
    return safety.location_status(current_user.id)
