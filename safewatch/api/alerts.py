"""Distress alerts API."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from safewatch.api.errors import http_error
from safewatch.core.deps import get_current_user, get_safety, require_responder, require_seeker
from safewatch.core.errors import SafeWatchError
from safewatch.models.user import ROLE_RESPONDER, User
from safewatch.schemas.alert import (
    AlertRecord,
    AlertResponseRecord,
    AlertStatus,
    AlertWithResponses,
    AudioAttachRequest,
    RespondRequest,
    TriggerAlertRequest,
)
from safewatch.schemas.contact import EmergencyCallPlan
from safewatch.services.safety_service import SafetyService


router = APIRouter(prefix="/alerts", tags=["alerts"])


@router.post("", response_model=AlertRecord, status_code=status.HTTP_201_CREATED)
def trigger_alert(
    data: TriggerAlertRequest | None = Body(default=None),
    safety: SafetyService = Depends(get_safety),
    current_user: User = Depends(require_seeker),
):
    """Raise a distress alert now. Uses the inline fix if given, else the last reported one."""
    d = data or TriggerAlertRequest()
    try:
        return safety.trigger_alert(current_user.id, location=d.location, address=d.address)
    except SafeWatchError as e:
        raise http_error(e)


@router.get("", response_model=list[AlertWithResponses])
def list_alerts(
    status_filter: AlertStatus | None = Query(default=None, alias="status"),
    safety: SafetyService = Depends(get_safety),
    current_user: User = Depends(get_current_user),
):
    """Alert feed, newest first. Seekers only see their own alerts."""
    user_id = None if current_user.role == ROLE_RESPONDER else current_user.id
    try:
        return safety.list_alerts(status=status_filter, user_id=user_id)
    except SafeWatchError as e:
        raise http_error(e)


@router.get("/emergency-plan", response_model=EmergencyCallPlan)
def emergency_plan(
    safety: SafetyService = Depends(get_safety),
    current_user: User = Depends(require_seeker),
):
    """Number to dial and the contact to call next."""
    try:
        return safety.emergency_plan(current_user.id)
    except SafeWatchError as e:
        raise http_error(e)


@router.get("/{alert_id}", response_model=AlertWithResponses)
def get_alert(
    alert_id: str,
    safety: SafetyService = Depends(get_safety),
    current_user: User = Depends(get_current_user),
):
    try:
        alert = safety.get_alert(alert_id)
    except SafeWatchError as e:
        raise http_error(e)
    if current_user.role != ROLE_RESPONDER and alert.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Alert not found")
    return alert


@router.get("/{alert_id}/responses", response_model=list[AlertResponseRecord])
def list_responses(
    alert_id: str,
    safety: SafetyService = Depends(get_safety),
    current_user: User = Depends(get_current_user),
):
    """Responder actions on the alert, oldest first."""
    try:
        alert = safety.store.get(alert_id)
        if current_user.role != ROLE_RESPONDER and alert.user_id != current_user.id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Alert not found")
        return safety.ledger.list(alert_id)
    except SafeWatchError as e:
        raise http_error(e)


@router.post("/{alert_id}/respond", response_model=AlertResponseRecord)
def respond_to_alert(
    alert_id: str,
    data: RespondRequest,
    safety: SafetyService = Depends(get_safety),
    current_user: User = Depends(require_responder),
):
    """Responder acknowledges the alert or commits to respond. Only "respond" stops escalation."""
    try:
        return safety.respond_to_alert(alert_id, current_user.id, data.action)
    except SafeWatchError as e:
        raise http_error(e)


@router.post("/{alert_id}/cancel", response_model=AlertRecord)
def cancel_alert(
    alert_id: str,
    safety: SafetyService = Depends(get_safety),
    current_user: User = Depends(require_seeker),
):
    """Owner resolves the alert. Escalation stops."""
    try:
        return safety.cancel_alert(alert_id, current_user.id)
    except SafeWatchError as e:
        raise http_error(e)


@router.post("/{alert_id}/audio", response_model=AlertRecord)
def attach_audio(
    alert_id: str,
    data: AudioAttachRequest,
    safety: SafetyService = Depends(get_safety),
    current_user: User = Depends(require_seeker),
):
    """Attach the URL of an audio recording made during the alert."""
    try:
        return safety.attach_audio(alert_id, current_user.id, data.audio_url)
    except SafeWatchError as e:
        raise http_error(e)
