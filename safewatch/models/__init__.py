"""SQLAlchemy models."""

from __future__ import annotations

from safewatch.models.alert import Alert
from safewatch.models.alert_response import AlertResponse
from safewatch.models.emergency_contact import EmergencyContact
from safewatch.models.shared_journey import JourneyLocation, SharedJourney
from safewatch.models.user import User

__all__ = [
    "User",
    "Alert",
    "AlertResponse",
    "EmergencyContact",
    "SharedJourney",
    "JourneyLocation",
]
