"""Alert escalation and journey monitoring policy constants."""

from __future__ import annotations

# Alert lifecycle statuses
STATUS_ACTIVE = "active"
STATUS_ACKNOWLEDGED = "acknowledged"
STATUS_RESOLVED = "resolved"

# Allowed forward transitions; anything else is a regression
STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    STATUS_ACTIVE: frozenset({STATUS_ACKNOWLEDGED, STATUS_RESOLVED}),
    STATUS_ACKNOWLEDGED: frozenset({STATUS_RESOLVED}),
    STATUS_RESOLVED: frozenset(),
}

# Responder actions. Only "respond" halts escalation.
ACTION_ACKNOWLEDGE = "acknowledge"
ACTION_RESPOND = "respond"

# Appended to the description when no batch produced a responder
EMERGENCY_MARKER = " [ESCALATED TO EMERGENCY SERVICES]"

# Stationary thresholds per transport mode, in milliseconds
TRANSPORT_THRESHOLDS_MS: dict[str, int] = {
    "walk": 2 * 60 * 1000,
    "bike": 1 * 60 * 1000,
    "car": 3 * 60 * 1000,
    "public": 4 * 60 * 1000,
}

DEFAULT_MOVEMENT_THRESHOLD_MS = TRANSPORT_THRESHOLDS_MS["walk"]

# Mean Earth radius in meters (haversine)
EARTH_RADIUS_M = 6_371_000.0

DISTRESS_DESCRIPTION = (
    'User activated "I feel unsafe" and did not cancel within the time limit. '
    "Immediate assistance may be needed."
)
JOURNEY_DESCRIPTION = "User has not moved for {minutes} minutes during a journey and may need assistance."
