"""Domain errors raised by the safety engine."""

from __future__ import annotations


class SafeWatchError(Exception):
    """Base class for safety engine errors."""


class NotFoundError(SafeWatchError):
    """Operating on an alert, journey or record that does not exist."""


class PermissionDeniedError(SafeWatchError):
    """Location access refused, or the caller may not perform the action."""


class TransientIOError(SafeWatchError):
    """A location fix or persistence write failed; retry on the next tick."""


class InvalidStateError(SafeWatchError):
    """The record exists but is in a state that forbids the operation."""


class InvalidStatusTransition(InvalidStateError):
    """An alert status update would move backwards."""

    def __init__(self, alert_id: str, current: str, requested: str) -> None:
        super().__init__(f"Alert {alert_id} cannot move from {current} to {requested}")
        self.alert_id = alert_id
        self.current = current
        self.requested = requested


class AlertExistsError(InvalidStateError):
    """An alert with the same ID is already stored."""
