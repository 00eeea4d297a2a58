"""Durable alert store.

All mutations of one alert are serialised on a per-alert lock, and listeners
are notified while that lock is still held so they observe mutations in the
order they were applied.
"""

from __future__ import annotations

import logging
import threading
import weakref
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Iterator

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session

from safewatch.core.alert_policies import STATUS_ACTIVE, STATUS_TRANSITIONS
from safewatch.core.errors import (
    AlertExistsError,
    InvalidStateError,
    InvalidStatusTransition,
    NotFoundError,
    TransientIOError,
)
from safewatch.core.observable import Observable
from safewatch.models.alert import Alert
from safewatch.schemas.alert import AlertRecord

logger = logging.getLogger(__name__)

EVENT_CREATED = "alert.created"
EVENT_UPDATED = "alert.updated"

# Identity, owner, origin and bookkeeping columns are fixed at creation
UPDATABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "address",
        "status",
        "response_deadline",
        "current_batch",
        "responders_per_batch",
        "total_responders",
        "audio_url",
        "emergency_escalated",
    }
)


@contextmanager
def db_session(session_factory: Callable[[], Session]) -> Iterator[Session]:
    """Session scope that turns driver and connection failures into TransientIOError."""
    db = session_factory()
    try:
        yield db
    except DBAPIError as exc:
        db.rollback()
        logger.warning("Database operation failed: %s", exc.__class__.__name__)
        raise TransientIOError(str(exc.orig) if exc.orig is not None else str(exc)) from exc
    finally:
        db.close()


def check_transition(alert_id: str, current: str, requested: str) -> None:
    if requested == current:
        return
    if requested not in STATUS_TRANSITIONS.get(current, frozenset()):
        raise InvalidStatusTransition(alert_id, current, requested)


class AlertStore(Observable):
    def __init__(self, session_factory: Callable[[], Session], clock: Callable[[], datetime]) -> None:
        super().__init__()
        self._session_factory = session_factory
        self._clock = clock
        # Entries vanish once no caller holds the lock any more
        self._locks: weakref.WeakValueDictionary[str, threading.RLock] = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def lock(self, alert_id: str) -> threading.RLock:
        """Re-entrant lock guarding every read-modify-write of one alert."""
        with self._locks_guard:
            lock = self._locks.get(alert_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[alert_id] = lock
            return lock

    def create(self, alert: AlertRecord) -> AlertRecord:
        if alert.status != STATUS_ACTIVE:
            raise InvalidStateError(f"New alerts must be {STATUS_ACTIVE}, got {alert.status}")
        now = self._clock()
        with self.lock(alert.id):
            with db_session(self._session_factory) as db:
                if db.get(Alert, alert.id) is not None:
                    raise AlertExistsError(f"Alert {alert.id} already exists")
                row = Alert(
                    **alert.model_dump(exclude={"created_at", "updated_at"}),
                    created_at=now,
                    updated_at=now,
                )
                db.add(row)
                try:
                    db.commit()
                except IntegrityError as exc:
                    db.rollback()
                    raise AlertExistsError(f"Alert {alert.id} already exists") from exc
                db.refresh(row)
                stored = AlertRecord.model_validate(row)
            logger.info("Alert %s stored for user %s", stored.id, stored.user_id)
            self._notify(EVENT_CREATED, stored)
        return stored

    def get(self, alert_id: str) -> AlertRecord:
        with db_session(self._session_factory) as db:
            row = db.get(Alert, alert_id)
            if row is None:
                raise NotFoundError(f"Alert {alert_id} not found")
            return AlertRecord.model_validate(row)

    def update(self, alert_id: str, changes: dict[str, Any]) -> AlertRecord:
        return self.modify(alert_id, lambda current: changes)

    def modify(
        self,
        alert_id: str,
        decide: Callable[[AlertRecord], dict[str, Any] | None],
    ) -> AlertRecord:
        """Apply the changes ``decide`` computes from the current record, atomically.

        Returning an empty dict (or None) leaves the alert untouched and emits
        nothing.
        """
        with self.lock(alert_id):
            with db_session(self._session_factory) as db:
                row = db.get(Alert, alert_id)
                if row is None:
                    raise NotFoundError(f"Alert {alert_id} not found")
                current = AlertRecord.model_validate(row)
                changes = decide(current)
                if not changes:
                    return current
                self._validate(current, changes)
                for name, value in changes.items():
                    setattr(row, name, value)
                row.updated_at = self._clock()
                db.commit()
                db.refresh(row)
                stored = AlertRecord.model_validate(row)
            self._notify(EVENT_UPDATED, stored)
            return stored

    def _validate(self, current: AlertRecord, changes: dict[str, Any]) -> None:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        if "status" in changes:
            check_transition(current.id, current.status, changes["status"])
        batch = changes.get("current_batch", current.current_batch)
        if batch < current.current_batch or batch > current.max_batches:
            raise InvalidStateError(
                f"Alert {current.id} batch must stay within {current.current_batch}..{current.max_batches}"
            )
        if changes.get("total_responders", current.total_responders) < current.total_responders:
            raise InvalidStateError(f"Alert {current.id} responder count cannot decrease")

    def list(self, status: str | None = None, user_id: int | None = None) -> list[AlertRecord]:
        """Alerts newest first."""
        query = select(Alert)
        if status is not None:
            query = query.where(Alert.status == status)
        if user_id is not None:
            query = query.where(Alert.user_id == user_id)
        query = query.order_by(Alert.timestamp.desc(), Alert.id.desc())
        with db_session(self._session_factory) as db:
            return [AlertRecord.model_validate(row) for row in db.execute(query).scalars().all()]
