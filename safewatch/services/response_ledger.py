"""Append-only ledger of responder actions on alerts."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from safewatch.core.alert_policies import (
    ACTION_ACKNOWLEDGE,
    ACTION_RESPOND,
    STATUS_ACKNOWLEDGED,
    STATUS_ACTIVE,
    STATUS_RESOLVED,
)
from safewatch.core.errors import InvalidStateError
from safewatch.core.ids import new_id
from safewatch.core.observable import Observable
from safewatch.models.alert_response import AlertResponse
from safewatch.schemas.alert import AlertResponseRecord
from safewatch.services.alert_store import AlertStore, db_session

logger = logging.getLogger(__name__)

EVENT_RESPONSE = "alert.response"

VALID_ACTIONS = frozenset({ACTION_ACKNOWLEDGE, ACTION_RESPOND})


class ResponseLedger(Observable):
    def __init__(
        self,
        store: AlertStore,
        session_factory: Callable[[], Session],
        clock: Callable[[], datetime],
    ) -> None:
        super().__init__()
        self._store = store
        self._session_factory = session_factory
        self._clock = clock

    def respond(self, alert_id: str, responder_id: int, action: str) -> AlertResponseRecord:
        """Record a responder action.

        ``respond`` also moves an active alert to acknowledged, which halts
        escalation. ``acknowledge`` is recorded only.
        """
        if action not in VALID_ACTIONS:
            raise ValueError(f"Unknown response action: {action}")
        with self._store.lock(alert_id):
            alert = self._store.get(alert_id)
            if alert.status == STATUS_RESOLVED:
                raise InvalidStateError(f"Alert {alert_id} is already resolved")
            with db_session(self._session_factory) as db:
                row = AlertResponse(
                    id=new_id(),
                    alert_id=alert_id,
                    responder_id=responder_id,
                    action=action,
                    timestamp=self._clock(),
                )
                db.add(row)
                db.commit()
                db.refresh(row)
                entry = AlertResponseRecord.model_validate(row)
            logger.info("Responder %s recorded %s on alert %s", responder_id, action, alert_id)
            if action == ACTION_RESPOND and alert.status == STATUS_ACTIVE:
                self._store.update(alert_id, {"status": STATUS_ACKNOWLEDGED})
            self._notify(EVENT_RESPONSE, entry)
        return entry

    def list(self, alert_id: str) -> list[AlertResponseRecord]:
        """Entries for an alert, oldest first. Raises NotFoundError for unknown alerts."""
        self._store.get(alert_id)
        query = (
            select(AlertResponse)
            .where(AlertResponse.alert_id == alert_id)
            .order_by(AlertResponse.timestamp.asc(), AlertResponse.id.asc())
        )
        with db_session(self._session_factory) as db:
            return [AlertResponseRecord.model_validate(row) for row in db.execute(query).scalars().all()]

    def has_action(self, alert_id: str, action: str) -> bool:
        query = (
            select(AlertResponse.id)
            .where(AlertResponse.alert_id == alert_id, AlertResponse.action == action)
            .limit(1)
        )
        with db_session(self._session_factory) as db:
            return db.execute(query).first() is not None
