"""Batched escalation of unanswered alerts.

Each active alert has at most one pending check, due at its response deadline.
A check that finds no ``respond`` entry widens the alert to the next batch of
responders; after the last batch the alert is handed to emergency services.
"""

from __future__ import annotations

import logging
import threading
from datetime import timedelta
from enum import Enum
from typing import Any, Callable

from safewatch.core.alert_policies import ACTION_RESPOND, EMERGENCY_MARKER, STATUS_ACKNOWLEDGED, STATUS_ACTIVE
from safewatch.core.errors import NotFoundError, TransientIOError
from safewatch.core.scheduler import ScheduledTask, TaskScheduler
from safewatch.schemas.alert import AlertRecord
from safewatch.services.alert_store import EVENT_UPDATED, AlertStore
from safewatch.services.response_ledger import ResponseLedger

logger = logging.getLogger(__name__)


class EscalationOutcome(str, Enum):
    ESCALATED = "escalated"
    EMERGENCY = "emergency"
    RESPONDED = "responded"
    INACTIVE = "inactive"
    MISSING = "missing"


class EscalationScheduler:
    def __init__(
        self,
        store: AlertStore,
        ledger: ResponseLedger,
        scheduler: TaskScheduler,
        *,
        interval_seconds: int = 120,
        retry_seconds: int = 10,
        on_emergency: Callable[[AlertRecord], None] | None = None,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._scheduler = scheduler
        self.interval_seconds = interval_seconds
        self.retry_seconds = retry_seconds
        self._on_emergency = on_emergency
        self._tasks: dict[str, ScheduledTask] = {}
        self._lock = threading.Lock()
        store.subscribe(self._on_alert_event)

    def arm(self, alert: AlertRecord) -> None:
        """Schedule the next check for ``alert`` at its response deadline."""
        now = self._scheduler.now()
        deadline = alert.response_deadline or now + timedelta(seconds=self.interval_seconds)
        self._schedule(alert.id, max(0.0, (deadline - now).total_seconds()))

    def disarm(self, alert_id: str) -> bool:
        with self._lock:
            task = self._tasks.pop(alert_id, None)
        if task is None:
            return False
        task.cancel()
        logger.info("Escalation for alert %s stopped", alert_id)
        return True

    def is_armed(self, alert_id: str) -> bool:
        with self._lock:
            return alert_id in self._tasks

    def resume(self) -> int:
        """Re-arm every stored active alert, e.g. after a restart."""
        count = 0
        for alert in self._store.list(status=STATUS_ACTIVE):
            self.arm(alert)
            count += 1
        if count:
            logger.info("Resumed escalation for %s active alerts", count)
        return count

    def shutdown(self) -> None:
        with self._lock:
            tasks = list(self._tasks.values())
            self._tasks.clear()
        for task in tasks:
            task.cancel()

    def _schedule(self, alert_id: str, delay_seconds: float) -> None:
        with self._lock:
            previous = self._tasks.pop(alert_id, None)
            if previous is not None:
                previous.cancel()
            holder: list[ScheduledTask] = []

            def fire() -> None:
                with self._lock:
                    if not holder or self._tasks.get(alert_id) is not holder[0]:
                        return
                    del self._tasks[alert_id]
                self._run_check(alert_id)

            task = self._scheduler.schedule(delay_seconds, fire, name=f"escalation:{alert_id}")
            holder.append(task)
            self._tasks[alert_id] = task

    def _run_check(self, alert_id: str) -> None:
        try:
            self.check(alert_id)
        except TransientIOError as exc:
            logger.warning(
                "Escalation check for alert %s failed (%s); retrying in %ss", alert_id, exc, self.retry_seconds
            )
            self._schedule(alert_id, self.retry_seconds)
        except Exception:
            logger.exception("Escalation check for alert %s crashed; retrying in %ss", alert_id, self.retry_seconds)
            self._schedule(alert_id, self.retry_seconds)

    def check(self, alert_id: str) -> EscalationOutcome:
        """Run one escalation step for ``alert_id`` now."""
        with self._store.lock(alert_id):
            try:
                alert = self._store.get(alert_id)
            except NotFoundError:
                logger.info("Alert %s no longer exists; escalation dropped", alert_id)
                return EscalationOutcome.MISSING
            if alert.status != STATUS_ACTIVE:
                return EscalationOutcome.INACTIVE
            if self._ledger.has_action(alert_id, ACTION_RESPOND):
                return EscalationOutcome.RESPONDED

            if alert.current_batch < alert.max_batches:
                updated = self._store.update(
                    alert_id,
                    {
                        "current_batch": alert.current_batch + 1,
                        "response_deadline": self._scheduler.now() + timedelta(seconds=self.interval_seconds),
                        "total_responders": alert.total_responders + alert.responders_per_batch,
                    },
                )
                logger.warning(
                    "No response to alert %s; escalating to batch %s/%s (%s more responders, %s total)",
                    alert_id,
                    updated.current_batch,
                    updated.max_batches,
                    updated.responders_per_batch,
                    updated.total_responders,
                )
                self.arm(updated)
                return EscalationOutcome.ESCALATED

            updated = self._store.update(
                alert_id,
                {
                    "status": STATUS_ACKNOWLEDGED,
                    "emergency_escalated": True,
                    "description": alert.description + EMERGENCY_MARKER,
                },
            )
            logger.error(
                "Alert %s unanswered after %s batches; escalated to emergency services",
                alert_id,
                alert.max_batches,
            )

        if self._on_emergency is not None:
            try:
                self._on_emergency(updated)
            except Exception:
                logger.exception("Emergency hand-off hook failed for alert %s", alert_id)
        return EscalationOutcome.EMERGENCY

    def _on_alert_event(self, event: str, alert: Any) -> None:
        if event == EVENT_UPDATED and alert.status != STATUS_ACTIVE:
            self.disarm(alert.id)
