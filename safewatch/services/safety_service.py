"""Safety engine façade.

Wires the alert store, response ledger, escalation scheduler, location feed,
journey monitors and "I feel unsafe" countdowns together. One instance lives on
``app.state.safety`` for the lifetime of the application.
"""

from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from safewatch.core.alert_policies import DISTRESS_DESCRIPTION, STATUS_ACTIVE, STATUS_RESOLVED
from safewatch.core.config import Settings, settings
from safewatch.core.errors import NotFoundError, PermissionDeniedError, TransientIOError
from safewatch.core.ids import new_id
from safewatch.core.scheduler import Countdown, TaskScheduler
from safewatch.core.ws_manager import ConnectionManager
from safewatch.models.user import ROLE_RESPONDER, ROLE_SEEKER, User
from safewatch.schemas.alert import AlertRecord, AlertResponseRecord, AlertWithResponses
from safewatch.schemas.contact import EmergencyCallPlan, EmergencyContactOut
from safewatch.schemas.journey import (
    JourneyDestination,
    JourneyFeedOut,
    JourneyStatus,
    ShareOut,
    UnsafeTimerStatus,
)
from safewatch.schemas.location import LocationFix, LocationStatus
from safewatch.services import contact_service, journey_share_service
from safewatch.services.alert_store import AlertStore, db_session
from safewatch.services.escalation_service import EscalationScheduler
from safewatch.services.journey_monitor import JourneyMonitor, JourneyMonitorRegistry
from safewatch.services.location_service import DeviceLocationFeed
from safewatch.services.response_ledger import ResponseLedger

logger = logging.getLogger(__name__)

EVENT_EMERGENCY = "alert.emergency"

# Every alert event reaches its owner plus these roles
ALERT_AUDIENCE = (ROLE_RESPONDER,)


class SafetyService:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        scheduler: TaskScheduler,
        *,
        config: Settings = settings,
        publisher: ConnectionManager | None = None,
    ) -> None:
        self._sessions = session_factory
        self.scheduler = scheduler
        self.config = config
        self._publisher = publisher

        self.location = DeviceLocationFeed()
        self.store = AlertStore(session_factory, scheduler.now)
        self.ledger = ResponseLedger(self.store, session_factory, scheduler.now)
        self.escalation = EscalationScheduler(
            self.store,
            self.ledger,
            scheduler,
            interval_seconds=config.escalation_interval_seconds,
            retry_seconds=config.escalation_retry_seconds,
            on_emergency=self._on_emergency,
        )
        self.journeys = JourneyMonitorRegistry(self._new_monitor)

        self._unsafe: dict[int, Countdown] = {}
        self._unsafe_alerts: dict[int, str] = {}
        self._unsafe_lock = threading.Lock()

        if publisher is not None:
            self.store.subscribe(self._forward)
            self.ledger.subscribe(self._forward)

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        try:
            self.escalation.resume()
        except TransientIOError:
            logger.exception("Could not resume escalation of stored alerts")

    def shutdown(self) -> None:
        self.journeys.stop_all()
        with self._unsafe_lock:
            countdowns = list(self._unsafe.values())
        for countdown in countdowns:
            countdown.cancel()
        self.escalation.shutdown()
        self.scheduler.shutdown()

    # -- alerts ------------------------------------------------------------

    def _seeker(self, user_id: int) -> User:
        with db_session(self._sessions) as db:
            user = db.get(User, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        if user.role != ROLE_SEEKER:
            raise PermissionDeniedError("Only safety seekers can do this")
        return user

    def trigger_alert(
        self,
        user_id: int,
        *,
        location: LocationFix | None = None,
        address: str | None = None,
        description: str | None = None,
        fallback: LocationFix | None = None,
    ) -> AlertRecord:
        """Raise a distress alert at the seeker's position and start escalation."""
        user = self._seeker(user_id)
        if location is not None:
            self.location.report_fix(user_id, location)
            fix = location
        else:
            try:
                fix = self.location.get_current_position(user_id)
            except (PermissionDeniedError, TransientIOError) as exc:
                if fallback is None:
                    raise
                logger.warning("No current position for user %s (%s); using last known", user_id, exc)
                fix = fallback

        now = self.scheduler.now()
        record = AlertRecord(
            id=new_id(),
            user_id=user_id,
            title=f"Distress Signal from {user.full_name}",
            description=description or DISTRESS_DESCRIPTION,
            timestamp=now,
            latitude=fix.latitude,
            longitude=fix.longitude,
            address=address or "Current Location",
            status=STATUS_ACTIVE,
            response_deadline=now + timedelta(seconds=self.config.escalation_interval_seconds),
            current_batch=1,
            max_batches=self.config.max_batches,
            responders_per_batch=self.config.responders_per_batch,
            total_responders=self.config.responders_per_batch,
        )
        alert = self.store.create(record)
        self.escalation.arm(alert)
        logger.warning(
            "Distress alert %s raised by user %s at (%.5f, %.5f); notifying %s responders",
            alert.id,
            user_id,
            alert.latitude,
            alert.longitude,
            alert.total_responders,
        )
        return alert

    def respond_to_alert(self, alert_id: str, responder_id: int, action: str) -> AlertResponseRecord:
        return self.ledger.respond(alert_id, responder_id, action)

    def _owned_alert(self, alert_id: str, user_id: int) -> AlertRecord:
        alert = self.store.get(alert_id)
        if alert.user_id != user_id:
            raise PermissionDeniedError("Not your alert")
        return alert

    def cancel_alert(self, alert_id: str, user_id: int) -> AlertRecord:
        """Owner marks the alert resolved; escalation stops through the store listener."""
        self._owned_alert(alert_id, user_id)
        alert = self.store.update(alert_id, {"status": STATUS_RESOLVED})
        logger.info("Alert %s resolved by its owner", alert_id)
        return alert

    def attach_audio(self, alert_id: str, user_id: int, audio_url: str) -> AlertRecord:
        self._owned_alert(alert_id, user_id)
        return self.store.update(alert_id, {"audio_url": audio_url})

    def get_alert(self, alert_id: str) -> AlertWithResponses:
        alert = self.store.get(alert_id)
        return AlertWithResponses(**alert.model_dump(), responses=self.ledger.list(alert_id))

    def list_alerts(self, status: str | None = None, user_id: int | None = None) -> list[AlertWithResponses]:
        return [
            AlertWithResponses(**alert.model_dump(), responses=self.ledger.list(alert.id))
            for alert in self.store.list(status=status, user_id=user_id)
        ]

    def emergency_plan(self, user_id: int) -> EmergencyCallPlan:
        with db_session(self._sessions) as db:
            contact = contact_service.get_primary_contact(db, user_id)
            primary = EmergencyContactOut.model_validate(contact) if contact is not None else None
        return EmergencyCallPlan(emergency_number=self.config.emergency_number, primary_contact=primary)

    def _on_emergency(self, alert: AlertRecord) -> None:
        plan = self.emergency_plan(alert.user_id)
        logger.warning("Alert %s: prompting emergency call to %s", alert.id, plan.emergency_number)
        if self._publisher is not None:
            self._publisher.publish(
                EVENT_EMERGENCY,
                {"alert": alert.model_dump(mode="json"), "plan": plan.model_dump(mode="json")},
                user_ids=[alert.user_id],
                roles=ALERT_AUDIENCE,
            )

    def _forward(self, event: str, payload: Any) -> None:
        if isinstance(payload, AlertResponseRecord):
            owner_id = self.store.get(payload.alert_id).user_id
        else:
            owner_id = payload.user_id
        self._publisher.publish(
            event,
            payload.model_dump(mode="json"),
            user_ids=[owner_id],
            roles=ALERT_AUDIENCE,
        )

    # -- location ----------------------------------------------------------

    def record_location(self, user_id: int, fix: LocationFix) -> None:
        self.location.report_fix(user_id, fix)
        try:
            with db_session(self._sessions) as db:
                journey_share_service.publish_location(
                    db, user_id, fix, self.config.share_publish_interval_seconds
                )
        except (TransientIOError, SQLAlchemyError) as exc:
            logger.warning("Could not publish shared position for user %s: %s", user_id, exc)

    def set_location_permission(self, user_id: int, granted: bool) -> LocationStatus:
        self.location.set_permission(user_id, granted)
        return self.location.status(user_id)

    def report_location_error(self, user_id: int, message: str) -> None:
        self.location.report_error(user_id, message)

    def location_status(self, user_id: int) -> LocationStatus:
        return self.location.status(user_id)

    # -- journeys ----------------------------------------------------------

    def _new_monitor(self, user_id: int) -> JourneyMonitor:
        return JourneyMonitor(
            user_id,
            self.scheduler,
            self.location,
            self._journey_alert,
            pre_alarm_seconds=self.config.pre_alarm_seconds,
            check_interval_seconds=self.config.inactivity_check_seconds,
            min_movement_m=self.config.min_movement_meters,
            on_stop=self._journey_stopped,
        )

    def _journey_alert(self, user_id: int, description: str, fallback: LocationFix | None) -> AlertRecord:
        return self.trigger_alert(user_id, description=description, fallback=fallback)

    def _journey_stopped(self, user_id: int) -> None:
        self.end_share(user_id)

    def start_journey(self, user_id: int, destination: JourneyDestination) -> JourneyStatus:
        self._seeker(user_id)
        return self.journeys.get(user_id).start(destination)

    def stop_journey(self, user_id: int) -> JourneyStatus:
        return self.journeys.get(user_id).stop()

    def update_movement(self, user_id: int, has_movement: bool) -> JourneyStatus:
        return self.journeys.get(user_id).update_movement(has_movement)

    def journey_status(self, user_id: int) -> JourneyStatus:
        return self.journeys.get(user_id).status()

    # -- live share --------------------------------------------------------

    def begin_share(self, user_id: int, destination: JourneyDestination) -> ShareOut:
        with db_session(self._sessions) as db:
            journey = journey_share_service.begin_share(db, user_id, destination, self.scheduler.now())
            return ShareOut(journey_id=journey.id, share_token=journey.share_token)

    def end_share(self, user_id: int) -> int:
        try:
            with db_session(self._sessions) as db:
                return journey_share_service.end_share(db, user_id, self.scheduler.now())
        except TransientIOError:
            logger.exception("Could not end shared journey for user %s", user_id)
            return 0

    def journey_feed(self, token: str) -> JourneyFeedOut:
        with db_session(self._sessions) as db:
            return journey_share_service.get_feed(db, token)

    # -- "I feel unsafe" ---------------------------------------------------

    def start_unsafe_countdown(self, user_id: int) -> UnsafeTimerStatus:
        """Start the countdown, or restart it from the full duration."""
        self._seeker(user_id)
        with self._unsafe_lock:
            countdown = self._unsafe.get(user_id)
            if countdown is None:
                countdown = Countdown(
                    self.scheduler,
                    self.config.unsafe_countdown_seconds,
                    lambda: self._unsafe_expired(user_id),
                    name=f"unsafe:{user_id}",
                )
                self._unsafe[user_id] = countdown
            self._unsafe_alerts.pop(user_id, None)
        countdown.start()
        logger.info("User %s started the unsafe countdown (%ss)", user_id, countdown.seconds)
        return self.unsafe_status(user_id)

    def cancel_unsafe_countdown(self, user_id: int) -> UnsafeTimerStatus:
        with self._unsafe_lock:
            countdown = self._unsafe.get(user_id)
        if countdown is not None and countdown.active:
            countdown.cancel()
            logger.info("User %s cancelled the unsafe countdown", user_id)
        return self.unsafe_status(user_id)

    def unsafe_status(self, user_id: int) -> UnsafeTimerStatus:
        with self._unsafe_lock:
            countdown = self._unsafe.get(user_id)
            alert_id = self._unsafe_alerts.get(user_id)
        if countdown is None or not countdown.active:
            return UnsafeTimerStatus(active=False, alert_id=alert_id)
        remaining = countdown.remaining
        phase = "pre_alarm" if remaining is not None and remaining <= self.config.unsafe_pre_alarm_seconds else "countdown"
        return UnsafeTimerStatus(active=True, remaining=remaining, phase=phase, alert_id=alert_id)

    def _unsafe_expired(self, user_id: int) -> None:
        alert = self.trigger_alert(user_id)
        with self._unsafe_lock:
            self._unsafe_alerts[user_id] = alert.id
        logger.warning("Unsafe countdown ran out for user %s; alert %s raised", user_id, alert.id)
