"""Journey monitoring: stationary detection, pre-alarm countdown and alert hand-off.

One ``JourneyMonitor`` exists per seeker. While a journey is active it watches
the seeker's location feed, re-evaluates inactivity every second, and after a
pre-alarm countdown with no movement raises a distress alert through the
``trigger_alert`` callable it was given.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable

from safewatch.core.alert_policies import (
    DEFAULT_MOVEMENT_THRESHOLD_MS,
    JOURNEY_DESCRIPTION,
    TRANSPORT_THRESHOLDS_MS,
)
from safewatch.core.scheduler import Countdown, TaskScheduler, Ticker
from safewatch.schemas.alert import AlertRecord
from safewatch.schemas.journey import JourneyDestination, JourneyStatus
from safewatch.schemas.location import LocationFix
from safewatch.services.geo_service import MovementClassifier, is_stationary, stationary_duration_ms
from safewatch.services.location_service import DeviceLocationFeed, LocationWatch

logger = logging.getLogger(__name__)

STATE_INACTIVE = "inactive"
STATE_MOVING = "moving"
STATE_STATIONARY = "stationary"
STATE_PRE_ALARM = "pre_alarm"
STATE_ESCALATED = "escalated"

# (user_id, description, fallback fix) -> stored alert
TriggerAlert = Callable[[int, str, LocationFix | None], AlertRecord]


class JourneyMonitor:
    def __init__(
        self,
        user_id: int,
        scheduler: TaskScheduler,
        location_feed: DeviceLocationFeed,
        trigger_alert: TriggerAlert,
        *,
        pre_alarm_seconds: int = 60,
        check_interval_seconds: float = 1,
        min_movement_m: float = 15.0,
        on_stop: Callable[[int], None] | None = None,
    ) -> None:
        self.user_id = user_id
        self._scheduler = scheduler
        self._feed = location_feed
        self._trigger_alert = trigger_alert
        self._on_stop = on_stop
        self._lock = threading.RLock()
        self._classifier = MovementClassifier(min_movement_m)
        self._watch: LocationWatch | None = None
        self._last_fix: LocationFix | None = None
        self._checker = Ticker(scheduler, check_interval_seconds, self.tick, name=f"journey-check:{user_id}")
        self._countdown = Countdown(
            scheduler, pre_alarm_seconds, self._pre_alarm_expired, name=f"journey-pre-alarm:{user_id}"
        )

        self.state = STATE_INACTIVE
        self.destination: JourneyDestination | None = None
        self.start_time: datetime | None = None
        self.last_movement: datetime | None = None
        self.is_stationary = False
        self.stationary_duration_ms = 0
        self.movement_threshold_ms = DEFAULT_MOVEMENT_THRESHOLD_MS
        self.pre_alarm_triggered = False
        self.alert_id: str | None = None

    @property
    def is_active(self) -> bool:
        return self.state != STATE_INACTIVE

    def start(self, destination: JourneyDestination) -> JourneyStatus:
        """Begin monitoring. Starting an already active journey changes nothing."""
        with self._lock:
            if self.is_active:
                logger.info("Journey for user %s already active; start ignored", self.user_id)
                return self.status()
            self._feed.check_permission(self.user_id)

            now = self._scheduler.now()
            self.destination = destination
            self.start_time = now
            self.last_movement = now
            self.is_stationary = False
            self.stationary_duration_ms = 0
            self.movement_threshold_ms = TRANSPORT_THRESHOLDS_MS.get(
                destination.transport, DEFAULT_MOVEMENT_THRESHOLD_MS
            )
            self.pre_alarm_triggered = False
            self.alert_id = None
            self._last_fix = None
            self._classifier.reset()
            self.state = STATE_MOVING

            self._watch = self._feed.watch_position(self.user_id, self.sample, self.sample_failed)
            self._checker.start()
            logger.info(
                "Journey started for user %s to %s by %s (stationary after %ss)",
                self.user_id,
                destination.name,
                destination.transport,
                self.movement_threshold_ms // 1000,
            )
            return self.status()

    def sample(self, fix: LocationFix) -> None:
        """Feed one position sample from the location watch."""
        with self._lock:
            if not self.is_active:
                return
            self._last_fix = fix
            reading = self._classifier.classify(fix)
            now = self._scheduler.now()
            if reading.moved:
                logger.debug("User %s moved %.1fm", self.user_id, reading.distance_m)
                # Stamped with the receive time, not the device's clock
                self._record_movement(now)
            self._evaluate(now)

    def sample_failed(self, exc: Exception) -> None:
        logger.warning(
            "Location sample failed for user %s (%s); last movement stays at %s",
            self.user_id,
            exc,
            self.last_movement,
        )

    def update_movement(self, has_movement: bool) -> JourneyStatus:
        """Manual movement report; a no-op while no journey is active."""
        with self._lock:
            if not self.is_active:
                return self.status()
            now = self._scheduler.now()
            if has_movement:
                self._record_movement(now)
            self._evaluate(now)
            return self.status()

    def tick(self) -> None:
        with self._lock:
            if self.is_active:
                self._evaluate(self._scheduler.now())

    def stop(self) -> JourneyStatus:
        with self._lock:
            was_active = self.is_active
            self._checker.stop()
            self._countdown.cancel()
            if self._watch is not None:
                self._watch.unsubscribe()
                self._watch = None
            self.state = STATE_INACTIVE
            self.destination = None
            self.start_time = None
            self.last_movement = None
            self._last_fix = None
            self.is_stationary = False
            self.stationary_duration_ms = 0
            self.pre_alarm_triggered = False
            if was_active:
                logger.info("Journey stopped for user %s", self.user_id)
            snapshot = self.status()
        if was_active and self._on_stop is not None:
            try:
                self._on_stop(self.user_id)
            except Exception:
                logger.exception("Journey stop hook failed for user %s", self.user_id)
        return snapshot

    def status(self) -> JourneyStatus:
        with self._lock:
            return JourneyStatus(
                state=self.state,
                is_active=self.is_active,
                destination=self.destination,
                start_time=self.start_time,
                last_movement=self.last_movement,
                is_stationary=self.is_stationary,
                stationary_duration_ms=self.stationary_duration_ms,
                movement_threshold_ms=self.movement_threshold_ms,
                pre_alarm_triggered=self.pre_alarm_triggered,
                pre_alarm_remaining=self._countdown.remaining if self.state == STATE_PRE_ALARM else None,
                alert_id=self.alert_id,
            )

    def _record_movement(self, at: datetime) -> None:
        if self.last_movement is None or at > self.last_movement:
            self.last_movement = at
        if self.state == STATE_PRE_ALARM:
            self._countdown.cancel()
            logger.info("User %s moved again; pre-alarm cancelled", self.user_id)
        self.pre_alarm_triggered = False
        self.state = STATE_MOVING

    def _evaluate(self, now: datetime) -> None:
        self.stationary_duration_ms = stationary_duration_ms(now, self.last_movement)
        self.is_stationary = is_stationary(self.stationary_duration_ms, self.movement_threshold_ms)
        if self.state == STATE_PRE_ALARM:
            return
        if not self.is_stationary:
            self.state = STATE_MOVING
            return
        self.state = STATE_STATIONARY
        if not self.pre_alarm_triggered:
            self.pre_alarm_triggered = True
            self.state = STATE_PRE_ALARM
            self._countdown.start()
            logger.warning(
                "User %s stationary for %ss; pre-alarm countdown of %ss started",
                self.user_id,
                self.stationary_duration_ms // 1000,
                self._countdown.seconds,
            )

    def _fallback_fix(self) -> LocationFix | None:
        if self._last_fix is not None:
            return self._last_fix
        if self.destination is None:
            return None
        return LocationFix(
            latitude=self.destination.latitude,
            longitude=self.destination.longitude,
            timestamp=self._scheduler.now(),
        )

    def _pre_alarm_expired(self) -> None:
        with self._lock:
            if self.state != STATE_PRE_ALARM:
                return
            minutes = max(1, round(self.stationary_duration_ms / 60000))
            # Raises on failure; the countdown then retries on its next tick
            alert = self._trigger_alert(
                self.user_id,
                JOURNEY_DESCRIPTION.format(minutes=minutes),
                self._fallback_fix(),
            )
            self.alert_id = alert.id
            self.state = STATE_ESCALATED
            logger.error("Pre-alarm expired for user %s; alert %s raised", self.user_id, alert.id)
        self.stop()


class JourneyMonitorRegistry:
    """One monitor per seeker, created on first use."""

    def __init__(self, factory: Callable[[int], JourneyMonitor]) -> None:
        self._factory = factory
        self._monitors: dict[int, JourneyMonitor] = {}
        self._lock = threading.Lock()

    def get(self, user_id: int) -> JourneyMonitor:
        with self._lock:
            monitor = self._monitors.get(user_id)
            if monitor is None:
                monitor = self._factory(user_id)
                self._monitors[user_id] = monitor
            return monitor

    def find(self, user_id: int) -> JourneyMonitor | None:
        with self._lock:
            return self._monitors.get(user_id)

    def stop_all(self) -> None:
        with self._lock:
            monitors = list(self._monitors.values())
        for monitor in monitors:
            monitor.stop()
