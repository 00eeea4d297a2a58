"""Journey monitor tests: stationary detection, pre-alarm and alert hand-off."""

from datetime import timedelta

import pytest

from safewatch.core.errors import PermissionDeniedError, TransientIOError
from safewatch.schemas.journey import JourneyDestination
from safewatch.schemas.location import LocationFix

HOME = dict(latitude=52.3600, longitude=4.8852)


def _destination(transport="walk", name="Home"):
    return JourneyDestination(name=name, transport=transport, **HOME)


def _alerts_for(safety, user_id):
    return safety.store.list(user_id=user_id)


def test_start_sets_transport_threshold(safety, seeker):
    status = safety.start_journey(seeker.id, _destination("bike"))
    assert status.is_active
    assert status.state == "moving"
    assert status.movement_threshold_ms == 60_000
    assert status.destination.name == "Home"


def test_start_is_idempotent(safety, seeker):
    safety.start_journey(seeker.id, _destination("walk", "Home"))
    status = safety.start_journey(seeker.id, _destination("car", "Office"))
    assert status.destination.name == "Home"
    assert status.movement_threshold_ms == 120_000
    assert safety.location.watcher_count(seeker.id) == 1


def test_start_requires_location_permission(safety, seeker):
    safety.set_location_permission(seeker.id, False)
    with pytest.raises(PermissionDeniedError):
        safety.start_journey(seeker.id, _destination())
    assert not safety.journey_status(seeker.id).is_active


def test_movement_cancels_pre_alarm(safety, seeker, scheduler, fix_at):
    safety.start_journey(seeker.id, _destination("walk"))
    safety.record_location(seeker.id, fix_at(52.3702))

    scheduler.advance(119)
    status = safety.journey_status(seeker.id)
    assert status.state == "moving"
    assert not status.is_stationary

    scheduler.advance(1)
    status = safety.journey_status(seeker.id)
    assert status.state == "pre_alarm"
    assert status.is_stationary
    assert status.pre_alarm_triggered
    assert status.pre_alarm_remaining == 60

    scheduler.advance(30)
    assert safety.journey_status(seeker.id).pre_alarm_remaining == 30
    # ~33m north of the first fix
    safety.record_location(seeker.id, fix_at(52.3705))
    status = safety.journey_status(seeker.id)
    assert status.state == "moving"
    assert not status.pre_alarm_triggered
    assert status.pre_alarm_remaining is None
    assert status.last_movement == scheduler.now()

    scheduler.advance(60)
    assert _alerts_for(safety, seeker.id) == []
    assert safety.journey_status(seeker.id).is_active


def test_movement_with_stale_device_clock_counts_as_now(safety, seeker, scheduler, fix_at):
    safety.start_journey(seeker.id, _destination("walk"))
    safety.record_location(seeker.id, fix_at(52.3702))
    scheduler.advance(130)
    assert safety.journey_status(seeker.id).state == "pre_alarm"

    # ~33m away, but the device clock runs three minutes behind
    stale = LocationFix(latitude=52.3705, longitude=4.8952, timestamp=scheduler.now() - timedelta(minutes=3))
    safety.record_location(seeker.id, stale)

    status = safety.journey_status(seeker.id)
    assert status.state == "moving"
    assert not status.is_stationary
    assert not status.pre_alarm_triggered
    assert status.last_movement == scheduler.now()

    scheduler.advance(60)
    assert _alerts_for(safety, seeker.id) == []


def test_pre_alarm_expiry_raises_alert_and_stops(safety, seeker, scheduler, fix_at):
    safety.start_journey(seeker.id, _destination("walk"))
    safety.record_location(seeker.id, fix_at(52.3702))

    scheduler.advance(180)

    status = safety.journey_status(seeker.id)
    assert not status.is_active
    assert status.state == "inactive"
    assert status.alert_id is not None
    alerts = _alerts_for(safety, seeker.id)
    assert [a.id for a in alerts] == [status.alert_id]
    assert "has not moved for 3 minutes" in alerts[0].description
    assert alerts[0].latitude == pytest.approx(52.3702)
    assert safety.escalation.is_armed(status.alert_id)
    assert safety.location.watcher_count(seeker.id) == 0

    # Monitor stays quiet once stopped
    scheduler.advance(600)
    assert len(_alerts_for(safety, seeker.id)) == 1


def test_manual_movement_update(safety, seeker, scheduler):
    safety.start_journey(seeker.id, _destination("walk"))
    scheduler.advance(100)
    status = safety.update_movement(seeker.id, True)
    assert status.last_movement == scheduler.now()
    scheduler.advance(100)
    status = safety.journey_status(seeker.id)
    assert status.state == "moving"
    assert status.stationary_duration_ms == 100_000


def test_update_movement_without_journey_is_noop(safety, seeker):
    status = safety.update_movement(seeker.id, True)
    assert not status.is_active
    assert status.last_movement is None


def test_stop_cancels_all_timers(safety, seeker, scheduler):
    safety.start_journey(seeker.id, _destination("bike"))
    scheduler.advance(70)
    assert safety.journey_status(seeker.id).state == "pre_alarm"

    status = safety.stop_journey(seeker.id)
    assert not status.is_active
    assert safety.location.watcher_count(seeker.id) == 0
    scheduler.advance(600)
    assert _alerts_for(safety, seeker.id) == []


def test_no_gps_falls_back_to_destination(safety, seeker, scheduler):
    """With no fix at all the alert still goes out, placed at the destination."""
    safety.start_journey(seeker.id, _destination("walk"))
    scheduler.advance(180)
    alerts = _alerts_for(safety, seeker.id)
    assert len(alerts) == 1
    assert alerts[0].latitude == pytest.approx(HOME["latitude"])


def test_location_errors_do_not_reset_movement(safety, seeker, scheduler):
    safety.start_journey(seeker.id, _destination("walk"))
    scheduler.advance(60)
    safety.report_location_error(seeker.id, "GPS timeout")
    status = safety.journey_status(seeker.id)
    assert status.is_active
    assert status.stationary_duration_ms == 60_000


def test_failed_alert_is_retried_next_second(safety, seeker, scheduler, fix_at, monkeypatch):
    safety.start_journey(seeker.id, _destination("walk"))
    safety.record_location(seeker.id, fix_at())
    real_create = safety.store.create
    calls = {"n": 0}

    def flaky_create(record):
        calls["n"] += 1
        if calls["n"] == 1:
            raise TransientIOError("database is locked")
        return real_create(record)

    monkeypatch.setattr(safety.store, "create", flaky_create)
    scheduler.advance(180)
    assert _alerts_for(safety, seeker.id) == []
    assert safety.journey_status(seeker.id).state == "pre_alarm"

    scheduler.advance(1)
    assert len(_alerts_for(safety, seeker.id)) == 1
    assert not safety.journey_status(seeker.id).is_active
