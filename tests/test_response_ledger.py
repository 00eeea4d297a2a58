"""Response ledger tests."""

import pytest

from safewatch.core.alert_policies import STATUS_ACKNOWLEDGED, STATUS_ACTIVE
from safewatch.core.errors import InvalidStateError, NotFoundError


def test_acknowledge_is_recorded_without_status_change(safety, seeker, responder, fix_at):
    alert = safety.trigger_alert(seeker.id, location=fix_at())
    entry = safety.respond_to_alert(alert.id, responder.id, "acknowledge")
    assert entry.action == "acknowledge"
    assert safety.store.get(alert.id).status == STATUS_ACTIVE
    assert safety.ledger.has_action(alert.id, "acknowledge")
    assert not safety.ledger.has_action(alert.id, "respond")


def test_respond_acknowledges_alert(safety, seeker, responder, fix_at):
    alert = safety.trigger_alert(seeker.id, location=fix_at())
    safety.respond_to_alert(alert.id, responder.id, "respond")
    assert safety.store.get(alert.id).status == STATUS_ACKNOWLEDGED


def test_entries_listed_oldest_first(safety, seeker, make_user, scheduler, fix_at):
    alert = safety.trigger_alert(seeker.id, location=fix_at())
    first, second = make_user("responder"), make_user("responder")
    safety.respond_to_alert(alert.id, first.id, "acknowledge")
    scheduler.advance(3)
    safety.respond_to_alert(alert.id, second.id, "respond")
    entries = safety.ledger.list(alert.id)
    assert [(e.responder_id, e.action) for e in entries] == [
        (first.id, "acknowledge"),
        (second.id, "respond"),
    ]


def test_response_on_unknown_alert(safety, responder):
    with pytest.raises(NotFoundError):
        safety.respond_to_alert("missing", responder.id, "respond")


def test_response_on_resolved_alert(safety, seeker, responder, fix_at):
    alert = safety.trigger_alert(seeker.id, location=fix_at())
    safety.cancel_alert(alert.id, seeker.id)
    with pytest.raises(InvalidStateError):
        safety.respond_to_alert(alert.id, responder.id, "acknowledge")
    assert safety.ledger.list(alert.id) == []


def test_unknown_action_rejected(safety, seeker, responder, fix_at):
    alert = safety.trigger_alert(seeker.id, location=fix_at())
    with pytest.raises(ValueError):
        safety.respond_to_alert(alert.id, responder.id, "decline")
