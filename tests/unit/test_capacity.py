from datetime import datetime, timedelta, timezone

from eventreg.registrations.capacity import (
    check_admission, ADMIT, REJECT, SOLD_OUT, REGISTRATION_CLOSED,
)

NOW = datetime(2030, 5, 1, 12, 0, tzinfo=timezone.utc)

def _event(**fields):
    event = {"id": "evt1", "capacity": 10, "status": "published", "registration_close_at": None}
    event.update(fields)
    return event

def test_admits_below_capacity():
    admission = check_admission(_event(), 9, now=NOW)
    assert admission.decision == ADMIT
    assert admission.admitted is True
    assert admission.reason is None

def test_rejects_when_paid_count_reaches_capacity():
    admission = check_admission(_event(), 10, now=NOW)
    assert admission.decision == REJECT
    assert admission.reason == SOLD_OUT

def test_null_capacity_is_unlimited():
    assert check_admission(_event(capacity=None), 10_000, now=NOW).admitted

def test_zero_capacity_rejects_everyone():
    assert check_admission(_event(capacity=0), 0, now=NOW).reason == SOLD_OUT

def test_sold_out_status_is_decided_by_count():
    # Statut 'sold_out' posé à la main mais une place libérée par un remboursement
    assert check_admission(_event(status="sold_out"), 9, now=NOW).admitted

def test_non_published_status_closes_registration():
    for status in ("draft", "closed", "completed", "cancelled"):
        admission = check_admission(_event(status=status), 0, now=NOW)
        assert admission.reason == REGISTRATION_CLOSED

def test_registration_close_at_in_past_closes_registration():
    past = (NOW - timedelta(minutes=1)).isoformat()
    assert check_admission(_event(registration_close_at=past), 0, now=NOW).reason == REGISTRATION_CLOSED

def test_registration_close_at_in_future_admits():
    future = (NOW + timedelta(days=1)).isoformat().replace("+00:00", "Z")
    assert check_admission(_event(registration_close_at=future), 0, now=NOW).admitted

def test_closed_takes_precedence_over_sold_out():
    assert check_admission(_event(status="closed"), 50, now=NOW).reason == REGISTRATION_CLOSED
