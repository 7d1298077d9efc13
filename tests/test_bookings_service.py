"""
Tests for the booking service: validation order, pricing, ownership and
the double-booking re-check.
"""

from datetime import date, timedelta

from sqlalchemy import select

from app.constants.event_types import EVENT_BOOKING_RACE_DETECTED
from app.constants.reasons import Reason
from app.db.models import Booking, SystemEvent
from app.services import bookings as booking_service

TODAY = date.today()


def in_days(n: int) -> date:
    return TODAY + timedelta(days=n)


def test_create_booking(db, catalog, user):
    booking, error = booking_service.create_booking(
        db, catalog["alfama"].id, user.id, "Late check-in", in_days(10), in_days(15)
    )
    assert error is None
    assert booking.id is not None
    assert booking.comment == "Late check-in"
    assert booking_service.calculate_total_price(catalog["alfama"], booking.start_date, booking.end_date) == 600


def test_create_booking_unknown_user(db, catalog):
    booking, error = booking_service.create_booking(db, catalog["alfama"].id, 999, None, in_days(1), in_days(2))
    assert booking is None
    assert error == Reason.USER_NOT_FOUND


def test_create_booking_unknown_house(db, user):
    _, error = booking_service.create_booking(db, 999, user.id, None, in_days(1), in_days(2))
    assert error == Reason.HOUSE_NOT_FOUND


def test_create_booking_past_start(db, catalog, user):
    _, error = booking_service.create_booking(db, catalog["alfama"].id, user.id, None, in_days(-1), in_days(2))
    assert error == Reason.PAST_START_DATE


def test_create_booking_end_before_start(db, catalog, user):
    _, error = booking_service.create_booking(db, catalog["alfama"].id, user.id, None, in_days(5), in_days(3))
    assert error == Reason.PAST_END_DATE


def test_create_booking_overlap_is_inclusive(db, catalog, user, make_booking):
    make_booking(catalog["alfama"], user, in_days(10), nights=5)
    _, error = booking_service.create_booking(db, catalog["alfama"].id, user.id, None, in_days(15), in_days(18))
    assert error == Reason.NOT_AVAILABLE

    booking, error = booking_service.create_booking(db, catalog["alfama"].id, user.id, None, in_days(16), in_days(18))
    assert error is None
    assert booking is not None


def test_other_house_is_unaffected(db, catalog, user, make_booking):
    make_booking(catalog["alfama"], user, in_days(10), nights=5)
    _, error = booking_service.create_booking(db, catalog["belem"].id, user.id, None, in_days(10), in_days(15))
    assert error is None


def test_concurrent_booking_is_caught_after_flush(db, catalog, user, make_booking, monkeypatch):
    """A booking that slips past the pre-check is rolled back by the post-flush re-check."""
    existing = make_booking(catalog["alfama"], user, in_days(10), nights=5)
    monkeypatch.setattr(booking_service, "validate_house_availability", lambda *args, **kwargs: None)

    booking, error = booking_service.create_booking(
        db, catalog["alfama"].id, user.id, None, in_days(12), in_days(14)
    )

    assert booking is None
    assert error == Reason.NOT_AVAILABLE
    assert [b.id for b in db.execute(select(Booking)).scalars()] == [existing.id]
    event = db.execute(select(SystemEvent)).scalars().one()
    assert event.event_type == EVENT_BOOKING_RACE_DETECTED
    assert event.level == "WARN"
    assert event.payload["conflicting_booking_ids"] == [existing.id]


def test_update_booking_comment_only(db, catalog, user, make_booking):
    booking = make_booking(catalog["alfama"], user, in_days(-5), nights=2, comment="old")
    # Past dates are fine when the slot does not change
    updated, error = booking_service.update_booking(db, booking.id, {"comment": "new"})
    assert error is None
    assert updated.comment == "new"


def test_update_booking_clears_comment(db, catalog, user, make_booking):
    booking = make_booking(catalog["alfama"], user, in_days(3), comment="old")
    updated, error = booking_service.update_booking(db, booking.id, {"comment": None})
    assert error is None
    assert updated.comment is None


def test_update_booking_does_not_conflict_with_itself(db, catalog, user, make_booking):
    booking = make_booking(catalog["alfama"], user, in_days(10), nights=5)
    updated, error = booking_service.update_booking(db, booking.id, {"end_date": in_days(17)})
    assert error is None
    assert updated.end_date == in_days(17)


def test_update_booking_overlapping_other_booking(db, catalog, user, make_booking):
    make_booking(catalog["alfama"], user, in_days(20), nights=3)
    booking = make_booking(catalog["alfama"], user, in_days(10), nights=2)
    _, error = booking_service.update_booking(db, booking.id, {"end_date": in_days(21)})
    assert error == Reason.NOT_AVAILABLE


def test_update_booking_not_found(db):
    _, error = booking_service.update_booking(db, 999, {"comment": "x"})
    assert error == Reason.BOOKING_NOT_FOUND


def test_replace_booking(db, catalog, user, make_booking):
    booking = make_booking(catalog["alfama"], user, in_days(10), comment="keep?")
    replaced, error = booking_service.replace_booking(
        db,
        booking.id,
        {
            "house_id": catalog["ribeira"].id,
            "user_id": user.id,
            "start_date": in_days(30),
            "end_date": in_days(32),
        },
    )
    assert error is None
    assert replaced.house_id == catalog["ribeira"].id
    assert replaced.comment is None


def test_validate_booking_deletion_checks_owner(db, catalog, user, make_booking):
    booking = make_booking(catalog["alfama"], user, in_days(10))
    assert booking_service.validate_booking_deletion(db, booking.id, owner_id=user.id) is None
    assert booking_service.validate_booking_deletion(db, booking.id, owner_id=user.id + 1) == Reason.BOOKING_NOT_FOUND
    assert booking_service.validate_booking_deletion(db, 999) == Reason.BOOKING_NOT_FOUND


def test_delete_booking(db, catalog, user, make_booking):
    booking = make_booking(catalog["alfama"], user, in_days(10))
    _, error = booking_service.delete_booking(db, booking.id)
    assert error is None
    assert booking_service.find_booking_by_id(db, booking.id) is None

    _, error = booking_service.delete_booking(db, booking.id)
    assert error == Reason.BOOKING_NOT_FOUND


def test_find_bookings_by_user_actual_and_archived(db, catalog, user, make_booking):
    past = make_booking(catalog["alfama"], user, in_days(-10))
    today = make_booking(catalog["belem"], user, TODAY)
    future = make_booking(catalog["ribeira"], user, in_days(10))

    actual = booking_service.find_bookings_by_user(db, user.id, is_actual=True)
    archived = booking_service.find_bookings_by_user(db, user.id, is_actual=False)
    everything = booking_service.find_bookings_by_user(db, user.id)

    assert [b.id for b in actual] == [today.id, future.id]
    assert [b.id for b in archived] == [past.id]
    assert len(everything) == 3
