"""
Booking service - create/replace/update/delete bookings and availability checks.

Business-rule failures come back as Reason values, never as exceptions.

Double-booking protection:
- The house row is locked (SELECT ... FOR UPDATE) for the check-then-insert window
  on databases that support it.
- After the write is flushed, overlaps are re-checked inside the same transaction;
  if a concurrent booking became visible the write is rolled back and
  NOT_AVAILABLE is returned.
"""

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.constants.event_types import EVENT_BOOKING_RACE_DETECTED
from app.constants.reasons import Reason
from app.db.helpers import commit_and_refresh
from app.db.models import Booking, House
from app.services import availability
from app.services.users import find_user_by_id

logger = logging.getLogger(__name__)


def calculate_total_price(house: House, start_date: date, end_date: date) -> int:
    return availability.calculate_total_price(house.price_per_night, start_date, end_date)


def validate_booking_dates(start_date: date, end_date: date, today: date | None = None) -> Reason | None:
    return availability.validate_booking_dates(start_date, end_date, today=today)


def _house_bookings(db: Session, house_id: int, start_date: date, end_date: date) -> list[Booking]:
    # Coarse SQL pre-filter; the exact inclusive test lives in availability
    stmt = select(Booking).where(
        Booking.house_id == house_id,
        Booking.start_date <= end_date,
        Booking.end_date >= start_date,
    )
    return list(db.execute(stmt).scalars().all())


def validate_house_availability(
    db: Session,
    house: House,
    start_date: date,
    end_date: date,
    exclude_booking_id: int | None = None,
) -> Reason | None:
    """NOT_AVAILABLE when another booking of the house overlaps the span."""
    bookings = _house_bookings(db, house.id, start_date, end_date)
    if availability.is_available(bookings, start_date, end_date, exclude_id=exclude_booking_id):
        return None
    return Reason.NOT_AVAILABLE


def _lock_house(db: Session, house_id: int) -> House | None:
    stmt = select(House).where(House.id == house_id).with_for_update()
    return db.execute(stmt).scalar_one_or_none()


def _flush_and_recheck(db: Session, booking: Booking) -> Reason | None:
    """Flush the pending write and roll back if it now overlaps another booking."""
    db.flush()
    conflicts = availability.find_conflicts(
        _house_bookings(db, booking.house_id, booking.start_date, booking.end_date),
        booking.start_date,
        booking.end_date,
        exclude_id=booking.id,
    )
    if not conflicts:
        return None

    house_id = booking.house_id
    conflict_ids = [c.id for c in conflicts]
    db.rollback()
    logger.warning(f"Concurrent booking detected for house {house_id}: conflicts with {conflict_ids}")
    from app.services.system_event_service import warn

    warn(
        db=db,
        event_type=EVENT_BOOKING_RACE_DETECTED,
        payload={"house_id": house_id, "conflicting_booking_ids": conflict_ids},
    )
    return Reason.NOT_AVAILABLE


def create_booking(
    db: Session,
    house_id: int,
    user_id: int,
    comment: str | None,
    start_date: date,
    end_date: date,
    today: date | None = None,
) -> tuple[Booking | None, Reason | None]:
    """
    Create a booking after validating owner, house, dates and availability.

    Returns:
        (booking, None) on success, (None, reason) otherwise.
    """
    if find_user_by_id(db, user_id) is None:
        return None, Reason.USER_NOT_FOUND

    house = _lock_house(db, house_id)
    if house is None:
        return None, Reason.HOUSE_NOT_FOUND

    error = validate_booking_dates(start_date, end_date, today=today)
    if error:
        db.rollback()
        return None, error

    error = validate_house_availability(db, house, start_date, end_date)
    if error:
        db.rollback()
        return None, error

    booking = Booking(
        house_id=house.id,
        user_id=user_id,
        comment=comment,
        start_date=start_date,
        end_date=end_date,
    )
    db.add(booking)
    error = _flush_and_recheck(db, booking)
    if error:
        return None, error

    commit_and_refresh(db, booking)
    logger.info(f"Booking {booking.id} created for house {house_id} ({start_date} to {end_date})")
    return booking, None


def _validate_new_slot(
    db: Session,
    booking: Booking,
    house_id: int,
    start_date: date,
    end_date: date,
    today: date | None,
) -> Reason | None:
    house = _lock_house(db, house_id)
    if house is None:
        return Reason.HOUSE_NOT_FOUND
    error = validate_booking_dates(start_date, end_date, today=today)
    if error:
        return error
    return validate_house_availability(db, house, start_date, end_date, exclude_booking_id=booking.id)


def replace_booking(
    db: Session,
    booking_id: int,
    fields: dict,
    today: date | None = None,
) -> tuple[Booking | None, Reason | None]:
    """Full overwrite of a booking (house, owner, comment and dates)."""
    booking = find_booking_by_id(db, booking_id)
    if booking is None:
        return None, Reason.BOOKING_NOT_FOUND
    if find_user_by_id(db, fields["user_id"]) is None:
        return None, Reason.USER_NOT_FOUND

    error = _validate_new_slot(db, booking, fields["house_id"], fields["start_date"], fields["end_date"], today)
    if error:
        db.rollback()
        return None, error

    booking.house_id = fields["house_id"]
    booking.user_id = fields["user_id"]
    booking.comment = fields.get("comment")
    booking.start_date = fields["start_date"]
    booking.end_date = fields["end_date"]

    error = _flush_and_recheck(db, booking)
    if error:
        return None, error
    commit_and_refresh(db, booking)
    return booking, None


def update_booking(
    db: Session,
    booking_id: int,
    fields: dict,
    today: date | None = None,
) -> tuple[Booking | None, Reason | None]:
    """
    Partial update. Required columns given as None keep their value; a
    present "comment" key always wins, so None clears the comment.
    The slot is re-validated only when house or dates change.
    """
    booking = find_booking_by_id(db, booking_id)
    if booking is None:
        return None, Reason.BOOKING_NOT_FOUND

    user_id = fields.get("user_id")
    if user_id is not None and find_user_by_id(db, user_id) is None:
        return None, Reason.USER_NOT_FOUND

    house_id = fields.get("house_id") or booking.house_id
    start_date = fields.get("start_date") or booking.start_date
    end_date = fields.get("end_date") or booking.end_date
    slot_changed = (house_id, start_date, end_date) != (booking.house_id, booking.start_date, booking.end_date)

    if slot_changed:
        error = _validate_new_slot(db, booking, house_id, start_date, end_date, today)
        if error:
            db.rollback()
            return None, error

    booking.house_id = house_id
    booking.start_date = start_date
    booking.end_date = end_date
    if user_id is not None:
        booking.user_id = user_id
    if "comment" in fields:
        booking.comment = fields["comment"]

    if slot_changed:
        error = _flush_and_recheck(db, booking)
        if error:
            return None, error
    commit_and_refresh(db, booking)
    return booking, None


def validate_booking_deletion(db: Session, booking_id: int, owner_id: int | None = None) -> Reason | None:
    """
    The booking must exist and, when owner_id is given, belong to that user.
    Someone else's booking is reported as not found.
    """
    booking = find_booking_by_id(db, booking_id)
    if booking is None:
        return Reason.BOOKING_NOT_FOUND
    if owner_id is not None and booking.user_id != owner_id:
        return Reason.BOOKING_NOT_FOUND
    return None


def delete_booking(db: Session, booking_id: int) -> tuple[Booking | None, Reason | None]:
    booking = find_booking_by_id(db, booking_id)
    if booking is None:
        return None, Reason.BOOKING_NOT_FOUND
    db.delete(booking)
    db.commit()
    logger.info(f"Booking {booking_id} deleted")
    return booking, None


def find_all_bookings(db: Session) -> list[Booking]:
    return list(db.execute(select(Booking).order_by(Booking.id)).scalars().all())


def find_booking_by_id(db: Session, booking_id: int) -> Booking | None:
    return db.get(Booking, booking_id)


def find_bookings_by_user(
    db: Session,
    user_id: int,
    is_actual: bool | None = None,
    today: date | None = None,
) -> list[Booking]:
    """
    Bookings of a user, optionally filtered to actual (start today or later)
    or archived (started before today).
    """
    stmt = select(Booking).where(Booking.user_id == user_id).order_by(Booking.start_date, Booking.id)
    if is_actual is not None:
        today = today or date.today()
        if is_actual:
            stmt = stmt.where(Booking.start_date >= today)
        else:
            stmt = stmt.where(Booking.start_date < today)
    return list(db.execute(stmt).scalars().all())
