"""
Booking availability rules.

Pure functions over calendar-date spans; no database access. Spans are
closed intervals at day granularity, so a stay ending on day X conflicts with
one starting on day X.
"""

from collections.abc import Iterable
from datetime import date
from typing import Protocol

from app.constants.reasons import Reason


class DateSpan(Protocol):
    start_date: date
    end_date: date


def spans_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """Inclusive overlap test: a.start <= b.end and b.start <= a.end."""
    return start_a <= end_b and start_b <= end_a


def find_conflicts(
    bookings: Iterable[DateSpan],
    start_date: date,
    end_date: date,
    exclude_id: int | None = None,
) -> list[DateSpan]:
    """
    Return the bookings whose span overlaps [start_date, end_date].

    exclude_id skips one booking (the one being updated) so it does not
    conflict with itself.
    """
    conflicts = []
    for booking in bookings:
        if exclude_id is not None and getattr(booking, "id", None) == exclude_id:
            continue
        if spans_overlap(booking.start_date, booking.end_date, start_date, end_date):
            conflicts.append(booking)
    return conflicts


def is_available(
    bookings: Iterable[DateSpan],
    start_date: date,
    end_date: date,
    exclude_id: int | None = None,
) -> bool:
    """True when none of the house's bookings overlap the requested span."""
    return not find_conflicts(bookings, start_date, end_date, exclude_id=exclude_id)


def validate_booking_dates(start_date: date, end_date: date, today: date | None = None) -> Reason | None:
    """
    Check a requested span.

    Returns PAST_START_DATE when the stay starts before today, PAST_END_DATE
    when it ends before it starts, otherwise None. The start check wins when
    both apply.
    """
    today = today or date.today()
    if start_date < today:
        return Reason.PAST_START_DATE
    if start_date > end_date:
        return Reason.PAST_END_DATE
    return None


def count_nights(start_date: date, end_date: date) -> int:
    # Same-day stays count zero nights
    return (end_date - start_date).days


def calculate_total_price(price_per_night: int, start_date: date, end_date: date) -> int:
    """Nightly price times the number of nights between the two dates."""
    return count_nights(start_date, end_date) * price_per_night


def is_actual(start_date: date, today: date | None = None) -> bool:
    """A booking is actual while its start date is today or later, archived otherwise."""
    return start_date >= (today or date.today())
