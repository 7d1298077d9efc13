"""
Back-office CRUD for bookings.
"""

import logging

from fastapi import APIRouter, Depends, Response, Security
from sqlalchemy.orm import Session

from app.api.auth import get_admin_auth
from app.api.dependencies import get_booking_or_404
from app.api.errors import raise_for_reason
from app.db.deps import get_db
from app.db.models import Booking
from app.schemas.bookings import BookingIn, BookingOut, BookingPatch
from app.services import bookings as booking_service

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Security(get_admin_auth)])


def _to_out(booking: Booking) -> BookingOut:
    out = BookingOut.model_validate(booking)
    out.total_price = booking_service.calculate_total_price(booking.house, booking.start_date, booking.end_date)
    return out


@router.get("/bookings", response_model=list[BookingOut])
def list_bookings(
    user_id: int | None = None,
    is_actual: bool | None = None,
    db: Session = Depends(get_db),
):
    """
    All bookings, or one user's bookings when user_id is given, optionally
    narrowed to actual (is_actual=true) or archived (is_actual=false) ones.
    """
    if user_id is not None:
        found = booking_service.find_bookings_by_user(db, user_id, is_actual=is_actual)
    else:
        found = booking_service.find_all_bookings(db)
    return [_to_out(b) for b in found]


@router.post("/bookings", response_model=BookingOut, status_code=201)
def create_booking(body: BookingIn, db: Session = Depends(get_db)):
    booking, error = booking_service.create_booking(
        db,
        house_id=body.house_id,
        user_id=body.user_id,
        comment=body.comment,
        start_date=body.start_date,
        end_date=body.end_date,
    )
    raise_for_reason(error)
    return _to_out(booking)


@router.get("/bookings/{booking_id}", response_model=BookingOut)
def get_booking(booking: Booking = Depends(get_booking_or_404)):
    return _to_out(booking)


@router.put("/bookings/{booking_id}", response_model=BookingOut)
def replace_booking(booking_id: int, body: BookingIn, db: Session = Depends(get_db)):
    booking, error = booking_service.replace_booking(db, booking_id, body.model_dump())
    raise_for_reason(error)
    return _to_out(booking)


@router.patch("/bookings/{booking_id}", response_model=BookingOut)
def update_booking(booking_id: int, body: BookingPatch, db: Session = Depends(get_db)):
    booking, error = booking_service.update_booking(db, booking_id, body.model_dump(exclude_unset=True))
    raise_for_reason(error)
    return _to_out(booking)


@router.delete("/bookings/{booking_id}", status_code=204)
def delete_booking(booking_id: int, db: Session = Depends(get_db)):
    _, error = booking_service.delete_booking(db, booking_id)
    raise_for_reason(error)
    logger.info(f"Booking {booking_id} deleted via API")
    return Response(status_code=204)
