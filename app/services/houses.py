"""
House lookups, availability listing and maintenance.
"""

from datetime import date

from sqlalchemy import and_, exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.constants.reasons import Reason
from app.db.helpers import apply_fields, commit_and_refresh
from app.db.models import Booking, House
from app.services.cities import validate_city_exists

HOUSE_FIELDS = (
    "address",
    "city_id",
    "price_per_night",
    "bedrooms_count",
    "has_air_conditioning",
    "has_wifi",
    "has_kitchen",
    "has_parking",
    "has_sea_view",
    "image_url",
)


def find_all_houses(db: Session, city_id: int | None = None) -> list[House]:
    stmt = select(House).order_by(House.id)
    if city_id is not None:
        stmt = stmt.where(House.city_id == city_id)
    return list(db.execute(stmt).scalars().all())


def find_house_by_id(db: Session, house_id: int) -> House | None:
    return db.get(House, house_id)


def find_available_houses(
    db: Session,
    city_id: int | None,
    start_date: date,
    end_date: date,
) -> list[House]:
    """
    Houses (optionally limited to one city) with no booking overlapping
    [start_date, end_date]. Overlap is inclusive on both ends.
    """
    overlapping = exists().where(
        and_(
            Booking.house_id == House.id,
            Booking.start_date <= end_date,
            Booking.end_date >= start_date,
        )
    )
    stmt = select(House).where(~overlapping).order_by(House.id)
    if city_id is not None:
        stmt = stmt.where(House.city_id == city_id)
    return list(db.execute(stmt).scalars().all())


def validate_house_exists(db: Session, house_id: int) -> Reason | None:
    if find_house_by_id(db, house_id) is None:
        return Reason.HOUSE_NOT_FOUND
    return None


def validate_house_city(house: House, city_id: int) -> Reason | None:
    if house.city_id != city_id:
        return Reason.WRONG_CITY
    return None


def has_actual_bookings(db: Session, house_id: int, today: date | None = None) -> bool:
    today = today or date.today()
    stmt = select(Booking.id).where(Booking.house_id == house_id, Booking.end_date >= today).limit(1)
    return db.execute(stmt).first() is not None


def _address_taken(db: Session, address: str, exclude_id: int | None = None) -> bool:
    stmt = select(House.id).where(House.address == address)
    if exclude_id is not None:
        stmt = stmt.where(House.id != exclude_id)
    return db.execute(stmt).first() is not None


def add_house(db: Session, fields: dict) -> tuple[House | None, Reason | None]:
    error = validate_city_exists(db, fields["city_id"])
    if error:
        return None, error
    if _address_taken(db, fields["address"]):
        return None, Reason.ALREADY_EXISTS

    house = House()
    apply_fields(house, {name: fields.get(name) for name in HOUSE_FIELDS}, skip_none=False)
    db.add(house)
    try:
        commit_and_refresh(db, house)
    except IntegrityError:
        # Lost a race on the unique address
        db.rollback()
        return None, Reason.ALREADY_EXISTS
    return house, None


def _save_house(db: Session, house_id: int, fields: dict, partial: bool) -> tuple[House | None, Reason | None]:
    house = find_house_by_id(db, house_id)
    if house is None:
        return None, Reason.HOUSE_NOT_FOUND

    city_id = fields.get("city_id")
    if city_id is not None:
        error = validate_city_exists(db, city_id)
        if error:
            return None, error
    address = fields.get("address")
    if address is not None and _address_taken(db, address, exclude_id=house_id):
        return None, Reason.ALREADY_EXISTS

    if partial:
        apply_fields(house, {k: v for k, v in fields.items() if k in HOUSE_FIELDS})
    else:
        apply_fields(house, {name: fields.get(name) for name in HOUSE_FIELDS}, skip_none=False)
    commit_and_refresh(db, house)
    return house, None


def replace_house(db: Session, house_id: int, fields: dict) -> tuple[House | None, Reason | None]:
    return _save_house(db, house_id, fields, partial=False)


def update_house(db: Session, house_id: int, fields: dict) -> tuple[House | None, Reason | None]:
    return _save_house(db, house_id, fields, partial=True)


def validate_house_deletion(db: Session, house_id: int) -> Reason | None:
    """Houses with bookings that have not ended yet cannot be deleted."""
    error = validate_house_exists(db, house_id)
    if error:
        return error
    if has_actual_bookings(db, house_id):
        return Reason.HOUSE_BOOKED
    return None


def delete_house(db: Session, house_id: int) -> Reason | None:
    error = validate_house_deletion(db, house_id)
    if error:
        return error
    db.delete(find_house_by_id(db, house_id))
    db.commit()
    return None
