"""Country lookups and maintenance."""

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.constants.reasons import Reason
from app.db.helpers import commit_and_refresh
from app.db.models import City, Country


def find_all_countries(db: Session) -> list[Country]:
    return list(db.execute(select(Country).order_by(Country.id)).scalars().all())


def find_country_by_id(db: Session, country_id: int) -> Country | None:
    return db.get(Country, country_id)


def validate_country_exists(db: Session, country_id: int) -> Reason | None:
    if find_country_by_id(db, country_id) is None:
        return Reason.COUNTRY_NOT_FOUND
    return None


def add_country(db: Session, name: str) -> Country:
    country = Country(name=name)
    db.add(country)
    commit_and_refresh(db, country)
    return country


def update_country(db: Session, country_id: int, name: str) -> tuple[Country | None, Reason | None]:
    country = find_country_by_id(db, country_id)
    if country is None:
        return None, Reason.COUNTRY_NOT_FOUND
    country.name = name
    commit_and_refresh(db, country)
    return country, None


def validate_country_deletion(db: Session, country_id: int) -> Reason | None:
    """A country can only go once it has no cities left."""
    error = validate_country_exists(db, country_id)
    if error:
        return error
    cities = db.execute(select(func.count(City.id)).where(City.country_id == country_id)).scalar_one()
    if cities > 0:
        return Reason.HAS_CITIES
    return None


def delete_country(db: Session, country_id: int) -> Reason | None:
    error = validate_country_deletion(db, country_id)
    if error:
        return error
    db.delete(find_country_by_id(db, country_id))
    db.commit()
    return None
