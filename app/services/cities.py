"""City lookups and maintenance."""

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.constants.reasons import Reason
from app.db.helpers import commit_and_refresh
from app.db.models import City, House
from app.services.countries import validate_country_exists


def find_all_cities(db: Session) -> list[City]:
    return list(db.execute(select(City).order_by(City.id)).scalars().all())


def find_city_by_id(db: Session, city_id: int) -> City | None:
    return db.get(City, city_id)


def find_cities_by_country_id(db: Session, country_id: int) -> list[City]:
    stmt = select(City).where(City.country_id == country_id).order_by(City.name)
    return list(db.execute(stmt).scalars().all())


def validate_city_exists(db: Session, city_id: int) -> Reason | None:
    if find_city_by_id(db, city_id) is None:
        return Reason.CITY_NOT_FOUND
    return None


def validate_city_country(city: City, country_id: int) -> Reason | None:
    if city.country_id != country_id:
        return Reason.WRONG_COUNTRY
    return None


def add_city(db: Session, name: str, country_id: int) -> tuple[City | None, Reason | None]:
    error = validate_country_exists(db, country_id)
    if error:
        return None, error
    city = City(name=name, country_id=country_id)
    db.add(city)
    commit_and_refresh(db, city)
    return city, None


def update_city(
    db: Session,
    city_id: int,
    name: str | None = None,
    country_id: int | None = None,
) -> tuple[City | None, Reason | None]:
    city = find_city_by_id(db, city_id)
    if city is None:
        return None, Reason.CITY_NOT_FOUND
    if country_id is not None:
        error = validate_country_exists(db, country_id)
        if error:
            return None, error
        city.country_id = country_id
    if name is not None:
        city.name = name
    commit_and_refresh(db, city)
    return city, None


def validate_city_deletion(db: Session, city_id: int) -> Reason | None:
    error = validate_city_exists(db, city_id)
    if error:
        return error
    houses = db.execute(select(func.count(House.id)).where(House.city_id == city_id)).scalar_one()
    if houses > 0:
        return Reason.HAS_HOUSES
    return None


def delete_city(db: Session, city_id: int) -> Reason | None:
    error = validate_city_deletion(db, city_id)
    if error:
        return error
    db.delete(find_city_by_id(db, city_id))
    db.commit()
    return None
