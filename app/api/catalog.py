"""
Back-office CRUD for countries, cities and houses.
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Response, Security
from sqlalchemy.orm import Session

from app.api.auth import get_admin_auth
from app.api.dependencies import get_city_or_404, get_country_or_404, get_house_or_404
from app.api.errors import raise_for_reason
from app.db.deps import get_db
from app.db.models import City, Country, House
from app.schemas.catalog import (
    CityIn,
    CityOut,
    CityPatch,
    CountryIn,
    CountryOut,
    HouseIn,
    HouseOut,
    HousePatch,
)
from app.services import cities as city_service
from app.services import countries as country_service
from app.services import houses as house_service
from app.services.bookings import validate_booking_dates

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Security(get_admin_auth)])


# ---- Countries ----


@router.get("/countries", response_model=list[CountryOut])
def list_countries(db: Session = Depends(get_db)):
    return country_service.find_all_countries(db)


@router.post("/countries", response_model=CountryOut, status_code=201)
def create_country(body: CountryIn, db: Session = Depends(get_db)):
    country = country_service.add_country(db, body.name)
    logger.info(f"Country {country.id} created")
    return country


@router.get("/countries/{country_id}", response_model=CountryOut)
def get_country(country: Country = Depends(get_country_or_404)):
    return country


@router.patch("/countries/{country_id}", response_model=CountryOut)
def rename_country(country_id: int, body: CountryIn, db: Session = Depends(get_db)):
    country, error = country_service.update_country(db, country_id, body.name)
    raise_for_reason(error)
    return country


@router.delete("/countries/{country_id}", status_code=204)
def delete_country(country_id: int, db: Session = Depends(get_db)):
    raise_for_reason(country_service.delete_country(db, country_id))
    return Response(status_code=204)


# ---- Cities ----


@router.get("/cities", response_model=list[CityOut])
def list_cities(country_id: int | None = None, db: Session = Depends(get_db)):
    if country_id is not None:
        return city_service.find_cities_by_country_id(db, country_id)
    return city_service.find_all_cities(db)


@router.post("/cities", response_model=CityOut, status_code=201)
def create_city(body: CityIn, db: Session = Depends(get_db)):
    city, error = city_service.add_city(db, body.name, body.country_id)
    raise_for_reason(error)
    return city


@router.get("/cities/{city_id}", response_model=CityOut)
def get_city(city: City = Depends(get_city_or_404)):
    return city


@router.patch("/cities/{city_id}", response_model=CityOut)
def update_city(city_id: int, body: CityPatch, db: Session = Depends(get_db)):
    city, error = city_service.update_city(db, city_id, name=body.name, country_id=body.country_id)
    raise_for_reason(error)
    return city


@router.delete("/cities/{city_id}", status_code=204)
def delete_city(city_id: int, db: Session = Depends(get_db)):
    raise_for_reason(city_service.delete_city(db, city_id))
    return Response(status_code=204)


# ---- Houses ----


@router.get("/houses", response_model=list[HouseOut])
def list_houses(
    city_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
):
    """
    All houses, or only those free for the whole span when both
    start_date and end_date are given.
    """
    if start_date is not None and end_date is not None:
        raise_for_reason(validate_booking_dates(start_date, end_date))
        return house_service.find_available_houses(db, city_id, start_date, end_date)
    return house_service.find_all_houses(db, city_id=city_id)


@router.post("/houses", response_model=HouseOut, status_code=201)
def create_house(body: HouseIn, db: Session = Depends(get_db)):
    house, error = house_service.add_house(db, body.model_dump())
    raise_for_reason(error)
    logger.info(f"House {house.id} created in city {house.city_id}")
    return house


@router.get("/houses/{house_id}", response_model=HouseOut)
def get_house(house: House = Depends(get_house_or_404)):
    return house


@router.put("/houses/{house_id}", response_model=HouseOut)
def replace_house(house_id: int, body: HouseIn, db: Session = Depends(get_db)):
    house, error = house_service.replace_house(db, house_id, body.model_dump())
    raise_for_reason(error)
    return house


@router.patch("/houses/{house_id}", response_model=HouseOut)
def update_house(house_id: int, body: HousePatch, db: Session = Depends(get_db)):
    house, error = house_service.update_house(db, house_id, body.model_dump(exclude_unset=True))
    raise_for_reason(error)
    return house


@router.delete("/houses/{house_id}", status_code=204)
def delete_house(house_id: int, db: Session = Depends(get_db)):
    raise_for_reason(house_service.delete_house(db, house_id))
    return Response(status_code=204)
