"""
Tests for country, city, house and user services.
"""

from datetime import date, timedelta

from app.constants.reasons import Reason
from app.db.models import ROLE_ADMIN, ROLE_USER, User
from app.services import cities as city_service
from app.services import countries as country_service
from app.services import houses as house_service
from app.services import users as user_service

TODAY = date.today()


def test_country_crud(db):
    country = country_service.add_country(db, "Greece")
    renamed, error = country_service.update_country(db, country.id, "Hellas")
    assert error is None
    assert renamed.name == "Hellas"
    assert country_service.delete_country(db, country.id) is None
    assert country_service.find_country_by_id(db, country.id) is None


def test_country_with_cities_cannot_be_deleted(db, catalog):
    assert country_service.delete_country(db, catalog["portugal"].id) == Reason.HAS_CITIES
    assert country_service.delete_country(db, 999) == Reason.COUNTRY_NOT_FOUND


def test_cities_by_country_are_sorted(db, catalog):
    cities = city_service.find_cities_by_country_id(db, catalog["portugal"].id)
    assert [c.name for c in cities] == ["Lisbon", "Porto"]


def test_add_city_requires_country(db):
    city, error = city_service.add_city(db, "Atlantis", 999)
    assert city is None
    assert error == Reason.COUNTRY_NOT_FOUND


def test_validate_city_country(catalog):
    assert city_service.validate_city_country(catalog["lisbon"], catalog["portugal"].id) is None
    assert city_service.validate_city_country(catalog["lisbon"], catalog["spain"].id) == Reason.WRONG_COUNTRY


def test_update_city_moves_country(db, catalog):
    city, error = city_service.update_city(db, catalog["madrid"].id, country_id=catalog["portugal"].id)
    assert error is None
    assert city.country_id == catalog["portugal"].id
    assert city.name == "Madrid"


def test_city_with_houses_cannot_be_deleted(db, catalog):
    assert city_service.delete_city(db, catalog["lisbon"].id) == Reason.HAS_HOUSES
    assert city_service.delete_city(db, catalog["madrid"].id) is None


def test_find_available_houses(db, catalog, user, make_booking):
    make_booking(catalog["alfama"], user, TODAY + timedelta(days=10), nights=5)
    start, end = TODAY + timedelta(days=15), TODAY + timedelta(days=17)

    available = house_service.find_available_houses(db, catalog["lisbon"].id, start, end)
    assert [h.id for h in available] == [catalog["belem"].id]

    everywhere = house_service.find_available_houses(db, None, start, end)
    assert {h.id for h in everywhere} == {catalog["belem"].id, catalog["ribeira"].id}


def test_validate_house_city(catalog):
    assert house_service.validate_house_city(catalog["alfama"], catalog["lisbon"].id) is None
    assert house_service.validate_house_city(catalog["alfama"], catalog["porto"].id) == Reason.WRONG_CITY


def test_add_house_duplicate_address(db, catalog):
    fields = {
        "address": "Rua dos Remedios 12",
        "city_id": catalog["lisbon"].id,
        "price_per_night": 300,
        "bedrooms_count": 2,
    }
    house, error = house_service.add_house(db, fields)
    assert house is None
    assert error == Reason.ALREADY_EXISTS


def test_add_house_unknown_city(db):
    _, error = house_service.add_house(
        db, {"address": "Nowhere 1", "city_id": 999, "price_per_night": 300, "bedrooms_count": 2}
    )
    assert error == Reason.CITY_NOT_FOUND


def test_update_house_is_partial(db, catalog):
    house, error = house_service.update_house(db, catalog["alfama"].id, {"price_per_night": 180})
    assert error is None
    assert house.price_per_night == 180
    assert house.has_wifi is True
    assert house.address == "Rua dos Remedios 12"


def test_house_with_upcoming_booking_cannot_be_deleted(db, catalog, user, make_booking):
    make_booking(catalog["alfama"], user, TODAY + timedelta(days=3))
    assert house_service.delete_house(db, catalog["alfama"].id) == Reason.HOUSE_BOOKED


def test_house_with_only_past_bookings_can_be_deleted(db, catalog, user, make_booking):
    make_booking(catalog["ribeira"], user, TODAY - timedelta(days=30))
    assert house_service.delete_house(db, catalog["ribeira"].id) is None


def test_get_or_register_creates_user_once(db):
    first = user_service.get_or_register_telegram_user(db, 555, 555, "newbie")
    second = user_service.get_or_register_telegram_user(db, 555, 555, "newbie")
    assert first.id == second.id
    assert first.telegram_username == "newbie"
    assert db.query(User).count() == 1


def test_get_or_register_adopts_user_by_username(db):
    seeded = User(roles=[ROLE_ADMIN], telegram_username="operator")
    db.add(seeded)
    db.commit()

    user = user_service.get_or_register_telegram_user(db, 777, 778, "operator")
    assert user.id == seeded.id
    assert user.telegram_chat_id == 777
    assert user.telegram_user_id == 778


def test_get_roles_always_includes_user_role():
    user = User(roles=[ROLE_ADMIN])
    assert user_service.get_roles(user) == [ROLE_ADMIN, ROLE_USER]
    assert user_service.get_roles(User(roles=[])) == [ROLE_USER]


def test_username_taken_over_by_another_account_registers_a_new_user(db):
    original = user_service.get_or_register_telegram_user(db, 1, 1, "x")
    newcomer = user_service.get_or_register_telegram_user(db, 2, 2, "x")

    assert newcomer.id != original.id
    assert newcomer.telegram_user_id == 2
    assert newcomer.telegram_username == "x"
    db.refresh(original)
    assert original.telegram_user_id == 1
    assert original.telegram_username is None


def test_returning_user_reclaims_a_username_from_its_previous_holder(db):
    first = user_service.get_or_register_telegram_user(db, 1, 1, "x")
    second = user_service.get_or_register_telegram_user(db, 2, 2, "y")

    # The accounts swap handles on Telegram
    first = user_service.get_or_register_telegram_user(db, 1, 1, "y")
    db.refresh(second)
    assert first.telegram_username == "y"
    assert second.telegram_username is None
    assert db.query(User).count() == 2
