"""
Tests for the back-office REST API.
"""

from datetime import date, timedelta

from app.core.config import settings

TODAY = date.today()
API = "/api/v1"


def test_admin_key_required_when_configured(client, monkeypatch):
    monkeypatch.setattr(settings, "admin_api_key", "test-admin-key")

    assert client.get(f"{API}/countries").status_code == 401
    assert client.get(f"{API}/countries", headers={"X-Admin-API-Key": "nope"}).status_code == 403
    assert client.get(f"{API}/countries", headers={"X-Admin-API-Key": "test-admin-key"}).status_code == 200


def test_country_crud(client):
    created = client.post(f"{API}/countries", json={"name": "Greece"})
    assert created.status_code == 201
    country_id = created.json()["id"]

    renamed = client.patch(f"{API}/countries/{country_id}", json={"name": "Hellas"})
    assert renamed.json() == {"id": country_id, "name": "Hellas"}

    assert client.delete(f"{API}/countries/{country_id}").status_code == 204
    missing = client.get(f"{API}/countries/{country_id}")
    assert missing.status_code == 404
    assert missing.json() == {"error": "country_not_found", "detail": "Country not found"}


def test_country_name_is_validated(client):
    assert client.post(f"{API}/countries", json={"name": ""}).status_code == 422
    assert client.post(f"{API}/countries", json={"name": "x" * 101}).status_code == 422


def test_country_with_cities_cannot_be_deleted(client, catalog):
    response = client.delete(f"{API}/countries/{catalog['portugal'].id}")
    assert response.status_code == 409
    assert response.json()["error"] == "has_cities"


def test_cities_filtered_by_country(client, catalog):
    response = client.get(f"{API}/cities", params={"country_id": catalog["portugal"].id})
    assert [c["name"] for c in response.json()] == ["Lisbon", "Porto"]
    assert len(client.get(f"{API}/cities").json()) == 3


def test_create_city_in_unknown_country(client):
    response = client.post(f"{API}/cities", json={"name": "Atlantis", "country_id": 999})
    assert response.status_code == 404
    assert response.json()["error"] == "country_not_found"


def test_city_with_houses_cannot_be_deleted(client, catalog):
    assert client.delete(f"{API}/cities/{catalog['lisbon'].id}").status_code == 409
    assert client.delete(f"{API}/cities/{catalog['madrid'].id}").status_code == 204


def test_create_house(client, catalog):
    body = {
        "address": "Gran Via 1",
        "city_id": catalog["madrid"].id,
        "price_per_night": 250,
        "bedrooms_count": 4,
        "has_parking": True,
    }
    response = client.post(f"{API}/houses", json=body)
    assert response.status_code == 201
    house = response.json()
    assert house["has_parking"] is True
    assert house["has_wifi"] is False
    assert house["image_url"] is None


def test_house_constraints(client, catalog):
    body = {"address": "Cheap 1", "city_id": catalog["madrid"].id, "price_per_night": 99, "bedrooms_count": 1}
    assert client.post(f"{API}/houses", json=body).status_code == 422
    body.update(price_per_night=100, bedrooms_count=21)
    assert client.post(f"{API}/houses", json=body).status_code == 422


def test_duplicate_house_address_conflicts(client, catalog):
    body = {
        "address": "Rua dos Remedios 12",
        "city_id": catalog["lisbon"].id,
        "price_per_night": 300,
        "bedrooms_count": 2,
    }
    response = client.post(f"{API}/houses", json=body)
    assert response.status_code == 409
    assert response.json()["error"] == "already_exists"


def test_patch_house(client, catalog):
    response = client.patch(f"{API}/houses/{catalog['alfama'].id}", json={"price_per_night": 180})
    assert response.status_code == 200
    assert response.json()["price_per_night"] == 180
    assert response.json()["has_sea_view"] is True


def test_available_houses_listing(client, catalog, user, make_booking):
    make_booking(catalog["alfama"], user, TODAY + timedelta(days=5), nights=3)
    params = {
        "city_id": catalog["lisbon"].id,
        "start_date": (TODAY + timedelta(days=8)).isoformat(),
        "end_date": (TODAY + timedelta(days=9)).isoformat(),
    }
    response = client.get(f"{API}/houses", params=params)
    assert [h["id"] for h in response.json()] == [catalog["belem"].id]


def test_available_houses_rejects_past_dates(client, catalog):
    params = {"start_date": (TODAY - timedelta(days=1)).isoformat(), "end_date": TODAY.isoformat()}
    response = client.get(f"{API}/houses", params=params)
    assert response.status_code == 422
    assert response.json()["error"] == "past_start_date"


def test_booked_house_cannot_be_deleted(client, catalog, user, make_booking):
    make_booking(catalog["alfama"], user, TODAY + timedelta(days=5))
    response = client.delete(f"{API}/houses/{catalog['alfama'].id}")
    assert response.status_code == 409
    assert response.json()["error"] == "house_booked"


def test_booking_lifecycle(client, catalog, user):
    start = TODAY + timedelta(days=20)
    body = {
        "house_id": catalog["alfama"].id,
        "user_id": user.id,
        "comment": "Anniversary",
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=3)).isoformat(),
    }
    created = client.post(f"{API}/bookings", json=body)
    assert created.status_code == 201
    booking = created.json()
    assert booking["total_price"] == 360

    clash = client.post(f"{API}/bookings", json=body)
    assert clash.status_code == 409
    assert clash.json() == {
        "error": "not_available",
        "detail": "House is not available for the selected dates",
    }

    cleared = client.patch(f"{API}/bookings/{booking['id']}", json={"comment": None})
    assert cleared.status_code == 200
    assert cleared.json()["comment"] is None

    listed = client.get(f"{API}/bookings", params={"user_id": user.id, "is_actual": True})
    assert [b["id"] for b in listed.json()] == [booking["id"]]

    assert client.delete(f"{API}/bookings/{booking['id']}").status_code == 204
    assert client.get(f"{API}/bookings/{booking['id']}").status_code == 404


def test_patch_booking_without_comment_keeps_it(client, catalog, user, make_booking):
    booking = make_booking(catalog["alfama"], user, TODAY + timedelta(days=3), comment="keep me")
    response = client.patch(
        f"{API}/bookings/{booking.id}",
        json={"end_date": (TODAY + timedelta(days=6)).isoformat()},
    )
    assert response.status_code == 200
    assert response.json()["comment"] == "keep me"


def test_booking_in_the_past_is_rejected(client, catalog, user):
    body = {
        "house_id": catalog["alfama"].id,
        "user_id": user.id,
        "start_date": (TODAY - timedelta(days=2)).isoformat(),
        "end_date": TODAY.isoformat(),
    }
    response = client.post(f"{API}/bookings", json=body)
    assert response.status_code == 422
    assert response.json()["error"] == "past_start_date"


def test_booking_for_unknown_user(client, catalog):
    body = {
        "house_id": catalog["alfama"].id,
        "user_id": 999,
        "start_date": TODAY.isoformat(),
        "end_date": TODAY.isoformat(),
    }
    response = client.post(f"{API}/bookings", json=body)
    assert response.status_code == 404
    assert response.json()["error"] == "user_not_found"
