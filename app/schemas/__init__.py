"""
Pydantic schemas for API request/response validation.
"""

from app.schemas.bookings import BookingIn, BookingOut, BookingPatch
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
from app.schemas.users import AuthOut, MessageOut, RefreshRequest, TokenPair, UserCredentials, UserOut

__all__ = [
    "AuthOut",
    "BookingIn",
    "BookingOut",
    "BookingPatch",
    "CityIn",
    "CityOut",
    "CityPatch",
    "CountryIn",
    "CountryOut",
    "HouseIn",
    "HouseOut",
    "HousePatch",
    "MessageOut",
    "RefreshRequest",
    "TokenPair",
    "UserCredentials",
    "UserOut",
]
