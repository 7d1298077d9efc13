"""
Business-rule failure reasons.

Services return these as values instead of raising; the REST layer maps them
to HTTP statuses and the bot renders REASON_MESSAGES inline.
"""

from enum import StrEnum


class Reason(StrEnum):
    USER_NOT_FOUND = "user_not_found"
    HOUSE_NOT_FOUND = "house_not_found"
    CITY_NOT_FOUND = "city_not_found"
    COUNTRY_NOT_FOUND = "country_not_found"
    BOOKING_NOT_FOUND = "booking_not_found"
    NOT_AVAILABLE = "not_available"
    WRONG_CITY = "wrong_city"
    WRONG_COUNTRY = "wrong_country"
    PAST_START_DATE = "past_start_date"
    PAST_END_DATE = "past_end_date"
    ALREADY_EXISTS = "already_exists"
    INVALID_REFRESH = "invalid_refresh"
    INVALID_CREDENTIALS = "invalid_credentials"
    HAS_CITIES = "has_cities"
    HAS_HOUSES = "has_houses"
    HOUSE_BOOKED = "house_booked"


REASON_MESSAGES: dict[Reason, str] = {
    Reason.USER_NOT_FOUND: "User not found",
    Reason.HOUSE_NOT_FOUND: "House not found",
    Reason.CITY_NOT_FOUND: "City not found",
    Reason.COUNTRY_NOT_FOUND: "Country not found",
    Reason.BOOKING_NOT_FOUND: "Booking not found",
    Reason.NOT_AVAILABLE: "House is not available for the selected dates",
    Reason.WRONG_CITY: "House does not belong to the selected city",
    Reason.WRONG_COUNTRY: "City does not belong to the selected country",
    Reason.PAST_START_DATE: "Start date cannot be in the past",
    Reason.PAST_END_DATE: "End date cannot be earlier than start date",
    Reason.ALREADY_EXISTS: "Already exists",
    Reason.INVALID_REFRESH: "Invalid or expired refresh token",
    Reason.INVALID_CREDENTIALS: "Invalid credentials",
    Reason.HAS_CITIES: "Country still has cities",
    Reason.HAS_HOUSES: "City still has houses",
    Reason.HOUSE_BOOKED: "House has upcoming bookings",
}

NOT_FOUND_REASONS = frozenset(
    {
        Reason.USER_NOT_FOUND,
        Reason.HOUSE_NOT_FOUND,
        Reason.CITY_NOT_FOUND,
        Reason.COUNTRY_NOT_FOUND,
        Reason.BOOKING_NOT_FOUND,
    }
)


def describe(reason: Reason) -> str:
    """Human-readable text for a reason."""
    return REASON_MESSAGES.get(reason, str(reason))
