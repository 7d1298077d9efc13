"""
Booking request/response schemas.
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field

COMMENT_MAX_LENGTH = 255


class BookingIn(BaseModel):
    """Full booking payload (create and PUT)."""

    house_id: int
    user_id: int
    comment: str | None = Field(default=None, max_length=COMMENT_MAX_LENGTH)
    start_date: date
    end_date: date


class BookingPatch(BaseModel):
    """
    Partial booking update. Only fields present in the request body are
    applied; an explicit "comment": null clears the comment.
    """

    house_id: int | None = None
    user_id: int | None = None
    comment: str | None = Field(default=None, max_length=COMMENT_MAX_LENGTH)
    start_date: date | None = None
    end_date: date | None = None


class BookingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    house_id: int
    user_id: int
    comment: str | None = None
    start_date: date
    end_date: date
    total_price: int | None = None
