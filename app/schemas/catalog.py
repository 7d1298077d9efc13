"""
Countries, cities and houses request/response schemas.
"""

from pydantic import BaseModel, ConfigDict, Field

NAME_MAX_LENGTH = 100


class CountryIn(BaseModel):
    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)


class CountryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class CityIn(BaseModel):
    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)
    country_id: int


class CityPatch(BaseModel):
    """Partial city update; omitted fields keep their value."""

    name: str | None = Field(default=None, min_length=1, max_length=NAME_MAX_LENGTH)
    country_id: int | None = None


class CityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    country_id: int


class HouseIn(BaseModel):
    """Full house payload (create and PUT)."""

    address: str = Field(min_length=1, max_length=255)
    city_id: int
    price_per_night: int = Field(ge=100, le=100000)
    bedrooms_count: int = Field(ge=1, le=20)
    has_air_conditioning: bool = False
    has_wifi: bool = False
    has_kitchen: bool = False
    has_parking: bool = False
    has_sea_view: bool = False
    image_url: str | None = Field(default=None, max_length=255)


class HousePatch(BaseModel):
    address: str | None = Field(default=None, min_length=1, max_length=255)
    city_id: int | None = None
    price_per_night: int | None = Field(default=None, ge=100, le=100000)
    bedrooms_count: int | None = Field(default=None, ge=1, le=20)
    has_air_conditioning: bool | None = None
    has_wifi: bool | None = None
    has_kitchen: bool | None = None
    has_parking: bool | None = None
    has_sea_view: bool | None = None
    image_url: str | None = Field(default=None, max_length=255)


class HouseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    address: str
    city_id: int
    price_per_night: int
    bedrooms_count: int
    has_air_conditioning: bool
    has_wifi: bool
    has_kitchen: bool
    has_parking: bool
    has_sea_view: bool
    image_url: str | None = None
