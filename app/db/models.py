from datetime import date
from typing import Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

ROLE_USER = "ROLE_USER"
ROLE_ADMIN = "ROLE_ADMIN"


class Country(Base):
    __tablename__ = "countries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100))

    cities: Mapped[list["City"]] = relationship(
        "City", back_populates="country", cascade="all, delete-orphan"
    )


class City(Base):
    __tablename__ = "cities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    country_id: Mapped[int] = mapped_column(Integer, ForeignKey("countries.id"), index=True)

    country: Mapped["Country"] = relationship("Country", back_populates="cities")
    houses: Mapped[list["House"]] = relationship(
        "House", back_populates="city", cascade="all, delete-orphan"
    )


class House(Base):
    __tablename__ = "houses"
    __table_args__ = (
        CheckConstraint("price_per_night BETWEEN 100 AND 100000", name="ck_houses_price_per_night"),
        CheckConstraint("bedrooms_count BETWEEN 1 AND 20", name="ck_houses_bedrooms_count"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    address: Mapped[str] = mapped_column(String(255), unique=True)
    city_id: Mapped[int] = mapped_column(Integer, ForeignKey("cities.id"), index=True)
    price_per_night: Mapped[int] = mapped_column(Integer)
    bedrooms_count: Mapped[int] = mapped_column(Integer)

    # Amenities
    has_air_conditioning: Mapped[bool] = mapped_column(Boolean, default=False)
    has_wifi: Mapped[bool] = mapped_column(Boolean, default=False)
    has_kitchen: Mapped[bool] = mapped_column(Boolean, default=False)
    has_parking: Mapped[bool] = mapped_column(Boolean, default=False)
    has_sea_view: Mapped[bool] = mapped_column(Boolean, default=False)

    image_url: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    city: Mapped["City"] = relationship("City", back_populates="houses")
    bookings: Mapped[list["Booking"]] = relationship(
        "Booking", back_populates="house", cascade="all, delete-orphan"
    )


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String(15), unique=True, nullable=True)
    password: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)  # Hash only
    roles: Mapped[list] = mapped_column(JSON, default=lambda: [ROLE_USER])
    token_version: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    # Telegram identity (auto-registered on first bot contact)
    telegram_chat_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    telegram_user_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True, index=True)
    telegram_username: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)

    bookings: Mapped[list["Booking"]] = relationship(
        "Booking", back_populates="user", cascade="all, delete-orphan"
    )
    refresh_tokens: Mapped[list["RefreshToken"]] = relationship(
        "RefreshToken", back_populates="user", cascade="all, delete-orphan"
    )


class RefreshToken(Base):
    """Opaque long-lived token exchanged for a new access token; single use."""
    __tablename__ = "refresh_tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    token: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    valid_until: Mapped[DateTime] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    user: Mapped["User"] = relationship("User", back_populates="refresh_tokens")


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_bookings_date_order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    house_id: Mapped[int] = mapped_column(Integer, ForeignKey("houses.id"), index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    comment: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    start_date: Mapped[date] = mapped_column(Date)
    end_date: Mapped[date] = mapped_column(Date)

    house: Mapped["House"] = relationship("House", back_populates="bookings")
    user: Mapped["User"] = relationship("User", back_populates="bookings")


class SystemEvent(Base):
    """Persisted operational events (webhook faults, rejected updates)."""
    __tablename__ = "system_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)
    level: Mapped[str] = mapped_column(String(10))  # INFO, WARN, ERROR
    event_type: Mapped[str] = mapped_column(String(100), index=True)
    chat_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True, index=True)
    payload: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
