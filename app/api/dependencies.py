"""FastAPI dependencies for API routes."""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from app.api.errors import ReasonError
from app.constants.reasons import Reason
from app.core.config import settings
from app.db.deps import get_db
from app.db.models import Booking, City, Country, House
from app.services.conversation.sessions import SessionManager, create_session_manager
from app.services.messaging.telegram import TelegramClient


@lru_cache
def get_session_manager() -> SessionManager:
    """One session manager per process; tests override this dependency."""
    return create_session_manager(settings)


def get_telegram_client() -> TelegramClient:
    return TelegramClient.from_settings(settings)


def _get_or_404(db: Session, model, entity_id: int, reason: Reason):
    instance = db.get(model, entity_id)
    if instance is None:
        raise ReasonError(reason)
    return instance


def get_country_or_404(country_id: int, db: Session = Depends(get_db)) -> Country:
    """Resolve country by path parameter country_id; raise 404 if not found."""
    return _get_or_404(db, Country, country_id, Reason.COUNTRY_NOT_FOUND)


def get_city_or_404(city_id: int, db: Session = Depends(get_db)) -> City:
    return _get_or_404(db, City, city_id, Reason.CITY_NOT_FOUND)


def get_house_or_404(house_id: int, db: Session = Depends(get_db)) -> House:
    return _get_or_404(db, House, house_id, Reason.HOUSE_NOT_FOUND)


def get_booking_or_404(booking_id: int, db: Session = Depends(get_db)) -> Booking:
    return _get_or_404(db, Booking, booking_id, Reason.BOOKING_NOT_FOUND)
