import os
from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app
os.environ["APP_ENV"] = "dev"
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "123456:test-token")
os.environ.setdefault("TELEGRAM_DRY_RUN", "true")
os.environ.setdefault("SESSION_BACKEND", "memory")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
# ADMIN_API_KEY not set by default - REST endpoints are open; auth tests patch settings

from app.api.dependencies import get_session_manager, get_telegram_client
from app.db.base import Base
from app.db.deps import get_db
# Import all models so Base.metadata includes every table
import app.db.models as _models  # noqa: F401
from app.db.models import Booking, City, Country, House, User
from app.main import app
from app.services.conversation.bot import BookingBot
from app.services.conversation.sessions import InMemorySessionBackend, SessionManager
from app.services.messaging.telegram import TelegramClient

SQLALCHEMY_DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///:memory:")


def is_sqlite() -> bool:
    """Return True if the test database is SQLite (e.g. in-memory tests)."""
    url = SQLALCHEMY_DATABASE_URL or ""
    return url.startswith("sqlite")


# SQLite needs check_same_thread=False and StaticPool; Postgres does not support check_same_thread
if is_sqlite():
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    engine = create_engine(SQLALCHEMY_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Make the app use the same DB for anything that opens its own session
import app.db.session as _db_session

_db_session.engine = engine
_db_session.SessionLocal = TestingSessionLocal


class RecordingTelegramClient(TelegramClient):
    """Records every bot API call instead of sending it."""

    def __init__(self):
        super().__init__(token="test-token", dry_run=True)
        self.calls: list[tuple[str, dict]] = []
        self.fail_on: set[str] = set()

    async def call(self, method: str, payload: dict) -> dict:
        payload = {k: v for k, v in payload.items() if v is not None}
        self.calls.append((method, payload))
        if method in self.fail_on:
            raise RuntimeError(f"simulated {method} failure")
        return {"message_id": len(self.calls)}

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]

    def texts(self) -> list[str]:
        return [payload.get("text") or payload.get("caption") or "" for _, payload in self.calls]

    def last(self, method: str | None = None) -> dict:
        for name, payload in reversed(self.calls):
            if method is None or name == method:
                return payload
        raise AssertionError(f"no {method} call recorded")

    def last_buttons(self) -> list[dict]:
        """Buttons of the most recent call that carried a keyboard, flattened."""
        for _, payload in reversed(self.calls):
            markup = payload.get("reply_markup")
            if markup:
                return [button for row in markup["inline_keyboard"] for button in row]
        return []

    def reset(self) -> None:
        self.calls.clear()


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def sessions():
    return SessionManager(InMemorySessionBackend(), ttl_seconds=600)


@pytest.fixture
def telegram():
    return RecordingTelegramClient()


@pytest.fixture
def bot(db, sessions, telegram):
    return BookingBot(db=db, sessions=sessions, client=telegram)


@pytest.fixture(scope="function")
def client(db, sessions, telegram):
    """Create a test client with database, session store and Telegram overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_manager] = lambda: sessions
    app.dependency_overrides[get_telegram_client] = lambda: telegram
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def catalog(db):
    """
    Portugal (Lisbon, Porto) and Spain (Madrid) with three houses:
    two in Lisbon, one in Porto.
    """
    portugal = Country(name="Portugal")
    spain = Country(name="Spain")
    db.add_all([portugal, spain])
    db.flush()

    lisbon = City(name="Lisbon", country_id=portugal.id)
    porto = City(name="Porto", country_id=portugal.id)
    madrid = City(name="Madrid", country_id=spain.id)
    db.add_all([lisbon, porto, madrid])
    db.flush()

    alfama = House(
        address="Rua dos Remedios 12",
        city_id=lisbon.id,
        price_per_night=120,
        bedrooms_count=2,
        has_wifi=True,
        has_sea_view=True,
    )
    belem = House(
        address="Rua de Belem 5",
        city_id=lisbon.id,
        price_per_night=200,
        bedrooms_count=3,
        has_kitchen=True,
        image_url="https://img.example.com/belem.jpg",
    )
    ribeira = House(address="Cais da Ribeira 7", city_id=porto.id, price_per_night=150, bedrooms_count=1)
    db.add_all([alfama, belem, ribeira])
    db.commit()

    return {
        "portugal": portugal,
        "spain": spain,
        "lisbon": lisbon,
        "porto": porto,
        "madrid": madrid,
        "alfama": alfama,
        "belem": belem,
        "ribeira": ribeira,
    }


@pytest.fixture
def user(db):
    user = User(roles=["ROLE_USER"], telegram_chat_id=1001, telegram_user_id=1001, telegram_username="guest")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def make_booking(db):
    """Insert a booking directly, bypassing validation (past dates allowed)."""

    def _make(house: House, user: User, start: date, nights: int = 2, comment: str | None = None) -> Booking:
        booking = Booking(
            house_id=house.id,
            user_id=user.id,
            comment=comment,
            start_date=start,
            end_date=start + timedelta(days=nights),
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _make
