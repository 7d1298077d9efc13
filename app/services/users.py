"""
User identity: Telegram senders and API users.

Telegram users are created on their first contact with the bot and are
identified by their Telegram user id from then on. Usernames can change hands
on Telegram, so a username alone only ever links a sender to a row that has
no Telegram user id yet (e.g. one seeded by an operator).

API users register with a phone number and password and authenticate with a
JWT access token plus a single-use refresh token.
"""

import logging
import secrets
from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.constants.reasons import Reason
from app.core.config import settings
from app.core.security import create_access_token, decode_access_token, hash_password, verify_password
from app.db.helpers import commit_and_refresh
from app.db.models import ROLE_ADMIN, ROLE_USER, RefreshToken, User
from app.utils.datetime_utils import dt_replace_utc

logger = logging.getLogger(__name__)


def get_roles(user: User) -> list[str]:
    """Stored roles plus the implicit ROLE_USER."""
    roles = list(user.roles or [])
    if ROLE_USER not in roles:
        roles.append(ROLE_USER)
    return roles


def find_user_by_id(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def find_user_by_telegram_user_id(db: Session, telegram_user_id: int) -> User | None:
    stmt = select(User).where(User.telegram_user_id == telegram_user_id)
    return db.execute(stmt).scalars().first()


def find_user_by_telegram_username(db: Session, username: str) -> User | None:
    stmt = select(User).where(User.telegram_username == username)
    return db.execute(stmt).scalars().first()


def _release_username(db: Session, username: str | None, owner: User | None) -> None:
    """Drop `username` from any other row; the previous holder renamed on Telegram."""
    if not username:
        return
    holder = find_user_by_telegram_username(db, username)
    if holder is not None and holder is not owner:
        logger.info(f"Telegram username {username!r} moved away from user {holder.id}")
        holder.telegram_username = None
        db.flush()


def get_or_register_telegram_user(
    db: Session,
    telegram_chat_id: int,
    telegram_user_id: int,
    telegram_username: str | None = None,
) -> User:
    """
    Resolve a Telegram sender to an internal user, registering it on first contact.

    A user registered under the same username but without a Telegram user id
    is adopted and gets its Telegram ids filled in. A row whose username now
    belongs to a different Telegram account only loses the username.
    """
    user = find_user_by_telegram_user_id(db, telegram_user_id)
    if user is None and telegram_username:
        candidate = find_user_by_telegram_username(db, telegram_username)
        if candidate is not None and candidate.telegram_user_id is None:
            user = candidate

    if user is not None:
        changed = False
        if telegram_username and user.telegram_username != telegram_username:
            _release_username(db, telegram_username, user)
        for attr, value in (
            ("telegram_chat_id", telegram_chat_id),
            ("telegram_user_id", telegram_user_id),
            ("telegram_username", telegram_username),
        ):
            if value is not None and getattr(user, attr) != value:
                setattr(user, attr, value)
                changed = True
        if changed:
            commit_and_refresh(db, user)
        return user

    _release_username(db, telegram_username, None)
    user = User(
        roles=[ROLE_USER],
        telegram_chat_id=telegram_chat_id,
        telegram_user_id=telegram_user_id,
        telegram_username=telegram_username,
    )
    db.add(user)
    try:
        commit_and_refresh(db, user)
    except IntegrityError:
        # Another request registered the same sender first
        db.rollback()
        existing = find_user_by_telegram_user_id(db, telegram_user_id)
        if existing is None:
            raise
        return existing
    logger.info(f"Registered Telegram user {telegram_user_id} as user {user.id}")
    return user


# ---- API users ----


def find_user_by_phone_number(db: Session, phone_number: str) -> User | None:
    stmt = select(User).where(User.phone_number == phone_number)
    return db.execute(stmt).scalars().first()


def register_api_user(
    db: Session,
    phone_number: str,
    password: str,
    is_admin: bool = False,
) -> tuple[User | None, Reason | None]:
    """Create a password-protected API user. Phone numbers are unique."""
    if find_user_by_phone_number(db, phone_number) is not None:
        return None, Reason.ALREADY_EXISTS

    roles = [ROLE_USER, ROLE_ADMIN] if is_admin else [ROLE_USER]
    user = User(phone_number=phone_number, password=hash_password(password), roles=roles)
    db.add(user)
    try:
        commit_and_refresh(db, user)
    except IntegrityError:
        db.rollback()
        return None, Reason.ALREADY_EXISTS
    logger.info(f"Registered API user {user.id}" + (" (admin)" if is_admin else ""))
    return user, None


def _generate_tokens(db: Session, user: User) -> dict[str, str]:
    """
    Issue a new access/refresh pair.

    Bumps token_version first, so access tokens issued earlier stop working.
    """
    user.token_version = (user.token_version or 0) + 1
    refresh_token = RefreshToken(
        token=secrets.token_urlsafe(48),
        user_id=user.id,
        valid_until=datetime.now(UTC) + timedelta(days=settings.refresh_token_ttl_days),
    )
    db.add(refresh_token)
    commit_and_refresh(db, user, refresh_token)
    return {
        "access_token": create_access_token(user.id, user.token_version, user.phone_number),
        "refresh_token": refresh_token.token,
    }


def login_api_user(db: Session, phone_number: str, password: str) -> tuple[dict[str, str] | None, Reason | None]:
    user = find_user_by_phone_number(db, phone_number)
    if user is None:
        return None, Reason.USER_NOT_FOUND
    if not verify_password(password, user.password):
        logger.info(f"Failed login for user {user.id}")
        return None, Reason.INVALID_CREDENTIALS
    return _generate_tokens(db, user), None


def _find_valid_refresh_token(db: Session, token: str) -> RefreshToken | None:
    stmt = select(RefreshToken).where(RefreshToken.token == token)
    refresh_token = db.execute(stmt).scalar_one_or_none()
    if refresh_token is None:
        return None
    valid_until = dt_replace_utc(refresh_token.valid_until)
    if valid_until is None or datetime.now(UTC) > valid_until:
        return None
    return refresh_token


def logout(db: Session, refresh_token: str) -> Reason | None:
    """Revoke the refresh token and every access token issued so far."""
    stored = _find_valid_refresh_token(db, refresh_token)
    if stored is None:
        return Reason.INVALID_REFRESH
    user = stored.user
    user.token_version = (user.token_version or 0) + 1
    db.delete(stored)
    db.commit()
    logger.info(f"User {user.id} logged out")
    return None


def refresh(db: Session, refresh_token: str) -> tuple[dict[str, str] | None, Reason | None]:
    """Exchange a refresh token for a new pair. Each refresh token works once."""
    stored = _find_valid_refresh_token(db, refresh_token)
    if stored is None:
        return None, Reason.INVALID_REFRESH
    user = stored.user
    db.delete(stored)
    return _generate_tokens(db, user), None


def authenticate_access_token(db: Session, token: str) -> User | None:
    """The user an access token belongs to, if it is valid and not revoked."""
    claims = decode_access_token(token)
    if claims is None:
        return None
    try:
        user_id = int(claims["sub"])
    except (TypeError, ValueError):
        return None
    user = find_user_by_id(db, user_id)
    if user is None or claims.get("version") != user.token_version:
        return None
    return user
