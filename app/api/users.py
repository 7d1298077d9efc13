"""
API user accounts: registration, login, logout, token refresh and /me.

These routes are public (login is how a caller gets credentials in the first
place); /me requires a bearer access token.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.auth import get_current_user
from app.api.errors import raise_for_reason
from app.db.deps import get_db
from app.db.models import User
from app.schemas.users import AuthOut, MessageOut, RefreshRequest, UserCredentials, UserOut
from app.services import users as user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users")


@router.post("/register", response_model=MessageOut, status_code=201)
def register(body: UserCredentials, db: Session = Depends(get_db)):
    _, error = user_service.register_api_user(db, body.phone_number, body.password)
    raise_for_reason(error)
    return {"message": "User registered successfully!"}


@router.post("/login", response_model=AuthOut, status_code=201)
def login(body: UserCredentials, db: Session = Depends(get_db)):
    tokens, error = user_service.login_api_user(db, body.phone_number, body.password)
    raise_for_reason(error)
    return {"message": "Login successful!", "tokens": tokens}


@router.post("/logout", response_model=MessageOut)
def logout(body: RefreshRequest, db: Session = Depends(get_db)):
    raise_for_reason(user_service.logout(db, body.refresh_token))
    return {"message": "Logout successful!"}


@router.post("/refresh", response_model=AuthOut, status_code=201)
def refresh(body: RefreshRequest, db: Session = Depends(get_db)):
    tokens, error = user_service.refresh(db, body.refresh_token)
    raise_for_reason(error)
    return {"message": "Token refreshed successfully!", "tokens": tokens}


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    out = UserOut.model_validate(user)
    out.roles = user_service.get_roles(user)
    return out
