"""
API user request/response schemas.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.security import PASSWORD_MAX_BYTES

# "+" then country code and subscriber number, 7-15 characters overall
PHONE_NUMBER_PATTERN = r"^\+[0-9]{8,17}$"


class UserCredentials(BaseModel):
    phone_number: str = Field(min_length=7, max_length=15, pattern=PHONE_NUMBER_PATTERN)
    password: str = Field(min_length=1)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
            raise ValueError(f"Password cannot be longer than {PASSWORD_MAX_BYTES} bytes")
        return value


class RefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=1)


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str


class MessageOut(BaseModel):
    message: str


class AuthOut(MessageOut):
    tokens: TokenPair


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    phone_number: str | None
    roles: list[str]
    telegram_chat_id: int | None
    telegram_user_id: int | None
    telegram_username: str | None
