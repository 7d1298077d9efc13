from pydantic_settings import BaseSettings, SettingsConfigDict

# Only acceptable outside production; startup validation rejects it there
DEV_JWT_SECRET = "dev-only-jwt-secret-change-me-before-deploying"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        validate_assignment=True,
    )

    app_env: str = "dev"
    database_url: str

    telegram_bot_token: str
    telegram_api_base_url: str = "https://api.telegram.org"
    telegram_webhook_secret: str | None = None  # Checked against X-Telegram-Bot-Api-Secret-Token
    telegram_admin_chat_id: int | None = None  # Operator chat for webhook fault reports
    telegram_dry_run: bool = True  # Set to False in production to enable real sending

    # Conversation sessions
    session_backend: str = "redis"  # "redis" or "memory" (single-process dev only)
    redis_url: str = "redis://localhost:6379/0"
    session_ttl_seconds: int = 600  # Idle TTL, reset on every save
    session_key_prefix: str = "bot:session:"

    admin_api_key: str | None = (
        None  # Optional - if not set, REST endpoints are unprotected (dev mode)
    )

    # API user authentication (phone number + password, JWT access tokens)
    jwt_secret_key: str = DEV_JWT_SECRET
    jwt_algorithm: str = "HS256"
    access_token_ttl_minutes: int = 60
    refresh_token_ttl_days: int = 30
    bcrypt_rounds: int = 12

    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


# Settings will load from environment variables or .env file
# Required fields will raise ValidationError if missing (fail-fast)
settings = Settings()
