import logging

from fastapi import Depends, FastAPI
from sqlalchemy.orm import Session

from app.api.bookings import router as bookings_router
from app.api.catalog import router as catalog_router
from app.api.errors import ReasonError, reason_error_handler
from app.api.users import router as users_router
from app.api.webhooks import router as webhooks_router
from app.core.config import DEV_JWT_SECRET, Settings, settings
from app.db.deps import get_db
from app.middleware.correlation_id import CorrelationIdMiddleware

logging.basicConfig(level=settings.log_level.upper(), format=settings.log_format)
logger = logging.getLogger(__name__)

app = FastAPI(title="House Booking Bot")

app.add_middleware(CorrelationIdMiddleware)
app.add_exception_handler(ReasonError, reason_error_handler)


def validate_production_settings(config: Settings) -> list[str]:
    """Return the list of problems that must block a production start."""
    errors = []
    if not config.admin_api_key:
        errors.append(
            "ADMIN_API_KEY is required in production. "
            "Set ADMIN_API_KEY environment variable with a strong random key."
        )
    if not config.telegram_webhook_secret:
        errors.append(
            "TELEGRAM_WEBHOOK_SECRET is required in production so forged updates are rejected. "
            "Register the same value with scripts/set_webhook.py."
        )
    if config.telegram_dry_run:
        errors.append("TELEGRAM_DRY_RUN must be False in production.")
    if config.jwt_secret_key == DEV_JWT_SECRET or len(config.jwt_secret_key) < 32:
        errors.append(
            "JWT_SECRET_KEY is required in production. "
            "Set JWT_SECRET_KEY to a random value of at least 32 characters."
        )
    return errors


@app.on_event("startup")
async def startup_event():
    """Run startup checks and validation."""
    if settings.app_env == "production":
        production_errors = validate_production_settings(settings)
        if production_errors:
            error_message = (
                "Production environment validation failed:\n\n"
                + "\n".join(f"  - {error}" for error in production_errors)
                + "\n\nThe application cannot start in production with these settings."
            )
            logger.error(error_message)
            raise RuntimeError(error_message)

    logger.info(
        "Startup: Configuration loaded - "
        f"Environment: {settings.app_env}, "
        f"Session backend: {settings.session_backend}, "
        f"Session TTL: {settings.session_ttl_seconds}s, "
        f"Telegram dry-run: {settings.telegram_dry_run}"
    )


@app.get("/health")
def health():
    """Liveness check - returns 200 immediately."""
    return {
        "ok": True,
        "environment": settings.app_env,
        "session_backend": settings.session_backend,
        "telegram_dry_run": settings.telegram_dry_run,
    }


@app.get("/ready")
def ready(db: Session = Depends(get_db)):
    """
    Readiness check endpoint - verifies database connectivity.

    Returns 200 if database is accessible, 503 if not.
    """
    from sqlalchemy import text

    try:
        db.execute(text("SELECT 1"))
        return {"ok": True, "database": "connected"}
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        from fastapi import status
        from fastapi.responses import JSONResponse

        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"ok": False, "database": "disconnected", "error": str(e)},
        )


app.include_router(webhooks_router, prefix="/webhooks", tags=["webhooks"])
app.include_router(catalog_router, prefix="/api/v1", tags=["catalog"])
app.include_router(bookings_router, prefix="/api/v1", tags=["bookings"])
app.include_router(users_router, prefix="/api/v1", tags=["users"])
