import json
import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api.dependencies import get_session_manager, get_telegram_client
from app.constants.event_types import (
    EVENT_TELEGRAM_INVALID_PAYLOAD,
    EVENT_TELEGRAM_SECRET_MISMATCH,
    EVENT_TELEGRAM_WEBHOOK_FAILURE,
)
from app.core.config import settings
from app.db.deps import get_db
from app.middleware.correlation_id import get_correlation_id
from app.services.conversation.bot import BookingBot
from app.services.conversation.sessions import SessionManager
from app.services.messaging.message_composer import render_message
from app.services.messaging.telegram import TelegramClient
from app.services.system_event_service import error, warn

logger = logging.getLogger(__name__)

router = APIRouter()

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"

# Telegram retries any non-2xx answer, so everything but a bad secret gets this
OK_RESPONSE = {"ok": True}


def _sender(payload: dict) -> dict:
    """The "from" object of a message or callback update, if any."""
    for kind in ("callback_query", "message"):
        part = payload.get(kind)
        if isinstance(part, dict) and isinstance(part.get("from"), dict):
            return part["from"]
    return {}


def _chat_id(payload: dict) -> int | None:
    message = payload.get("message")
    if not isinstance(message, dict):
        query = payload.get("callback_query")
        message = query.get("message") if isinstance(query, dict) else None
    if not isinstance(message, dict):
        return None
    chat = message.get("chat")
    chat_id = chat.get("id") if isinstance(chat, dict) else None
    return chat_id if isinstance(chat_id, int) else None


async def _report_to_admin(
    client: TelegramClient,
    payload: dict,
    exc: Exception,
    correlation_id: str | None,
) -> None:
    """Relay a webhook fault to the operator chat. Never raises."""
    if settings.telegram_admin_chat_id is None:
        return
    sender = _sender(payload)
    text = render_message(
        "error_report",
        markdown=False,
        time=datetime.now(UTC).isoformat(timespec="seconds"),
        user_id=sender.get("id", "-"),
        username=sender.get("username", "-"),
        correlation_id=correlation_id or "-",
        error=f"{type(exc).__name__}: {exc}",
    )
    try:
        # Plain text: exception messages may contain Markdown control characters
        await client.send_message(settings.telegram_admin_chat_id, text, parse_mode=None)
    except Exception as relay_exc:
        logger.error(f"Failed to relay webhook error to admin chat: {relay_exc}", exc_info=True)


@router.post("/telegram")
async def telegram_webhook(
    request: Request,
    db: Session = Depends(get_db),
    sessions: SessionManager = Depends(get_session_manager),
    client: TelegramClient = Depends(get_telegram_client),
):
    correlation_id = get_correlation_id(request)
    logger.info(
        f"telegram.update_received correlation_id={correlation_id}",
        extra={"correlation_id": correlation_id, "event_type": "telegram.update_received"},
    )

    if settings.telegram_webhook_secret:
        provided = request.headers.get(SECRET_HEADER)
        if provided != settings.telegram_webhook_secret:
            logger.warning("Telegram webhook secret mismatch - rejecting request")
            warn(
                db=db,
                event_type=EVENT_TELEGRAM_SECRET_MISMATCH,
                payload={"has_secret_header": provided is not None},
            )
            return JSONResponse(status_code=403, content={"ok": False, "error": "Invalid secret token"})

    raw_body = await request.body()
    try:
        payload = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        logger.warning(f"Invalid JSON payload in Telegram webhook: {e}")
        warn(db=db, event_type=EVENT_TELEGRAM_INVALID_PAYLOAD, payload={"length": len(raw_body)})
        return OK_RESPONSE
    if not isinstance(payload, dict):
        logger.warning("Telegram webhook payload is not an object")
        return OK_RESPONSE

    bot = BookingBot(db=db, sessions=sessions, client=client)
    try:
        handled = await bot.handle_update(payload)
    except Exception as e:
        logger.critical(
            f"Telegram update handling failed - update_id={payload.get('update_id')}, "
            f"error_type={type(e).__name__}: {e}",
            exc_info=True,
        )
        try:
            db.rollback()
            error(
                db=db,
                event_type=EVENT_TELEGRAM_WEBHOOK_FAILURE,
                chat_id=_chat_id(payload),
                payload={"update_id": payload.get("update_id")},
                exc=e,
            )
            await _report_to_admin(client, payload, e, correlation_id)
        except Exception as bookkeeping_exc:
            # The update is still acknowledged; Telegram would otherwise redeliver it
            logger.error(f"Failed to record webhook failure: {bookkeeping_exc}", exc_info=True)
        return OK_RESPONSE

    logger.info(f"Telegram update {payload.get('update_id')} handled as {handled}")
    return OK_RESPONSE
