"""
System event logging service.

Persists key operational events (webhook faults, rejected webhook calls,
detected booking races) so operators can inspect them without log access.
"""

import logging

from sqlalchemy.orm import Session

from app.db.models import SystemEvent

logger = logging.getLogger(__name__)


def _resolve_correlation_id(correlation_id: str | None) -> str | None:
    """Use request-scoped contextvar when not explicitly passed."""
    if correlation_id is not None:
        return correlation_id
    from app.middleware.correlation_id import get_correlation_id

    return get_correlation_id(None)


def log_event(
    db: Session,
    level: str,
    event_type: str,
    chat_id: int | None = None,
    payload: dict | None = None,
    exc: BaseException | None = None,
    correlation_id: str | None = None,
) -> SystemEvent:
    """
    Log a system event to the database.

    Args:
        db: Database session
        level: Event level (INFO, WARN, ERROR)
        event_type: Type of event (see app.constants.event_types)
        chat_id: Optional Telegram chat the event relates to
        payload: Optional additional event data. Copied, never mutated.
        exc: Optional exception; its type and message are added to payload.
        correlation_id: Optional correlation ID for request tracing.

    Returns:
        Created SystemEvent object
    """
    normalized: dict = dict(payload) if payload else {}
    if exc is not None:
        normalized["error"] = {
            "type": type(exc).__name__,
            "message": str(exc)[:500],
        }
    resolved_cid = _resolve_correlation_id(correlation_id)
    if resolved_cid is not None:
        normalized["correlation_id"] = resolved_cid

    event = SystemEvent(
        level=level.upper(),
        event_type=event_type,
        chat_id=chat_id,
        payload=normalized or None,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    return event


def warn(db: Session, event_type: str, chat_id: int | None = None, payload: dict | None = None) -> SystemEvent:
    return log_event(db, level="WARN", event_type=event_type, chat_id=chat_id, payload=payload)


def error(
    db: Session,
    event_type: str,
    chat_id: int | None = None,
    payload: dict | None = None,
    exc: BaseException | None = None,
) -> SystemEvent:
    return log_event(db, level="ERROR", event_type=event_type, chat_id=chat_id, payload=payload, exc=exc)
