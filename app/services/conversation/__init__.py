"""
Conversation flow: workflow graph and callback codec, chat sessions, bot orchestrator.

Re-exports for a stable import path: from app.services.conversation import BookingBot, WorkflowState, etc.
"""

from app.services.conversation.bot import BookingBot, BotEvent
from app.services.conversation.sessions import (
    InMemorySessionBackend,
    RedisSessionBackend,
    SessionManager,
    create_session_manager,
    merge_data,
)
from app.services.conversation.workflow import (
    CallbackToken,
    CallbackTooLongError,
    InvalidTransitionError,
    WorkflowState,
    build_callback,
    extract_callback_data,
    get_next,
    get_prev,
    parse_callback,
)

__all__ = [
    "BookingBot",
    "BotEvent",
    "CallbackToken",
    "CallbackTooLongError",
    "InMemorySessionBackend",
    "InvalidTransitionError",
    "RedisSessionBackend",
    "SessionManager",
    "WorkflowState",
    "build_callback",
    "create_session_manager",
    "extract_callback_data",
    "get_next",
    "get_prev",
    "merge_data",
    "parse_callback",
]
