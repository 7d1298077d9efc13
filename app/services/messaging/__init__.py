# Messaging: Telegram client, copy composer, inline keyboards
# Re-export so "from app.services.messaging import ..." works for callers.

from app.services.messaging.message_composer import escape_markdown, get_composer, render_message
from app.services.messaging.telegram import TelegramAPIError, TelegramClient

__all__ = [
    "TelegramAPIError",
    "TelegramClient",
    "escape_markdown",
    "get_composer",
    "render_message",
]
