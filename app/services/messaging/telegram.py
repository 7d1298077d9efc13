"""
Telegram Bot API client with dry-run mode for development.

Only the handful of methods the booking bot needs: send/edit text, send
photo, answer callback queries, and webhook registration.
"""

import logging
from typing import Any

from app.core.config import Settings
from app.services.integrations.http_client import create_httpx_client

logger = logging.getLogger(__name__)

PARSE_MODE = "Markdown"


class TelegramAPIError(RuntimeError):
    """The bot API answered ok=false."""


class TelegramClient:
    def __init__(self, token: str, base_url: str = "https://api.telegram.org", dry_run: bool = True):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.dry_run = dry_run

    @classmethod
    def from_settings(cls, config: Settings) -> "TelegramClient":
        return cls(
            token=config.telegram_bot_token,
            base_url=config.telegram_api_base_url,
            dry_run=config.telegram_dry_run,
        )

    async def call(self, method: str, payload: dict[str, Any]) -> dict:
        """
        Invoke a bot API method.

        Raises:
            httpx.HTTPError: transport failure or non-JSON error status
            TelegramAPIError: the API rejected the call
        """
        payload = {k: v for k, v in payload.items() if v is not None}
        if self.dry_run:
            logger.info(f"[DRY-RUN] Would call Telegram {method}: {payload}")
            return {"status": "dry_run", "method": method, "payload": payload}

        async with create_httpx_client(base_url=f"{self.base_url}/bot{self.token}") as client:
            response = await client.post(f"/{method}", json=payload)
            # Telegram reports most rejections as 400 with a JSON description
            try:
                body = response.json()
            except ValueError:
                response.raise_for_status()
                raise
            if not body.get("ok"):
                raise TelegramAPIError(f"{method} failed: {body.get('description', 'unknown error')}")
            return body.get("result") or {}

    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_markup: dict | None = None,
        parse_mode: str | None = PARSE_MODE,
    ) -> dict:
        return await self.call(
            "sendMessage",
            {"chat_id": chat_id, "text": text, "parse_mode": parse_mode, "reply_markup": reply_markup},
        )

    async def edit_message_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        reply_markup: dict | None = None,
    ) -> dict:
        return await self.call(
            "editMessageText",
            {
                "chat_id": chat_id,
                "message_id": message_id,
                "text": text,
                "parse_mode": PARSE_MODE,
                "reply_markup": reply_markup,
            },
        )

    async def send_photo(self, chat_id: int, photo_url: str, caption: str | None = None) -> dict:
        return await self.call(
            "sendPhoto",
            {"chat_id": chat_id, "photo": photo_url, "caption": caption, "parse_mode": PARSE_MODE},
        )

    async def answer_callback_query(self, callback_query_id: str) -> dict:
        return await self.call("answerCallbackQuery", {"callback_query_id": callback_query_id})

    async def set_webhook(self, url: str, secret_token: str | None = None) -> dict:
        return await self.call(
            "setWebhook",
            {"url": url, "secret_token": secret_token, "allowed_updates": ["message", "callback_query"]},
        )
