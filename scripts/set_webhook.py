"""
Register the bot webhook URL (and secret token) with the Telegram Bot API.

Usage:
    python scripts/set_webhook.py https://example.com/webhooks/telegram
"""

import asyncio
import sys
from pathlib import Path

# Add app directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.config import settings
from app.services.messaging.telegram import TelegramAPIError, TelegramClient


async def register(url: str) -> dict:
    client = TelegramClient(
        token=settings.telegram_bot_token,
        base_url=settings.telegram_api_base_url,
        dry_run=False,
    )
    return await client.set_webhook(url, secret_token=settings.telegram_webhook_secret)


def main():
    """CLI entrypoint."""
    import argparse

    parser = argparse.ArgumentParser(description="Register the Telegram webhook")
    parser.add_argument("url", type=str, help="Public HTTPS URL of POST /webhooks/telegram")
    args = parser.parse_args()

    if not settings.telegram_webhook_secret:
        print("Warning: TELEGRAM_WEBHOOK_SECRET is not set; updates will not be authenticated")

    try:
        result = asyncio.run(register(args.url))
    except TelegramAPIError as e:
        print(f"Telegram rejected the webhook: {e}")
        sys.exit(1)
    print(f"Webhook registered: {args.url} ({result})")


if __name__ == "__main__":
    main()
