"""
Replay a sample Telegram update to test the webhook endpoint.

Useful for exercising the bot without a real Telegram chat. Keep
TELEGRAM_DRY_RUN=true on the server so replies are only logged.

Usage:
    python scripts/webhook_replay.py [--text "/start"] [--callback nb] [--chat-id 1001]
"""

import json
import sys
import time
from pathlib import Path

# Add app directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import httpx

from app.core.config import settings

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


def _sender(chat_id: int, username: str) -> dict:
    return {"id": chat_id, "is_bot": False, "first_name": "Test", "username": username}


def create_text_update(chat_id: int, text: str, username: str = "test_user") -> dict:
    """Create a sample text message update."""
    now = int(time.time())
    return {
        "update_id": now,
        "message": {
            "message_id": now % 100000,
            "date": now,
            "chat": {"id": chat_id, "type": "private"},
            "from": _sender(chat_id, username),
            "text": text,
        },
    }


def create_callback_update(chat_id: int, data: str, message_id: int = 1, username: str = "test_user") -> dict:
    """Create a sample inline-button press update."""
    now = int(time.time())
    return {
        "update_id": now,
        "callback_query": {
            "id": f"cbq-{now}",
            "from": _sender(chat_id, username),
            "data": data,
            "message": {
                "message_id": message_id,
                "date": now,
                "chat": {"id": chat_id, "type": "private"},
            },
        },
    }


def send_update(update: dict, base_url: str = "http://localhost:8000") -> bool:
    """Post an update to the webhook endpoint."""
    webhook_url = f"{base_url}/webhooks/telegram"
    headers = {"Content-Type": "application/json"}
    if settings.telegram_webhook_secret:
        headers[SECRET_HEADER] = settings.telegram_webhook_secret

    print(f"Sending update to: {webhook_url}")
    print(f"   Payload: {json.dumps(update, indent=2)}")
    print()

    try:
        with httpx.Client(timeout=10.0) as client:
            response = client.post(webhook_url, json=update, headers=headers)
    except httpx.HTTPError as e:
        print(f"Error sending update: {e}")
        return False

    print(f"Response: {response.status_code} {response.text}")
    return response.status_code == 200


def main():
    """CLI entrypoint."""
    import argparse

    parser = argparse.ArgumentParser(description="Replay a Telegram update")
    parser.add_argument("--text", type=str, default="/start", help="Text message content")
    parser.add_argument("--callback", type=str, default=None, help="Send a button press with this callback data")
    parser.add_argument("--message-id", type=int, default=1, help="Message the button belongs to")
    parser.add_argument("--chat-id", type=int, default=1001, help="Chat (and sender) id")
    parser.add_argument("--username", type=str, default="test_user", help="Sender username")
    parser.add_argument(
        "--url",
        type=str,
        default="http://localhost:8000",
        help="Base URL of the API (default: http://localhost:8000)",
    )
    args = parser.parse_args()

    print(f"Webhook secret: {'set' if settings.telegram_webhook_secret else 'not set (header omitted)'}")
    print(f"Dry run: {settings.telegram_dry_run}")
    print()

    if args.callback:
        update = create_callback_update(args.chat_id, args.callback, args.message_id, args.username)
    else:
        update = create_text_update(args.chat_id, args.text, args.username)

    if not send_update(update, base_url=args.url):
        print("Troubleshooting:")
        print("   1. Ensure the API is running")
        print("   2. Check TELEGRAM_WEBHOOK_SECRET matches the server")
        sys.exit(1)


if __name__ == "__main__":
    main()
