"""
Event type constants for SystemEvent.

Use these instead of string literals to ensure consistency.
"""

# ---- Telegram ----
EVENT_TELEGRAM_WEBHOOK_FAILURE = "telegram.webhook_failure"
EVENT_TELEGRAM_SECRET_MISMATCH = "telegram.secret_mismatch"
EVENT_TELEGRAM_INVALID_PAYLOAD = "telegram.invalid_payload"

# ---- Bookings ----
EVENT_BOOKING_RACE_DETECTED = "booking.race_detected"
