"""
Inline keyboard buttons for the bot.

Every button pairs a label from the copy file with a callback token built by
the workflow codec.
"""

from app.services.messaging.message_composer import get_composer

Button = dict[str, str]
Keyboard = list[list[Button]]


def build_button(text: str, callback_data: str) -> Button:
    return {"text": text, "callback_data": callback_data}


def _labelled(key: str, callback: str, **kwargs) -> Button:
    return build_button(get_composer().button(key, **kwargs), callback)


def main_menu(callback: str) -> Button:
    return _labelled("main_menu", callback)


def actual_bookings(callback: str) -> Button:
    return _labelled("actual_bookings", callback)


def archived_bookings(callback: str) -> Button:
    return _labelled("archived_bookings", callback)


def edit_comment(callback: str) -> Button:
    return _labelled("edit_comment", callback)


def delete_booking(callback: str) -> Button:
    return _labelled("delete_booking", callback)


def back(callback: str) -> Button:
    return _labelled("back", callback)


def new_booking(callback: str) -> Button:
    return _labelled("new_booking", callback)


def my_bookings(callback: str) -> Button:
    return _labelled("my_bookings", callback)


def country(name: str, callback: str) -> Button:
    return _labelled("country", callback, name=name)


def city(name: str, callback: str) -> Button:
    return _labelled("city", callback, name=name)


def confirm(callback: str) -> Button:
    return _labelled("confirm", callback)


def booking_address(address: str, callback: str) -> Button:
    return _labelled("booking_address", callback, address=address)


def to_reply_markup(keyboard: Keyboard | None) -> dict | None:
    """Telegram InlineKeyboardMarkup payload."""
    if keyboard is None:
        return None
    return {"inline_keyboard": keyboard}
