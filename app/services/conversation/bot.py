"""
Telegram bot orchestrator - turns inbound updates into conversation steps.

Callback queries carry a workflow token (see workflow.py) and are dispatched on
its state. Text messages are dispatched on the state stored in the chat's
session: DATES expects a date range, HOUSES_LIST a house code, COMMENT and
EDIT_COMMENT a comment. Anything else falls back to the main menu.

Business-rule failures are rendered to the user as an error message and leave
the session where it was. Unexpected exceptions propagate to the webhook.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from app.constants.reasons import Reason, describe
from app.db.models import Booking, House, User
from app.services import bookings as booking_service
from app.services import cities as city_service
from app.services import countries as country_service
from app.services import houses as house_service
from app.services.conversation.sessions import SessionManager, merge_data
from app.services.conversation.workflow import (
    CallbackToken,
    WorkflowState,
    build_callback,
    get_next,
    get_prev,
    parse_callback,
)
from app.services.messaging import buttons
from app.services.messaging.buttons import Keyboard, to_reply_markup
from app.services.messaging.message_composer import render_message
from app.services.messaging.telegram import TelegramClient
from app.services.users import get_or_register_telegram_user

logger = logging.getLogger(__name__)

START_COMMAND = "/start"
NO_COMMENT = "-"
COMMENT_MAX_LENGTH = 255
DATES_RE = re.compile(r"^\d{4}-\d{2}-\d{2} to \d{4}-\d{2}-\d{2}$")

# States whose handlers rely on data only the session holds
SESSION_REQUIRED = frozenset(
    {
        WorkflowState.COMMENT,
        WorkflowState.BOOKING_CONFIRM,
        WorkflowState.EDIT_COMMENT,
        WorkflowState.DELETE_BOOKING,
    }
)


@dataclass
class BotEvent:
    """The parts of an update every handler needs."""

    chat_id: int
    user: User
    display_name: str
    message_id: int | None = None
    callback_query_id: str | None = None


def _yes_no(flag: bool) -> str:
    return "✅" if flag else "❌"


def _to_date(value: Any) -> date | None:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        return None


class BookingBot:
    def __init__(self, db: Session, sessions: SessionManager, client: TelegramClient):
        self.db = db
        self.sessions = sessions
        self.client = client

    # ---- Entry point ----

    async def handle_update(self, update: dict) -> str:
        """
        Process one Telegram update.

        Returns:
            "callback", "message" or "ignored" (update kinds the bot does not handle).
        """
        if not isinstance(update, dict):
            return "ignored"

        if isinstance(update.get("callback_query"), dict):
            query = update["callback_query"]
            message = query.get("message")
            event = self._make_event(message, query.get("from"))
            if event is None:
                return "ignored"
            event.message_id = message.get("message_id")
            event.callback_query_id = query.get("id")
            await self.handle_callback(event, query.get("data"))
            if event.callback_query_id:
                await self.client.answer_callback_query(event.callback_query_id)
            return "callback"

        if isinstance(update.get("message"), dict):
            message = update["message"]
            event = self._make_event(message, message.get("from"))
            if event is None:
                return "ignored"
            text = message.get("text")
            await self.handle_text(event, text if isinstance(text, str) else "")
            return "message"

        return "ignored"

    def _make_event(self, message: Any, sender: Any) -> BotEvent | None:
        chat = message.get("chat") if isinstance(message, dict) else None
        chat_id = chat.get("id") if isinstance(chat, dict) else None
        sender_id = sender.get("id") if isinstance(sender, dict) else None
        if not isinstance(chat_id, int) or not isinstance(sender_id, int):
            logger.info("Ignoring update without a usable chat or sender")
            return None
        username = sender.get("username")
        if not isinstance(username, str):
            username = None
        user = get_or_register_telegram_user(self.db, chat_id, sender_id, username)
        return BotEvent(
            chat_id=chat_id,
            user=user,
            display_name=username or sender.get("first_name") or "",
        )

    async def handle_callback(self, event: BotEvent, callback_data: str | None) -> None:
        token = parse_callback(callback_data)
        if token is None:
            logger.info(f"Unknown callback {callback_data!r} from chat {event.chat_id}")
            await self.reset(event)
            return

        session = self.sessions.get_session(event.chat_id)
        if token.state in SESSION_REQUIRED and session is None:
            await self.reset(event)
            return

        handler = self._callback_handlers()[token.state]
        await handler(event, token, session)

    async def handle_text(self, event: BotEvent, text: str) -> None:
        text = text.strip()
        if text.split(" ", 1)[0] == START_COMMAND:
            await self.show_main_menu(event)
            return

        session = self.sessions.get_session(event.chat_id)
        if session is None:
            await self.reset(event)
            return

        state = session["state"]
        if state == WorkflowState.DATES:
            await self.handle_dates_input(event, session, text)
        elif state == WorkflowState.HOUSES_LIST:
            await self.handle_house_code_input(event, session, text)
        elif state in (WorkflowState.COMMENT, WorkflowState.EDIT_COMMENT):
            await self.handle_comment_input(event, session, text)
        else:
            await self.reset(event)

    def _callback_handlers(self) -> dict:
        return {
            WorkflowState.MAIN_MENU: lambda e, t, s: self.show_main_menu(e),
            WorkflowState.BOOKINGS_MENU: lambda e, t, s: self.show_bookings_menu(e),
            WorkflowState.BOOKINGS_LIST: self._on_bookings_list,
            WorkflowState.BOOKING_INFO: self._on_booking_info,
            WorkflowState.EDIT_COMMENT: lambda e, t, s: self.request_comment(e, WorkflowState.EDIT_COMMENT, s),
            WorkflowState.DELETE_BOOKING: lambda e, t, s: self.delete_booking(e, s),
            WorkflowState.NEW_BOOKING: lambda e, t, s: self.show_countries(e),
            WorkflowState.CITIES: self._on_cities,
            WorkflowState.DATES: self._on_dates,
            WorkflowState.HOUSES_LIST: self._on_houses_list,
            WorkflowState.COMMENT: lambda e, t, s: self.request_comment(e, WorkflowState.COMMENT, s),
            WorkflowState.BOOKING_SUMMARY: self._on_booking_summary,
            WorkflowState.BOOKING_CONFIRM: lambda e, t, s: self.confirm_booking(e, s),
        }

    # ---- Sending ----

    async def send(
        self,
        event: BotEvent,
        text: str,
        keyboard: Keyboard | None = None,
        image_url: str | None = None,
        edit: bool = True,
    ) -> None:
        """
        Edit the message that carried the callback when there is one, otherwise
        send a photo (when an image is given) or a plain message.
        """
        markup = to_reply_markup(keyboard)
        if edit and event.message_id is not None:
            await self.client.edit_message_text(event.chat_id, event.message_id, text, reply_markup=markup)
        elif image_url:
            await self.client.send_photo(event.chat_id, image_url, caption=text)
        else:
            await self.client.send_message(event.chat_id, text, reply_markup=markup)

    async def send_error(self, event: BotEvent, reason: Reason, keyboard: Keyboard | None = None) -> None:
        logger.info(f"Chat {event.chat_id}: {reason}")
        await self.send(event, render_message("error", message=describe(reason)), keyboard)

    def _back_row(self, state: WorkflowState, data: dict | None = None) -> list:
        """Back to the predecessor of `state` (carrying session data) plus Main Menu."""
        return [
            buttons.back(build_callback(get_prev(state), data)),
            buttons.main_menu(build_callback(WorkflowState.MAIN_MENU)),
        ]

    async def reset(self, event: BotEvent) -> None:
        await self.client.send_message(event.chat_id, render_message("unknown_command"))
        event.message_id = None
        await self.show_main_menu(event)

    # ---- Main menu and booking management ----

    async def show_main_menu(self, event: BotEvent) -> None:
        self.sessions.delete_session(event.chat_id)
        keyboard = [
            [
                buttons.new_booking(build_callback(WorkflowState.NEW_BOOKING)),
                buttons.my_bookings(build_callback(WorkflowState.BOOKINGS_MENU)),
            ]
        ]
        await self.send(event, render_message("welcome"), keyboard)
        self.sessions.save_session(event.chat_id, WorkflowState.MAIN_MENU, {})

    async def show_bookings_menu(self, event: BotEvent) -> None:
        keyboard = [
            [
                buttons.actual_bookings(build_callback(WorkflowState.BOOKINGS_LIST, positional_id=1)),
                buttons.archived_bookings(build_callback(WorkflowState.BOOKINGS_LIST, positional_id=0)),
            ],
            [buttons.main_menu(build_callback(WorkflowState.MAIN_MENU))],
        ]
        await self.send(event, render_message("my_bookings"), keyboard)
        self.sessions.save_session(event.chat_id, WorkflowState.BOOKINGS_MENU, {})

    async def _on_bookings_list(self, event: BotEvent, token: CallbackToken, session: dict | None) -> None:
        is_actual = token.as_data().get("is_actual", 1)
        await self.show_bookings(event, bool(is_actual))

    async def show_bookings(self, event: BotEvent, is_actual: bool) -> None:
        data = {"is_actual": int(is_actual)}
        found = booking_service.find_bookings_by_user(self.db, event.user.id, is_actual=is_actual)

        keyboard: Keyboard = [
            [
                buttons.booking_address(
                    f"{b.house.city.name}, {b.house.address}",
                    build_callback(WorkflowState.BOOKING_INFO, positional_id=b.id),
                )
            ]
            for b in found
        ]
        keyboard.append(self._back_row(WorkflowState.BOOKINGS_LIST, data))

        text = render_message("select_booking" if found else "bookings_not_found")
        await self.send(event, text, keyboard)
        self.sessions.save_session(event.chat_id, WorkflowState.BOOKINGS_LIST, data)

    def _owned_booking(self, event: BotEvent, booking_id: int | None) -> Booking | None:
        if booking_id is None:
            return None
        if booking_service.validate_booking_deletion(self.db, booking_id, owner_id=event.user.id):
            return None
        return booking_service.find_booking_by_id(self.db, booking_id)

    async def _on_booking_info(self, event: BotEvent, token: CallbackToken, session: dict | None) -> None:
        data = merge_data(session["data"] if session else {}, token.as_data())
        await self.show_booking_info(event, data)

    async def show_booking_info(self, event: BotEvent, data: dict) -> None:
        booking = self._owned_booking(event, data.get("booking_id"))
        if booking is None:
            await self.send_error(event, Reason.BOOKING_NOT_FOUND, [self._back_row(WorkflowState.BOOKING_INFO, data)])
            return

        house = booking.house
        text = render_message(
            "booking_info",
            house_id=house.id,
            country=house.city.country.name,
            city=house.city.name,
            address=house.address,
            comment=booking.comment or NO_COMMENT,
            start_date=booking.start_date.isoformat(),
            end_date=booking.end_date.isoformat(),
            total_price=booking_service.calculate_total_price(house, booking.start_date, booking.end_date),
        )
        await self.send(event, text, image_url=house.image_url, edit=False)

        keyboard = [
            [
                buttons.edit_comment(build_callback(WorkflowState.EDIT_COMMENT)),
                buttons.delete_booking(build_callback(WorkflowState.DELETE_BOOKING)),
            ],
            self._back_row(WorkflowState.BOOKING_INFO, data),
        ]
        await self.send(event, render_message("select_booking_action"), keyboard, edit=False)
        self.sessions.save_session(event.chat_id, WorkflowState.BOOKING_INFO, data)

    async def delete_booking(self, event: BotEvent, session: dict) -> None:
        data = session["data"]
        booking_id = data.get("booking_id")
        list_data = merge_data(data, {"booking_id": None})
        back_to_list = [
            [
                buttons.back(build_callback(WorkflowState.BOOKINGS_LIST, list_data)),
                buttons.main_menu(build_callback(WorkflowState.MAIN_MENU)),
            ]
        ]

        error = Reason.BOOKING_NOT_FOUND
        if booking_id is not None:
            error = booking_service.validate_booking_deletion(self.db, booking_id, owner_id=event.user.id)
        if error:
            await self.send_error(event, error, back_to_list)
            return

        booking_service.delete_booking(self.db, booking_id)
        await self.send(event, render_message("booking_deleted"), back_to_list)
        self.sessions.save_session(event.chat_id, WorkflowState.DELETE_BOOKING, list_data)

    # ---- Booking creation ----

    async def show_countries(self, event: BotEvent) -> None:
        keyboard: Keyboard = [
            [buttons.country(c.name, build_callback(WorkflowState.CITIES, positional_id=c.id))]
            for c in country_service.find_all_countries(self.db)
        ]
        keyboard.append([buttons.main_menu(build_callback(get_prev(WorkflowState.NEW_BOOKING)))])
        await self.send(event, render_message("select_country"), keyboard)
        self.sessions.save_session(event.chat_id, WorkflowState.NEW_BOOKING, {})

    async def _on_cities(self, event: BotEvent, token: CallbackToken, session: dict | None) -> None:
        data = merge_data(session["data"] if session else {}, token.as_data())
        await self.show_cities(event, data)

    async def show_cities(self, event: BotEvent, data: dict) -> None:
        country_id = data.get("country_id")
        error = country_service.validate_country_exists(self.db, country_id) if country_id else Reason.COUNTRY_NOT_FOUND
        if error:
            await self.send_error(event, error, [self._back_row(WorkflowState.CITIES, data)])
            return

        keyboard: Keyboard = [
            [buttons.city(c.name, build_callback(WorkflowState.DATES, positional_id=c.id))]
            for c in city_service.find_cities_by_country_id(self.db, country_id)
        ]
        keyboard.append(self._back_row(WorkflowState.CITIES, data))
        await self.send(event, render_message("select_city"), keyboard)
        self.sessions.save_session(event.chat_id, WorkflowState.CITIES, data)

    async def _on_dates(self, event: BotEvent, token: CallbackToken, session: dict | None) -> None:
        data = merge_data(session["data"] if session else {}, token.as_data())
        await self.request_dates(event, data)

    async def request_dates(self, event: BotEvent, data: dict) -> None:
        city_id = data.get("city_id")
        city = city_service.find_city_by_id(self.db, city_id) if city_id else None
        error = Reason.CITY_NOT_FOUND if city is None else None
        if city is not None and data.get("country_id") is not None:
            error = city_service.validate_city_country(city, data["country_id"])
        if error:
            await self.send_error(event, error, [self._back_row(WorkflowState.DATES, data)])
            return

        data = merge_data(data, {"country_id": city.country_id})
        await self.send(event, render_message("select_dates"), [self._back_row(WorkflowState.DATES, data)])
        self.sessions.save_session(event.chat_id, WorkflowState.DATES, data)

    async def handle_dates_input(self, event: BotEvent, session: dict, text: str) -> None:
        data = session["data"]
        start_date = end_date = None
        if DATES_RE.match(text):
            start_raw, end_raw = text.split(" to ")
            start_date, end_date = _to_date(start_raw), _to_date(end_raw)
        if start_date is None or end_date is None:
            await self.client.send_message(event.chat_id, render_message("incorrect_date_format"))
            return

        error = booking_service.validate_booking_dates(start_date, end_date)
        if error:
            await self.send_error(event, error)
            return

        data = merge_data(data, {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()})
        await self.show_houses(event, data)

    async def _on_houses_list(self, event: BotEvent, token: CallbackToken, session: dict | None) -> None:
        data = merge_data(session["data"] if session else {}, token.as_data())
        await self.show_houses(event, data)

    async def show_houses(self, event: BotEvent, data: dict) -> None:
        city = city_service.find_city_by_id(self.db, data["city_id"]) if data.get("city_id") else None
        start_date = _to_date(data.get("start_date"))
        end_date = _to_date(data.get("end_date"))
        if city is None or start_date is None or end_date is None:
            await self.reset(event)
            return

        # Listing is always a fresh batch of messages below the previous one
        event.message_id = None
        houses = house_service.find_available_houses(self.db, city.id, start_date, end_date)
        for house in houses:
            await self.send(event, self._house_info(house), image_url=house.image_url)

        keyboard = [self._back_row(WorkflowState.HOUSES_LIST, data)]
        if houses:
            await self.send(event, render_message("select_house"), keyboard)
        else:
            await self.send(event, render_message("houses_not_found", city=city.name), keyboard)
        self.sessions.save_session(event.chat_id, WorkflowState.HOUSES_LIST, data)

    def _house_info(self, house: House) -> str:
        return render_message(
            "house_info",
            house_id=house.id,
            price=house.price_per_night,
            country=house.city.country.name,
            city=house.city.name,
            address=house.address,
            bedrooms=house.bedrooms_count,
            sea_view=_yes_no(house.has_sea_view),
            wifi=_yes_no(house.has_wifi),
            kitchen=_yes_no(house.has_kitchen),
            parking=_yes_no(house.has_parking),
            air_conditioning=_yes_no(house.has_air_conditioning),
        )

    async def handle_house_code_input(self, event: BotEvent, session: dict, text: str) -> None:
        data = session["data"]
        if not text.isdigit():
            await self.client.send_message(event.chat_id, render_message("invalid_house_code"))
            return

        house = house_service.find_house_by_id(self.db, int(text))
        error = Reason.HOUSE_NOT_FOUND if house is None else None
        if error is None and data.get("city_id") is not None:
            error = house_service.validate_house_city(house, data["city_id"])
        if error is None:
            error = booking_service.validate_house_availability(
                self.db, house, _to_date(data["start_date"]), _to_date(data["end_date"])
            )
        if error:
            await self.send_error(event, error)
            return

        data = merge_data(data, {"house_id": house.id})
        self.sessions.save_session(event.chat_id, WorkflowState.HOUSES_LIST, data)
        await self.request_comment(event, get_next(WorkflowState.HOUSES_LIST), {"data": data})

    async def request_comment(self, event: BotEvent, state: WorkflowState, session: dict) -> None:
        data = session["data"]
        if state == WorkflowState.EDIT_COMMENT and self._owned_booking(event, data.get("booking_id")) is None:
            await self.send_error(event, Reason.BOOKING_NOT_FOUND, [self._back_row(WorkflowState.BOOKING_INFO, data)])
            return
        if state == WorkflowState.COMMENT and data.get("house_id") is None:
            await self.reset(event)
            return

        await self.send(event, render_message("select_comment"), [self._back_row(state, data)])
        self.sessions.save_session(event.chat_id, state, data)

    async def handle_comment_input(self, event: BotEvent, session: dict, text: str) -> None:
        if len(text) > COMMENT_MAX_LENGTH:
            await self.client.send_message(
                event.chat_id, render_message("comment_too_long", limit=COMMENT_MAX_LENGTH)
            )
            return
        comment = None if text == NO_COMMENT or not text else text

        if session["state"] == WorkflowState.EDIT_COMMENT:
            await self._save_edited_comment(event, session["data"], comment)
            return

        data = merge_data(session["data"], {"comment": comment})
        await self.show_booking_summary(event, data)

    async def _save_edited_comment(self, event: BotEvent, data: dict, comment: str | None) -> None:
        booking = self._owned_booking(event, data.get("booking_id"))
        if booking is None:
            await self.send_error(event, Reason.BOOKING_NOT_FOUND)
            return
        _, error = booking_service.update_booking(self.db, booking.id, {"comment": comment})
        if error:
            await self.send_error(event, error)
            return
        await self.show_booking_info(event, data)

    async def _on_booking_summary(self, event: BotEvent, token: CallbackToken, session: dict | None) -> None:
        if session is None:
            await self.reset(event)
            return
        await self.show_booking_summary(event, merge_data(session["data"], token.as_data()))

    async def show_booking_summary(self, event: BotEvent, data: dict) -> None:
        house = house_service.find_house_by_id(self.db, data["house_id"]) if data.get("house_id") else None
        start_date = _to_date(data.get("start_date"))
        end_date = _to_date(data.get("end_date"))
        if house is None or start_date is None or end_date is None:
            await self.send_error(event, Reason.HOUSE_NOT_FOUND)
            return

        text = render_message(
            "booking_summary",
            house_id=house.id,
            country=house.city.country.name,
            city=house.city.name,
            address=house.address,
            comment=data.get("comment") or NO_COMMENT,
            start_date=start_date.isoformat(),
            end_date=end_date.isoformat(),
            total_price=booking_service.calculate_total_price(house, start_date, end_date),
        )
        keyboard = [
            [buttons.confirm(build_callback(get_next(WorkflowState.BOOKING_SUMMARY), data))],
            self._back_row(WorkflowState.BOOKING_SUMMARY, data),
        ]
        await self.send(event, text, keyboard)
        self.sessions.save_session(event.chat_id, WorkflowState.BOOKING_SUMMARY, data)

    async def confirm_booking(self, event: BotEvent, session: dict) -> None:
        if session["state"] != WorkflowState.BOOKING_SUMMARY:
            await self.reset(event)
            return

        data = session["data"]
        booking, error = booking_service.create_booking(
            self.db,
            house_id=data["house_id"],
            user_id=event.user.id,
            comment=data.get("comment"),
            start_date=_to_date(data["start_date"]),
            end_date=_to_date(data["end_date"]),
        )
        if error:
            await self.send_error(event, error, [self._back_row(WorkflowState.BOOKING_CONFIRM, data)])
            return

        logger.info(f"Chat {event.chat_id} confirmed booking {booking.id}")
        # The booking is committed; a failed confirmation send must not leave a replayable summary
        self.sessions.delete_session(event.chat_id)
        keyboard = [[buttons.main_menu(build_callback(WorkflowState.MAIN_MENU))]]
        await self.send(event, render_message("confirm_booking", name=event.display_name), keyboard)
