"""
Bot conversation workflow - the state graph and callback token codec.

Two linear chains share MAIN_MENU as their root:

    booking creation:   MAIN_MENU -> NEW_BOOKING -> CITIES -> DATES -> HOUSES_LIST
                        -> COMMENT -> BOOKING_SUMMARY -> BOOKING_CONFIRM
    booking management: MAIN_MENU -> BOOKINGS_MENU -> BOOKINGS_LIST -> BOOKING_INFO
                        -> EDIT_COMMENT | DELETE_BOOKING

Everything here is pure; no I/O.

Callback token wire format (Telegram limits callback_data to 64 bytes):

    <tag>[:<int>][|<key>=<value>,<key>=<value>...]

<tag> is a two-letter state code, the optional integer is the positional id
(selected entity, or a boolean as 0/1), and the key/value section carries
back-chain data under short keys. Dates travel as YYYYMMDD.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import StrEnum

logger = logging.getLogger(__name__)

CALLBACK_MAX_BYTES = 64

TAG_SEPARATOR = ":"
PARAMS_SEPARATOR = "|"
PAIR_SEPARATOR = ","
KV_SEPARATOR = "="


class WorkflowState(StrEnum):
    MAIN_MENU = "MAIN_MENU"
    BOOKINGS_MENU = "BOOKINGS_MENU"
    BOOKINGS_LIST = "BOOKINGS_LIST"
    BOOKING_INFO = "BOOKING_INFO"
    EDIT_COMMENT = "EDIT_COMMENT"
    DELETE_BOOKING = "DELETE_BOOKING"
    NEW_BOOKING = "NEW_BOOKING"
    CITIES = "CITIES"
    DATES = "DATES"
    HOUSES_LIST = "HOUSES_LIST"
    COMMENT = "COMMENT"
    BOOKING_SUMMARY = "BOOKING_SUMMARY"
    BOOKING_CONFIRM = "BOOKING_CONFIRM"


class InvalidTransitionError(ValueError):
    """Navigation asked for a successor/predecessor that does not exist."""


class CallbackTooLongError(ValueError):
    """Encoded callback token exceeds the transport limit."""


BOOKING_CHAIN: tuple[WorkflowState, ...] = (
    WorkflowState.MAIN_MENU,
    WorkflowState.NEW_BOOKING,
    WorkflowState.CITIES,
    WorkflowState.DATES,
    WorkflowState.HOUSES_LIST,
    WorkflowState.COMMENT,
    WorkflowState.BOOKING_SUMMARY,
    WorkflowState.BOOKING_CONFIRM,
)

MANAGEMENT_CHAIN: tuple[WorkflowState, ...] = (
    WorkflowState.MAIN_MENU,
    WorkflowState.BOOKINGS_MENU,
    WorkflowState.BOOKINGS_LIST,
    WorkflowState.BOOKING_INFO,
)

# BOOKING_INFO branches to either leaf
MANAGEMENT_LEAVES: tuple[WorkflowState, ...] = (
    WorkflowState.EDIT_COMMENT,
    WorkflowState.DELETE_BOOKING,
)


def _build_tables() -> tuple[dict[WorkflowState, WorkflowState], dict[WorkflowState, WorkflowState]]:
    successors: dict[WorkflowState, list[WorkflowState]] = {}
    predecessors: dict[WorkflowState, WorkflowState] = {}
    for chain in (BOOKING_CHAIN, MANAGEMENT_CHAIN):
        for prev_state, next_state in zip(chain, chain[1:]):
            successors.setdefault(prev_state, []).append(next_state)
            predecessors[next_state] = prev_state
    for leaf in MANAGEMENT_LEAVES:
        successors.setdefault(WorkflowState.BOOKING_INFO, []).append(leaf)
        predecessors[leaf] = WorkflowState.BOOKING_INFO

    # Branch points (MAIN_MENU, BOOKING_INFO) have no single successor
    next_table = {state: targets[0] for state, targets in successors.items() if len(targets) == 1}
    return next_table, predecessors


NEXT_STATE, PREV_STATE = _build_tables()


def get_next(state: WorkflowState) -> WorkflowState:
    """
    Return the state that follows `state` in its chain.

    Raises:
        InvalidTransitionError: for terminal states and branch points.
    """
    try:
        return NEXT_STATE[WorkflowState(state)]
    except (KeyError, ValueError):
        raise InvalidTransitionError(f"State {state} has no single successor") from None


def get_prev(state: WorkflowState) -> WorkflowState:
    """Return the preceding state; MAIN_MENU is its own predecessor."""
    state = WorkflowState(state)
    return PREV_STATE.get(state, WorkflowState.MAIN_MENU)


# ---- Callback codec ----

STATE_TAGS: dict[WorkflowState, str] = {
    WorkflowState.MAIN_MENU: "mm",
    WorkflowState.BOOKINGS_MENU: "bm",
    WorkflowState.BOOKINGS_LIST: "bl",
    WorkflowState.BOOKING_INFO: "bi",
    WorkflowState.EDIT_COMMENT: "ec",
    WorkflowState.DELETE_BOOKING: "db",
    WorkflowState.NEW_BOOKING: "nb",
    WorkflowState.CITIES: "ci",
    WorkflowState.DATES: "dt",
    WorkflowState.HOUSES_LIST: "hl",
    WorkflowState.COMMENT: "cm",
    WorkflowState.BOOKING_SUMMARY: "bs",
    WorkflowState.BOOKING_CONFIRM: "bc",
}
TAG_STATES: dict[str, WorkflowState] = {tag: state for state, tag in STATE_TAGS.items()}

# Session data key -> wire key. Keys outside this table never travel in a token.
PARAM_KEYS: dict[str, str] = {
    "country_id": "c",
    "city_id": "ci",
    "start_date": "s",
    "end_date": "e",
    "house_id": "h",
    "booking_id": "b",
    "is_actual": "a",
}
WIRE_KEYS: dict[str, str] = {wire: name for name, wire in PARAM_KEYS.items()}
DATE_PARAMS = frozenset({"start_date", "end_date"})

# Name the positional id takes when a token for that state is decoded
POSITIONAL_PARAMS: dict[WorkflowState, str] = {
    WorkflowState.BOOKINGS_LIST: "is_actual",
    WorkflowState.BOOKING_INFO: "booking_id",
    WorkflowState.CITIES: "country_id",
    WorkflowState.DATES: "city_id",
    WorkflowState.HOUSES_LIST: "house_id",
}
DEFAULT_POSITIONAL_PARAM = "id"

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_PACKED_DATE_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_INT_RE = re.compile(r"^-?\d+$")


@dataclass(frozen=True)
class CallbackToken:
    """A decoded callback token."""

    state: WorkflowState
    positional_id: int | None = None
    params: dict[str, int | str] = field(default_factory=dict)

    def as_data(self) -> dict[str, int | str]:
        """Parameters keyed by name, the positional id included under its state-specific name."""
        data = dict(self.params)
        if self.positional_id is not None:
            data[POSITIONAL_PARAMS.get(self.state, DEFAULT_POSITIONAL_PARAM)] = self.positional_id
        return data


def _encode_value(name: str, value) -> str | None:
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, int):
        return str(value)
    text = str(value)
    if name in DATE_PARAMS:
        match = _ISO_DATE_RE.match(text)
        if match:
            return "".join(match.groups())
        return None
    if _INT_RE.match(text):
        return text
    return None


def _decode_value(name: str, raw: str) -> int | str | None:
    if name in DATE_PARAMS:
        match = _PACKED_DATE_RE.match(raw)
        if not match:
            return None
        return "-".join(match.groups())
    if _INT_RE.match(raw):
        return int(raw)
    return None


def build_callback(
    state: WorkflowState,
    extra_params: dict | None = None,
    positional_id: int | None = None,
) -> str:
    """
    Serialize a state plus parameters into a callback token.

    Parameters whose names are not in PARAM_KEYS, or whose values cannot be
    packed (None, free text), are left out; callers may pass the whole session
    data as back-chain context.

    Raises:
        CallbackTooLongError: when the token would exceed CALLBACK_MAX_BYTES.
    """
    token = STATE_TAGS[WorkflowState(state)]
    if positional_id is not None:
        token += f"{TAG_SEPARATOR}{int(positional_id)}"

    pairs = []
    for name, value in (extra_params or {}).items():
        wire_key = PARAM_KEYS.get(name)
        if wire_key is None or value is None:
            continue
        encoded = _encode_value(name, value)
        if encoded is None:
            continue
        pairs.append(f"{wire_key}{KV_SEPARATOR}{encoded}")
    if pairs:
        token += PARAMS_SEPARATOR + PAIR_SEPARATOR.join(pairs)

    if len(token.encode("utf-8")) > CALLBACK_MAX_BYTES:
        raise CallbackTooLongError(
            f"Callback for {state} is {len(token.encode('utf-8'))} bytes (max {CALLBACK_MAX_BYTES})"
        )
    return token


def parse_callback(token: str | None) -> CallbackToken | None:
    """
    Decode a callback token. Returns None when the state tag is unknown or
    the token is not a string; malformed parameter pairs are dropped.
    """
    if not isinstance(token, str) or not token:
        return None

    head, _, tail = token.partition(PARAMS_SEPARATOR)
    tag, has_id, raw_id = head.partition(TAG_SEPARATOR)
    state = TAG_STATES.get(tag)
    if state is None:
        return None

    positional_id = None
    if has_id:
        if not _INT_RE.match(raw_id):
            logger.info(f"Ignoring malformed callback id in token {token!r}")
            return CallbackToken(state=state)
        positional_id = int(raw_id)

    params: dict[str, int | str] = {}
    for pair in tail.split(PAIR_SEPARATOR) if tail else []:
        wire_key, has_value, raw = pair.partition(KV_SEPARATOR)
        name = WIRE_KEYS.get(wire_key)
        if not has_value or name is None:
            continue
        value = _decode_value(name, raw)
        if value is not None:
            params[name] = value

    return CallbackToken(state=state, positional_id=positional_id, params=params)


def extract_callback_data(state: WorkflowState, token: str | None) -> dict[str, int | str]:
    """
    Recover the named parameters of a token aimed at `state`.

    Tampered or foreign tokens yield an empty mapping instead of raising.
    """
    parsed = parse_callback(token)
    if parsed is None or parsed.state != state:
        return {}
    return parsed.as_data()
