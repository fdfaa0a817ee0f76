"""Event names and typed inbound payloads of the realtime surface.

Clients send loosely shaped JSON. ``parse_event`` turns it into one frozen
dataclass per event name, or raises ``InvalidPayload``; handlers only ever see
the typed variants.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from typing import Union

# client -> server
START_ATTENDANCE = "start-attendance"
SUBMIT_OTP = "submit-otp"
GET_ACTIVE_SESSION = "get-active-session"
JOIN_MISSION_ROOM = "joinMissionRoom"
SEND_MESSAGE = "sendMessage"

# server -> client
UNAUTHORIZED = "unauthorized"
ATTENDANCE_STARTED = "attendance-started"
OTP_GENERATED = "otp-generated"
ATTENDANCE_SESSION_FAILED = "attendance-session-failed"
ATTENDANCE_SUCCESS = "attendance-success"
ATTENDANCE_FAILED = "attendance-failed"
ACTIVE_SESSION_DATA = "active-session-data"
RECEIVE_MESSAGE = "receiveMessage"
ERROR_MESSAGE = "errorMessage"


class InvalidPayload(ValueError):
    """Inbound event payload is missing fields or has the wrong shape."""


@dataclass(frozen=True)
class StartAttendance:
    # Informational only: the initiator is the connection's identity.
    initiator_id: int | None = None


@dataclass(frozen=True)
class SubmitOtp:
    session_id: str
    code: str
    user_id: int | None = None


@dataclass(frozen=True)
class GetActiveSession:
    pass


@dataclass(frozen=True)
class JoinMissionRoom:
    room_id: int


@dataclass(frozen=True)
class SendMessage:
    room_id: int
    sender_id: int
    body: str


InboundEvent = Union[
    StartAttendance,
    SubmitOtp,
    GetActiveSession,
    JoinMissionRoom,
    SendMessage,
]


def _as_dict(data: Any) -> dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = "payload must be an object"
        raise InvalidPayload(msg)
    return data


def _first(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def _coerce_id(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        msg = f"{field_name} must be an integer id"
        raise InvalidPayload(msg)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    msg = f"{field_name} must be an integer id"
    raise InvalidPayload(msg)


def _optional_id(value: Any, field_name: str) -> int | None:
    if value is None or value == "":
        return None
    return _coerce_id(value, field_name)


def _parse_start_attendance(data: Any) -> StartAttendance:
    payload = _as_dict(data)
    return StartAttendance(
        initiator_id=_optional_id(
            _first(payload, "initiatorId", "adminId"), "initiatorId"
        )
    )


def _parse_submit_otp(data: Any) -> SubmitOtp:
    payload = _as_dict(data)
    session_id = _first(payload, "sessionId")
    code = _first(payload, "code", "otp")
    if not isinstance(session_id, str) or not session_id.strip():
        msg = "sessionId is required"
        raise InvalidPayload(msg)
    if code is None or isinstance(code, (bool, dict, list)):
        msg = "code is required"
        raise InvalidPayload(msg)
    code = str(code).strip()
    if not code:
        msg = "code is required"
        raise InvalidPayload(msg)
    return SubmitOtp(
        session_id=session_id.strip(),
        code=code,
        user_id=_optional_id(_first(payload, "userId"), "userId"),
    )


def _parse_get_active_session(data: Any) -> GetActiveSession:
    return GetActiveSession()


def _parse_join_mission_room(data: Any) -> JoinMissionRoom:
    # Older clients emit the bare mission id instead of an object.
    if isinstance(data, (int, str)) and not isinstance(data, bool):
        return JoinMissionRoom(room_id=_coerce_id(data, "roomId"))
    payload = _as_dict(data)
    room_id = _first(payload, "roomId", "missionId")
    if room_id is None:
        msg = "roomId is required"
        raise InvalidPayload(msg)
    return JoinMissionRoom(room_id=_coerce_id(room_id, "roomId"))


def _parse_send_message(data: Any) -> SendMessage:
    payload = _as_dict(data)
    room_id = _first(payload, "roomId", "missionId")
    if room_id is None:
        msg = "roomId is required"
        raise InvalidPayload(msg)
    sender_id = _first(payload, "senderId")
    if sender_id is None:
        msg = "senderId is required"
        raise InvalidPayload(msg)
    body = _first(payload, "body", "message")
    if not isinstance(body, str) or not body.strip():
        msg = "body must be a non-empty string"
        raise InvalidPayload(msg)
    return SendMessage(
        room_id=_coerce_id(room_id, "roomId"),
        sender_id=_coerce_id(sender_id, "senderId"),
        body=body.strip(),
    )


_PARSERS = {
    START_ATTENDANCE: _parse_start_attendance,
    SUBMIT_OTP: _parse_submit_otp,
    GET_ACTIVE_SESSION: _parse_get_active_session,
    JOIN_MISSION_ROOM: _parse_join_mission_room,
    SEND_MESSAGE: _parse_send_message,
}

INBOUND_EVENTS = tuple(_PARSERS)


def parse_event(name: str, data: Any) -> InboundEvent:
    parser = _PARSERS.get(name)
    if parser is None:
        msg = f"unknown event {name!r}"
        raise InvalidPayload(msg)
    return parser(data)
