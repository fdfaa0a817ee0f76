from __future__ import annotations

import math
from typing import TYPE_CHECKING
from typing import Any

from mission_control.realtime.messages import ACTIVE_SESSION_DATA
from mission_control.realtime.messages import ATTENDANCE_FAILED
from mission_control.realtime.messages import ATTENDANCE_SESSION_FAILED
from mission_control.realtime.messages import ATTENDANCE_STARTED
from mission_control.realtime.messages import ATTENDANCE_SUCCESS
from mission_control.realtime.messages import OTP_GENERATED

# Every connection that passed authentication; session announcements go here
# so a handshake still being checked never hears them.
AUTHENTICATED_ROOM = "authenticated"

if TYPE_CHECKING:  # import for type checking only
    from datetime import datetime

    from mission_control.attendance.sessions import AttendanceSession


def build_session_started_payload(
    session: AttendanceSession,
    *,
    now: datetime,
    include_code: bool = True,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "sessionId": session.session_id,
        "windowSeconds": math.ceil(session.remaining_seconds(now)),
    }
    if include_code:
        payload["code"] = session.code
    return payload


def build_active_session_payload(
    session: AttendanceSession,
    *,
    include_code: bool = True,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "sessionId": session.session_id,
        "expiresAt": session.expires_at.isoformat(),
    }
    if include_code:
        payload["code"] = session.code
    return payload


async def publish_session_started(
    server,
    session: AttendanceSession,
    *,
    initiator_sid: str,
    now: datetime,
    broadcast_code: bool,
) -> None:
    """Announce a new session to every authenticated connection.

    With ``broadcast_code`` off, only the initiator's connection gets the
    code; everyone else learns that a session is open and submits blind.
    """

    await server.emit(
        ATTENDANCE_STARTED,
        build_session_started_payload(session, now=now, include_code=broadcast_code),
        room=AUTHENTICATED_ROOM,
    )
    await server.emit(
        OTP_GENERATED,
        build_session_started_payload(session, now=now),
        to=initiator_sid,
    )


async def publish_active_session(
    server,
    sid: str,
    session: AttendanceSession,
    *,
    include_code: bool,
) -> None:
    await server.emit(
        ACTIVE_SESSION_DATA,
        build_active_session_payload(session, include_code=include_code),
        to=sid,
    )


async def publish_session_failed(server, sid: str, message: str) -> None:
    await server.emit(ATTENDANCE_SESSION_FAILED, {"message": message}, to=sid)


async def publish_submission_result(
    server,
    sid: str,
    *,
    success: bool,
    message: str,
) -> None:
    """Unicast the outcome of a code submission to the submitter only."""

    event = ATTENDANCE_SUCCESS if success else ATTENDANCE_FAILED
    await server.emit(event, {"message": message}, to=sid)
