"""Connection lifecycle and event dispatch for the Socket.IO server.

Every inbound event goes through one path: look up the connection identity,
parse the payload into its typed variant, then hand it to the attendance
manager or the chat relay. Handlers for one connection run one at a time, in
arrival order.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from mission_control.attendance.manager import AttendanceSessionManager
from mission_control.chat.relay import ChatRoomRelay

from .auth import AuthenticationError
from .auth import ConnectionIdentity
from .auth import authenticate
from .events.attendance import AUTHENTICATED_ROOM
from .events.attendance import publish_submission_result
from .messages import INBOUND_EVENTS
from .messages import SUBMIT_OTP
from .messages import UNAUTHORIZED
from .messages import GetActiveSession
from .messages import InboundEvent
from .messages import InvalidPayload
from .messages import JoinMissionRoom
from .messages import SendMessage
from .messages import StartAttendance
from .messages import SubmitOtp
from .messages import parse_event

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "Unauthorized access"
INVALID_SUBMISSION_MESSAGE = "Invalid attendance submission."


def room_for_user(user_id: int) -> str:
    return f"user_{int(user_id)}"


class RealtimeGateway:
    def __init__(
        self,
        server,
        *,
        attendance: AttendanceSessionManager | None = None,
        chat: ChatRoomRelay | None = None,
    ):
        self.server = server
        self.attendance = attendance or AttendanceSessionManager(server)
        self.chat = chat or ChatRoomRelay(server)
        self._identities: dict[str, ConnectionIdentity] = {}
        self._locks: dict[str, asyncio.Lock] = {}

        server.on("connect", self.connect)
        server.on("disconnect", self.disconnect)
        for name in INBOUND_EVENTS:
            server.on(name, self._handler_for(name))

    def __len__(self) -> int:
        return len(self._identities)

    def identity(self, sid: str) -> ConnectionIdentity | None:
        return self._identities.get(sid)

    # -- lifecycle -----------------------------------------------------

    async def connect(self, sid: str, environ: dict[str, Any], auth: Any | None = None):
        try:
            identity = await authenticate(environ, auth)
        except AuthenticationError as exc:
            logger.warning("Rejected Socket.IO connection %s: %s", sid, exc.reason)
            await self.server.emit(
                UNAUTHORIZED,
                {"message": UNAUTHORIZED_MESSAGE, "reason": exc.reason},
                to=sid,
            )
            raise ConnectionRefusedError(exc.reason) from exc

        self._identities[sid] = identity
        await self.server.save_session(sid, {"identity": identity})
        await self.server.enter_room(sid, room_for_user(identity.user_id))
        await self.server.enter_room(sid, AUTHENTICATED_ROOM)
        logger.debug("Connection %s authenticated as user %s", sid, identity.user_id)

    async def disconnect(self, sid: str, reason: Any = None):
        self._identities.pop(sid, None)
        self._locks.pop(sid, None)

    # -- dispatch ------------------------------------------------------

    def _handler_for(self, name: str):
        async def handler(sid: str, data: Any = None):
            await self.dispatch(sid, name, data)

        handler.__name__ = f"on_{name.replace('-', '_')}"
        return handler

    async def dispatch(self, sid: str, name: str, data: Any) -> None:
        identity = self.identity(sid)
        if identity is None:
            logger.warning("Dropped %r from unauthenticated connection %s", name, sid)
            return

        lock = self._locks.setdefault(sid, asyncio.Lock())
        async with lock:
            try:
                event = parse_event(name, data)
            except InvalidPayload as exc:
                logger.warning("Dropped malformed %r from connection %s: %s", name, sid, exc)
                if name == SUBMIT_OTP:
                    await publish_submission_result(
                        self.server,
                        sid,
                        success=False,
                        message=INVALID_SUBMISSION_MESSAGE,
                    )
                return

            try:
                await self.handle(sid, identity, event)
            except Exception:
                logger.exception("Unhandled error in %r handler for %s", name, sid)

    async def handle(
        self,
        sid: str,
        identity: ConnectionIdentity,
        event: InboundEvent,
    ) -> None:
        if isinstance(event, StartAttendance):
            await self.attendance.start_session(sid, identity)
        elif isinstance(event, SubmitOtp):
            await self.attendance.submit_code(sid, identity, event)
        elif isinstance(event, GetActiveSession):
            await self.attendance.active_session(sid, identity)
        elif isinstance(event, JoinMissionRoom):
            await self.chat.join_room(sid, identity, event)
        elif isinstance(event, SendMessage):
            await self.chat.send_message(sid, identity, event)
        else:
            msg = f"unhandled event {event!r}"
            raise TypeError(msg)
