"""Attendance session lifecycle over the realtime connection.

The manager owns the session registry and one sweep timer per session. Every
outcome of a member-initiated action goes back to that member's connection
only; the session start is the sole broadcast.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from channels.db import database_sync_to_async
from django.conf import settings

from mission_control.realtime.events.attendance import publish_active_session
from mission_control.realtime.events.attendance import publish_session_failed
from mission_control.realtime.events.attendance import publish_session_started
from mission_control.realtime.events.attendance import publish_submission_result

from . import services
from .exceptions import AttendanceError
from .exceptions import NotPermitted
from .exceptions import SessionAlreadyRunning
from .sessions import AttendanceSession
from .sessions import SessionRegistry

if TYPE_CHECKING:
    from mission_control.realtime.auth import ConnectionIdentity
    from mission_control.realtime.messages import SubmitOtp

    from .models import AttendanceRecord

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal error. Try again."
SUCCESS_MESSAGE = "Attendance marked successfully."
IDENTITY_MISMATCH_MESSAGE = "You can only mark your own attendance."


class AttendanceSessionManager:
    def __init__(
        self,
        server,
        registry: SessionRegistry | None = None,
        *,
        broadcast_code: bool | None = None,
    ):
        self.server = server
        self.registry = registry or SessionRegistry.from_settings()
        if broadcast_code is None:
            broadcast_code = settings.ATTENDANCE_BROADCAST_CODE
        self.broadcast_code = broadcast_code
        self._sweeps: set[asyncio.Task] = set()

    # -- session start -------------------------------------------------

    def open_session(self, identity: ConnectionIdentity) -> AttendanceSession:
        """Create a session for ``identity`` without scheduling or publishing it."""
        if not identity.is_admin:
            raise NotPermitted
        if self.registry.active() is not None:
            raise SessionAlreadyRunning
        session = self.registry.create(identity.user_id)
        logger.info(
            "Attendance session %s started by user %s (%ss)",
            session.session_id,
            identity.user_id,
            session.window_seconds,
        )
        logger.debug("Attendance session %s code %s", session.session_id, session.code)
        return session

    async def start_session(
        self,
        sid: str,
        identity: ConnectionIdentity,
    ) -> AttendanceSession | None:
        try:
            session = self.open_session(identity)
        except AttendanceError as exc:
            logger.info("Rejected attendance start by user %s: %s", identity.user_id, exc)
            await publish_session_failed(self.server, sid, exc.message)
            return None

        self._schedule_sweep(session)
        await publish_session_started(
            self.server,
            session,
            initiator_sid=sid,
            now=self.registry.now(),
            broadcast_code=self.broadcast_code,
        )
        return session

    # -- submissions ---------------------------------------------------

    def adjudicate(self, user_id: int, session_id: str, code: str) -> AttendanceRecord:
        """Validate a submission and write the Present record.

        Raises ``SessionNotFound``, ``IncorrectCode`` or ``AlreadyMarked`` in
        that order of precedence. Synchronous; used by the REST endpoint.
        """
        session = self.registry.verify(session_id, code)
        return services.mark_present(user_id, session.session_id)

    async def submit_code(
        self,
        sid: str,
        identity: ConnectionIdentity,
        event: SubmitOtp,
    ) -> bool:
        if event.user_id is not None and event.user_id != identity.user_id:
            logger.warning(
                "Connection %s (user %s) submitted a code for user %s",
                sid,
                identity.user_id,
                event.user_id,
            )
            await self._reply(sid, success=False, message=IDENTITY_MISMATCH_MESSAGE)
            return False

        try:
            session = self.registry.verify(event.session_id, event.code)
            await database_sync_to_async(services.mark_present)(
                identity.user_id, session.session_id
            )
        except AttendanceError as exc:
            await self._reply(sid, success=False, message=exc.message)
            return False
        except Exception:
            logger.exception(
                "Failed to record attendance for user %s in session %s",
                identity.user_id,
                event.session_id,
            )
            await self._reply(sid, success=False, message=INTERNAL_ERROR_MESSAGE)
            return False

        await self._reply(sid, success=True, message=SUCCESS_MESSAGE)
        return True

    async def _reply(self, sid: str, *, success: bool, message: str) -> None:
        await publish_submission_result(self.server, sid, success=success, message=message)

    # -- recovery ------------------------------------------------------

    async def active_session(self, sid: str, identity: ConnectionIdentity) -> bool:
        """Resend the running session to a reconnecting client; silent when none."""
        session = self.registry.active()
        if session is None:
            return False
        include_code = self.broadcast_code or identity.is_admin
        await publish_active_session(self.server, sid, session, include_code=include_code)
        return True

    # -- expiry sweep --------------------------------------------------

    def _schedule_sweep(self, session: AttendanceSession) -> None:
        loop = asyncio.get_running_loop()
        session.timer = loop.call_later(
            session.remaining_seconds(self.registry.now()),
            self._on_expiry,
            session,
        )

    def _on_expiry(self, session: AttendanceSession) -> None:
        session.timer = None
        task = asyncio.ensure_future(self.mark_absentees(session))
        self._sweeps.add(task)
        task.add_done_callback(self._sweeps.discard)

    async def mark_absentees(self, session: AttendanceSession) -> services.SweepResult:
        """Absent records for every member who did not submit in time."""
        try:
            result = await database_sync_to_async(services.mark_absentees)()
        except Exception:
            logger.exception("Absentee sweep for session %s failed", session.session_id)
            result = services.SweepResult()
        self.registry.sweep()
        return result

    async def drain(self) -> None:
        """Wait for sweeps whose timers already fired."""
        if self._sweeps:
            await asyncio.gather(*list(self._sweeps), return_exceptions=True)

    def shutdown(self) -> None:
        self.registry.clear()
        for task in list(self._sweeps):
            task.cancel()
