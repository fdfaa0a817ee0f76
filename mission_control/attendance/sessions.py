"""In-process registry of time-boxed attendance sessions.

A session is a one-time numeric code plus an opaque id, valid for a fixed
window. Nothing here touches the database: records are only written when a
member submits the code or when the window closes.

The registry is process-local. Running several ASGI workers means each one
holds its own sessions, so deployments that scale out must pin attendance
traffic to one worker or move this table into a shared store.
"""

from __future__ import annotations

import hmac
import logging
import secrets
import uuid
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.utils import timezone

from .exceptions import IncorrectCode
from .exceptions import SessionNotFound

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Callable

logger = logging.getLogger(__name__)


def generate_code(length: int) -> str:
    """Uniformly drawn, zero-padded numeric code of exactly ``length`` digits."""
    return f"{secrets.randbelow(10**length):0{length}d}"


@dataclass
class AttendanceSession:
    session_id: str
    code: str
    initiator_id: int
    created_at: datetime
    expires_at: datetime
    # One-shot absentee sweep scheduled for ``expires_at``.
    timer: asyncio.TimerHandle | None = field(default=None, repr=False, compare=False)

    @property
    def window_seconds(self) -> int:
        return int((self.expires_at - self.created_at).total_seconds())

    def is_active(self, now: datetime) -> bool:
        return now < self.expires_at

    def remaining_seconds(self, now: datetime) -> float:
        return max((self.expires_at - now).total_seconds(), 0.0)

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


class SessionRegistry:
    """Session table owned by the attendance manager.

    Sessions are inserted by ``create`` and never mutated afterwards, so
    readers only race on existence. Expiry is computed lazily against the
    clock; expired sessions linger until ``sweep`` drops them.
    """

    def __init__(
        self,
        *,
        window_seconds: int,
        code_length: int = 4,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self.window = timedelta(seconds=window_seconds)
        self.code_length = code_length
        self.clock = clock
        self._sessions: dict[str, AttendanceSession] = {}

    @classmethod
    def from_settings(cls, **kwargs) -> SessionRegistry:
        kwargs.setdefault("window_seconds", settings.ATTENDANCE_OTP_WINDOW_SECONDS)
        kwargs.setdefault("code_length", settings.ATTENDANCE_OTP_LENGTH)
        return cls(**kwargs)

    def __len__(self) -> int:
        return len(self._sessions)

    def now(self) -> datetime:
        return self.clock()

    def create(self, initiator_id: int) -> AttendanceSession:
        self.sweep()
        created_at = self.now()
        session = AttendanceSession(
            session_id=str(uuid.uuid4()),
            code=generate_code(self.code_length),
            initiator_id=initiator_id,
            created_at=created_at,
            expires_at=created_at + self.window,
        )
        self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> AttendanceSession | None:
        """Return the session only while it is still active."""
        session = self._sessions.get(session_id)
        if session is None or not session.is_active(self.now()):
            return None
        return session

    def active(self) -> AttendanceSession | None:
        """Most recently created session that is still active, if any."""
        now = self.now()
        live = [s for s in self._sessions.values() if s.is_active(now)]
        if not live:
            return None
        return max(live, key=lambda s: s.created_at)

    def verify(self, session_id: str, code: str) -> AttendanceSession:
        """Check a submission against a session.

        Raises ``SessionNotFound`` for unknown or expired sessions, then
        ``IncorrectCode`` when the code does not match.
        """
        session = self.get(session_id)
        if session is None:
            raise SessionNotFound
        if not hmac.compare_digest(str(code).strip(), session.code):
            raise IncorrectCode
        return session

    def discard(self, session_id: str) -> AttendanceSession | None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.cancel_timer()
        return session

    def sweep(self) -> int:
        """Drop expired sessions. Their sweep timers have already fired."""
        now = self.now()
        expired = [sid for sid, s in self._sessions.items() if not s.is_active(now)]
        for session_id in expired:
            self._sessions.pop(session_id, None)
        if expired:
            logger.debug("Dropped %d expired attendance session(s)", len(expired))
        return len(expired)

    def clear(self) -> None:
        for session in self._sessions.values():
            session.cancel_timer()
        self._sessions.clear()
