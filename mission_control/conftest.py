from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import pytest
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from mission_control.attendance.manager import AttendanceSessionManager
from mission_control.attendance.sessions import SessionRegistry
from mission_control.chat.relay import ChatRoomRelay
from mission_control.realtime.gateway import RealtimeGateway
from mission_control.users.models import User

TEST_PASSWORD = "TestPass123!"  # noqa: S105


def make_user(username: str, *, role: str = User.Role.MEMBER, **extra) -> User:
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password=TEST_PASSWORD,
        role=role,
        **extra,
    )


def access_token_for(user: User, *, lifetime: timedelta | None = None) -> str:
    token = AccessToken.for_user(user)
    if lifetime is not None:
        token.set_exp(lifetime=lifetime)
    return str(token)


@dataclass(frozen=True)
class Delivery:
    sid: str
    event: str
    data: Any


class FakeServer:
    """Records what python-socketio's AsyncServer would deliver, per sid.

    Rooms, sessions and handler registration mirror the AsyncServer calls the
    realtime layer makes; nothing goes over the wire.
    """

    def __init__(self):
        self.handlers: dict[str, Any] = {}
        self.sessions: dict[str, dict] = {}
        self.connected: set[str] = set()
        self.room_members: dict[str, set[str]] = defaultdict(set)
        self.deliveries: list[Delivery] = []

    # AsyncServer surface -----------------------------------------------
    def on(self, event, handler=None, namespace=None):
        self.handlers[event] = handler

    async def emit(
        self, event, data=None, to=None, room=None, skip_sid=None, namespace=None
    ):
        target = to if to is not None else room
        if target is None:
            recipients = set(self.connected)
        elif target in self.room_members:
            recipients = set(self.room_members[target])
        else:
            # every sid is implicitly a room of its own
            recipients = {target} & self.connected
        for sid in sorted(recipients):
            if sid != skip_sid:
                self.deliveries.append(Delivery(sid, event, data))

    async def enter_room(self, sid, room, namespace=None):
        self.room_members[room].add(sid)

    async def leave_room(self, sid, room, namespace=None):
        self.room_members[room].discard(sid)

    def rooms(self, sid, namespace=None):
        return [sid] + sorted(r for r, m in self.room_members.items() if sid in m)

    async def save_session(self, sid, session, namespace=None):
        self.sessions[sid] = session

    async def get_session(self, sid, namespace=None):
        return self.sessions.get(sid, {})

    # Client side -------------------------------------------------------
    async def connect(self, sid, environ=None, auth=None):
        self.connected.add(sid)
        try:
            await self.handlers["connect"](sid, environ or {}, auth)
        except ConnectionRefusedError:
            await self.disconnect(sid)
            raise

    async def disconnect(self, sid):
        self.connected.discard(sid)
        for members in self.room_members.values():
            members.discard(sid)
        await self.handlers["disconnect"](sid)

    async def trigger(self, sid, event, data=None):
        await self.handlers[event](sid, data)

    def received(self, sid, event=None) -> list[Delivery]:
        return [
            d
            for d in self.deliveries
            if d.sid == sid and (event is None or d.event == event)
        ]


class FrozenClock:
    def __init__(self, start=None):
        self.current = start or timezone.now()

    def __call__(self):
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


@pytest.fixture
def user(db) -> User:
    return make_user("member")


@pytest.fixture
def other_user(db) -> User:
    return make_user("other")


@pytest.fixture
def admin_user(db) -> User:
    return make_user("chief", role=User.Role.ADMIN)


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def fake_server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def registry(clock) -> SessionRegistry:
    return SessionRegistry(window_seconds=60, code_length=4, clock=clock)


@pytest.fixture
def manager(fake_server, registry):
    attendance = AttendanceSessionManager(fake_server, registry, broadcast_code=True)
    yield attendance
    attendance.shutdown()


@pytest.fixture
def gateway(fake_server, manager) -> RealtimeGateway:
    return RealtimeGateway(
        fake_server,
        attendance=manager,
        chat=ChatRoomRelay(fake_server),
    )
