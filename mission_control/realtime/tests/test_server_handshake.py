"""Handshake ordering against python-socketio's own AsyncServer.

The server registers a client in the namespace and acknowledges the CONNECT
before the connect handler has checked its token, so these tests feed real
CONNECT packets through ``socketio.AsyncServer`` and record every packet it
would write to each client.
"""

import asyncio
import json
from collections import defaultdict
from types import SimpleNamespace

import pytest
import socketio

from mission_control.attendance.manager import AttendanceSessionManager
from mission_control.chat.relay import ChatRoomRelay
from mission_control.conftest import access_token_for
from mission_control.realtime import gateway as gateway_module
from mission_control.realtime.gateway import RealtimeGateway

pytestmark = [pytest.mark.asyncio, pytest.mark.django_db(transaction=True)]


class RecordingServer(socketio.AsyncServer):
    """AsyncServer that keeps outgoing packets instead of writing them."""

    def __init__(self):
        super().__init__(async_mode="asgi", always_connect=True)
        self.sent: dict[str, list[str]] = defaultdict(list)

    async def _send_packet(self, eio_sid, pkt):
        encoded = pkt.encode()
        self.sent[eio_sid].extend(encoded if isinstance(encoded, list) else [encoded])

    async def _send_eio_packet(self, eio_sid, eio_pkt):
        self.sent[eio_sid].append(eio_pkt.data)

    def events(self, eio_sid: str) -> list[str]:
        # "2" is the Socket.IO EVENT packet type
        return [
            json.loads(p[1:])[0]
            for p in self.sent[eio_sid]
            if isinstance(p, str) and p.startswith("2")
        ]

    async def open(self, eio_sid: str, auth: dict) -> str | None:
        """Engine.IO handshake followed by the client's CONNECT packet."""
        self.eio.sockets[eio_sid] = SimpleNamespace(session={}, closed=False)
        await self._handle_eio_connect(eio_sid, {})
        await self._handle_eio_message(eio_sid, "0" + json.dumps(auth))
        return self.manager.sid_from_eio_sid(eio_sid, "/")


@pytest.fixture
def server() -> RecordingServer:
    return RecordingServer()


@pytest.fixture
def realtime(server, registry):
    attendance = AttendanceSessionManager(server, registry, broadcast_code=True)
    yield RealtimeGateway(server, attendance=attendance, chat=ChatRoomRelay(server))
    attendance.shutdown()


@pytest.fixture
def held_handshakes(monkeypatch):
    """Hold the forged-token handshake inside authentication until released."""
    real_authenticate = gateway_module.authenticate
    checking = asyncio.Event()
    release = asyncio.Event()

    async def held(environ, auth):
        if auth == {"token": "forged"}:
            checking.set()
            await release.wait()
        return await real_authenticate(environ, auth)

    monkeypatch.setattr(gateway_module, "authenticate", held)
    return SimpleNamespace(checking=checking, release=release)


async def test_session_started_during_handshake_is_not_leaked(
    server, realtime, held_handshakes, admin_user
):
    admin_sid = await server.open("eio-admin", {"token": access_token_for(admin_user)})
    assert realtime.identity(admin_sid).user_id == admin_user.pk

    intruder = asyncio.ensure_future(server.open("eio-intruder", {"token": "forged"}))
    await held_handshakes.checking.wait()
    # CONNECT already acknowledged, token not yet checked
    assert server.sent["eio-intruder"]

    await realtime.dispatch(admin_sid, "start-attendance", {})
    held_handshakes.release.set()
    await intruder

    assert server.events("eio-intruder") == ["unauthorized"]
    assert server.events("eio-admin") == ["attendance-started", "otp-generated"]


async def test_authenticated_clients_hear_session_started(
    server, realtime, admin_user, user
):
    admin_sid = await server.open("eio-admin", {"token": access_token_for(admin_user)})
    await server.open("eio-member", {"token": access_token_for(user)})

    await realtime.dispatch(admin_sid, "start-attendance", {})

    assert server.events("eio-member") == ["attendance-started"]
    started = json.loads(server.sent["eio-member"][-1][1:])[1]
    assert started["windowSeconds"] == 60
    assert started["code"] == realtime.attendance.registry.active().code
