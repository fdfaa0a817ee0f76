"""Global Socket.IO server for the frontend.

One server instance carries both attendance sessions and mission chat.

Frontend convention:
- Socket.IO path: ``settings.SOCKETIO_PATH`` (``/ws/socket.io`` by default)
- Auth: ``auth.token``, ``query.token`` or the access cookie set at login

``always_connect`` lets the connect handler emit ``unauthorized`` to a client
before refusing it; without it the client would only see a bare connect error.
"""

from __future__ import annotations

import logging

import socketio
from django.conf import settings

from .gateway import RealtimeGateway

logger = logging.getLogger(__name__)


def _client_manager():
    if not settings.REDIS_URL:
        return None
    # Emits reach clients connected to any worker. Attendance sessions stay
    # in the worker that started them.
    return socketio.AsyncRedisManager(settings.REDIS_URL)


sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=settings.SOCKETIO_CORS_ALLOWED_ORIGINS,
    client_manager=_client_manager(),
    always_connect=True,
    logger=False,
    engineio_logger=False,
)

gateway = RealtimeGateway(sio)
attendance_manager = gateway.attendance
chat_relay = gateway.chat


def connected_count() -> int:
    """Authenticated connections held by this process."""

    return len(gateway)
