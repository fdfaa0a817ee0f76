"""Mission chat over the realtime connection.

Delivery groups are Socket.IO rooms named ``mission_<id>``. Only the room's
persisted members (and admins) may join or post; the member list itself is
read here, never changed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from channels.db import database_sync_to_async

from mission_control.realtime.events.chat import MISSION_ROOM_PREFIX
from mission_control.realtime.events.chat import publish_message
from mission_control.realtime.events.chat import publish_send_failed
from mission_control.realtime.events.chat import room_for_mission

from . import services

if TYPE_CHECKING:
    from mission_control.realtime.auth import ConnectionIdentity
    from mission_control.realtime.messages import JoinMissionRoom
    from mission_control.realtime.messages import SendMessage

    from .models import ChatMessage

logger = logging.getLogger(__name__)


class ChatRoomRelay:
    def __init__(self, server):
        self.server = server

    async def may_use_room(self, identity: ConnectionIdentity, room_id: int) -> bool:
        if identity.is_admin:
            return True
        return await database_sync_to_async(services.is_room_member)(
            room_id, identity.user_id
        )

    async def join_room(
        self,
        sid: str,
        identity: ConnectionIdentity,
        event: JoinMissionRoom,
    ) -> str | None:
        """Move ``sid`` into the mission's delivery group, out of any other."""
        if not await self.may_use_room(identity, event.room_id):
            logger.warning(
                "Refused join of room %s for user %s: not a member",
                event.room_id,
                identity.user_id,
            )
            return None

        target = room_for_mission(event.room_id)
        for room in self.server.rooms(sid):
            if room.startswith(MISSION_ROOM_PREFIX) and room != target:
                await self.server.leave_room(sid, room)
        await self.server.enter_room(sid, target)
        logger.debug("Connection %s joined %s", sid, target)
        return target

    async def send_message(
        self,
        sid: str,
        identity: ConnectionIdentity,
        event: SendMessage,
    ) -> ChatMessage | None:
        if event.sender_id != identity.user_id:
            logger.warning(
                "Dropped message from connection %s: sender %s is not user %s",
                sid,
                event.sender_id,
                identity.user_id,
            )
            return None

        try:
            if not await self.may_use_room(identity, event.room_id):
                logger.warning(
                    "Refused message in room %s from user %s: not a member",
                    event.room_id,
                    identity.user_id,
                )
                await publish_send_failed(self.server, sid)
                return None
            message = await database_sync_to_async(services.create_message)(
                event.room_id, identity.user_id, event.body
            )
        except Exception:
            logger.exception(
                "Failed to persist message from user %s in room %s",
                identity.user_id,
                event.room_id,
            )
            await publish_send_failed(self.server, sid)
            return None

        await publish_message(self.server, message, event.room_id)
        return message
