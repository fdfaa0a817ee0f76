from __future__ import annotations

from typing import TYPE_CHECKING
from typing import Any

from mission_control.realtime.messages import ERROR_MESSAGE
from mission_control.realtime.messages import RECEIVE_MESSAGE

if TYPE_CHECKING:  # import for type checking only
    from mission_control.chat.models import ChatMessage

MISSION_ROOM_PREFIX = "mission_"


def room_for_mission(mission_id: int) -> str:
    return f"{MISSION_ROOM_PREFIX}{int(mission_id)}"


def build_message_payload(message: ChatMessage, room_id: int) -> dict[str, Any]:
    sender = message.sender
    return {
        "id": message.pk,
        "roomId": room_id,
        "body": message.body,
        "sender": {"id": sender.pk, "name": sender.display_name},
        "timestamp": message.timestamp.isoformat(),
    }


async def publish_message(server, message: ChatMessage, room_id: int) -> None:
    """Fan a persisted message out to every connection joined to its room."""

    await server.emit(
        RECEIVE_MESSAGE,
        build_message_payload(message, room_id),
        room=room_for_mission(room_id),
    )


async def publish_send_failed(server, sid: str) -> None:
    await server.emit(ERROR_MESSAGE, {"message": "Failed to send message."}, to=sid)
