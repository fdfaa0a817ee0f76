from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone

from .models import ChatMessage
from .models import ChatRoom

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 255


def create_message(mission_id: int, sender_id: int, body: str) -> ChatMessage:
    """Persist a message in the mission's room and refresh the room preview.

    Raises ``ChatRoom.DoesNotExist`` for a mission without a room. The
    returned message has its sender loaded for the delivery payload.
    """
    room = ChatRoom.objects.get(mission_id=mission_id)
    with transaction.atomic():
        message = ChatMessage.objects.create(
            room=room,
            sender_id=sender_id,
            body=body,
            timestamp=timezone.now(),
        )
        ChatRoom.objects.filter(pk=room.pk).update(last_message=body[:PREVIEW_LENGTH])
    return ChatMessage.objects.select_related("sender").get(pk=message.pk)


def room_messages(mission_id: int):
    return (
        ChatMessage.objects.filter(room__mission_id=mission_id)
        .select_related("sender")
        .order_by("timestamp", "id")
    )


def is_room_member(mission_id: int, user_id: int) -> bool:
    return ChatRoom.objects.filter(mission_id=mission_id, members=user_id).exists()
