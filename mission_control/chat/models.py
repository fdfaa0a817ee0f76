from django.conf import settings
from django.db import models


class ChatRoom(models.Model):
    """Persistent room backing a mission's chat.

    The member list decides who may list the room, read its history and join
    or post in it over the realtime connection.
    """

    mission = models.OneToOneField(
        "missions.Mission", on_delete=models.CASCADE, related_name="chat_room"
    )
    name = models.CharField(max_length=255)
    members = models.ManyToManyField(
        settings.AUTH_USER_MODEL, related_name="chat_rooms", blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)
    last_message = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:  # pragma: no cover - simple repr
        return f"ChatRoom({self.mission_id}: {self.name})"


class ChatMessage(models.Model):
    """Append-only message. Only ``read_by`` and ``reactions`` grow after creation."""

    room = models.ForeignKey(ChatRoom, on_delete=models.CASCADE, related_name="messages")
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="chat_messages"
    )
    body = models.TextField()
    timestamp = models.DateTimeField(db_index=True)
    read_by = models.ManyToManyField(
        settings.AUTH_USER_MODEL, related_name="read_chat_messages", blank=True
    )
    reactions = models.JSONField(default=list, blank=True)

    class Meta:
        ordering = ["timestamp", "id"]

    def __str__(self) -> str:  # pragma: no cover - simple repr
        return f"ChatMessage({self.room_id} by {self.sender_id})"
