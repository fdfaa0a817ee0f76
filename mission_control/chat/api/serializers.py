from rest_framework import serializers

from mission_control.chat.models import ChatMessage
from mission_control.chat.models import ChatRoom
from mission_control.users.api.serializers import UserSummarySerializer


class ChatRoomSerializer(serializers.ModelSerializer):
    # Rooms are addressed by mission id everywhere, including the socket.
    room_id = serializers.IntegerField(source="mission_id", read_only=True)
    member_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = ChatRoom
        fields = ["room_id", "name", "last_message", "member_count", "created_at"]
        read_only_fields = fields


class ChatMessageSerializer(serializers.ModelSerializer):
    room_id = serializers.IntegerField(source="room.mission_id", read_only=True)
    sender = UserSummarySerializer(read_only=True)

    class Meta:
        model = ChatMessage
        fields = ["id", "room_id", "body", "sender", "timestamp", "reactions"]
        read_only_fields = fields
