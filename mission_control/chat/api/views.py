from django.db.models import Count
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import mixins
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from mission_control.chat import services
from mission_control.chat.api.serializers import ChatMessageSerializer
from mission_control.chat.api.serializers import ChatRoomSerializer
from mission_control.chat.models import ChatRoom


@extend_schema_view(
    list=extend_schema(tags=["Chat"]),
    retrieve=extend_schema(tags=["Chat"]),
)
class ChatRoomViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, GenericViewSet):
    """Rooms the requesting user belongs to, looked up by mission id."""

    serializer_class = ChatRoomSerializer
    permission_classes = [IsAuthenticated]
    lookup_field = "mission_id"
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        qs = ChatRoom.objects.annotate(member_count=Count("members", distinct=True))
        user = getattr(self.request, "user", None)
        if not (user and getattr(user, "is_authenticated", False)):
            return qs.none()
        if user.is_admin:
            return qs.order_by("-created_at")
        return qs.filter(members=user).order_by("-created_at")

    @extend_schema(tags=["Chat"], responses=ChatMessageSerializer(many=True))
    @action(detail=True, methods=["get"])
    def messages(self, request, mission_id=None):
        """Message history of one room, oldest first."""
        room = get_object_or_404(ChatRoom, mission_id=mission_id)
        user = request.user
        if not user.is_admin and not room.members.filter(pk=user.pk).exists():
            msg = "You are not a member of this room."
            raise PermissionDenied(msg)
        qs = services.room_messages(room.mission_id).select_related("room")
        return Response(ChatMessageSerializer(qs, many=True).data)
