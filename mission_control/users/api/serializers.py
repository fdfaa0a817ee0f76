from rest_framework import serializers

from mission_control.users.models import User


class UserSerializer(serializers.ModelSerializer[User]):
    full_name = serializers.CharField(source="name", read_only=True)
    id = serializers.IntegerField(read_only=True)

    # Role changes go through the admin site, never the API
    username = serializers.CharField(read_only=True)
    email = serializers.EmailField(read_only=True)
    role = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "first_name",
            "last_name",
            "full_name",
            "email",
            "role",
        ]


class UserSummarySerializer(serializers.ModelSerializer[User]):
    """Sender/author summary embedded in chat and attendance payloads."""

    name = serializers.CharField(source="display_name", read_only=True)

    class Meta:
        model = User
        fields = ["id", "name", "email"]
