from rest_framework import serializers

from mission_control.attendance.models import AttendanceRecord
from mission_control.users.api.serializers import UserSummarySerializer


class AttendanceRecordSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = AttendanceRecord
        fields = ["id", "user", "date", "status", "session_id", "created_at"]
        read_only_fields = fields


class AttendanceSubmitSerializer(serializers.Serializer):
    session_id = serializers.CharField(max_length=64)
    code = serializers.CharField(max_length=16, trim_whitespace=True)


class MarkAbsentSerializer(serializers.Serializer):
    date = serializers.DateField(required=False)


class ActiveSessionSerializer(serializers.Serializer):
    session_id = serializers.CharField()
    expires_at = serializers.DateTimeField()
    remaining_seconds = serializers.IntegerField()
    code = serializers.CharField(required=False)


class MonthlySummaryRowSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    name = serializers.CharField()
    days_present = serializers.IntegerField()
