from django.contrib import admin

from mission_control.attendance import models


@admin.register(models.AttendanceRecord)
class AttendanceRecordAdmin(admin.ModelAdmin):
    list_display = ["id", "user", "date", "status", "session_id"]
    search_fields = ["user__username", "user__name", "session_id"]
    list_filter = ["date", "status", "created_at"]
