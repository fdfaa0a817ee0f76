from django.contrib import admin

from mission_control.missions import models


@admin.register(models.Mission)
class MissionAdmin(admin.ModelAdmin):
    list_display = ["id", "title", "location", "difficulty", "is_completed"]
    search_fields = ["title", "description", "location"]
    list_filter = ["difficulty", "is_completed", "created_at"]
    filter_horizontal = ["assigned"]
