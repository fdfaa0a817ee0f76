from django.contrib import admin

from mission_control.chat import models


@admin.register(models.ChatRoom)
class ChatRoomAdmin(admin.ModelAdmin):
    list_display = ["id", "mission", "name", "last_message", "created_at"]
    search_fields = ["name", "last_message"]
    filter_horizontal = ["members"]


@admin.register(models.ChatMessage)
class ChatMessageAdmin(admin.ModelAdmin):
    list_display = ["id", "room", "sender", "body", "timestamp"]
    search_fields = ["body"]
    list_filter = ["timestamp"]
