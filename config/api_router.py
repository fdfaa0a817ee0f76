from django.conf import settings
from rest_framework.routers import DefaultRouter
from rest_framework.routers import SimpleRouter

from mission_control.attendance.api.views import AttendanceRecordViewSet
from mission_control.chat.api.views import ChatRoomViewSet
from mission_control.users.api.views import UserViewSet

router = DefaultRouter() if settings.DEBUG else SimpleRouter()

router.register("users", UserViewSet)
router.register("attendance", AttendanceRecordViewSet, basename="attendance")
# Rooms are looked up by their mission id, matching the realtime room ids.
router.register("chat/rooms", ChatRoomViewSet, basename="chat-room")


app_name = "api"
urlpatterns = router.urls
