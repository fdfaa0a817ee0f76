import math

from django.utils.dateparse import parse_date
from drf_spectacular.utils import OpenApiParameter
from drf_spectacular.utils import OpenApiTypes
from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import mixins
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from mission_control.attendance import services
from mission_control.attendance.api.serializers import ActiveSessionSerializer
from mission_control.attendance.api.serializers import AttendanceRecordSerializer
from mission_control.attendance.api.serializers import AttendanceSubmitSerializer
from mission_control.attendance.api.serializers import MarkAbsentSerializer
from mission_control.attendance.api.serializers import MonthlySummaryRowSerializer
from mission_control.attendance.exceptions import AlreadyMarked
from mission_control.attendance.exceptions import AttendanceError
from mission_control.attendance.exceptions import NotPermitted
from mission_control.attendance.models import AttendanceRecord
from mission_control.attendance.tasks import mark_absentees_task
from mission_control.realtime.socketio import attendance_manager
from mission_control.users.api.permissions import IsMissionAdmin


def _error_status(exc: AttendanceError) -> int:
    if isinstance(exc, NotPermitted):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, AlreadyMarked):
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST


@extend_schema_view(
    list=extend_schema(
        tags=["Attendance"],
        parameters=[
            OpenApiParameter(
                name="date",
                type=OpenApiTypes.DATE,
                location=OpenApiParameter.QUERY,
                description="Filter by exact date (YYYY-MM-DD)",
            ),
            OpenApiParameter(
                name="user",
                type=OpenApiTypes.INT,
                location=OpenApiParameter.QUERY,
                description="Filter by user ID (admins only)",
            ),
            OpenApiParameter(
                name="status",
                type=OpenApiTypes.STR,
                enum=[c for c, _ in AttendanceRecord.Status.choices],
                location=OpenApiParameter.QUERY,
            ),
        ],
    ),
    retrieve=extend_schema(tags=["Attendance"]),
)
class AttendanceRecordViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    GenericViewSet,
):
    """Attendance records plus the HTTP side of the attendance session.

    Members only ever see their own records; admins see everyone's.
    """

    queryset = AttendanceRecord.objects.select_related("user").all()
    serializer_class = AttendanceRecordSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        qs = super().get_queryset()
        u = getattr(self.request, "user", None)
        if not (u and getattr(u, "is_authenticated", False)):
            return qs.none()
        if not u.is_admin:
            qs = qs.filter(user=u)

        date = self.request.query_params.get("date")
        user_id = self.request.query_params.get("user")
        status_param = self.request.query_params.get("status")
        if date:
            parsed = parse_date(date)
            qs = qs.filter(date=parsed) if parsed else qs.none()
        if user_id:
            qs = qs.filter(user_id=user_id) if user_id.isdigit() else qs.none()
        if status_param:
            qs = qs.filter(status=status_param)
        return qs

    @extend_schema(tags=["Attendance"], responses=AttendanceRecordSerializer(many=True))
    @action(detail=False, methods=["get"], pagination_class=None)
    def my(self, request):
        """My own attendance history, newest first."""
        qs = AttendanceRecord.objects.filter(user=request.user).order_by("-date")
        return Response(AttendanceRecordSerializer(qs, many=True).data)

    @extend_schema(
        tags=["Attendance Reports"],
        parameters=[
            OpenApiParameter(
                name="month",
                type=OpenApiTypes.INT,
                location=OpenApiParameter.QUERY,
                description="Month 1-12, defaults to the current month",
            ),
            OpenApiParameter(
                name="year",
                type=OpenApiTypes.INT,
                location=OpenApiParameter.QUERY,
                description="Defaults to the current year",
            ),
        ],
        responses=MonthlySummaryRowSerializer(many=True),
    )
    @action(
        detail=False,
        methods=["get"],
        permission_classes=[IsAuthenticated, IsMissionAdmin],
    )
    def summary(self, request):
        """Days present per member for one month."""
        today = services.today()
        try:
            month = int(request.query_params.get("month") or today.month)
            year = int(request.query_params.get("year") or today.year)
        except ValueError:
            return Response(
                {"detail": "month and year must be integers."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        if not 1 <= month <= 12:  # noqa: PLR2004
            return Response(
                {"detail": "month must be between 1 and 12."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        rows = services.monthly_summary(year, month)
        return Response(MonthlySummaryRowSerializer(rows, many=True).data)

    @extend_schema(tags=["Attendance Session"], responses=ActiveSessionSerializer)
    @action(detail=False, methods=["get"], url_path="active-session")
    def active_session(self, request):
        """The running session, for clients that cannot hold a socket open."""
        registry = attendance_manager.registry
        session = registry.active()
        if session is None:
            return Response(status=status.HTTP_204_NO_CONTENT)
        now = registry.now()
        data = {
            "session_id": session.session_id,
            "expires_at": session.expires_at,
            "remaining_seconds": math.ceil(session.remaining_seconds(now)),
        }
        if attendance_manager.broadcast_code or request.user.is_admin:
            data["code"] = session.code
        return Response(ActiveSessionSerializer(data).data)

    @extend_schema(
        tags=["Attendance Session"],
        request=AttendanceSubmitSerializer,
        responses=AttendanceRecordSerializer,
    )
    @action(detail=False, methods=["post"])
    def submit(self, request):
        """Submit the session code for the requesting user."""
        ser = AttendanceSubmitSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            record = attendance_manager.adjudicate(
                request.user.pk,
                ser.validated_data["session_id"],
                ser.validated_data["code"],
            )
        except AttendanceError as exc:
            return Response({"detail": exc.message}, status=_error_status(exc))
        return Response(
            AttendanceRecordSerializer(record).data,
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(tags=["Attendance Session"], request=MarkAbsentSerializer)
    @action(
        detail=False,
        methods=["post"],
        url_path="mark-absent",
        permission_classes=[IsAuthenticated, IsMissionAdmin],
    )
    def mark_absent(self, request):
        """Queue the absentee sweep for a day (today by default)."""
        ser = MarkAbsentSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        on_date = ser.validated_data.get("date")
        result = mark_absentees_task.delay(on_date.isoformat() if on_date else None)
        return Response(
            {"task_id": result.id, "date": (on_date or services.today()).isoformat()},
            status=status.HTTP_202_ACCEPTED,
        )
