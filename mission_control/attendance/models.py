from django.conf import settings
from django.db import models


class AttendanceRecord(models.Model):
    """One attendance outcome per user per calendar day.

    - Present records come from a correct code submission and keep the
      session id they were submitted against.
    - Absent records come from the sweep at session expiry and have no
      session id.
    - The (user, date) constraint is what serializes concurrent submissions.
    """

    class Status(models.TextChoices):
        PRESENT = "Present", "Present"
        ABSENT = "Absent", "Absent"

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="attendance_records",
    )
    date = models.DateField()
    status = models.CharField(
        max_length=16, choices=Status.choices, default=Status.ABSENT
    )
    session_id = models.CharField(max_length=64, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-date", "user_id"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "date"],
                name="unique_attendance_per_user_per_day",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover - simple repr
        return f"AttendanceRecord({self.user_id}@{self.date}: {self.status})"
