"""Synchronous ORM operations behind the attendance flow.

Async callers go through ``channels.db.database_sync_to_async``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model
from django.db import IntegrityError
from django.db import transaction
from django.db.models import Count
from django.utils import timezone

from .exceptions import AlreadyMarked
from .models import AttendanceRecord

if TYPE_CHECKING:
    from datetime import date

logger = logging.getLogger(__name__)

User = get_user_model()


@dataclass(frozen=True)
class SweepResult:
    created: int = 0
    skipped: int = 0
    failed: int = 0


def today() -> date:
    return timezone.localdate()


def mark_present(
    user_id: int,
    session_id: str,
    *,
    on_date: date | None = None,
) -> AttendanceRecord:
    """Create today's Present record for ``user_id``.

    The (user, date) unique constraint is the only guard against double
    marking; a conflict raises ``AlreadyMarked``. Any other integrity error
    propagates unchanged.
    """
    day = on_date or today()
    try:
        with transaction.atomic():
            return AttendanceRecord.objects.create(
                user_id=user_id,
                date=day,
                status=AttendanceRecord.Status.PRESENT,
                session_id=session_id,
            )
    except IntegrityError as exc:
        if AttendanceRecord.objects.filter(user_id=user_id, date=day).exists():
            raise AlreadyMarked from exc
        raise


def sweep_candidates():
    """Members expected to attend: active, non-admin accounts."""
    return (
        User.objects.filter(is_active=True, is_staff=False)
        .exclude(role=User.Role.ADMIN)
        .order_by("pk")
    )


def mark_absentees(*, on_date: date | None = None) -> SweepResult:
    """Give every member without a record for the day an Absent record.

    Idempotent: members that already have a record, whatever its origin, are
    left alone. Each member is written independently so one failure does not
    stop the rest.
    """
    day = on_date or today()
    created = skipped = failed = 0
    pending = sweep_candidates().exclude(attendance_records__date=day)
    for user_id in pending.values_list("pk", flat=True):
        try:
            with transaction.atomic():
                _, was_created = AttendanceRecord.objects.get_or_create(
                    user_id=user_id,
                    date=day,
                    defaults={"status": AttendanceRecord.Status.ABSENT},
                )
        except IntegrityError:
            # Lost a race with a late submission; the member has a record now.
            skipped += 1
        except Exception:
            logger.exception("Absentee sweep failed for user %s on %s", user_id, day)
            failed += 1
        else:
            if was_created:
                created += 1
            else:
                skipped += 1
    logger.info(
        "Absentee sweep for %s: %d created, %d skipped, %d failed",
        day,
        created,
        skipped,
        failed,
    )
    return SweepResult(created=created, skipped=skipped, failed=failed)


def monthly_summary(year: int, month: int) -> list[dict]:
    """Days present per member for one calendar month."""
    rows = (
        AttendanceRecord.objects.filter(
            date__year=year,
            date__month=month,
            status=AttendanceRecord.Status.PRESENT,
        )
        .values("user_id", "user__name", "user__username")
        .annotate(days_present=Count("id"))
        .order_by("-days_present", "user_id")
    )
    return [
        {
            "user_id": row["user_id"],
            "name": row["user__name"] or row["user__username"],
            "days_present": row["days_present"],
        }
        for row in rows
    ]
