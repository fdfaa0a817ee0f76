import datetime as dt

from celery import shared_task

from mission_control.attendance import services


@shared_task(name="attendance.mark_absentees")
def mark_absentees_task(date_iso: str | None = None) -> int:
    """Run the absentee sweep outside a live session.

    Args:
        date_iso: ISO date string (YYYY-MM-DD). Defaults to today in TIME_ZONE.

    Returns:
        Number of Absent records created.
    """
    on_date = dt.date.fromisoformat(date_iso) if date_iso else None
    result = services.mark_absentees(on_date=on_date)
    return result.created
