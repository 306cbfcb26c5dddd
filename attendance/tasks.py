"""
ATTENDANCE App - Celery Tasks
"""

import logging
from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task
def mark_absent_couriers(on_date=None):
    """
    Close the day: active couriers without a record become Absent.

    Schedule: Every day at 23:55 local time.

    Args:
        on_date: ISO date string, defaults to today
    """
    from datetime import date
    from django.utils import timezone
    from attendance.services import AttendanceService

    target = date.fromisoformat(on_date) if on_date else timezone.localdate()
    created = AttendanceService.mark_absent(target)
    logger.info(f"[TASK] {created} absent record(s) for {target}")
    return created
