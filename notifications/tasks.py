"""
NOTIFICATIONS App - Celery Tasks

- Fan-out of notifications outside the request cycle
- Morning check-in reminders
"""

import logging
from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=30,
    retry_backoff=True
)
def send_role_notification(self, roles, title, message, category, data=None, **filters):
    """Notify every active user of the given roles (async)."""
    from notifications.services import NotificationService

    try:
        sent = NotificationService.notify_roles(roles, title, message, category, data, **filters)
        return len(sent)
    except Exception as e:
        logger.error(f"[TASK] Error sending '{title}': {e}")
        raise self.retry(exc=e)


@shared_task
def send_check_in_reminders():
    """
    Remind active couriers who have not checked in yet.

    Schedule: Every day at 08:30 local time.
    """
    from django.utils import timezone
    from attendance.models import AttendanceRecord
    from core.models import User, UserRole, UserStatus
    from notifications.models import NotificationCategory
    from notifications.services import NotificationService

    today = timezone.localdate()
    checked_in = AttendanceRecord.objects.filter(
        date=today, check_in_time__isnull=False
    ).values_list('kurir_id', flat=True)

    kurirs = User.objects.filter(
        role=UserRole.KURIR, status=UserStatus.AKTIF
    ).exclude(pk__in=checked_in)

    sent = 0
    for kurir in kurirs:
        try:
            NotificationService.notify(
                kurir,
                title="Pengingat Check-in",
                message="Anda belum melakukan check-in hari ini. Jangan lupa check-in sebelum jam 09:00.",
                category=NotificationCategory.ATTENDANCE,
            )
            sent += 1
        except Exception as e:
            logger.error(f"[TASK] Check-in reminder failed for {kurir.employee_id}: {e}")

    logger.info(f"[TASK] Sent {sent} check-in reminders")
    return sent
