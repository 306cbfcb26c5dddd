"""
LOGISTICS App - Django Signals

Notify the hub when a kurir closes the day.
"""

import logging
from django.db import transaction
from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from logistics.models import KurirDailyTask, TaskStatus

logger = logging.getLogger(__name__)


@receiver(pre_save, sender=KurirDailyTask)
def capture_previous_status(sender, instance, **kwargs):
    """Remember the stored status for change detection."""
    instance._previous_status = None
    if instance.pk:
        instance._previous_status = (
            KurirDailyTask.objects.filter(pk=instance.pk)
            .values_list('task_status', flat=True)
            .first()
        )


@receiver(post_save, sender=KurirDailyTask)
def on_task_saved(sender, instance, created, **kwargs):
    previous = getattr(instance, '_previous_status', None)
    if instance.task_status == TaskStatus.COMPLETED and previous != TaskStatus.COMPLETED:
        transaction.on_commit(lambda: _handle_task_completed(instance))


def _handle_task_completed(task: KurirDailyTask):
    """Work summary to the PICs of the kurir's hub/area and to Admins."""
    from core.models import UserRole
    from notifications.models import NotificationCategory
    from notifications.tasks import send_role_notification

    kurir = task.kurir
    title = "Ringkasan Kerja Kurir"
    message = (
        f"{kurir.full_name} ({kurir.employee_id}) menyelesaikan tugas {task.date:%d/%m/%Y}: "
        f"{task.final_delivered_count} terkirim, {task.final_pending_return_count} retur "
        f"dari {task.total_packages} paket."
    )
    data = {
        'task_id': task.id,
        'kurir_id': kurir.employee_id,
        'date': task.date.isoformat(),
        'hub_location': kurir.work_location,
    }

    try:
        locations = [loc for loc in (kurir.work_location, kurir.area) if loc]
        if locations:
            send_role_notification.delay(
                [UserRole.PIC.value], title, message, NotificationCategory.WORK_SUMMARY.value, data,
                work_location__in=locations,
            )
        send_role_notification.delay(
            [UserRole.ADMIN.value], title, message, NotificationCategory.WORK_SUMMARY.value, data,
        )
        logger.info(f"[SIGNAL] Work summary queued for task {task.id}")
    except Exception as e:
        logger.warning(f"[SIGNAL] Work summary notification failed: {e}")
