"""
NOTIFICATIONS App - Notification Service

Persist a notification, then push it live to the recipient.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from django.utils import timezone

from core.models import User, UserStatus
from .models import Notification, NotificationCategory
from .push import PushService

logger = logging.getLogger(__name__)


class NotificationService:

    @staticmethod
    def serialize(notification: Notification) -> Dict[str, Any]:
        return {
            'id': notification.id,
            'title': notification.title,
            'message': notification.message,
            'category': notification.category,
            'data': notification.data,
            'is_read': notification.is_read,
            'created_at': notification.created_at.isoformat(),
        }

    @classmethod
    def notify(
        cls,
        recipient: User,
        title: str,
        message: str,
        category: str = NotificationCategory.SYSTEM,
        data: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        notification = Notification.objects.create(
            recipient=recipient,
            title=title,
            message=message,
            category=category,
            data=data or {},
        )
        PushService.send_to_user(
            recipient.pk,
            'notification',
            {'notification': cls.serialize(notification)},
        )
        return notification

    @classmethod
    def notify_users(cls, recipients: Iterable[User], title: str, message: str,
                     category: str = NotificationCategory.SYSTEM,
                     data: Optional[Dict[str, Any]] = None) -> List[Notification]:
        return [cls.notify(user, title, message, category, data) for user in recipients]

    @classmethod
    def notify_roles(cls, roles: Iterable[str], title: str, message: str,
                     category: str = NotificationCategory.SYSTEM,
                     data: Optional[Dict[str, Any]] = None,
                     exclude: Optional[User] = None, **filters) -> List[Notification]:
        """Notify every active user holding one of `roles` (extra field filters allowed)."""
        recipients = User.objects.filter(role__in=list(roles), status=UserStatus.AKTIF, **filters)
        if exclude is not None:
            recipients = recipients.exclude(pk=exclude.pk)
        sent = cls.notify_users(recipients, title, message, category, data)
        logger.info(f"[NOTIFY] '{title}' sent to {len(sent)} user(s) with roles {list(roles)}")
        return sent

    @staticmethod
    def mark_read(notification: Notification) -> Notification:
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = timezone.now()
            notification.save(update_fields=['is_read', 'read_at'])
        return notification

    @staticmethod
    def mark_all_read(user: User) -> int:
        return Notification.objects.filter(recipient=user, is_read=False).update(
            is_read=True, read_at=timezone.now()
        )

    @staticmethod
    def unread_count(user: User) -> int:
        return Notification.objects.filter(recipient=user, is_read=False).count()
