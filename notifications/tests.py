"""
INSAN MOBILE Notification Tests
"""

from unittest.mock import patch

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from attendance.services import AttendanceService
from core.models import User, UserRole, UserStatus
from notifications.models import Notification, NotificationCategory
from notifications.push import PushService, user_group_name
from notifications.services import NotificationService
from notifications.tasks import send_check_in_reminders, send_role_notification


class TestPushService(TestCase):

    def test_send_to_user_reaches_group(self):
        layer = get_channel_layer()
        channel = async_to_sync(layer.new_channel)()
        async_to_sync(layer.group_add)(user_group_name('abc'), channel)

        self.assertTrue(PushService.send_to_user('abc', 'notification', {'notification': {'id': 1}}))

        message = async_to_sync(layer.receive)(channel)
        self.assertEqual(message['type'], 'notification')
        self.assertEqual(message['notification'], {'id': 1})

    @patch('notifications.push.get_channel_layer', return_value=None)
    def test_no_channel_layer(self, mock_layer):
        self.assertFalse(PushService.send_to_user('abc', 'notification', {}))


@patch('notifications.services.PushService.send_to_user')
class TestNotificationService(TestCase):

    def setUp(self):
        self.admin = User.objects.create_user(
            email='admin@insan.id', employee_id='ADMIN0000001', full_name='Admin', role=UserRole.ADMIN,
        )
        self.master = User.objects.create_user(
            email='master@insan.id', employee_id='MA0000001', full_name='Master', role=UserRole.MASTER_ADMIN,
        )

    def test_notify_persists_and_pushes(self, mock_push):
        notification = NotificationService.notify(
            self.admin, "Judul", "Pesan", NotificationCategory.SYSTEM, {'key': 'value'}
        )

        self.assertFalse(notification.is_read)
        self.assertEqual(notification.data, {'key': 'value'})
        mock_push.assert_called_once()
        user_id, event_type, payload = mock_push.call_args[0]
        self.assertEqual(user_id, self.admin.pk)
        self.assertEqual(event_type, 'notification')
        self.assertEqual(payload['notification']['title'], "Judul")

    def test_notify_roles_skips_inactive_and_excluded(self, mock_push):
        inactive = User.objects.create_user(
            email='admin2@insan.id', employee_id='ADMIN0000002', full_name='Admin Dua',
            role=UserRole.ADMIN, status=UserStatus.NONAKTIF,
        )

        sent = NotificationService.notify_roles(
            [UserRole.ADMIN, UserRole.MASTER_ADMIN], "Judul", "Pesan", exclude=self.master,
        )

        self.assertEqual([n.recipient for n in sent], [self.admin])
        self.assertFalse(Notification.objects.filter(recipient=inactive).exists())

    def test_notify_roles_with_field_filter(self, mock_push):
        User.objects.create_user(
            email='pic1@insan.id', employee_id='PIC0000001', full_name='PIC Satu',
            role=UserRole.PIC, work_location='Hub Cilandak',
        )
        User.objects.create_user(
            email='pic2@insan.id', employee_id='PIC0000002', full_name='PIC Dua',
            role=UserRole.PIC, work_location='Hub Dago',
        )

        sent = NotificationService.notify_roles([UserRole.PIC], "Judul", "Pesan", work_location='Hub Dago')
        self.assertEqual([n.recipient.full_name for n in sent], ['PIC Dua'])

    def test_mark_read(self, mock_push):
        first = NotificationService.notify(self.admin, "Satu", "Pesan")
        NotificationService.notify(self.admin, "Dua", "Pesan")
        self.assertEqual(NotificationService.unread_count(self.admin), 2)

        NotificationService.mark_read(first)
        first.refresh_from_db()
        self.assertTrue(first.is_read)
        self.assertIsNotNone(first.read_at)
        self.assertEqual(NotificationService.unread_count(self.admin), 1)

        self.assertEqual(NotificationService.mark_all_read(self.admin), 1)
        self.assertEqual(NotificationService.unread_count(self.admin), 0)

    # ==========================================
    # Celery Tasks
    # ==========================================

    def test_send_role_notification_task(self, mock_push):
        result = send_role_notification.delay(
            [UserRole.MASTER_ADMIN.value], "Judul", "Pesan", NotificationCategory.APPROVAL_REQUEST.value,
        )
        self.assertEqual(result.get(), 1)
        self.assertEqual(
            Notification.objects.get(recipient=self.master).category,
            NotificationCategory.APPROVAL_REQUEST,
        )

    def test_check_in_reminders(self, mock_push):
        checked_in = User.objects.create_user(
            email='k001@internal.spx', employee_id='K0000001', full_name='Kurir Satu', role=UserRole.KURIR,
        )
        forgetful = User.objects.create_user(
            email='k002@internal.spx', employee_id='K0000002', full_name='Kurir Dua', role=UserRole.KURIR,
        )
        AttendanceService.check_in(checked_in)

        self.assertEqual(send_check_in_reminders(), 1)
        reminder = Notification.objects.get(category=NotificationCategory.ATTENDANCE)
        self.assertEqual(reminder.recipient, forgetful)


@patch('notifications.services.PushService.send_to_user')
class TestNotificationAPI(TestCase):

    def setUp(self):
        self.api = APIClient()
        self.user = User.objects.create_user(
            email='admin@insan.id', employee_id='ADMIN0000001', full_name='Admin', role=UserRole.ADMIN,
        )
        self.other = User.objects.create_user(
            email='admin2@insan.id', employee_id='ADMIN0000002', full_name='Admin Dua', role=UserRole.ADMIN,
        )
        self.api.force_authenticate(self.user)

    def test_list_only_own(self, mock_push):
        NotificationService.notify(self.user, "Milik saya", "Pesan")
        NotificationService.notify(self.other, "Bukan milik saya", "Pesan")

        response = self.api.get('/api/notifications/')
        self.assertEqual(response.status_code, 200)
        titles = [n['title'] for n in response.json()['results']]
        self.assertEqual(titles, ["Milik saya"])

    def test_unread_count_and_read(self, mock_push):
        notification = NotificationService.notify(self.user, "Judul", "Pesan")

        response = self.api.get('/api/notifications/unread-count/')
        self.assertEqual(response.json()['unread_count'], 1)

        response = self.api.post(f'/api/notifications/{notification.id}/read/')
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['is_read'])

        response = self.api.post('/api/notifications/read-all/')
        self.assertEqual(response.json()['updated'], 0)

    def test_cannot_read_others(self, mock_push):
        notification = NotificationService.notify(self.other, "Judul", "Pesan")
        response = self.api.post(f'/api/notifications/{notification.id}/read/')
        self.assertEqual(response.status_code, 404)

    def test_requires_auth(self, mock_push):
        self.api.force_authenticate(None)
        response = self.api.get('/api/notifications/')
        self.assertEqual(response.status_code, 401)
