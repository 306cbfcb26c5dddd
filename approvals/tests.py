"""
INSAN MOBILE Approval Tests

Admin requests -> MasterAdmin decision -> change applied + requester notified.
"""

from unittest.mock import patch

from django.core.exceptions import PermissionDenied
from django.test import TestCase
from rest_framework.test import APIClient

from approvals.models import ApprovalRequest, ApprovalRequestType, ApprovalStatus
from approvals.services import ApprovalService
from core.models import User, UserRole, UserStatus
from notifications.models import Notification, NotificationCategory
from notifications.tasks import send_role_notification

KURIR_PROFILE = {
    'role': UserRole.KURIR,
    'employee_id': 'K0000099',
    'full_name': 'Kurir Baru',
    'nik': '3174012345678901',
    'position': 'Kurir Motor',
    'wilayah': 'DKI Jakarta',
    'area': 'Jakarta Selatan',
    'work_location': 'Hub Cilandak',
    'contract_status': 'Contract',
}


class ApprovalTestCase(TestCase):

    def setUp(self):
        self.master = User.objects.create_user(
            email='master@insan.id', password='testpass123',
            employee_id='MASTERADMIN01', full_name='Master Admin', role=UserRole.MASTER_ADMIN,
        )
        self.admin = User.objects.create_user(
            email='admin@insan.id', password='testpass123',
            employee_id='ADMIN0000001', full_name='Admin Satu', role=UserRole.ADMIN,
        )
        self.kurir = User.objects.create_user(
            email='k001@internal.spx', password='testpass123',
            employee_id='K0000001', full_name='Budi Kurir', role=UserRole.KURIR,
            work_location='Hub Cilandak',
        )
        patcher = patch('notifications.services.PushService.send_to_user')
        patcher.start()
        self.addCleanup(patcher.stop)


class TestApprovalRequests(ApprovalTestCase):

    # ==========================================
    # Submitting
    # ==========================================

    def test_only_admin_can_request(self):
        with self.assertRaises(PermissionDenied):
            ApprovalService.request_user_deletion(self.master, self.kurir)
        with self.assertRaises(PermissionDenied):
            ApprovalService.request_user_deletion(self.kurir, self.kurir)

    def test_user_creation_stores_password_hash(self):
        approval = ApprovalService.request_user_creation(self.admin, dict(KURIR_PROFILE), 'rahasia123')

        self.assertEqual(approval.request_type, ApprovalRequestType.NEW_USER_KURIR)
        self.assertEqual(approval.status, ApprovalStatus.PENDING)
        self.assertEqual(approval.requested_by_name, 'Admin Satu')
        self.assertEqual(approval.target_user_name, 'Kurir Baru')
        self.assertNotIn('rahasia123', str(approval.payload))
        self.assertTrue(approval.payload['password_hash'])
        self.assertFalse(User.objects.filter(employee_id='K0000099').exists())

    def test_user_creation_rejects_duplicates(self):
        profile = dict(KURIR_PROFILE, employee_id='K0000001')
        with self.assertRaisesMessage(ValueError, "ID Aplikasi sudah digunakan."):
            ApprovalService.request_user_creation(self.admin, profile, 'rahasia123')

        profile = dict(KURIR_PROFILE, email='K001@internal.spx')
        with self.assertRaisesMessage(ValueError, "Email sudah terdaftar."):
            ApprovalService.request_user_creation(self.admin, profile, 'rahasia123')

    def test_user_creation_validates_profile(self):
        with self.assertRaisesMessage(ValueError, "NIK harus terdiri dari 16 digit angka."):
            ApprovalService.request_user_creation(self.admin, dict(KURIR_PROFILE, nik='123'), 'rahasia123')
        with self.assertRaises(ValueError):
            ApprovalService.request_user_creation(self.admin, dict(KURIR_PROFILE, role='Tamu'), 'rahasia123')

    def test_profile_update_keeps_old_values(self):
        approval = ApprovalService.request_profile_update(
            self.admin, self.kurir, {'work_location': 'Hub Dago', 'role': UserRole.ADMIN},
        )

        self.assertEqual(approval.payload, {'work_location': 'Hub Dago'})
        self.assertEqual(approval.old_payload, {'work_location': 'Hub Cilandak'})
        self.assertEqual(approval.target_user, self.kurir)

    def test_profile_update_requires_changes(self):
        with self.assertRaisesMessage(ValueError, "Tidak ada perubahan yang diajukan."):
            ApprovalService.request_profile_update(self.admin, self.kurir, {'role': UserRole.ADMIN})

    def test_status_change_type(self):
        approval = ApprovalService.request_status_change(self.admin, self.kurir, UserStatus.NONAKTIF)
        self.assertEqual(approval.request_type, ApprovalRequestType.DEACTIVATE_USER)

        with self.assertRaisesMessage(ValueError, "Akun Budi Kurir sudah berstatus Aktif."):
            ApprovalService.request_status_change(self.admin, self.kurir, UserStatus.AKTIF)

    def test_master_admins_notified(self):
        with self.captureOnCommitCallbacks(execute=True):
            ApprovalService.request_user_deletion(self.admin, self.kurir)

        notification = Notification.objects.get(recipient=self.master)
        self.assertEqual(notification.category, NotificationCategory.APPROVAL_REQUEST)
        self.assertIn('Budi Kurir', notification.message)

    def test_request_stored_when_broker_down(self):
        with patch.object(send_role_notification, 'delay', side_effect=ConnectionError('broker down')):
            with self.captureOnCommitCallbacks(execute=True):
                approval = ApprovalService.request_user_deletion(self.admin, self.kurir)

        self.assertTrue(ApprovalRequest.objects.filter(pk=approval.pk).exists())
        self.assertFalse(Notification.objects.filter(recipient=self.master).exists())


class TestHandleApproval(ApprovalTestCase):

    # ==========================================
    # Decisions
    # ==========================================

    def test_approve_new_user(self):
        approval = ApprovalService.request_user_creation(self.admin, dict(KURIR_PROFILE), 'rahasia123')

        approval = ApprovalService.handle_approval_request(approval.id, ApprovalStatus.APPROVED, self.master)

        user = User.objects.get(employee_id='K0000099')
        self.assertEqual(approval.status, ApprovalStatus.APPROVED)
        self.assertEqual(approval.target_user, user)
        self.assertEqual(approval.handled_by_name, 'Master Admin')
        self.assertIsNotNone(approval.action_timestamp)
        self.assertTrue(user.check_password('rahasia123'))
        self.assertEqual(user.email, 'k0000099@internal.spx')
        self.assertEqual(user.status, UserStatus.AKTIF)

    def test_approve_profile_update(self):
        approval = ApprovalService.request_profile_update(self.admin, self.kurir, {'work_location': 'Hub Dago'})
        ApprovalService.handle_approval_request(approval.id, ApprovalStatus.APPROVED, self.master)

        self.kurir.refresh_from_db()
        self.assertEqual(self.kurir.work_location, 'Hub Dago')

    def test_approve_deactivation(self):
        approval = ApprovalService.request_status_change(self.admin, self.kurir, UserStatus.NONAKTIF)
        ApprovalService.handle_approval_request(approval.id, ApprovalStatus.APPROVED, self.master)

        self.kurir.refresh_from_db()
        self.assertEqual(self.kurir.status, UserStatus.NONAKTIF)
        self.assertFalse(self.kurir.is_active)

    def test_approve_deletion(self):
        approval = ApprovalService.request_user_deletion(self.admin, self.kurir)
        approval = ApprovalService.handle_approval_request(approval.id, ApprovalStatus.APPROVED, self.master)

        self.assertFalse(User.objects.filter(employee_id='K0000001').exists())
        self.assertIsNone(approval.target_user)
        self.assertEqual(approval.target_user_name, 'Budi Kurir')

    def test_reject_leaves_user_untouched(self):
        approval = ApprovalService.request_status_change(self.admin, self.kurir, UserStatus.NONAKTIF)
        approval = ApprovalService.handle_approval_request(
            approval.id, ApprovalStatus.REJECTED, self.master, notes='Masih dibutuhkan'
        )

        self.kurir.refresh_from_db()
        self.assertEqual(self.kurir.status, UserStatus.AKTIF)
        self.assertEqual(approval.notes_from_handler, 'Masih dibutuhkan')

    def test_only_master_admin_handles(self):
        approval = ApprovalService.request_user_deletion(self.admin, self.kurir)
        with self.assertRaises(PermissionDenied):
            ApprovalService.handle_approval_request(approval.id, ApprovalStatus.APPROVED, self.admin)

    def test_cannot_handle_twice(self):
        approval = ApprovalService.request_user_deletion(self.admin, self.kurir)
        ApprovalService.handle_approval_request(approval.id, ApprovalStatus.REJECTED, self.master)

        with self.assertRaisesMessage(ValueError, "Permintaan ini sudah diproses."):
            ApprovalService.handle_approval_request(approval.id, ApprovalStatus.APPROVED, self.master)

    def test_unknown_request(self):
        with self.assertRaisesMessage(ValueError, "Permintaan persetujuan tidak ditemukan."):
            ApprovalService.handle_approval_request(9999, ApprovalStatus.APPROVED, self.master)

    def test_requester_notified_of_result(self):
        approval = ApprovalService.request_user_deletion(self.admin, self.kurir)

        with self.captureOnCommitCallbacks(execute=True):
            ApprovalService.handle_approval_request(
                approval.id, ApprovalStatus.REJECTED, self.master, notes='Tidak perlu'
            )

        notification = Notification.objects.get(recipient=self.admin)
        self.assertEqual(notification.category, NotificationCategory.APPROVAL_RESULT)
        self.assertIn('ditolak', notification.message)
        self.assertIn('Tidak perlu', notification.message)

    def test_decision_stands_when_result_notification_fails(self):
        approval = ApprovalService.request_status_change(self.admin, self.kurir, UserStatus.NONAKTIF)

        with patch('notifications.services.NotificationService.notify', side_effect=ConnectionError('down')):
            with self.captureOnCommitCallbacks(execute=True):
                ApprovalService.handle_approval_request(approval.id, ApprovalStatus.APPROVED, self.master)

        approval.refresh_from_db()
        self.kurir.refresh_from_db()
        self.assertEqual(approval.status, ApprovalStatus.APPROVED)
        self.assertEqual(self.kurir.status, UserStatus.NONAKTIF)


class TestApprovalAPI(ApprovalTestCase):

    def setUp(self):
        super().setUp()
        self.api = APIClient()
        self.approval = ApprovalService.request_user_creation(self.admin, dict(KURIR_PROFILE), 'rahasia123')
        self.other_admin = User.objects.create_user(
            email='admin2@insan.id', employee_id='ADMIN0000002', full_name='Admin Dua', role=UserRole.ADMIN,
        )

    def test_payload_hides_password_hash(self):
        self.api.force_authenticate(self.master)
        response = self.api.get(f'/api/approvals/{self.approval.id}/')
        self.assertEqual(response.status_code, 200)
        self.assertNotIn('password_hash', response.json()['payload'])
        self.assertEqual(response.json()['request_type_display'], 'Pengguna baru (Kurir)')

    def test_admin_sees_only_own_requests(self):
        self.api.force_authenticate(self.other_admin)
        response = self.api.get('/api/approvals/')
        self.assertEqual(response.json()['results'], [])

        self.api.force_authenticate(self.admin)
        response = self.api.get('/api/approvals/mine/')
        self.assertEqual(len(response.json()), 1)

    def test_pending_list(self):
        self.api.force_authenticate(self.master)
        response = self.api.get('/api/approvals/pending/')
        self.assertEqual([a['id'] for a in response.json()], [self.approval.id])

    def test_handle_endpoint(self):
        self.api.force_authenticate(self.master)
        response = self.api.post(
            f'/api/approvals/{self.approval.id}/handle/', {'decision': 'approved'}, format='json'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['approval_request']['status'], ApprovalStatus.APPROVED)
        self.assertTrue(User.objects.filter(employee_id='K0000099').exists())

        response = self.api.post(
            f'/api/approvals/{self.approval.id}/handle/', {'decision': 'rejected'}, format='json'
        )
        self.assertEqual(response.status_code, 400)

    def test_handle_forbidden_for_admin(self):
        self.api.force_authenticate(self.admin)
        response = self.api.post(
            f'/api/approvals/{self.approval.id}/handle/', {'decision': 'approved'}, format='json'
        )
        self.assertEqual(response.status_code, 403)

    def test_kurir_forbidden(self):
        self.api.force_authenticate(self.kurir)
        response = self.api.get('/api/approvals/')
        self.assertEqual(response.status_code, 403)
        self.assertFalse(ApprovalRequest.objects.filter(requested_by=self.kurir).exists())

    def test_admin_status_change_accepted_when_broker_down(self):
        self.api.force_authenticate(self.admin)
        with patch.object(send_role_notification, 'delay', side_effect=ConnectionError('broker down')):
            with self.captureOnCommitCallbacks(execute=True):
                response = self.api.post(
                    f'/api/users/{self.kurir.pk}/status/', {'status': UserStatus.NONAKTIF.value}, format='json'
                )

        self.assertEqual(response.status_code, 202)
        self.assertTrue(ApprovalRequest.objects.filter(
            target_user=self.kurir, request_type=ApprovalRequestType.DEACTIVATE_USER
        ).exists())
