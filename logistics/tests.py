"""
INSAN MOBILE Logistics Tests
============================

Tests for:
1. Daily input validation (check-in required, counts)
2. Package scanning (resi normalization, duplicates, COD quotas)
3. Delivery flow (start, proof of delivery, revert)
4. Finishing the day (returns, final counts, work summary notification)
5. Return confirmation by the hub
6. Daily task API
"""

import base64
from datetime import date, datetime
from unittest.mock import patch

from django.core.exceptions import PermissionDenied
from django.core.files.base import ContentFile
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from attendance.services import AttendanceService
from core.models import User, UserRole
from logistics.models import KurirDailyTask, PackageItem, PackageStatus, TaskStatus
from logistics.services import DailyTaskService, PackageNotFound
from logistics.services.daily_task import normalize_resi, package_counts
from notifications.models import Notification, NotificationCategory

PNG_DATA_URL = 'data:image/png;base64,' + base64.b64encode(b'\x89PNG\r\n\x1a\nfake').decode()


def photo(name='proof.png'):
    return ContentFile(b'\x89PNG\r\n\x1a\nfake', name=name)


class DailyTaskTestCase(TestCase):
    """Checked-in kurir with a hub."""

    def setUp(self):
        self.kurir = User.objects.create_user(
            email='k001@internal.spx', password='testpass123',
            employee_id='K0000001', full_name='Budi Kurir', role=UserRole.KURIR,
            area='Jakarta Selatan', work_location='Hub Cilandak',
        )
        self.today = timezone.localdate()
        AttendanceService.check_in(self.kurir)

    def make_task(self, total=3, cod=1, non_cod=2):
        return DailyTaskService.submit_daily_input(self.kurir, total, cod, non_cod)

    def scan_all(self, task, *resis):
        for resi in resis:
            DailyTaskService.add_package(task, resi)

    def in_progress_task(self):
        task = self.make_task()
        self.scan_all(task, 'spx001', 'spx002', 'spx003')
        return DailyTaskService.start_delivery(task)


class TestDailyInput(DailyTaskTestCase):

    # ==========================================
    # Intake Validation
    # ==========================================

    def test_check_in_required(self):
        other = User.objects.create_user(
            email='k002@internal.spx', employee_id='K0000002', full_name='Kurir Dua', role=UserRole.KURIR,
        )
        with self.assertRaisesMessage(ValueError, "Anda harus check-in terlebih dahulu."):
            DailyTaskService.submit_daily_input(other, 3, 1, 2)

    def test_counts_must_add_up(self):
        with self.assertRaisesMessage(ValueError, "Jumlah paket COD dan Non-COD harus sama dengan Total Paket."):
            self.make_task(total=3, cod=1, non_cod=1)

    def test_total_bounds(self):
        with self.assertRaisesMessage(ValueError, "Total paket minimal 1."):
            self.make_task(total=0, cod=0, non_cod=0)
        with self.assertRaisesMessage(ValueError, "Total paket maksimal 200."):
            self.make_task(total=201, cod=1, non_cod=200)

    def test_only_kurir_submits(self):
        pic = User.objects.create_user(
            email='pic@insan.id', employee_id='PIC0000001', full_name='PIC', role=UserRole.PIC,
        )
        with self.assertRaises(PermissionDenied):
            DailyTaskService.submit_daily_input(pic, 3, 1, 2)

    def test_input_can_be_corrected_while_pending(self):
        task = self.make_task()
        DailyTaskService.submit_daily_input(self.kurir, 5, 2, 3)
        task.refresh_from_db()
        self.assertEqual(task.total_packages, 5)
        self.assertEqual(KurirDailyTask.objects.filter(kurir=self.kurir).count(), 1)

    def test_correction_cannot_drop_below_scanned(self):
        task = self.make_task()
        self.scan_all(task, 'A1', 'A2')
        with self.assertRaises(ValueError):
            DailyTaskService.submit_daily_input(self.kurir, 1, 0, 1)

    def test_input_locked_after_start(self):
        self.in_progress_task()
        with self.assertRaisesMessage(ValueError, "Pengantaran sudah dimulai. Daftar paket tidak dapat diubah."):
            DailyTaskService.submit_daily_input(self.kurir, 3, 1, 2)


class TestPackageScanning(DailyTaskTestCase):

    # ==========================================
    # Scanning
    # ==========================================

    def test_resi_normalized(self):
        self.assertEqual(normalize_resi('  spx123 '), 'SPX123')
        task = self.make_task()
        package = DailyTaskService.add_package(task, ' spx001 ')
        self.assertEqual(package.tracking_number, 'SPX001')

    def test_empty_resi_rejected(self):
        task = self.make_task()
        with self.assertRaisesMessage(ValueError, "Nomor resi tidak boleh kosong."):
            DailyTaskService.add_package(task, '   ')

    def test_duplicate_resi_rejected(self):
        task = self.make_task()
        DailyTaskService.add_package(task, 'SPX001')
        with self.assertRaisesMessage(ValueError, "Nomor resi ini sudah ada dalam daftar."):
            DailyTaskService.add_package(task, 'spx001')

    def test_auto_cod_assignment_fills_cod_quota_first(self):
        task = self.make_task(total=3, cod=1, non_cod=2)
        first = DailyTaskService.add_package(task, 'A1')
        second = DailyTaskService.add_package(task, 'A2')
        self.assertTrue(first.is_cod)
        self.assertFalse(second.is_cod)

    def test_cod_quota_enforced(self):
        task = self.make_task(total=3, cod=1, non_cod=2)
        DailyTaskService.add_package(task, 'A1', is_cod=True)
        with self.assertRaisesMessage(ValueError, "Kuota paket COD sudah terpenuhi."):
            DailyTaskService.add_package(task, 'A2', is_cod=True)

    def test_total_reached(self):
        task = self.make_task(total=3, cod=1, non_cod=2)
        self.scan_all(task, 'A1', 'A2', 'A3')
        with self.assertRaisesMessage(ValueError, "Jumlah paket sudah mencapai total yang diinput."):
            DailyTaskService.add_package(task, 'A4')

    def test_remove_package(self):
        task = self.make_task()
        DailyTaskService.add_package(task, 'A1')
        DailyTaskService.remove_package(task, 'a1')
        self.assertEqual(package_counts(task)['scanned'], 0)

        with self.assertRaises(PackageNotFound):
            DailyTaskService.remove_package(task, 'A1')

    def test_start_requires_complete_scan(self):
        task = self.make_task()
        DailyTaskService.add_package(task, 'A1')
        with self.assertRaisesMessage(ValueError, "Jumlah paket yang di-scan (1) belum sesuai total (3)."):
            DailyTaskService.start_delivery(task)


class TestDeliveryFlow(DailyTaskTestCase):

    # ==========================================
    # Start & Deliver
    # ==========================================

    def test_start_puts_packages_in_transit(self):
        task = self.in_progress_task()
        self.assertEqual(task.task_status, TaskStatus.IN_PROGRESS)
        self.assertIsNotNone(task.started_at)
        self.assertEqual(package_counts(task)[PackageStatus.IN_TRANSIT], 3)

    def test_record_delivery_requires_recipient_and_photo(self):
        task = self.in_progress_task()
        with self.assertRaisesMessage(ValueError, "Harap isi nama penerima paket."):
            DailyTaskService.record_delivery(task, 'SPX001', photo(), '  ')
        with self.assertRaisesMessage(ValueError, "Harap ambil foto bukti pengiriman."):
            DailyTaskService.record_delivery(task, 'SPX001', None, 'Ibu Sari')

    def test_record_delivery(self):
        task = self.in_progress_task()
        package = DailyTaskService.record_delivery(task, 'spx001', photo(), 'Ibu Sari')

        self.assertEqual(package.status, PackageStatus.DELIVERED)
        self.assertEqual(package.recipient_name, 'Ibu Sari')
        self.assertTrue(package.delivery_proof_photo.name)
        self.assertIsNotNone(package.delivered_at)

    def test_deliver_unknown_resi(self):
        task = self.in_progress_task()
        with self.assertRaises(PackageNotFound):
            DailyTaskService.record_delivery(task, 'NOPE', photo(), 'Ibu Sari')

    def test_deliver_before_start(self):
        task = self.make_task()
        with self.assertRaisesMessage(ValueError, "Pengantaran belum dimulai."):
            DailyTaskService.record_delivery(task, 'SPX001', photo(), 'Ibu Sari')

    def test_revert_delivery(self):
        task = self.in_progress_task()
        DailyTaskService.record_delivery(task, 'SPX001', photo(), 'Ibu Sari')
        package = DailyTaskService.revert_delivery(task, 'SPX001')

        self.assertEqual(package.status, PackageStatus.IN_TRANSIT)
        self.assertEqual(package.recipient_name, '')
        self.assertFalse(package.delivery_proof_photo)

    # ==========================================
    # Finish Day
    # ==========================================

    def test_finish_with_remaining_requires_return_proof(self):
        task = self.in_progress_task()
        DailyTaskService.record_delivery(task, 'SPX001', photo(), 'Ibu Sari')

        with self.assertRaisesMessage(ValueError, "Harap upload foto bukti pengembalian paket yang tidak terkirim."):
            DailyTaskService.finish_day(task, lead_receiver_name='Pak Joko')
        with self.assertRaisesMessage(ValueError, "Harap isi nama leader yang menerima paket retur."):
            DailyTaskService.finish_day(task, return_photo=photo('retur.png'))

    def test_finish_day_counts(self):
        task = self.in_progress_task()
        DailyTaskService.record_delivery(task, 'SPX001', photo(), 'Ibu Sari')

        result = DailyTaskService.finish_day(task, return_photo=photo('retur.png'), lead_receiver_name='Pak Joko')

        self.assertEqual(result['delivered'], 1)
        self.assertEqual(result['pending_return'], 2)
        self.assertEqual(result['total'], 3)
        task.refresh_from_db()
        self.assertEqual(task.task_status, TaskStatus.COMPLETED)
        self.assertEqual(task.success_rate, 33.3)
        returned = PackageItem.objects.filter(task=task, status=PackageStatus.PENDING_RETURN)
        self.assertEqual(returned.count(), 2)
        self.assertEqual(returned.first().return_lead_receiver_name, 'Pak Joko')

    def test_finish_all_delivered_needs_no_return_proof(self):
        task = self.in_progress_task()
        for resi in ('SPX001', 'SPX002', 'SPX003'):
            DailyTaskService.record_delivery(task, resi, photo(), 'Penerima')
        result = DailyTaskService.finish_day(task)
        self.assertEqual(result['pending_return'], 0)

    def test_completed_task_is_frozen(self):
        task = self.in_progress_task()
        DailyTaskService.record_delivery(task, 'SPX001', photo(), 'Ibu Sari')
        DailyTaskService.finish_day(task, return_photo=photo(), lead_receiver_name='Pak Joko')

        frozen = "Tugas hari ini sudah selesai dan tidak dapat diubah."
        with self.assertRaisesMessage(ValueError, frozen):
            DailyTaskService.add_package(task, 'SPX009')
        with self.assertRaisesMessage(ValueError, frozen):
            DailyTaskService.remove_package(task, 'SPX002')
        with self.assertRaisesMessage(ValueError, frozen):
            DailyTaskService.start_delivery(task)
        with self.assertRaisesMessage(ValueError, frozen):
            DailyTaskService.record_delivery(task, 'SPX002', photo(), 'Ibu Sari')
        with self.assertRaisesMessage(ValueError, frozen):
            DailyTaskService.revert_delivery(task, 'SPX001')
        with self.assertRaisesMessage(ValueError, frozen):
            DailyTaskService.finish_day(task, return_photo=photo(), lead_receiver_name='Pak Joko')

        task.refresh_from_db()
        self.assertEqual((task.final_delivered_count, task.final_pending_return_count), (1, 2))
        self.assertEqual(task.packages.get(tracking_number='SPX001').status, PackageStatus.DELIVERED)

    @patch('notifications.services.PushService.send_to_user')
    def test_finish_notifies_pic_and_admin(self, mock_push):
        pic = User.objects.create_user(
            email='pic@insan.id', employee_id='PIC0000001', full_name='PIC Cilandak',
            role=UserRole.PIC, work_location='Hub Cilandak',
        )
        other_pic = User.objects.create_user(
            email='pic2@insan.id', employee_id='PIC0000002', full_name='PIC Lain',
            role=UserRole.PIC, work_location='Hub Dago',
        )
        admin = User.objects.create_user(
            email='admin@insan.id', employee_id='ADMIN0000001', full_name='Admin', role=UserRole.ADMIN,
        )
        task = self.in_progress_task()

        with self.captureOnCommitCallbacks(execute=True):
            DailyTaskService.finish_day(task, return_photo=photo(), lead_receiver_name='Pak Joko')

        summaries = Notification.objects.filter(category=NotificationCategory.WORK_SUMMARY)
        self.assertEqual(set(summaries.values_list('recipient', flat=True)), {pic.pk, admin.pk})
        self.assertFalse(summaries.filter(recipient=other_pic).exists())
        self.assertTrue(mock_push.called)

    # ==========================================
    # Return Confirmation & Read Models
    # ==========================================

    def test_confirm_return(self):
        pic = User.objects.create_user(
            email='pic@insan.id', employee_id='PIC0000001', full_name='PIC', role=UserRole.PIC,
        )
        task = self.in_progress_task()
        DailyTaskService.finish_day(task, return_photo=photo(), lead_receiver_name='Pak Joko')
        package = task.packages.get(tracking_number='SPX001')

        package = DailyTaskService.confirm_return(package, pic)
        self.assertEqual(package.status, PackageStatus.RETURNED)
        self.assertEqual(package.returned_confirmed_by, pic)

        with self.assertRaisesMessage(ValueError, "Paket ini tidak dalam status menunggu retur."):
            DailyTaskService.confirm_return(package, pic)

        task.refresh_from_db()
        self.assertEqual(task.final_pending_return_count, 3)
        self.assertEqual(task.final_delivered_count, 0)

    def test_confirm_return_managers_only(self):
        task = self.in_progress_task()
        DailyTaskService.finish_day(task, return_photo=photo(), lead_receiver_name='Pak Joko')
        with self.assertRaises(PermissionDenied):
            DailyTaskService.confirm_return(task.packages.first(), self.kurir)

    def test_dashboard_data(self):
        task = self.in_progress_task()
        DailyTaskService.record_delivery(task, 'SPX001', photo(), 'Ibu Sari')

        data = DailyTaskService.get_dashboard_data(self.kurir)

        self.assertTrue(data['checked_in'])
        self.assertTrue(data['delivery_started'])
        self.assertFalse(data['day_finished'])
        self.assertEqual(data['counts'][PackageStatus.DELIVERED], 1)
        self.assertIn('SPX001', data['photo_map'])
        self.assertTrue(data['quote'])

    def test_task_history_search(self):
        task = self.in_progress_task()
        DailyTaskService.record_delivery(task, 'SPX001', photo(), 'Ibu Sari')
        DailyTaskService.record_delivery(task, 'SPX002', photo(), 'Pak Budi')

        history = DailyTaskService.get_task_history(self.kurir, self.today, search='002')
        self.assertEqual([p['tracking_number'] for p in history['delivered_packages']], ['SPX002'])

    def test_work_summaries(self):
        task = self.in_progress_task()
        DailyTaskService.finish_day(task, return_photo=photo(), lead_receiver_name='Pak Joko')

        summaries = DailyTaskService.get_work_summaries(self.today)
        self.assertEqual(len(summaries), 1)
        self.assertEqual(summaries[0]['packages_pending_or_returned'], 3)


class TestDailyTaskAPI(TestCase):

    def setUp(self):
        self.api = APIClient()
        self.kurir = User.objects.create_user(
            email='k001@internal.spx', password='testpass123',
            employee_id='K0000001', full_name='Budi Kurir', role=UserRole.KURIR,
            work_location='Hub Cilandak',
        )
        self.api.force_authenticate(self.kurir)

    def test_input_requires_check_in(self):
        response = self.api.post('/api/tasks/today/input/', {'total': 2, 'cod': 1, 'non_cod': 1}, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], "Anda harus check-in terlebih dahulu.")

    def test_full_day_over_api(self):
        self.api.post('/api/attendance/check-in/')

        response = self.api.post('/api/tasks/today/input/', {'total': 2, 'cod': 1, 'non_cod': 1}, format='json')
        self.assertEqual(response.status_code, 200)

        for resi in ('spx001', 'spx002'):
            response = self.api.post('/api/tasks/today/packages/', {'tracking_number': resi}, format='json')
            self.assertEqual(response.status_code, 201)

        response = self.api.post('/api/tasks/today/start/')
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['delivery_started'])

        response = self.api.get('/api/tasks/today/scan/', {'resi': 'spx001'})
        self.assertEqual(response.json()['tracking_number'], 'SPX001')

        response = self.api.post('/api/tasks/today/deliver/', {
            'tracking_number': 'SPX001', 'recipient_name': 'Ibu Sari', 'photo': PNG_DATA_URL,
        }, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], PackageStatus.DELIVERED)

        response = self.api.post('/api/tasks/today/finish/', {
            'lead_receiver_name': 'Pak Joko', 'return_photo': PNG_DATA_URL,
        }, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['task']['final_delivered_count'], 1)
        self.assertEqual(response.json()['task']['final_pending_return_count'], 1)

    def test_scan_unknown_resi_404(self):
        self.api.post('/api/attendance/check-in/')
        self.api.post('/api/tasks/today/input/', {'total': 1, 'cod': 0, 'non_cod': 1}, format='json')
        self.api.post('/api/tasks/today/packages/', {'tracking_number': 'A1'}, format='json')
        self.api.post('/api/tasks/today/start/')

        response = self.api.get('/api/tasks/today/scan/', {'resi': 'ZZZ'})
        self.assertEqual(response.status_code, 404)

    def test_no_task_yet(self):
        response = self.api.post('/api/tasks/today/start/')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], "Anda belum menginput jumlah paket hari ini.")

    def test_history_for_manager_requires_kurir(self):
        pic = User.objects.create_user(
            email='pic@insan.id', employee_id='PIC0000001', full_name='PIC', role=UserRole.PIC,
            work_location='Hub Cilandak',
        )
        self.api.force_authenticate(pic)
        response = self.api.get('/api/tasks/history/')
        self.assertEqual(response.status_code, 400)

        response = self.api.get('/api/tasks/history/', {'kurir': 'K0000001', 'date': date.today().isoformat()})
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.json()['task'])


class TestManagerScope(TestCase):
    """PICs only reach kurirs of their own hub."""

    def setUp(self):
        self.api = APIClient()
        self.kurir = User.objects.create_user(
            email='k001@internal.spx', employee_id='K0000001', full_name='Budi Kurir',
            role=UserRole.KURIR, area='Jakarta Selatan', work_location='Hub Cilandak',
        )
        self.pic = User.objects.create_user(
            email='pic@insan.id', employee_id='PIC0000001', full_name='PIC Cilandak',
            role=UserRole.PIC, work_location='Hub Cilandak',
        )
        self.other_pic = User.objects.create_user(
            email='pic2@insan.id', employee_id='PIC0000002', full_name='PIC Bandung',
            role=UserRole.PIC, work_location='Hub Bandung',
        )
        self.task = KurirDailyTask.objects.create(
            kurir=self.kurir, date=date.today(), total_packages=1, non_cod_packages=1,
            task_status=TaskStatus.COMPLETED, final_delivered_count=0, final_pending_return_count=1,
        )
        self.package = PackageItem.objects.create(
            task=self.task, tracking_number='SPX001', status=PackageStatus.PENDING_RETURN,
        )

    def test_confirm_return_outside_hub_404(self):
        self.api.force_authenticate(self.other_pic)
        response = self.api.post(f'/api/packages/{self.package.pk}/confirm-return/')
        self.assertEqual(response.status_code, 404)

        self.package.refresh_from_db()
        self.assertEqual(self.package.status, PackageStatus.PENDING_RETURN)

        self.api.force_authenticate(self.pic)
        response = self.api.post(f'/api/packages/{self.package.pk}/confirm-return/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], PackageStatus.RETURNED)

    def test_task_and_package_lists_scoped(self):
        self.api.force_authenticate(self.other_pic)
        self.assertEqual(self.api.get('/api/tasks/').json()['results'], [])
        self.assertEqual(self.api.get('/api/packages/').json()['results'], [])
        self.assertEqual(self.api.get(f'/api/tasks/{self.task.pk}/').status_code, 404)

        self.api.force_authenticate(self.pic)
        self.assertEqual(len(self.api.get('/api/tasks/').json()['results']), 1)
        self.assertEqual(len(self.api.get('/api/packages/').json()['results']), 1)

    def test_history_outside_hub_404(self):
        self.api.force_authenticate(self.other_pic)
        response = self.api.get('/api/tasks/history/', {'kurir': 'K0000001'})
        self.assertEqual(response.status_code, 404)
