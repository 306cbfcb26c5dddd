"""
INSAN MOBILE Attendance Tests
=============================

Tests for:
1. Work duration and attendance rate helpers
2. Check-in / check-out rules (late hour, one per day)
3. Attendance page data and activity feed
4. Absent marking task
5. Attendance API
"""

from datetime import date, datetime, time

from django.core.exceptions import PermissionDenied
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from attendance.models import NOT_CHECKED_IN, AttendanceRecord, AttendanceStatus
from attendance.services import (
    AttendanceService, attendance_rate, monthly_halves, work_duration,
)
from attendance.tasks import mark_absent_couriers
from core.models import User, UserRole, UserStatus


def local_dt(*args):
    return timezone.make_aware(datetime(*args))


class TestAttendanceHelpers(TestCase):

    # ==========================================
    # Work Duration
    # ==========================================

    def test_work_duration_formats(self):
        self.assertEqual(work_duration(time(8, 0), time(16, 30)), "8 jam 30 menit")
        self.assertEqual(work_duration(time(8, 0), time(16, 0)), "8 jam")
        self.assertEqual(work_duration(time(8, 0), time(8, 45)), "45 menit")

    def test_work_duration_missing_or_zero(self):
        self.assertIsNone(work_duration(time(8, 0), None))
        self.assertIsNone(work_duration(None, time(8, 0)))
        self.assertIsNone(work_duration(time(8, 0), time(8, 0)))

    def test_work_duration_invalid(self):
        self.assertEqual(work_duration(time(16, 0), time(8, 0)), "Durasi tidak valid")

    # ==========================================
    # Attendance Rate & Monthly Chart
    # ==========================================

    def test_attendance_rate_counts_late_as_present(self):
        records = [
            {'status': AttendanceStatus.PRESENT},
            {'status': AttendanceStatus.LATE},
            {'status': AttendanceStatus.ABSENT},
            {'status': NOT_CHECKED_IN},
        ]
        self.assertEqual(attendance_rate(records), 66.7)

    def test_attendance_rate_empty(self):
        self.assertEqual(attendance_rate([]), 0.0)

    def test_monthly_halves(self):
        records = [
            {'date': '2025-02-03', 'status': AttendanceStatus.PRESENT},
            {'date': '2025-02-20', 'status': AttendanceStatus.LATE},
            {'date': '2025-02-21', 'status': AttendanceStatus.ABSENT},
        ]
        result = monthly_halves(records, date(2025, 2, 10))

        self.assertEqual(result['month'], '2025-02')
        self.assertEqual(len(result['first_half']['chart_data']), 15)
        self.assertEqual(len(result['second_half']['chart_data']), 13)
        self.assertEqual(result['first_half']['present_days'], 1)
        self.assertEqual(result['second_half']['present_days'], 1)


class TestAttendanceService(TestCase):
    """Tests for check-in / check-out rules."""

    def setUp(self):
        self.kurir = User.objects.create_user(
            email='k001@internal.spx', password='testpass123',
            employee_id='K0000001', full_name='Budi Kurir', role=UserRole.KURIR,
            work_location='Hub Cilandak',
        )
        self.pic = User.objects.create_user(
            email='pic@insan.id', password='testpass123',
            employee_id='PIC0000001', full_name='PIC Test', role=UserRole.PIC,
        )

    # ==========================================
    # Check-in
    # ==========================================

    def test_check_in_before_late_hour_is_present(self):
        record = AttendanceService.check_in(self.kurir, now=local_dt(2025, 6, 2, 8, 59, 45))
        self.assertEqual(record.status, AttendanceStatus.PRESENT)
        self.assertEqual(record.check_in_time, time(8, 59))
        self.assertEqual(record.work_location, 'Hub Cilandak')

    def test_check_in_at_late_hour_is_late(self):
        record = AttendanceService.check_in(self.kurir, now=local_dt(2025, 6, 2, 9, 0))
        self.assertEqual(record.status, AttendanceStatus.LATE)

    def test_check_in_twice_rejected(self):
        AttendanceService.check_in(self.kurir, now=local_dt(2025, 6, 2, 8, 0))
        with self.assertRaisesMessage(ValueError, "Anda sudah melakukan check-in hari ini."):
            AttendanceService.check_in(self.kurir, now=local_dt(2025, 6, 2, 10, 0))

    def test_check_in_fills_absent_record(self):
        AttendanceService.mark_absent(date(2025, 6, 2))
        record = AttendanceService.check_in(self.kurir, now=local_dt(2025, 6, 2, 10, 0))
        self.assertEqual(record.status, AttendanceStatus.LATE)
        self.assertEqual(AttendanceRecord.objects.filter(kurir=self.kurir).count(), 1)

    def test_check_in_kurir_only(self):
        with self.assertRaises(PermissionDenied):
            AttendanceService.check_in(self.pic)

    def test_inactive_kurir_cannot_check_in(self):
        self.kurir.status = UserStatus.NONAKTIF
        self.kurir.save()
        with self.assertRaisesMessage(ValueError, "Akun Anda nonaktif."):
            AttendanceService.check_in(self.kurir)

    # ==========================================
    # Check-out
    # ==========================================

    def test_check_out_requires_check_in(self):
        with self.assertRaisesMessage(ValueError, "Anda belum melakukan check-in hari ini."):
            AttendanceService.check_out(self.kurir, now=local_dt(2025, 6, 2, 17, 0))

    def test_check_out_once(self):
        AttendanceService.check_in(self.kurir, now=local_dt(2025, 6, 2, 8, 0))
        record = AttendanceService.check_out(self.kurir, now=local_dt(2025, 6, 2, 16, 30))
        self.assertEqual(record.check_out_time, time(16, 30))

        with self.assertRaisesMessage(ValueError, "Anda sudah melakukan check-out hari ini."):
            AttendanceService.check_out(self.kurir, now=local_dt(2025, 6, 2, 17, 0))

    # ==========================================
    # Page Data & Feed
    # ==========================================

    def test_page_data_placeholder_when_not_checked_in(self):
        data = AttendanceService.get_attendance_page_data(self.kurir, today=date(2025, 6, 2))
        self.assertEqual(data['today_record']['status'], NOT_CHECKED_IN)
        self.assertEqual(data['history'], [])
        self.assertEqual(data['attendance_rate'], 0.0)

    def test_page_data_with_history(self):
        AttendanceService.check_in(self.kurir, now=local_dt(2025, 6, 1, 8, 0))
        AttendanceService.check_in(self.kurir, now=local_dt(2025, 6, 2, 9, 30))
        AttendanceService.check_out(self.kurir, now=local_dt(2025, 6, 2, 17, 30))

        data = AttendanceService.get_attendance_page_data(self.kurir, today=date(2025, 6, 2))

        self.assertEqual(data['today_record']['status'], AttendanceStatus.LATE)
        self.assertEqual(data['today_record']['work_duration'], "8 jam")
        self.assertEqual([r['date'] for r in data['history']], ['2025-06-02', '2025-06-01'])
        self.assertEqual(data['attendance_rate'], 100.0)
        self.assertEqual(data['monthly']['first_half']['present_days'], 2)

    def test_activity_feed_newest_first(self):
        AttendanceService.check_in(self.kurir, now=local_dt(2025, 6, 2, 9, 15))
        AttendanceService.check_out(self.kurir, now=local_dt(2025, 6, 2, 17, 0))

        feed = AttendanceService.get_activity_feed(date(2025, 6, 2))

        self.assertEqual([a['action'] for a in feed], ['check-out', 'reported-late'])
        self.assertEqual(feed[0]['kurir_name'], 'Budi Kurir')
        self.assertEqual(feed[1]['time'], '09:15')

    # ==========================================
    # Absent Marking
    # ==========================================

    def test_mark_absent_task(self):
        other = User.objects.create_user(
            email='k002@internal.spx', employee_id='K0000002', full_name='Kurir Dua', role=UserRole.KURIR,
        )
        AttendanceService.check_in(self.kurir, now=local_dt(2025, 6, 2, 8, 0))

        created = mark_absent_couriers('2025-06-02')

        self.assertEqual(created, 1)
        absent = AttendanceRecord.objects.get(kurir=other, date=date(2025, 6, 2))
        self.assertEqual(absent.status, AttendanceStatus.ABSENT)
        self.assertIsNone(absent.check_in_time)

    def test_mark_absent_skips_inactive(self):
        self.kurir.status = UserStatus.NONAKTIF
        self.kurir.save()
        self.assertEqual(AttendanceService.mark_absent(date(2025, 6, 2)), 0)


class TestAttendanceAPI(TestCase):

    def setUp(self):
        self.api = APIClient()
        self.kurir = User.objects.create_user(
            email='k001@internal.spx', password='testpass123',
            employee_id='K0000001', full_name='Budi Kurir', role=UserRole.KURIR,
        )
        self.pic = User.objects.create_user(
            email='pic@insan.id', password='testpass123',
            employee_id='PIC0000001', full_name='PIC Test', role=UserRole.PIC,
        )

    def test_check_in_endpoint(self):
        self.api.force_authenticate(self.kurir)
        response = self.api.post('/api/attendance/check-in/')
        self.assertEqual(response.status_code, 201)
        self.assertIn(response.json()['record']['status'], [AttendanceStatus.PRESENT, AttendanceStatus.LATE])

        response = self.api.post('/api/attendance/check-in/')
        self.assertEqual(response.status_code, 400)

        response = self.api.get('/api/attendance/today/')
        self.assertTrue(response.json()['checked_in'])

    def test_check_in_forbidden_for_pic(self):
        self.api.force_authenticate(self.pic)
        response = self.api.post('/api/attendance/check-in/')
        self.assertEqual(response.status_code, 403)

    def test_summary_endpoint(self):
        self.api.force_authenticate(self.kurir)
        response = self.api.get('/api/attendance/summary/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['today_record']['status'], NOT_CHECKED_IN)
