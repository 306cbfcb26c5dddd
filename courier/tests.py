"""
INSAN MOBILE Courier Performance Tests
"""

from datetime import date

from django.test import TestCase
from rest_framework.test import APIClient

from attendance.models import AttendanceRecord, AttendanceStatus
from core.models import User, UserRole
from courier.services import CourierPerformanceService, success_rate
from logistics.models import KurirDailyTask, TaskStatus


def completed_task(kurir, day, total, delivered):
    return KurirDailyTask.objects.create(
        kurir=kurir, date=day, total_packages=total, cod_packages=0, non_cod_packages=total,
        task_status=TaskStatus.COMPLETED,
        final_delivered_count=delivered, final_pending_return_count=total - delivered,
    )


class TestCourierPerformanceService(TestCase):

    def setUp(self):
        self.kurir = User.objects.create_user(
            email='k001@internal.spx', employee_id='K0000001', full_name='Budi Kurir',
            role=UserRole.KURIR, work_location='Hub Cilandak',
        )
        # Mon 2 Jun and Tue 3 Jun 2025 (W-23), Mon 9 Jun 2025 (W-24)
        completed_task(self.kurir, date(2025, 6, 2), 10, 8)
        completed_task(self.kurir, date(2025, 6, 3), 10, 10)
        completed_task(self.kurir, date(2025, 6, 9), 20, 15)
        KurirDailyTask.objects.create(
            kurir=self.kurir, date=date(2025, 6, 10), total_packages=5, non_cod_packages=5,
        )

    def test_success_rate(self):
        self.assertEqual(success_rate(2, 3), 66.7)
        self.assertEqual(success_rate(0, 0), 0.0)

    def test_window_validation(self):
        with self.assertRaisesMessage(ValueError, "Tanggal mulai tidak boleh setelah tanggal akhir."):
            CourierPerformanceService.window(date(2025, 6, 10), date(2025, 6, 1))

        start, end = CourierPerformanceService.window(end=date(2025, 6, 30))
        self.assertEqual((end - start).days, 90)

    def test_daily_only_completed_newest_first(self):
        data = CourierPerformanceService.get_performance_data(
            self.kurir, date(2025, 6, 1), date(2025, 6, 30)
        )
        self.assertEqual(
            [d['date'] for d in data['daily']], ['2025-06-09', '2025-06-03', '2025-06-02']
        )
        self.assertEqual(data['daily'][0]['success_rate'], 75.0)
        self.assertTrue(data['has_any_tasks_in_period'])

    def test_weekly_grouping(self):
        data = CourierPerformanceService.get_performance_data(
            self.kurir, date(2025, 6, 1), date(2025, 6, 30)
        )
        weekly = data['weekly']

        self.assertEqual([w['week_label'] for w in weekly], ['W-23', 'W-24'])
        self.assertEqual(weekly[0]['week_start'], '2025-06-02')
        self.assertEqual(weekly[0]['total_packages'], 20)
        self.assertEqual(weekly[0]['delivered'], 18)
        self.assertEqual(weekly[0]['success_rate'], 90.0)

    def test_attendance_summary(self):
        for day, status in [(2, AttendanceStatus.PRESENT), (3, AttendanceStatus.LATE), (4, AttendanceStatus.ABSENT)]:
            AttendanceRecord.objects.create(kurir=self.kurir, date=date(2025, 6, day), status=status)

        summary = CourierPerformanceService.get_attendance_summary(
            self.kurir, date(2025, 6, 1), date(2025, 6, 30)
        )

        self.assertEqual(summary['total_attendance_days'], 2)
        self.assertEqual(summary['late_days'], 1)
        self.assertEqual(summary['absent_days'], 1)
        self.assertEqual(summary['total_working_days'], 3)
        self.assertEqual(summary['attendance_rate'], 66.7)

    def test_overall_ignores_period(self):
        data = CourierPerformanceService.get_performance_data(
            self.kurir, date(2025, 7, 1), date(2025, 7, 31)
        )
        self.assertEqual(data['daily'], [])
        self.assertFalse(data['has_any_tasks_in_period'])
        self.assertEqual(data['overall']['total_packages_ever'], 40)
        self.assertEqual(data['overall']['total_successful_deliveries_ever'], 33)


class TestPerformanceAPI(TestCase):

    def setUp(self):
        self.api = APIClient()
        self.kurir = User.objects.create_user(
            email='k001@internal.spx', employee_id='K0000001', full_name='Budi Kurir',
            role=UserRole.KURIR, work_location='Hub Cilandak',
        )
        self.pic = User.objects.create_user(
            email='pic@insan.id', employee_id='PIC0000001', full_name='PIC Cilandak',
            role=UserRole.PIC, work_location='Hub Cilandak',
        )
        self.other_pic = User.objects.create_user(
            email='pic2@insan.id', employee_id='PIC0000002', full_name='PIC Dago',
            role=UserRole.PIC, work_location='Hub Dago',
        )

    def test_kurir_sees_self(self):
        self.api.force_authenticate(self.kurir)
        response = self.api.get('/api/courier/performance/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['kurir']['employee_id'], 'K0000001')

    def test_manager_must_pick_kurir(self):
        self.api.force_authenticate(self.pic)
        response = self.api.get('/api/courier/performance/')
        self.assertEqual(response.status_code, 400)

        response = self.api.get('/api/courier/performance/', {'kurir': 'K0000001'})
        self.assertEqual(response.status_code, 200)

    def test_pic_outside_scope_gets_404(self):
        self.api.force_authenticate(self.other_pic)
        response = self.api.get('/api/courier/performance/', {'kurir': 'K0000001'})
        self.assertEqual(response.status_code, 404)

    def test_invalid_range(self):
        self.api.force_authenticate(self.kurir)
        response = self.api.get('/api/courier/performance/', {'start': '2025-06-10', 'end': '2025-06-01'})
        self.assertEqual(response.status_code, 400)

        response = self.api.get('/api/courier/performance/', {'start': 'kemarin'})
        self.assertEqual(response.status_code, 400)
