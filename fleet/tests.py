"""
INSAN MOBILE Managerial Dashboard Tests

Tests for:
1. Kurir visibility per role and dashboard filters
2. Today's KPIs and shipment charts
3. Courier management list and detail
4. Dashboard API
"""

from datetime import date, time

from django.test import TestCase
from rest_framework.test import APIClient

from attendance.models import NOT_CHECKED_IN, AttendanceRecord, AttendanceStatus
from core.models import User, UserRole, UserStatus
from fleet.services import (
    CourierManagementService, ManagerialDashboardService, apply_filters, kurirs_visible_to,
)
from logistics.models import KurirDailyTask, PackageItem, PackageStatus, TaskStatus

TODAY = date(2025, 6, 18)


def completed_task(kurir, day, total, delivered):
    return KurirDailyTask.objects.create(
        kurir=kurir, date=day, total_packages=total, non_cod_packages=total,
        task_status=TaskStatus.COMPLETED,
        final_delivered_count=delivered, final_pending_return_count=total - delivered,
    )


class FleetTestCase(TestCase):

    def setUp(self):
        self.master = User.objects.create_user(
            email='master@insan.id', employee_id='MASTERADMIN01', full_name='Master', role=UserRole.MASTER_ADMIN,
        )
        self.pic = User.objects.create_user(
            email='pic@insan.id', employee_id='PIC0000001', full_name='PIC Cilandak',
            role=UserRole.PIC, work_location='Hub Cilandak',
        )
        self.budi = User.objects.create_user(
            email='k001@internal.spx', employee_id='K0000001', full_name='Budi Kurir',
            role=UserRole.KURIR, wilayah='DKI Jakarta', area='Jakarta Selatan', work_location='Hub Cilandak',
        )
        self.asep = User.objects.create_user(
            email='k002@internal.spx', employee_id='K0000002', full_name='Asep Kurir',
            role=UserRole.KURIR, wilayah='Jawa Barat', area='Bandung', work_location='Hub Dago',
        )


class TestVisibility(FleetTestCase):

    def test_admin_sees_all(self):
        self.assertEqual(kurirs_visible_to(self.master).count(), 2)

    def test_pic_sees_own_hub_or_area(self):
        self.assertEqual(list(kurirs_visible_to(self.pic)), [self.budi])

        self.asep.area = 'Hub Cilandak'
        self.asep.save()
        self.assertEqual(kurirs_visible_to(self.pic).count(), 2)

    def test_pic_without_location_sees_nothing(self):
        self.pic.work_location = ''
        self.pic.save()
        self.assertFalse(kurirs_visible_to(self.pic).exists())

    def test_kurir_sees_self(self):
        self.assertEqual(list(kurirs_visible_to(self.budi)), [self.budi])

    def test_filters(self):
        kurirs = kurirs_visible_to(self.master)
        self.assertEqual(list(apply_filters(kurirs, {'wilayah': 'Jawa Barat'})), [self.asep])
        self.assertEqual(list(apply_filters(kurirs, {'hub': 'Hub Cilandak'})), [self.budi])
        self.assertEqual(list(apply_filters(kurirs, {'search': 'k0000002'})), [self.asep])
        self.assertEqual(apply_filters(kurirs, {'area': '', 'search': ' '}).count(), 2)


class TestDashboardSummary(FleetTestCase):

    def setUp(self):
        super().setUp()
        AttendanceRecord.objects.create(
            kurir=self.budi, date=TODAY, status=AttendanceStatus.PRESENT, check_in_time=time(8, 30),
        )
        AttendanceRecord.objects.create(
            kurir=self.asep, date=TODAY, status=AttendanceStatus.LATE, check_in_time=time(9, 20),
        )
        task = KurirDailyTask.objects.create(
            kurir=self.budi, date=TODAY, total_packages=3, non_cod_packages=3,
            task_status=TaskStatus.IN_PROGRESS,
        )
        PackageItem.objects.create(task=task, tracking_number='SPX001', status=PackageStatus.DELIVERED)
        PackageItem.objects.create(task=task, tracking_number='SPX002', status=PackageStatus.DELIVERED)
        PackageItem.objects.create(task=task, tracking_number='SPX003', status=PackageStatus.IN_TRANSIT)

        completed_task(self.asep, date(2025, 6, 17), 10, 7)
        completed_task(self.budi, date(2025, 5, 20), 20, 20)

    def test_today_kpis(self):
        summary = ManagerialDashboardService.get_summary(self.master, today=TODAY)

        self.assertEqual(summary['active_couriers_today'], 2)
        self.assertEqual(summary['total_packages_processed_today'], 3)
        self.assertEqual(summary['total_packages_delivered_today'], 2)
        self.assertEqual(summary['on_time_rate_today'], 50.0)

    def test_daily_chart(self):
        daily = ManagerialDashboardService.get_summary(self.master, today=TODAY)['daily_shipment_summary']

        self.assertEqual(len(daily), 7)
        self.assertEqual(daily[-1]['date'], '2025-06-18')
        self.assertEqual(daily[-2]['name'], '17/06')
        self.assertEqual((daily[-2]['terkirim'], daily[-2]['pending']), (7, 3))
        self.assertEqual(daily[-1]['terkirim'], 0)

    def test_weekly_chart(self):
        weekly = ManagerialDashboardService.get_summary(self.master, today=TODAY)['weekly_shipment_summary']

        self.assertEqual([w['week'] for w in weekly], ['Minggu 1', 'Minggu 2', 'Minggu 3', 'Minggu 4'])
        week_of_17th = next(w for w in weekly if w['week_start'] == '2025-06-16')
        self.assertEqual(week_of_17th['terkirim'], 7)

    def test_monthly_chart(self):
        monthly = ManagerialDashboardService.get_summary(self.master, today=TODAY)['monthly_performance_summary']

        self.assertEqual([m['month'] for m in monthly], ['Apr 2025', 'Mei 2025', 'Jun 2025'])
        self.assertEqual(monthly[1]['total_delivered'], 20)
        self.assertEqual(monthly[1]['success_rate'], 100.0)
        self.assertEqual(monthly[2]['success_rate'], 70.0)
        self.assertEqual(monthly[0]['success_rate'], 0.0)

    def test_filters_narrow_summary(self):
        summary = ManagerialDashboardService.get_summary(self.master, {'hub': 'Hub Dago'}, today=TODAY)
        self.assertEqual(summary['active_couriers_today'], 1)
        self.assertEqual(summary['total_packages_processed_today'], 0)
        self.assertEqual(summary['on_time_rate_today'], 0.0)

    def test_courier_updates_scoped_to_pic(self):
        completed_task(self.budi, date(2025, 6, 11), 5, 5)
        updates = ManagerialDashboardService.get_courier_updates(self.pic, today=TODAY)

        self.assertEqual([a['kurir_id'] for a in updates['attendance_activities']], ['K0000001'])
        self.assertEqual(updates['work_summaries'], [])


class TestCourierManagement(FleetTestCase):

    def test_courier_row_defaults(self):
        row = CourierManagementService.courier_row(self.budi, TODAY)

        self.assertEqual(row['attendance_today'], NOT_CHECKED_IN)
        self.assertEqual(row['packages_today'], 0)
        self.assertIsNone(row['task_status_today'])
        self.assertEqual(row['success_rate_30d'], 0.0)

    def test_success_rate_window(self):
        completed_task(self.budi, date(2025, 6, 10), 10, 9)
        completed_task(self.budi, date(2025, 4, 1), 10, 0)

        self.assertEqual(CourierManagementService.success_rate(self.budi, TODAY), 90.0)

    def test_kurir_options_active_only(self):
        self.asep.status = UserStatus.NONAKTIF
        self.asep.save()

        options = CourierManagementService.kurir_options(self.master)
        self.assertEqual([o['employee_id'] for o in options], ['K0000001'])

    def test_list_sorted_by_name(self):
        rows = CourierManagementService.list_couriers(self.master, today=TODAY)
        self.assertEqual([r['full_name'] for r in rows], ['Asep Kurir', 'Budi Kurir'])


class TestFleetAPI(FleetTestCase):

    def setUp(self):
        super().setUp()
        self.api = APIClient()

    def test_summary_requires_manager(self):
        self.api.force_authenticate(self.budi)
        response = self.api.get('/api/fleet/dashboard/summary/')
        self.assertEqual(response.status_code, 403)

    def test_summary_with_date(self):
        self.api.force_authenticate(self.master)
        response = self.api.get('/api/fleet/dashboard/summary/', {'date': '2025-06-18', 'hub': 'Hub Dago'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['daily_shipment_summary'][-1]['date'], '2025-06-18')

        response = self.api.get('/api/fleet/dashboard/summary/', {'date': '18-06-2025'})
        self.assertEqual(response.status_code, 400)

    def test_updates_and_options(self):
        self.api.force_authenticate(self.pic)
        response = self.api.get('/api/fleet/dashboard/updates/')
        self.assertEqual(response.status_code, 200)
        self.assertIn('work_summaries', response.json())

        response = self.api.get('/api/fleet/dashboard/kurir-options/')
        self.assertEqual([o['employee_id'] for o in response.json()], ['K0000001'])

    def test_courier_list_and_detail(self):
        self.api.force_authenticate(self.pic)
        response = self.api.get('/api/fleet/couriers/')
        self.assertEqual([r['employee_id'] for r in response.json()], ['K0000001'])

        response = self.api.get('/api/fleet/couriers/K0000001/')
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['profile']['employee_id'], 'K0000001')
        self.assertIsNone(data['today_task'])
        self.assertEqual(data['attendance']['today_record']['status'], NOT_CHECKED_IN)

        response = self.api.get('/api/fleet/couriers/K0000002/')
        self.assertEqual(response.status_code, 404)
