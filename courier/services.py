"""
COURIER App - Services for Performance Data

Aggregation of a kurir's completed daily tasks and attendance.
"""

from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db.models import Sum
from django.utils import timezone

from attendance.models import AttendanceRecord, AttendanceStatus
from core.models import User
from logistics.models import KurirDailyTask, TaskStatus


def success_rate(delivered: int, total: int) -> float:
    return round(delivered / total * 100, 1) if total else 0.0


class CourierPerformanceService:
    """
    Performance page data for one kurir.

    Only completed tasks count. Default window is PERFORMANCE_WINDOW_DAYS (90).
    """

    @staticmethod
    def window(start: Optional[date] = None, end: Optional[date] = None):
        end = end or timezone.localdate()
        if start is None:
            start = end - timedelta(days=getattr(settings, 'PERFORMANCE_WINDOW_DAYS', 90))
        if start > end:
            raise ValueError("Tanggal mulai tidak boleh setelah tanggal akhir.")
        return start, end

    @staticmethod
    def get_daily_performance(tasks: List[KurirDailyTask]) -> List[Dict[str, Any]]:
        """One row per completed task, newest first."""
        rows = []
        for task in sorted(tasks, key=lambda t: t.date, reverse=True):
            delivered = task.final_delivered_count or 0
            rows.append({
                'date': task.date.isoformat(),
                'total_packages': task.total_packages,
                'total_delivered': delivered,
                'total_pending': task.final_pending_return_count or 0,
                'success_rate': success_rate(delivered, task.total_packages),
            })
        return rows

    @staticmethod
    def get_weekly_performance(tasks: List[KurirDailyTask]) -> List[Dict[str, Any]]:
        """ISO weeks (Monday start), labelled W-<week>, oldest first."""
        weeks: Dict[tuple, Dict[str, Any]] = {}
        for task in tasks:
            iso_year, iso_week, _ = task.date.isocalendar()
            week = weeks.setdefault((iso_year, iso_week), {
                'week_label': f"W-{iso_week}",
                'week_start': (task.date - timedelta(days=task.date.weekday())).isoformat(),
                'total_packages': 0,
                'delivered': 0,
                'pending': 0,
            })
            week['total_packages'] += task.total_packages
            week['delivered'] += task.final_delivered_count or 0
            week['pending'] += task.final_pending_return_count or 0

        rows = []
        for key in sorted(weeks):
            week = weeks[key]
            week['success_rate'] = success_rate(week['delivered'], week['total_packages'])
            rows.append(week)
        return rows

    @staticmethod
    def get_attendance_summary(kurir: User, start: date, end: date) -> Dict[str, Any]:
        records = AttendanceRecord.objects.filter(kurir=kurir, date__gte=start, date__lte=end)
        statuses = list(records.values_list('date', 'status'))

        present = sum(1 for _, s in statuses if s == AttendanceStatus.PRESENT)
        late = sum(1 for _, s in statuses if s == AttendanceStatus.LATE)
        absent = sum(1 for _, s in statuses if s == AttendanceStatus.ABSENT)
        working_days = len({d for d, _ in statuses})

        return {
            'total_attendance_days': present + late,
            'present_days': present,
            'late_days': late,
            'absent_days': absent,
            'total_working_days': working_days,
            'attendance_rate': success_rate(present + late, working_days),
        }

    @staticmethod
    def get_overall(kurir: User) -> Dict[str, int]:
        agg = KurirDailyTask.objects.filter(
            kurir=kurir, task_status=TaskStatus.COMPLETED
        ).aggregate(
            total_packages=Sum('total_packages'),
            total_delivered=Sum('final_delivered_count'),
        )
        return {
            'total_packages_ever': agg['total_packages'] or 0,
            'total_successful_deliveries_ever': agg['total_delivered'] or 0,
        }

    @staticmethod
    def get_performance_data(kurir: User, start: Optional[date] = None,
                             end: Optional[date] = None) -> Dict[str, Any]:
        """
        Full performance page payload.

        Returns:
            Dict with daily, weekly, attendance, overall and has_any_tasks_in_period
        """
        start, end = CourierPerformanceService.window(start, end)
        period_tasks = KurirDailyTask.objects.filter(kurir=kurir, date__gte=start, date__lte=end)
        completed = list(period_tasks.filter(task_status=TaskStatus.COMPLETED))

        return {
            'kurir': {
                'employee_id': kurir.employee_id,
                'full_name': kurir.full_name,
                'work_location': kurir.work_location,
            },
            'period': {'start': start.isoformat(), 'end': end.isoformat()},
            'daily': CourierPerformanceService.get_daily_performance(completed),
            'weekly': CourierPerformanceService.get_weekly_performance(completed),
            'attendance': CourierPerformanceService.get_attendance_summary(kurir, start, end),
            'overall': CourierPerformanceService.get_overall(kurir),
            'has_any_tasks_in_period': period_tasks.exists(),
        }
