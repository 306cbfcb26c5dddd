"""
FLEET App - Services for the Managerial Dashboard

KPI calculation and courier management for PIC / Admin / MasterAdmin.
"""

from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from django.db.models import Q, QuerySet, Sum
from django.utils import timezone

from attendance.models import NOT_CHECKED_IN, AttendanceRecord, AttendanceStatus
from attendance.services import AttendanceService
from core.models import User, UserRole, UserStatus
from logistics.models import KurirDailyTask, PackageItem, PackageStatus, TaskStatus
from logistics.services import DailyTaskService

MONTH_ABBR = ['Jan', 'Feb', 'Mar', 'Apr', 'Mei', 'Jun', 'Jul', 'Agu', 'Sep', 'Okt', 'Nov', 'Des']

SUCCESS_RATE_DAYS = 30


def kurirs_visible_to(user: User) -> QuerySet:
    """
    Kurirs a user may look at.

    PIC: kurirs whose hub or area matches the PIC's work location.
    """
    kurirs = User.objects.filter(role=UserRole.KURIR)
    if user.role in (UserRole.MASTER_ADMIN, UserRole.ADMIN):
        return kurirs
    if user.role == UserRole.PIC:
        if not user.work_location:
            return kurirs.none()
        return kurirs.filter(Q(work_location=user.work_location) | Q(area=user.work_location))
    return kurirs.filter(pk=user.pk)


def apply_filters(kurirs: QuerySet, filters: Optional[Dict[str, str]]) -> QuerySet:
    """Dashboard filters: wilayah, area, hub, search (name or employee id)."""
    filters = filters or {}
    if filters.get('wilayah'):
        kurirs = kurirs.filter(wilayah=filters['wilayah'])
    if filters.get('area'):
        kurirs = kurirs.filter(area=filters['area'])
    if filters.get('hub'):
        kurirs = kurirs.filter(work_location=filters['hub'])
    search = (filters.get('search') or '').strip()
    if search:
        kurirs = kurirs.filter(Q(full_name__icontains=search) | Q(employee_id__icontains=search))
    return kurirs


def _rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


def _month_label(value: date) -> str:
    return f"{MONTH_ABBR[value.month - 1]} {value.year}"


def _shift_month(value: date, months: int) -> date:
    index = value.year * 12 + value.month - 1 + months
    return date(index // 12, index % 12 + 1, 1)


class ManagerialDashboardService:
    """Dashboard summary over a filtered set of kurirs."""

    @staticmethod
    def _completed_totals(tasks: QuerySet) -> Dict[str, int]:
        agg = tasks.filter(task_status=TaskStatus.COMPLETED).aggregate(
            delivered=Sum('final_delivered_count'),
            pending=Sum('final_pending_return_count'),
        )
        return {'terkirim': agg['delivered'] or 0, 'pending': agg['pending'] or 0}

    @staticmethod
    def get_today_kpis(kurirs: QuerySet, today: date) -> Dict[str, Any]:
        attendance = AttendanceRecord.objects.filter(kurir__in=kurirs, date=today)
        on_time = attendance.filter(status=AttendanceStatus.PRESENT).count()
        late = attendance.filter(status=AttendanceStatus.LATE).count()

        tasks = KurirDailyTask.objects.filter(kurir__in=kurirs, date=today)
        processed = tasks.aggregate(total=Sum('total_packages'))['total'] or 0
        delivered = PackageItem.objects.filter(
            task__in=tasks, status=PackageStatus.DELIVERED
        ).count()

        return {
            'active_couriers_today': on_time + late,
            'total_packages_processed_today': processed,
            'total_packages_delivered_today': delivered,
            'on_time_rate_today': _rate(on_time, on_time + late),
        }

    @staticmethod
    def get_daily_summary(kurirs: QuerySet, today: date, days: int = 7) -> List[Dict[str, Any]]:
        rows = []
        for offset in range(days - 1, -1, -1):
            day = today - timedelta(days=offset)
            totals = ManagerialDashboardService._completed_totals(
                KurirDailyTask.objects.filter(kurir__in=kurirs, date=day)
            )
            rows.append({'date': day.isoformat(), 'name': day.strftime('%d/%m'), **totals})
        return rows

    @staticmethod
    def get_weekly_summary(kurirs: QuerySet, today: date) -> List[Dict[str, Any]]:
        """Last 4 Monday-start weeks touching the current month, labelled Minggu n."""
        first = today.replace(day=1)
        last = _shift_month(first, 1) - timedelta(days=1)
        week_start = first - timedelta(days=first.weekday())

        starts = []
        while week_start <= last:
            starts.append(week_start)
            week_start += timedelta(days=7)

        rows = []
        for index, start in enumerate(starts[-4:]):
            totals = ManagerialDashboardService._completed_totals(
                KurirDailyTask.objects.filter(
                    kurir__in=kurirs, date__gte=start, date__lte=start + timedelta(days=6)
                )
            )
            rows.append({'week': f"Minggu {index + 1}", 'week_start': start.isoformat(), **totals})
        return rows

    @staticmethod
    def get_monthly_summary(kurirs: QuerySet, today: date, months: int = 3) -> List[Dict[str, Any]]:
        first = today.replace(day=1)
        rows = []
        for offset in range(months - 1, -1, -1):
            start = _shift_month(first, -offset)
            end = _shift_month(start, 1) - timedelta(days=1)
            totals = ManagerialDashboardService._completed_totals(
                KurirDailyTask.objects.filter(kurir__in=kurirs, date__gte=start, date__lte=end)
            )
            delivered, pending = totals['terkirim'], totals['pending']
            rows.append({
                'month': _month_label(start),
                'total_delivered': delivered,
                'total_pending': pending,
                'success_rate': _rate(delivered, delivered + pending),
            })
        return rows

    @staticmethod
    def get_summary(user: User, filters: Optional[Dict[str, str]] = None,
                    today: Optional[date] = None) -> Dict[str, Any]:
        """
        Full dashboard summary for the kurirs visible to user.

        Args:
            user: PIC / Admin / MasterAdmin
            filters: wilayah, area, hub, search
        """
        today = today or timezone.localdate()
        kurirs = apply_filters(kurirs_visible_to(user), filters)

        summary = ManagerialDashboardService.get_today_kpis(kurirs, today)
        summary.update({
            'daily_shipment_summary': ManagerialDashboardService.get_daily_summary(kurirs, today),
            'weekly_shipment_summary': ManagerialDashboardService.get_weekly_summary(kurirs, today),
            'monthly_performance_summary': ManagerialDashboardService.get_monthly_summary(kurirs, today),
        })
        return summary

    @staticmethod
    def get_courier_updates(user: User, today: Optional[date] = None) -> Dict[str, Any]:
        """Today's attendance activities and completed work summaries."""
        today = today or timezone.localdate()
        kurirs = kurirs_visible_to(user)
        return {
            'date': today.isoformat(),
            'attendance_activities': AttendanceService.get_activity_feed(today, kurirs=kurirs),
            'work_summaries': DailyTaskService.get_work_summaries(today, kurirs=kurirs),
        }


class CourierManagementService:
    """Kurir lists for the managerial pages."""

    @staticmethod
    def kurir_options(user: User) -> List[Dict[str, str]]:
        kurirs = kurirs_visible_to(user).filter(status=UserStatus.AKTIF).order_by('full_name')
        return [
            {'id': str(k.id), 'employee_id': k.employee_id, 'full_name': k.full_name}
            for k in kurirs
        ]

    @staticmethod
    def success_rate(kurir: User, today: Optional[date] = None, days: int = SUCCESS_RATE_DAYS) -> float:
        today = today or timezone.localdate()
        agg = KurirDailyTask.objects.filter(
            kurir=kurir,
            task_status=TaskStatus.COMPLETED,
            date__gt=today - timedelta(days=days),
            date__lte=today,
        ).aggregate(total=Sum('total_packages'), delivered=Sum('final_delivered_count'))
        return _rate(agg['delivered'] or 0, agg['total'] or 0)

    @staticmethod
    def courier_row(kurir: User, today: Optional[date] = None) -> Dict[str, Any]:
        today = today or timezone.localdate()
        task = DailyTaskService.get_task(kurir, today)
        record = AttendanceRecord.objects.filter(kurir=kurir, date=today).first()
        return {
            'id': str(kurir.id),
            'employee_id': kurir.employee_id,
            'full_name': kurir.full_name,
            'status': kurir.status,
            'wilayah': kurir.wilayah,
            'area': kurir.area,
            'work_location': kurir.work_location,
            'attendance_today': record.status if record else NOT_CHECKED_IN,
            'packages_today': task.total_packages if task else 0,
            'task_status_today': task.task_status if task else None,
            'success_rate_30d': CourierManagementService.success_rate(kurir, today),
        }

    @staticmethod
    def list_couriers(user: User, filters: Optional[Dict[str, str]] = None,
                      today: Optional[date] = None) -> List[Dict[str, Any]]:
        kurirs = apply_filters(kurirs_visible_to(user), filters).order_by('full_name')
        return [CourierManagementService.courier_row(k, today) for k in kurirs]
