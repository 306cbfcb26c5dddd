"""
Attendance Service for INSAN MOBILE

Kurir check-in / check-out and the attendance page aggregates.
Check-in before ATTENDANCE_LATE_HOUR (09:00 WIB) is Present, later is Late.
"""

import calendar
import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterable, List, Optional

from django.conf import settings
from django.core.exceptions import PermissionDenied
from django.db import IntegrityError, transaction
from django.utils import timezone

from core.models import User, UserRole, UserStatus
from .models import AttendanceRecord, AttendanceStatus, NOT_CHECKED_IN

logger = logging.getLogger(__name__)


def _local_now(now: Optional[datetime] = None) -> datetime:
    return timezone.localtime(now or timezone.now())


def _hhmm(value: Optional[time]) -> Optional[str]:
    return value.strftime('%H:%M') if value else None


def work_duration(check_in: Optional[time], check_out: Optional[time]) -> Optional[str]:
    """
    Human readable work duration, e.g. "8 jam 30 menit".

    None when a time is missing or the duration is zero,
    "Durasi tidak valid" when check-out is before check-in.
    """
    if not check_in or not check_out:
        return None

    start = check_in.hour * 60 + check_in.minute
    end = check_out.hour * 60 + check_out.minute
    if end < start:
        return "Durasi tidak valid"

    hours, minutes = divmod(end - start, 60)
    parts = []
    if hours > 0:
        parts.append(f"{hours} jam")
    if minutes > 0:
        parts.append(f"{minutes} menit")
    return ' '.join(parts) or None


def attendance_rate(records: Iterable[Any]) -> float:
    """(Present + Late) / tracked days * 100; placeholders are not tracked."""
    statuses = [_status_of(r) for r in records]
    tracked = [s for s in statuses if s != NOT_CHECKED_IN]
    if not tracked:
        return 0.0
    present = sum(1 for s in tracked if s in (AttendanceStatus.PRESENT, AttendanceStatus.LATE))
    return round(present / len(tracked) * 100, 1)


def monthly_halves(records: Iterable[Any], month: date) -> Dict[str, Any]:
    """
    Attendance chart data for one month split in two halves.

    first_half covers day 1-15, second_half day 16 to the end of the month.
    """
    present_dates = {
        _date_of(r) for r in records
        if _status_of(r) in (AttendanceStatus.PRESENT, AttendanceStatus.LATE)
    }
    last_day = calendar.monthrange(month.year, month.month)[1]

    def build(first: int, last: int) -> Dict[str, Any]:
        chart = []
        for day in range(first, last + 1):
            current = date(month.year, month.month, day)
            chart.append({'day': day, 'date': current.isoformat(), 'present': int(current in present_dates)})
        return {'chart_data': chart, 'present_days': sum(item['present'] for item in chart)}

    return {
        'month': month.strftime('%Y-%m'),
        'first_half': build(1, 15),
        'second_half': build(16, last_day),
    }


def _status_of(record) -> str:
    return record['status'] if isinstance(record, dict) else record.status


def _date_of(record) -> date:
    value = record['date'] if isinstance(record, dict) else record.date
    return date.fromisoformat(value) if isinstance(value, str) else value


def serialize_record(record: AttendanceRecord) -> Dict[str, Any]:
    return {
        'id': record.id,
        'date': record.date.isoformat(),
        'check_in_time': _hhmm(record.check_in_time),
        'check_out_time': _hhmm(record.check_out_time),
        'status': record.status,
        'work_location': record.work_location,
        'work_duration': work_duration(record.check_in_time, record.check_out_time),
    }


class AttendanceService:

    @staticmethod
    def _require_kurir(kurir: User):
        if kurir.role != UserRole.KURIR:
            raise PermissionDenied("Halaman absensi hanya untuk Kurir.")
        if kurir.status != UserStatus.AKTIF:
            raise ValueError("Akun Anda nonaktif.")

    @staticmethod
    def late_hour() -> int:
        return getattr(settings, 'ATTENDANCE_LATE_HOUR', 9)

    @staticmethod
    @transaction.atomic
    def check_in(kurir: User, now: Optional[datetime] = None) -> AttendanceRecord:
        """
        Record today's check-in.

        Raises:
            ValueError: already checked in today
        """
        AttendanceService._require_kurir(kurir)
        local_now = _local_now(now)
        today = local_now.date()

        record = AttendanceRecord.objects.select_for_update().filter(kurir=kurir, date=today).first()
        if record and record.check_in_time:
            raise ValueError("Anda sudah melakukan check-in hari ini.")

        status = (
            AttendanceStatus.PRESENT if local_now.hour < AttendanceService.late_hour()
            else AttendanceStatus.LATE
        )
        check_in_time = local_now.time().replace(second=0, microsecond=0)

        if record is None:
            try:
                with transaction.atomic():
                    record = AttendanceRecord.objects.create(
                        kurir=kurir,
                        date=today,
                        check_in_time=check_in_time,
                        check_in_at=local_now,
                        status=status,
                        work_location=kurir.work_location,
                    )
            except IntegrityError:
                raise ValueError("Anda sudah melakukan check-in hari ini.")
        else:
            # Day pre-filled as Absent, kurir shows up after all
            record.check_in_time = check_in_time
            record.check_in_at = local_now
            record.status = status
            record.work_location = kurir.work_location
            record.save(update_fields=['check_in_time', 'check_in_at', 'status', 'work_location', 'updated_at'])

        logger.info(
            f"[ATTENDANCE] {kurir.employee_id} checked in at "
            f"{_hhmm(check_in_time)} ({status})"
        )
        return record

    @staticmethod
    @transaction.atomic
    def check_out(kurir: User, now: Optional[datetime] = None) -> AttendanceRecord:
        AttendanceService._require_kurir(kurir)
        local_now = _local_now(now)

        record = AttendanceRecord.objects.select_for_update().filter(
            kurir=kurir, date=local_now.date()
        ).first()
        if record is None or not record.check_in_time:
            raise ValueError("Anda belum melakukan check-in hari ini.")
        if record.check_out_time:
            raise ValueError("Anda sudah melakukan check-out hari ini.")

        record.check_out_time = local_now.time().replace(second=0, microsecond=0)
        record.check_out_at = local_now
        record.save(update_fields=['check_out_time', 'check_out_at', 'updated_at'])

        logger.info(f"[ATTENDANCE] {kurir.employee_id} checked out at {_hhmm(record.check_out_time)}")
        return record

    @staticmethod
    def is_checked_in(kurir: User, on_date: Optional[date] = None) -> bool:
        on_date = on_date or timezone.localdate()
        return AttendanceRecord.objects.filter(
            kurir=kurir, date=on_date, check_in_time__isnull=False
        ).exists()

    @staticmethod
    def get_history(kurir: User, days: Optional[int] = None, today: Optional[date] = None) -> List[AttendanceRecord]:
        today = today or timezone.localdate()
        days = days or getattr(settings, 'ATTENDANCE_HISTORY_DAYS', 60)
        return list(
            AttendanceRecord.objects.filter(
                kurir=kurir,
                date__gte=today - timedelta(days=days),
                date__lte=today,
            ).order_by('-date')
        )

    @staticmethod
    def get_attendance_page_data(kurir: User, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Everything the kurir attendance page shows.

        today_record is a placeholder with status "Not Checked In"
        when there is no record for today.
        """
        AttendanceService._require_kurir(kurir)
        today = today or timezone.localdate()
        history = AttendanceService.get_history(kurir, today=today)

        today_record = next((r for r in history if r.date == today), None)
        if today_record is not None:
            today_data = serialize_record(today_record)
        else:
            today_data = {
                'date': today.isoformat(),
                'check_in_time': None,
                'check_out_time': None,
                'status': NOT_CHECKED_IN,
                'work_location': kurir.work_location,
                'work_duration': None,
            }

        return {
            'today_record': today_data,
            'history': [serialize_record(r) for r in history],
            'attendance_rate': attendance_rate(history),
            'monthly': monthly_halves(history, today),
        }

    @staticmethod
    def get_activity_feed(on_date: Optional[date] = None, kurirs=None) -> List[Dict[str, Any]]:
        """
        Today's check-in / check-out activities, newest first.

        A late check-in is reported as "reported-late".
        """
        on_date = on_date or timezone.localdate()
        records = AttendanceRecord.objects.filter(
            date=on_date, check_in_time__isnull=False
        ).select_related('kurir')
        if kurirs is not None:
            records = records.filter(kurir__in=kurirs)

        activities = []
        for record in records:
            activities.append({
                'id': f"{record.id}-in",
                'kurir_id': record.kurir.employee_id,
                'kurir_name': record.kurir.full_name,
                'action': 'reported-late' if record.status == AttendanceStatus.LATE else 'check-in',
                'timestamp': timezone.localtime(record.check_in_at or record.created_at).isoformat(),
                'time': _hhmm(record.check_in_time),
                'location': record.work_location,
            })
            if record.check_out_time:
                activities.append({
                    'id': f"{record.id}-out",
                    'kurir_id': record.kurir.employee_id,
                    'kurir_name': record.kurir.full_name,
                    'action': 'check-out',
                    'timestamp': timezone.localtime(record.check_out_at or record.updated_at).isoformat(),
                    'time': _hhmm(record.check_out_time),
                    'location': record.work_location,
                })

        activities.sort(key=lambda a: a['timestamp'], reverse=True)
        return activities

    @staticmethod
    @transaction.atomic
    def mark_absent(on_date: date) -> int:
        """Create Absent records for active kurirs with no record on `on_date`."""
        recorded = AttendanceRecord.objects.filter(date=on_date).values_list('kurir_id', flat=True)
        missing = User.objects.filter(
            role=UserRole.KURIR, status=UserStatus.AKTIF
        ).exclude(pk__in=recorded)

        records = [
            AttendanceRecord(
                kurir=kurir,
                date=on_date,
                status=AttendanceStatus.ABSENT,
                work_location=kurir.work_location,
            )
            for kurir in missing
        ]
        AttendanceRecord.objects.bulk_create(records, ignore_conflicts=True)
        logger.info(f"[ATTENDANCE] Marked {len(records)} kurir(s) absent for {on_date}")
        return len(records)
