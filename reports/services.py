"""
REPORTS App - Excel Report Generation Service

Uses XlsxWriter to build in-memory workbooks for the managerial pages.
"""

import io
import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, Optional, Sequence

import xlsxwriter
from django.db.models import QuerySet, Sum
from django.utils import timezone

from attendance.models import AttendanceRecord, AttendanceStatus
from attendance.services import work_duration
from logistics.models import KurirDailyTask, PackageItem, TaskStatus

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def _rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


def _local(value: Optional[datetime]) -> str:
    return timezone.localtime(value).strftime('%d/%m/%Y %H:%M') if value else ''


class SheetWriter:
    """Title row, header row and data rows with shared formats."""

    def __init__(self, workbook, name: str):
        self.workbook = workbook
        self.sheet = workbook.add_worksheet(name[:31])
        self.title_format = workbook.add_format({'bold': True, 'font_size': 14})
        self.subtitle_format = workbook.add_format({'italic': True, 'font_color': '#555555'})
        self.header_format = workbook.add_format({
            'bold': True,
            'bg_color': '#F97316',
            'font_color': '#FFFFFF',
            'border': 1,
            'align': 'center',
        })
        self.cell_format = workbook.add_format({'border': 1, 'valign': 'top'})
        self.date_format = workbook.add_format({'border': 1, 'num_format': 'dd/mm/yyyy'})
        self.percent_format = workbook.add_format({'border': 1, 'num_format': '0.0"%"'})
        self.row = 0

    def title(self, text: str, subtitle: str = ''):
        self.sheet.write(self.row, 0, text, self.title_format)
        self.row += 1
        if subtitle:
            self.sheet.write(self.row, 0, subtitle, self.subtitle_format)
            self.row += 1
        self.row += 1

    def table(self, headers: Sequence[str], rows: Iterable[Sequence[Any]],
              widths: Optional[Sequence[int]] = None, percent_cols: Sequence[int] = ()):
        for col, header in enumerate(headers):
            self.sheet.write(self.row, col, header, self.header_format)
        self.row += 1

        for values in rows:
            for col, value in enumerate(values):
                if isinstance(value, date):
                    self.sheet.write_datetime(
                        self.row, col, datetime(value.year, value.month, value.day), self.date_format
                    )
                elif col in percent_cols:
                    self.sheet.write_number(self.row, col, value or 0, self.percent_format)
                else:
                    self.sheet.write(self.row, col, '' if value is None else value, self.cell_format)
            self.row += 1

        for col, width in enumerate(widths or []):
            self.sheet.set_column(col, col, width)
        self.row += 1


class ReportGenerator:
    """
    Excel reports for PIC / Admin / MasterAdmin.

    Each generate_* method returns the .xlsx file as bytes.
    """

    @staticmethod
    def _build(sheets) -> bytes:
        output = io.BytesIO()
        workbook = xlsxwriter.Workbook(output, {'in_memory': True})
        try:
            for name, fill in sheets:
                fill(SheetWriter(workbook, name))
        finally:
            workbook.close()
        return output.getvalue()

    @staticmethod
    def _period(start: date, end: date) -> str:
        return f"Periode {start:%d/%m/%Y} - {end:%d/%m/%Y}"

    @classmethod
    def generate_attendance_report(cls, kurirs: QuerySet, start: date, end: date) -> bytes:
        """Laporan Kehadiran Kurir: one row per attendance record."""
        records = AttendanceRecord.objects.filter(
            kurir__in=kurirs, date__gte=start, date__lte=end
        ).select_related('kurir').order_by('date', 'kurir__full_name')

        rows = [
            (
                r.date, r.kurir.employee_id, r.kurir.full_name, r.work_location, r.status,
                r.check_in_time.strftime('%H:%M') if r.check_in_time else '',
                r.check_out_time.strftime('%H:%M') if r.check_out_time else '',
                work_duration(r.check_in_time, r.check_out_time) or '',
            )
            for r in records
        ]

        def fill(w: SheetWriter):
            w.title("Laporan Kehadiran Kurir", cls._period(start, end))
            w.table(
                ['Tanggal', 'ID Kurir', 'Nama Kurir', 'Lokasi Kerja', 'Status',
                 'Check-in', 'Check-out', 'Durasi Kerja'],
                rows, widths=[12, 14, 28, 22, 12, 10, 10, 16],
            )

        logger.info(f"[REPORTS] Attendance report {start}..{end}: {len(rows)} rows")
        return cls._build([('Kehadiran', fill)])

    @classmethod
    def generate_performance_report(cls, kurirs: QuerySet, start: date, end: date) -> bytes:
        """Laporan Performa Pengiriman: one row per daily task."""
        tasks = KurirDailyTask.objects.filter(
            kurir__in=kurirs, date__gte=start, date__lte=end
        ).select_related('kurir').order_by('date', 'kurir__full_name')

        rows = [
            (
                t.date, t.kurir.employee_id, t.kurir.full_name, t.kurir.work_location,
                t.total_packages, t.cod_packages, t.non_cod_packages,
                t.final_delivered_count or 0, t.final_pending_return_count or 0,
                t.success_rate, t.get_task_status_display(),
            )
            for t in tasks
        ]

        def fill(w: SheetWriter):
            w.title("Laporan Performa Pengiriman", cls._period(start, end))
            w.table(
                ['Tanggal', 'ID Kurir', 'Nama Kurir', 'Hub', 'Total Paket', 'COD', 'Non-COD',
                 'Terkirim', 'Retur', 'Tingkat Sukses', 'Status'],
                rows, widths=[12, 14, 28, 22, 12, 8, 10, 10, 8, 14, 18], percent_cols=(9,),
            )

        logger.info(f"[REPORTS] Performance report {start}..{end}: {len(rows)} rows")
        return cls._build([('Performa', fill)])

    @classmethod
    def generate_cod_report(cls, kurirs: QuerySet, start: date, end: date) -> bytes:
        """Laporan Paket COD: every COD package in the period."""
        packages = PackageItem.objects.filter(
            is_cod=True, task__kurir__in=kurirs, task__date__gte=start, task__date__lte=end
        ).select_related('task__kurir').order_by('task__date', 'tracking_number')

        rows = [
            (
                p.task.date, p.tracking_number, p.task.kurir.employee_id, p.task.kurir.full_name,
                p.get_status_display(), p.recipient_name, _local(p.delivered_at),
            )
            for p in packages
        ]

        def fill(w: SheetWriter):
            w.title("Laporan Paket COD", cls._period(start, end))
            w.table(
                ['Tanggal', 'No. Resi', 'ID Kurir', 'Nama Kurir', 'Status', 'Penerima', 'Waktu Terkirim'],
                rows, widths=[12, 22, 14, 28, 18, 24, 18],
            )

        return cls._build([('Paket COD', fill)])

    @classmethod
    def generate_monthly_summary(cls, kurirs: QuerySet, month: date) -> bytes:
        """Laporan Ringkasan Bulanan: per kurir, attendance and delivery totals."""
        start = month.replace(day=1)
        end = (start + timedelta(days=32)).replace(day=1) - timedelta(days=1)

        rows = []
        for kurir in kurirs.order_by('full_name'):
            attendance = AttendanceRecord.objects.filter(kurir=kurir, date__gte=start, date__lte=end)
            present = attendance.filter(status=AttendanceStatus.PRESENT).count()
            late = attendance.filter(status=AttendanceStatus.LATE).count()
            absent = attendance.filter(status=AttendanceStatus.ABSENT).count()

            completed = KurirDailyTask.objects.filter(
                kurir=kurir, date__gte=start, date__lte=end, task_status=TaskStatus.COMPLETED
            )
            agg = completed.aggregate(
                total=Sum('total_packages'),
                delivered=Sum('final_delivered_count'),
                returned=Sum('final_pending_return_count'),
            )
            total = agg['total'] or 0
            delivered = agg['delivered'] or 0
            rows.append((
                kurir.employee_id, kurir.full_name, kurir.work_location,
                present, late, absent, completed.count(),
                total, delivered, agg['returned'] or 0, _rate(delivered, total),
            ))

        def fill(w: SheetWriter):
            w.title("Laporan Ringkasan Bulanan", f"Bulan {start:%m/%Y}")
            w.table(
                ['ID Kurir', 'Nama Kurir', 'Hub', 'Hadir', 'Terlambat', 'Absen', 'Hari Kerja',
                 'Total Paket', 'Terkirim', 'Retur', 'Tingkat Sukses'],
                rows, widths=[14, 28, 22, 8, 10, 8, 10, 12, 10, 8, 14], percent_cols=(10,),
            )

        return cls._build([('Ringkasan', fill)])

    @classmethod
    def generate_dashboard_summary(cls, summary: Dict[str, Any], filters: Dict[str, str]) -> bytes:
        """Ringkasan Dashboard: KPIs plus daily, weekly and monthly tables."""
        active = [f"{k}: {v}" for k, v in filters.items() if v]
        subtitle = f"Filter: {', '.join(active)}" if active else "Semua wilayah"

        def fill(w: SheetWriter):
            w.title("Ringkasan Dashboard", subtitle)
            w.table(['Indikator', 'Nilai'], [
                ('Kurir aktif hari ini', summary['active_couriers_today']),
                ('Paket diproses hari ini', summary['total_packages_processed_today']),
                ('Paket terkirim hari ini', summary['total_packages_delivered_today']),
                ('Tingkat tepat waktu (%)', summary['on_time_rate_today']),
            ], widths=[28, 14])
            w.table(
                ['Tanggal', 'Terkirim', 'Pending'],
                [(d['name'], d['terkirim'], d['pending']) for d in summary['daily_shipment_summary']],
            )
            w.table(
                ['Minggu', 'Terkirim', 'Pending'],
                [(d['week'], d['terkirim'], d['pending']) for d in summary['weekly_shipment_summary']],
            )
            w.table(
                ['Bulan', 'Terkirim', 'Pending', 'Tingkat Sukses'],
                [
                    (m['month'], m['total_delivered'], m['total_pending'], m['success_rate'])
                    for m in summary['monthly_performance_summary']
                ],
                percent_cols=(3,),
            )

        return cls._build([('Dashboard', fill)])


def report_filename(prefix: str, start: date, end: Optional[date] = None) -> str:
    if end is None or end == start:
        return f"{prefix}_{start:%Y%m%d}.xlsx"
    return f"{prefix}_{start:%Y%m%d}_{end:%Y%m%d}.xlsx"