"""
REPORTS App - Excel downloads and user import

Downloads: PIC / Admin / MasterAdmin, scoped to the kurirs the user may see.
Import: MasterAdmin / Admin.
"""

import logging
from datetime import date, timedelta

from django.http import HttpResponse
from django.utils import timezone
from rest_framework import status
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response
from rest_framework.views import APIView

from core.views import IsAdminOrMasterAdmin, IsManager
from fleet.services import ManagerialDashboardService, apply_filters, kurirs_visible_to
from fleet.views import dashboard_filters
from .importer import import_users
from .services import ReportGenerator, XLSX_CONTENT_TYPE, report_filename

logger = logging.getLogger(__name__)

DEFAULT_RANGE_DAYS = 30


def xlsx_response(content: bytes, filename: str) -> HttpResponse:
    response = HttpResponse(content, content_type=XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


def date_range(request):
    """start / end query params (YYYY-MM-DD), default last 30 days."""
    end_param = request.query_params.get('end')
    start_param = request.query_params.get('start')
    try:
        end = date.fromisoformat(end_param) if end_param else timezone.localdate()
        start = date.fromisoformat(start_param) if start_param else end - timedelta(days=DEFAULT_RANGE_DAYS - 1)
    except ValueError:
        raise ValueError("Format tanggal tidak valid (YYYY-MM-DD).")
    if start > end:
        raise ValueError("Tanggal mulai tidak boleh setelah tanggal akhir.")
    return start, end


class RangeReportView(APIView):
    """Base for date-range reports over the filtered kurirs."""

    permission_classes = [IsManager]
    prefix = ''

    def generate(self, kurirs, start, end) -> bytes:
        raise NotImplementedError

    def get(self, request):
        try:
            start, end = date_range(request)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        kurirs = apply_filters(kurirs_visible_to(request.user), dashboard_filters(request))
        content = self.generate(kurirs, start, end)
        logger.info(f"[REPORTS] {self.prefix} downloaded by {request.user.employee_id}")
        return xlsx_response(content, report_filename(self.prefix, start, end))


class AttendanceReportView(RangeReportView):
    prefix = 'laporan_kehadiran'

    def generate(self, kurirs, start, end):
        return ReportGenerator.generate_attendance_report(kurirs, start, end)


class PerformanceReportView(RangeReportView):
    prefix = 'laporan_performa'

    def generate(self, kurirs, start, end):
        return ReportGenerator.generate_performance_report(kurirs, start, end)


class CodReportView(RangeReportView):
    prefix = 'laporan_cod'

    def generate(self, kurirs, start, end):
        return ReportGenerator.generate_cod_report(kurirs, start, end)


class MonthlySummaryReportView(APIView):
    """?month=YYYY-MM, default current month."""

    permission_classes = [IsManager]

    def get(self, request):
        value = request.query_params.get('month')
        try:
            month = date.fromisoformat(f"{value}-01") if value else timezone.localdate().replace(day=1)
        except ValueError:
            return Response({'error': 'Format bulan tidak valid (YYYY-MM).'}, status=status.HTTP_400_BAD_REQUEST)

        kurirs = apply_filters(kurirs_visible_to(request.user), dashboard_filters(request))
        content = ReportGenerator.generate_monthly_summary(kurirs, month)
        return xlsx_response(content, f"ringkasan_bulanan_{month:%Y%m}.xlsx")


class DashboardSummaryReportView(APIView):
    permission_classes = [IsManager]

    def get(self, request):
        filters = dashboard_filters(request)
        today = timezone.localdate()
        summary = ManagerialDashboardService.get_summary(request.user, filters, today=today)
        content = ReportGenerator.generate_dashboard_summary(summary, filters)
        return xlsx_response(content, report_filename('ringkasan_dashboard', today))


class ImportUsersView(APIView):
    """
    POST multipart: file (.xlsx), role (Admin / PIC / Kurir)
    """

    permission_classes = [IsAdminOrMasterAdmin]
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request):
        upload = request.FILES.get('file')
        if upload is None:
            return Response({'error': 'File Excel wajib diunggah.'}, status=status.HTTP_400_BAD_REQUEST)

        try:
            result = import_users(upload, request.data.get('role', ''), request.user)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(result)
