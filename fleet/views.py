"""
FLEET App - Managerial Dashboard API

PIC / Admin / MasterAdmin: dashboard KPIs, courier updates and courier management.
"""

from datetime import date

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from django.shortcuts import get_object_or_404

from attendance.services import AttendanceService
from core.serializers import UserSerializer
from core.views import IsManager
from logistics.services import DailyTaskService
from logistics.services.daily_task import serialize_task
from .services import (
    ManagerialDashboardService, CourierManagementService, kurirs_visible_to,
)

FILTER_PARAMS = ('wilayah', 'area', 'hub', 'search')


def dashboard_filters(request):
    return {key: request.query_params.get(key, '') for key in FILTER_PARAMS}


def _parse_today(request):
    value = request.query_params.get('date')
    return date.fromisoformat(value) if value else None


class DashboardViewSet(viewsets.ViewSet):
    """
    Managerial dashboard.

    - summary: KPIs and shipment charts (filters: wilayah, area, hub, search)
    - updates: today's attendance activities and work summaries
    - kurir-options: active kurirs for selection inputs
    """

    permission_classes = [IsManager]

    @action(detail=False, methods=['get'])
    def summary(self, request):
        try:
            data = ManagerialDashboardService.get_summary(
                request.user, dashboard_filters(request), today=_parse_today(request)
            )
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(data)

    @action(detail=False, methods=['get'])
    def updates(self, request):
        try:
            data = ManagerialDashboardService.get_courier_updates(request.user, today=_parse_today(request))
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(data)

    @action(detail=False, methods=['get'], url_path='kurir-options')
    def kurir_options(self, request):
        return Response(CourierManagementService.kurir_options(request.user))


class CourierManagementViewSet(viewsets.ViewSet):
    """Kurir list with today's load and 30-day success rate; read-only detail."""

    permission_classes = [IsManager]
    lookup_field = 'employee_id'

    def list(self, request):
        return Response(CourierManagementService.list_couriers(request.user, dashboard_filters(request)))

    def retrieve(self, request, employee_id=None):
        kurir = get_object_or_404(kurirs_visible_to(request.user), employee_id=employee_id)
        task = DailyTaskService.get_task(kurir)
        try:
            attendance = AttendanceService.get_attendance_page_data(kurir)
        except ValueError:
            attendance = None
        return Response({
            'profile': UserSerializer(kurir).data,
            'summary': CourierManagementService.courier_row(kurir),
            'today_task': serialize_task(task) if task else None,
            'attendance': attendance,
        })
