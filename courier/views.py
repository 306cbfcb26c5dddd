"""
COURIER App - Performance API

Kurir sees own performance; PIC/Admin/MasterAdmin pick a kurir with ?kurir=<employee_id>.
"""

from datetime import date

from rest_framework import status, permissions
from rest_framework.response import Response
from rest_framework.views import APIView
from django.shortcuts import get_object_or_404

from core.models import UserRole
from fleet.services import kurirs_visible_to
from .services import CourierPerformanceService


def _parse_optional_date(value):
    return date.fromisoformat(value) if value else None


class PerformanceView(APIView):
    """
    GET /api/courier/performance/

    Query: kurir (managers), start, end (YYYY-MM-DD)
    """

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        user = request.user
        if user.role == UserRole.KURIR:
            kurir = user
        else:
            employee_id = request.query_params.get('kurir')
            if not employee_id:
                return Response({'error': 'Pilih kurir terlebih dahulu.'}, status=status.HTTP_400_BAD_REQUEST)
            kurir = get_object_or_404(kurirs_visible_to(user), employee_id=employee_id)

        try:
            start = _parse_optional_date(request.query_params.get('start'))
            end = _parse_optional_date(request.query_params.get('end'))
            data = CourierPerformanceService.get_performance_data(kurir, start=start, end=end)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(data)
