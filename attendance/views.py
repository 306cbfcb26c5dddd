"""
ATTENDANCE App - API Views
"""

from rest_framework import viewsets, status, permissions
from rest_framework.decorators import action
from rest_framework.response import Response
from django.utils import timezone

from core.models import UserRole
from core.views import IsKurir
from .models import AttendanceRecord
from .serializers import AttendanceRecordSerializer
from .services import AttendanceService


class AttendanceViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Attendance records.

    - Kurir: own records + check-in / check-out / page summary
    - Managers: all kurir records (filterable)
    """

    serializer_class = AttendanceRecordSerializer
    filterset_fields = {
        'date': ['exact', 'gte', 'lte'],
        'status': ['exact'],
        'kurir__employee_id': ['exact'],
        'work_location': ['exact'],
    }
    search_fields = ['kurir__full_name', 'kurir__employee_id']

    def get_permissions(self):
        if self.action in ['check_in', 'check_out', 'summary']:
            return [IsKurir()]
        return [permissions.IsAuthenticated()]

    def get_queryset(self):
        user = self.request.user
        queryset = AttendanceRecord.objects.select_related('kurir')
        if user.role == UserRole.KURIR:
            return queryset.filter(kurir=user)
        return queryset

    @action(detail=False, methods=['post'], url_path='check-in')
    def check_in(self, request):
        try:
            record = AttendanceService.check_in(request.user)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        data = AttendanceRecordSerializer(record).data
        return Response({
            'message': f"Anda check-in pukul {data['check_in_time']}. Status: {record.status}.",
            'record': data,
        }, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'], url_path='check-out')
    def check_out(self, request):
        try:
            record = AttendanceService.check_out(request.user)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        data = AttendanceRecordSerializer(record).data
        return Response({
            'message': f"Anda check-out pukul {data['check_out_time']}.",
            'record': data,
        })

    @action(detail=False, methods=['get'])
    def summary(self, request):
        """Attendance page: today, 60-day history, rate and monthly charts."""
        try:
            data = AttendanceService.get_attendance_page_data(request.user)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(data)

    @action(detail=False, methods=['get'])
    def today(self, request):
        """Check-in state for today."""
        return Response({
            'date': timezone.localdate().isoformat(),
            'checked_in': AttendanceService.is_checked_in(request.user),
        })
