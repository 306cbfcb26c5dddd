"""
Logistics App Views - Kurir daily task workflow
"""

from datetime import date

from rest_framework import viewsets, status, permissions
from rest_framework.decorators import action
from rest_framework.response import Response
from django.shortcuts import get_object_or_404
from django.utils import timezone

from core.models import UserRole
from core.storage import photo_from_request
from core.views import IsKurir, IsManager
from fleet.services import kurirs_visible_to
from .models import KurirDailyTask, PackageItem
from .serializers import (
    KurirDailyTaskSerializer, KurirDailyTaskDetailSerializer, PackageItemSerializer,
    DailyInputSerializer, AddPackageSerializer, TrackingNumberSerializer,
    RecordDeliverySerializer, FinishDaySerializer,
)
from .services import DailyTaskService, PackageNotFound
from .services.daily_task import serialize_package, serialize_task


def _parse_date(value):
    if not value:
        return timezone.localdate()
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError("Format tanggal tidak valid (YYYY-MM-DD).")


class DailyTaskViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Kurir daily tasks.

    - List/Retrieve: Kurir own tasks, managers the kurirs they oversee
    - today/*: the kurir's workflow for the current day
    - history: delivery proofs of one day
    """

    filterset_fields = {
        'date': ['exact', 'gte', 'lte'],
        'task_status': ['exact'],
        'kurir__employee_id': ['exact'],
    }
    search_fields = ['kurir__full_name', 'kurir__employee_id']

    KURIR_ACTIONS = [
        'today', 'submit_input', 'add_package', 'remove_package', 'start_delivery',
        'scan', 'deliver', 'revert_delivery', 'finish_day',
    ]

    def get_permissions(self):
        if self.action in self.KURIR_ACTIONS:
            return [IsKurir()]
        return [permissions.IsAuthenticated()]

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return KurirDailyTaskDetailSerializer
        return KurirDailyTaskSerializer

    def get_queryset(self):
        user = self.request.user
        queryset = KurirDailyTask.objects.select_related('kurir').prefetch_related('packages')
        return queryset.filter(kurir__in=kurirs_visible_to(user))

    def _today_task(self, request):
        task = DailyTaskService.get_task(request.user)
        if task is None:
            raise ValueError("Anda belum menginput jumlah paket hari ini.")
        return task

    def _dashboard(self, request, http_status=status.HTTP_200_OK, **extra):
        data = DailyTaskService.get_dashboard_data(request.user)
        data.update(extra)
        return Response(data, status=http_status)

    @action(detail=False, methods=['get'])
    def today(self, request):
        """Kurir dashboard data for today."""
        return self._dashboard(request)

    @action(detail=False, methods=['post'], url_path='today/input')
    def submit_input(self, request):
        serializer = DailyInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            DailyTaskService.submit_daily_input(request.user, **serializer.validated_data)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return self._dashboard(request, message='Data paket harian berhasil disimpan.')

    @action(detail=False, methods=['post'], url_path='today/packages')
    def add_package(self, request):
        serializer = AddPackageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            package = DailyTaskService.add_package(self._today_task(request), **serializer.validated_data)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(serialize_package(package), status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['delete'], url_path=r'today/packages/(?P<resi>[^/]+)')
    def remove_package(self, request, resi=None):
        try:
            DailyTaskService.remove_package(self._today_task(request), resi)
        except PackageNotFound as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['post'], url_path='today/start')
    def start_delivery(self, request):
        try:
            task = DailyTaskService.start_delivery(self._today_task(request))
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return self._dashboard(
            request, message=f'Pengantaran {task.total_packages} paket dimulai.'
        )

    @action(detail=False, methods=['get'], url_path='today/scan')
    def scan(self, request):
        """Look up a scanned resi among packages in transit."""
        try:
            package = DailyTaskService.find_in_transit_package(
                self._today_task(request), request.query_params.get('resi', '')
            )
        except PackageNotFound as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(serialize_package(package))

    @action(detail=False, methods=['post'], url_path='today/deliver')
    def deliver(self, request):
        """Proof of delivery: photo (file or data URL) + recipient name."""
        serializer = RecordDeliverySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        resi = serializer.validated_data['tracking_number']
        try:
            photo = photo_from_request(request, 'photo', name=f"pod_{resi}")
            package = DailyTaskService.record_delivery(
                self._today_task(request), resi, photo,
                serializer.validated_data['recipient_name'],
            )
        except PackageNotFound as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(serialize_package(package))

    @action(detail=False, methods=['post'], url_path='today/revert')
    def revert_delivery(self, request):
        serializer = TrackingNumberSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            package = DailyTaskService.revert_delivery(
                self._today_task(request), serializer.validated_data['tracking_number']
            )
        except PackageNotFound as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(serialize_package(package))

    @action(detail=False, methods=['post'], url_path='today/finish')
    def finish_day(self, request):
        serializer = FinishDaySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            task = self._today_task(request)
            return_photo = photo_from_request(
                request, 'return_photo', name=f"retur_{request.user.employee_id}"
            )
            result = DailyTaskService.finish_day(
                task, return_photo=return_photo,
                lead_receiver_name=serializer.validated_data['lead_receiver_name'],
            )
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response({
            'message': (
                f"Hari kerja selesai: {result['delivered']} terkirim, "
                f"{result['pending_return']} retur dari {result['total']} paket."
            ),
            'task': serialize_task(result['task']),
        })

    @action(detail=False, methods=['get'])
    def history(self, request):
        """
        Delivery proofs for one day.

        Query: date (YYYY-MM-DD), search (resi), kurir (employee id, managers only)
        """
        user = request.user
        if user.role == UserRole.KURIR:
            kurir = user
        elif user.is_manager:
            employee_id = request.query_params.get('kurir')
            if not employee_id:
                return Response({'error': 'Pilih kurir terlebih dahulu.'}, status=status.HTTP_400_BAD_REQUEST)
            kurir = get_object_or_404(kurirs_visible_to(user), employee_id=employee_id)
        else:
            return Response({'error': 'Akses ditolak.'}, status=status.HTTP_403_FORBIDDEN)

        try:
            on_date = _parse_date(request.query_params.get('date'))
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(DailyTaskService.get_task_history(
            kurir, on_date, search=request.query_params.get('search', '')
        ))


class PackageViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Packages across tasks (PIC / Admin / MasterAdmin).

    confirm-return: hub received a pending_return package.
    """

    serializer_class = PackageItemSerializer
    permission_classes = [IsManager]
    filterset_fields = {
        'status': ['exact'],
        'is_cod': ['exact'],
        'task__date': ['exact', 'gte', 'lte'],
        'task__kurir__employee_id': ['exact'],
    }
    search_fields = ['tracking_number', 'recipient_name']

    def get_queryset(self):
        return PackageItem.objects.filter(
            task__kurir__in=kurirs_visible_to(self.request.user)
        ).select_related('task__kurir').order_by('-task__date', 'tracking_number')

    @action(detail=True, methods=['post'], url_path='confirm-return')
    def confirm_return(self, request, pk=None):
        package = self.get_object()
        try:
            package = DailyTaskService.confirm_return(package, request.user)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(PackageItemSerializer(package).data)
