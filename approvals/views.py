"""
Approvals App Views
"""

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response

from core.models import UserRole
from core.views import IsAdminOrMasterAdmin, IsMasterAdmin
from .models import ApprovalRequest, ApprovalStatus
from .serializers import ApprovalRequestSerializer, HandleApprovalSerializer
from .services import ApprovalService


class ApprovalRequestViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Approval requests.

    - List/Retrieve: MasterAdmin all, Admin own requests
    - pending: requests awaiting a decision
    - mine: requests submitted by the current Admin
    - handle: approve / reject (MasterAdmin only)
    """

    serializer_class = ApprovalRequestSerializer
    filterset_fields = ['status', 'request_type']
    search_fields = ['target_user_name', 'requested_by_name']

    def get_permissions(self):
        if self.action == 'handle':
            return [IsMasterAdmin()]
        return [IsAdminOrMasterAdmin()]

    def get_queryset(self):
        queryset = ApprovalRequest.objects.select_related('requested_by', 'target_user', 'handled_by')
        if self.request.user.role == UserRole.MASTER_ADMIN:
            return queryset
        return queryset.filter(requested_by=self.request.user)

    @action(detail=False, methods=['get'])
    def pending(self, request):
        queryset = self.filter_queryset(self.get_queryset()).filter(status=ApprovalStatus.PENDING)
        return Response(self.get_serializer(queryset, many=True).data)

    @action(detail=False, methods=['get'])
    def mine(self, request):
        queryset = self.filter_queryset(ApprovalRequest.objects.filter(requested_by=request.user))
        return Response(self.get_serializer(queryset, many=True).data)

    @action(detail=True, methods=['post'])
    def handle(self, request, pk=None):
        serializer = HandleApprovalSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            approval = ApprovalService.handle_approval_request(
                pk, serializer.validated_data['decision'], request.user,
                notes=serializer.validated_data['notes'],
            )
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        label = 'disetujui' if approval.status == ApprovalStatus.APPROVED else 'ditolak'
        return Response({
            'message': f'Permintaan berhasil {label}.',
            'approval_request': ApprovalRequestSerializer(approval).data,
        })
