"""
Core App Views - User Management API
"""

import logging

from rest_framework import viewsets, status, permissions
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView
from django.contrib.auth import get_user_model

from .accounts import AccountService
from .greeting import generate_greeting, GreetingError
from .models import UserRole, UserStatus, Wilayah
from .serializers import (
    UserSerializer, UserCreateSerializer, UserUpdateSerializer,
    UserStatusSerializer, PasswordResetSerializer, ChangePasswordSerializer,
    OwnProfileSerializer, NotificationPreferencesSerializer,
    SetupAdminSerializer, GreetingRequestSerializer,
    WilayahSerializer, InsanTokenObtainPairSerializer,
)
from .storage import photo_from_request

User = get_user_model()
logger = logging.getLogger(__name__)


class IsMasterAdmin(permissions.BasePermission):
    """Permission for MasterAdmin only."""

    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.role == UserRole.MASTER_ADMIN


class IsAdminOrMasterAdmin(permissions.BasePermission):
    """Permission for Admin and MasterAdmin."""

    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.role in (
            UserRole.MASTER_ADMIN, UserRole.ADMIN
        )


class IsManager(permissions.BasePermission):
    """Permission for MasterAdmin, Admin and PIC."""

    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.is_manager


class IsKurir(permissions.BasePermission):
    """Permission for kurir users only."""

    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.role == UserRole.KURIR


class LoginView(TokenObtainPairView):
    serializer_class = InsanTokenObtainPairSerializer


class UserViewSet(viewsets.ModelViewSet):
    """
    ViewSet for User model.

    - List/Retrieve: by role (MasterAdmin all, Admin PIC/Kurir, PIC Kurir, Kurir self)
    - Create/Update/Delete/Status: MasterAdmin directly, Admin via approval request
    - Reset password: MasterAdmin only
    """

    queryset = User.objects.all()
    serializer_class = UserSerializer
    filterset_fields = ['role', 'status', 'wilayah', 'area', 'work_location']
    search_fields = ['full_name', 'employee_id', 'email']
    ordering_fields = ['full_name', 'employee_id', 'date_joined']

    def get_permissions(self):
        if self.action in ['create', 'update', 'partial_update', 'destroy', 'set_status']:
            return [IsAdminOrMasterAdmin()]
        elif self.action == 'reset_password':
            return [IsMasterAdmin()]
        return [permissions.IsAuthenticated()]

    def get_serializer_class(self):
        if self.action == 'create':
            return UserCreateSerializer
        if self.action in ['update', 'partial_update']:
            return UserUpdateSerializer
        return UserSerializer

    def get_queryset(self):
        user = self.request.user
        if user.role == UserRole.MASTER_ADMIN:
            return User.objects.all()
        if user.role == UserRole.ADMIN:
            return User.objects.filter(role__in=[UserRole.ADMIN, UserRole.PIC, UserRole.KURIR])
        if user.role == UserRole.PIC:
            return User.objects.filter(role=UserRole.KURIR)
        return User.objects.filter(pk=user.pk)

    def _approval_response(self, approval):
        from approvals.serializers import ApprovalRequestSerializer
        return Response({
            'message': 'Permintaan telah dikirim ke MasterAdmin untuk persetujuan.',
            'approval_request': ApprovalRequestSerializer(approval).data,
        }, status=status.HTTP_202_ACCEPTED)

    def create(self, request, *args, **kwargs):
        from approvals.services import ApprovalService

        serializer = UserCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        password = data.pop('password')

        try:
            if request.user.is_master_admin:
                user = AccountService.create_user_account(
                    email=data.pop('email', ''),
                    password=password,
                    profile=data,
                    created_by=request.user,
                )
                return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)

            approval = ApprovalService.request_user_creation(request.user, data, password)
            return self._approval_response(approval)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    def update(self, request, *args, **kwargs):
        from approvals.services import ApprovalService

        target = self.get_object()
        serializer = UserUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        try:
            if request.user.is_master_admin:
                user = AccountService.update_user_profile(
                    target, dict(serializer.validated_data), updated_by=request.user
                )
                return Response(UserSerializer(user).data)

            approval = ApprovalService.request_profile_update(
                request.user, target, dict(serializer.validated_data)
            )
            return self._approval_response(approval)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    def destroy(self, request, *args, **kwargs):
        from approvals.services import ApprovalService

        target = self.get_object()
        try:
            if request.user.is_master_admin:
                AccountService.delete_user_account(target, handler=request.user)
                return Response(status=status.HTTP_204_NO_CONTENT)

            approval = ApprovalService.request_user_deletion(
                request.user, target, notes=request.data.get('notes', '')
            )
            return self._approval_response(approval)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    @action(detail=True, methods=['post'], url_path='status')
    def set_status(self, request, pk=None):
        """Activate / deactivate a user."""
        from approvals.services import ApprovalService

        target = self.get_object()
        serializer = UserStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data['status']

        try:
            if request.user.is_master_admin:
                user = AccountService.update_user_status(target, new_status, handler=request.user)
                label = 'diaktifkan' if new_status == UserStatus.AKTIF else 'dinonaktifkan'
                return Response({
                    'message': f'Akun {user.full_name} telah {label}.',
                    'user': UserSerializer(user).data,
                })

            approval = ApprovalService.request_status_change(request.user, target, new_status)
            return self._approval_response(approval)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    @action(detail=True, methods=['post'], url_path='reset-password')
    def reset_password(self, request, pk=None):
        """Set a new password for a user (MasterAdmin only)."""
        target = self.get_object()
        serializer = PasswordResetSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            AccountService.reset_user_password(
                target, serializer.validated_data['new_password'], handler=request.user
            )
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response({'message': f'Password untuk {target.full_name} berhasil direset.'})

    @action(detail=False, methods=['get'])
    def me(self, request):
        """Get current user profile."""
        serializer = UserSerializer(request.user, context={'request': request})
        return Response(serializer.data)


class AccountSettingsViewSet(viewsets.ViewSet):
    """
    Self-service settings for the logged-in user.

    Profile and password changes are limited to Kurir accounts.
    """

    permission_classes = [permissions.IsAuthenticated]

    def profile(self, request):
        return Response(UserSerializer(request.user, context={'request': request}).data)

    def update_profile(self, request):
        serializer = OwnProfileSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            avatar = photo_from_request(request, 'avatar', name=f"avatar_{request.user.employee_id}")
            user = AccountService.update_own_profile(
                request.user,
                full_name=serializer.validated_data.get('full_name'),
                email=serializer.validated_data.get('email'),
                avatar=avatar,
            )
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response({
            'message': 'Profil berhasil diperbarui.',
            'user': UserSerializer(user, context={'request': request}).data,
        })

    def change_password(self, request):
        serializer = ChangePasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            AccountService.change_own_password(request.user, **serializer.validated_data)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response({'message': 'Password berhasil diubah.'})

    def notification_preferences(self, request):
        serializer = NotificationPreferencesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = AccountService.update_notification_preferences(request.user, **serializer.validated_data)
        return Response({
            'notify_app_updates': user.notify_app_updates,
            'notify_performance_reports': user.notify_performance_reports,
        })


class SetupAdminView(APIView):
    """
    One-time creation of the first MasterAdmin.

    GET tells whether setup is still required.
    """

    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def get(self, request):
        setup_required = not User.objects.filter(role=UserRole.MASTER_ADMIN).exists()
        return Response({'setup_required': setup_required})

    def post(self, request):
        serializer = SetupAdminSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            user = AccountService.setup_master_admin(**serializer.validated_data)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        logger.info(f"[SETUP] MasterAdmin {user.employee_id} created")
        return Response({
            'message': f'Akun untuk {user.full_name} telah dibuat. Silakan login.',
            'user': UserSerializer(user).data,
        }, status=status.HTTP_201_CREATED)


class LocationViewSet(viewsets.ReadOnlyModelViewSet):
    """Wilayah -> Area -> Hub tree used by dashboard filters."""

    serializer_class = WilayahSerializer
    pagination_class = None
    queryset = Wilayah.objects.prefetch_related('areas__hubs')


class GreetingView(APIView):
    """Generate a personalized greeting with AI."""

    def post(self, request):
        serializer = GreetingRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            greeting = generate_greeting(**serializer.validated_data)
        except GreetingError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response({'greeting': greeting})
