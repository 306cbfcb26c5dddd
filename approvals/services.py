"""
Approval Service for INSAN MOBILE

Admin user-management changes wait for a MasterAdmin decision:
1. Admin submits a request (new user, profile update, status change, deletion)
2. MasterAdmins are notified
3. MasterAdmin approves (change applied) or rejects
4. Requester is notified of the result
"""

import logging
from datetime import date
from typing import Any, Dict, Optional

from django.core.exceptions import PermissionDenied
from django.db import transaction
from django.utils import timezone

from core.accounts import AccountService, PROFILE_FIELDS, hash_password, validate_profile_data
from core.models import User, UserRole, UserStatus
from notifications.models import NotificationCategory
from .models import ApprovalRequest, ApprovalRequestType, ApprovalStatus, NEW_USER_TYPES

logger = logging.getLogger(__name__)

NEW_USER_TYPE_BY_ROLE = {
    UserRole.ADMIN: ApprovalRequestType.NEW_USER_ADMIN,
    UserRole.PIC: ApprovalRequestType.NEW_USER_PIC,
    UserRole.KURIR: ApprovalRequestType.NEW_USER_KURIR,
}


def _json_ready(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: value.isoformat() if isinstance(value, date) else value
        for key, value in data.items()
    }


def _require_admin(requester: User):
    if requester.role != UserRole.ADMIN:
        raise PermissionDenied("Hanya Admin yang dapat mengajukan permintaan persetujuan.")


def _notify_master_admins(approval: ApprovalRequest):
    from notifications.tasks import send_role_notification

    title = "Permintaan Persetujuan Baru"
    message = (
        f"{approval.requested_by_name} mengajukan "
        f"{approval.get_request_type_display().lower()} untuk {approval.target_user_name}."
    )
    data = {'approval_id': approval.id, 'request_type': approval.request_type}

    def send():
        try:
            send_role_notification.delay(
                [UserRole.MASTER_ADMIN.value], title, message,
                NotificationCategory.APPROVAL_REQUEST.value, data,
            )
        except Exception as e:
            logger.warning(f"[APPROVAL] MasterAdmin notification for #{approval.id} failed: {e}")

    transaction.on_commit(send)


def _notify_requester(approval: ApprovalRequest):
    from notifications.services import NotificationService

    if approval.requested_by is None:
        return
    decision = 'disetujui' if approval.status == ApprovalStatus.APPROVED else 'ditolak'
    message = (
        f"Permintaan {approval.get_request_type_display().lower()} untuk "
        f"{approval.target_user_name} telah {decision} oleh {approval.handled_by_name}."
    )
    if approval.notes_from_handler:
        message += f" Catatan: {approval.notes_from_handler}"
    requester = approval.requested_by
    data = {'approval_id': approval.id, 'status': approval.status}

    def send():
        try:
            NotificationService.notify(
                requester, "Hasil Persetujuan", message, NotificationCategory.APPROVAL_RESULT, data,
            )
        except Exception as e:
            logger.warning(f"[APPROVAL] Result notification for #{approval.id} failed: {e}")

    transaction.on_commit(send)


class ApprovalService:
    """
    Approval request lifecycle.

    Requests are created by Admins only and handled by MasterAdmins only.
    """

    @staticmethod
    def _create(requester: User, request_type: str, target_name: str, payload: Dict[str, Any],
                target_user: Optional[User] = None, old_payload: Optional[Dict[str, Any]] = None,
                notes: str = '') -> ApprovalRequest:
        approval = ApprovalRequest.objects.create(
            request_type=request_type,
            requested_by=requester,
            requested_by_name=requester.full_name,
            requested_by_role=requester.role,
            target_user=target_user,
            target_user_name=target_name,
            payload=payload,
            old_payload=old_payload,
            notes_from_requester=notes,
        )
        _notify_master_admins(approval)
        logger.info(
            f"[APPROVAL] {request_type} #{approval.id} for {target_name} "
            f"requested by {requester.employee_id}"
        )
        return approval

    # ===========================================
    # REQUESTS (Admin)
    # ===========================================

    @staticmethod
    @transaction.atomic
    def request_user_creation(requester: User, profile: Dict[str, Any], password: str,
                              notes: str = '') -> ApprovalRequest:
        """New Admin / PIC / Kurir account. The payload stores a password hash."""
        _require_admin(requester)

        role = profile.get('role')
        request_type = NEW_USER_TYPE_BY_ROLE.get(role)
        if request_type is None:
            raise ValueError(f"Peran tidak valid: {role}")
        full_name = (profile.get('full_name') or '').strip()
        if not full_name:
            raise ValueError("Nama lengkap wajib diisi.")
        validate_profile_data(profile)

        email = (profile.get('email') or '').strip().lower()
        if email and User.objects.filter(email__iexact=email).exists():
            raise ValueError("Email sudah terdaftar.")
        employee_id = (profile.get('employee_id') or '').strip()
        if employee_id and User.objects.filter(employee_id=employee_id).exists():
            raise ValueError("ID Aplikasi sudah digunakan.")

        payload = _json_ready({k: v for k, v in profile.items() if k in PROFILE_FIELDS or k == 'role'})
        payload['email'] = email
        payload['password_hash'] = hash_password(password)

        return ApprovalService._create(
            requester, request_type, full_name, payload,
            notes=notes or f"Pengajuan akun {role} baru: {full_name}.",
        )

    @staticmethod
    @transaction.atomic
    def request_profile_update(requester: User, user: User, changes: Dict[str, Any],
                               notes: str = '') -> ApprovalRequest:
        """Profile changes; old values kept for review."""
        _require_admin(requester)

        changes = {k: v for k, v in changes.items() if k in PROFILE_FIELDS}
        if not changes:
            raise ValueError("Tidak ada perubahan yang diajukan.")
        validate_profile_data(changes)

        old_payload = _json_ready({k: getattr(user, k) for k in changes})
        return ApprovalService._create(
            requester, ApprovalRequestType.UPDATE_USER_PROFILE, user.full_name,
            _json_ready(changes), target_user=user, old_payload=old_payload,
            notes=notes or f"Pengajuan perubahan profil untuk {user.full_name} ({user.employee_id}).",
        )

    @staticmethod
    @transaction.atomic
    def request_status_change(requester: User, user: User, status: str,
                              notes: str = '') -> ApprovalRequest:
        _require_admin(requester)
        if status not in UserStatus.values:
            raise ValueError(f"Status tidak valid: {status}")
        if user.status == status:
            raise ValueError(f"Akun {user.full_name} sudah berstatus {status}.")

        request_type = (
            ApprovalRequestType.ACTIVATE_USER if status == UserStatus.AKTIF
            else ApprovalRequestType.DEACTIVATE_USER
        )
        return ApprovalService._create(
            requester, request_type, user.full_name, {'status': status},
            target_user=user, old_payload={'status': user.status},
            notes=notes or f"Pengajuan perubahan status {user.full_name} menjadi {status}.",
        )

    @staticmethod
    @transaction.atomic
    def request_user_deletion(requester: User, user: User, notes: str = '') -> ApprovalRequest:
        _require_admin(requester)
        payload = {
            'employee_id': user.employee_id,
            'full_name': user.full_name,
            'email': user.email,
            'role': user.role,
        }
        return ApprovalService._create(
            requester, ApprovalRequestType.DELETE_USER, user.full_name, payload,
            target_user=user,
            notes=notes or (
                f"Pengajuan penghapusan untuk pengguna: {user.full_name} "
                f"(ID: {user.employee_id}, Role: {user.role})."
            ),
        )

    # ===========================================
    # DECISION (MasterAdmin)
    # ===========================================

    @staticmethod
    def _apply(approval: ApprovalRequest, handler: User):
        payload = dict(approval.payload)
        request_type = approval.request_type

        if request_type in NEW_USER_TYPES:
            password_hash = payload.pop('password_hash', None)
            if not password_hash:
                raise ValueError("Password tidak ditemukan dalam payload untuk user baru.")
            user = AccountService.create_user_account(
                email=payload.pop('email', ''),
                password=None,
                profile={**payload, 'status': UserStatus.AKTIF},
                created_by=approval.requested_by,
                password_hash=password_hash,
            )
            approval.target_user = user
            return

        target = approval.target_user
        if target is None:
            raise ValueError("Pengguna target tidak ditemukan.")

        if request_type == ApprovalRequestType.UPDATE_USER_PROFILE:
            AccountService.update_user_profile(target, payload, updated_by=handler)
        elif request_type in (ApprovalRequestType.ACTIVATE_USER, ApprovalRequestType.DEACTIVATE_USER):
            AccountService.set_status(target, payload['status'], updated_by=handler)
        elif request_type == ApprovalRequestType.DELETE_USER:
            approval.target_user = None
            AccountService.delete_user_account(target)
        else:
            raise ValueError(f"Jenis persetujuan tidak dikenal: {request_type}")

    @staticmethod
    @transaction.atomic
    def handle_approval_request(request_id: int, decision: str, handler: User,
                                notes: str = '') -> ApprovalRequest:
        """
        Approve or reject a pending request.

        Args:
            request_id: ApprovalRequest id
            decision: 'approved' or 'rejected'
            handler: MasterAdmin deciding
            notes: Optional notes for the requester
        """
        if not handler.is_master_admin:
            raise PermissionDenied("Hanya MasterAdmin yang dapat memproses persetujuan.")
        if decision not in (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED):
            raise ValueError(f"Keputusan tidak valid: {decision}")

        approval = (
            ApprovalRequest.objects.select_for_update()
            .select_related('requested_by', 'target_user')
            .filter(pk=request_id)
            .first()
        )
        if approval is None:
            raise ValueError("Permintaan persetujuan tidak ditemukan.")
        if not approval.is_pending:
            raise ValueError("Permintaan ini sudah diproses.")

        if decision == ApprovalStatus.APPROVED:
            ApprovalService._apply(approval, handler)

        approval.status = decision
        approval.handled_by = handler
        approval.handled_by_name = handler.full_name
        approval.action_timestamp = timezone.now()
        approval.notes_from_handler = notes or ''
        approval.save()

        _notify_requester(approval)
        logger.info(f"[APPROVAL] #{approval.id} {decision} by {handler.employee_id}")
        return approval
