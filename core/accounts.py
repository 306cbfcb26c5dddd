"""
Account Service for INSAN MOBILE

User account lifecycle:
1. MasterAdmin creates / updates / (de)activates / deletes users directly
2. Admin changes go through ApprovalRequest (see approvals app)
3. Kurir manages own profile, password and notification preferences
4. First MasterAdmin is created once via setup endpoint or command
"""

import logging
import re
import time
from typing import Any, Dict, Optional

from django.conf import settings
from django.contrib.auth.hashers import make_password
from django.core.exceptions import PermissionDenied
from django.db import transaction

from core.models import User, UserRole, UserStatus, ContractStatus

logger = logging.getLogger(__name__)


# Fields a profile update may touch (role and status have dedicated flows)
PROFILE_FIELDS = (
    'employee_id', 'full_name', 'email', 'nik', 'position',
    'wilayah', 'area', 'work_location', 'join_date', 'contract_status',
    'bank_name', 'bank_account_number', 'bank_recipient_name',
)

EMPLOYEE_ID_PREFIXES = {
    UserRole.ADMIN: 'ADMIN',
    UserRole.PIC: 'PIC',
    UserRole.KURIR: 'K',
    UserRole.MASTER_ADMIN: 'MASTERADMIN',
}


def min_password_length() -> int:
    return getattr(settings, 'MIN_PASSWORD_LENGTH', 6)


def validate_password_length(password: str):
    if not password or len(password) < min_password_length():
        raise ValueError(f"Password minimal {min_password_length()} karakter.")


def internal_email(employee_id: str) -> str:
    """Login email for kurir accounts created without one."""
    local_part = re.sub(r'\s+', '.', employee_id.strip().lower())
    domain = getattr(settings, 'INTERNAL_EMAIL_DOMAIN', 'internal.spx')
    return f"{local_part}@{domain}"


def generate_employee_id(role: str) -> str:
    """ADMIN/PIC/K prefix + last 7 digits of the current millisecond clock."""
    prefix = EMPLOYEE_ID_PREFIXES.get(role, 'U')
    counter = int(time.time() * 1000) % 10_000_000
    candidate = f"{prefix}{counter:07d}"
    while User.objects.filter(employee_id=candidate).exists():
        counter = (counter + 1) % 10_000_000
        candidate = f"{prefix}{counter:07d}"
    return candidate


def validate_profile_data(data: Dict[str, Any]):
    """Raise ValueError on malformed NIK, bank account or contract status."""
    nik = str(data.get('nik') or '').strip()
    if nik and not re.fullmatch(r'\d{16}', nik):
        raise ValueError("NIK harus terdiri dari 16 digit angka.")

    bank_account = str(data.get('bank_account_number') or '').strip()
    if bank_account and not bank_account.isdigit():
        raise ValueError("Nomor rekening hanya boleh berisi angka.")

    contract_status = data.get('contract_status')
    if contract_status and contract_status not in ContractStatus.values:
        raise ValueError(f"Status kontrak tidak valid: {contract_status}")


def _require_master_admin(handler: Optional[User]):
    if handler is None or not handler.is_master_admin:
        raise PermissionDenied("Hanya MasterAdmin yang dapat melakukan tindakan ini.")


class AccountService:
    """Direct account operations. Callers check who may reach them."""

    @staticmethod
    @transaction.atomic
    def create_user_account(
        email: str,
        password: Optional[str],
        profile: Dict[str, Any],
        created_by: Optional[User] = None,
        password_hash: Optional[str] = None,
    ) -> User:
        """
        Create a user account with its profile.

        Args:
            email: Login email (generated for Kurir when empty)
            password: Raw password, or None when password_hash is given
            profile: Profile fields, must include role and full_name
            created_by: User creating the account
            password_hash: Pre-hashed password (approved requests)

        Returns:
            The created User
        """
        role = profile.get('role')
        if role not in UserRole.values:
            raise ValueError(f"Peran tidak valid: {role}")
        if not (profile.get('full_name') or '').strip():
            raise ValueError("Nama lengkap wajib diisi.")
        if password_hash is None:
            validate_password_length(password)

        validate_profile_data(profile)

        fields = {k: profile[k] for k in PROFILE_FIELDS if k in profile and k != 'email'}
        fields['employee_id'] = (fields.get('employee_id') or '').strip() or generate_employee_id(role)
        email = (email or '').strip().lower()
        if not email:
            if role != UserRole.KURIR:
                raise ValueError("Email wajib diisi.")
            email = internal_email(fields['employee_id'])

        if User.objects.filter(email__iexact=email).exists():
            raise ValueError("Email sudah terdaftar.")
        if User.objects.filter(employee_id=fields['employee_id']).exists():
            raise ValueError("ID Aplikasi sudah digunakan.")

        user = User.objects.create_user(
            email=email,
            password=password if password_hash is None else None,
            role=role,
            status=profile.get('status') or UserStatus.AKTIF,
            created_by=created_by,
            **fields,
        )
        if password_hash is not None:
            user.password = password_hash
            user.save(update_fields=['password'])

        logger.info(
            f"[ACCOUNT] Created {role} {user.employee_id} "
            f"by {created_by.employee_id if created_by else 'system'}"
        )
        return user

    @staticmethod
    @transaction.atomic
    def update_user_profile(user: User, changes: Dict[str, Any], updated_by: Optional[User] = None) -> User:
        """Apply whitelisted profile changes."""
        validate_profile_data(changes)

        update_fields = []
        for field in PROFILE_FIELDS:
            if field not in changes:
                continue
            value = changes[field]
            if field == 'email':
                value = (value or '').strip().lower()
                if not value:
                    raise ValueError("Email wajib diisi.")
                if User.objects.filter(email__iexact=value).exclude(pk=user.pk).exists():
                    raise ValueError("Email sudah terdaftar.")
            if field == 'employee_id':
                value = (value or '').strip()
                if not value:
                    raise ValueError("ID Aplikasi wajib diisi.")
                if User.objects.filter(employee_id=value).exclude(pk=user.pk).exists():
                    raise ValueError("ID Aplikasi sudah digunakan.")
            if field in ('full_name',) and not (value or '').strip():
                raise ValueError("Nama lengkap wajib diisi.")
            setattr(user, field, value)
            update_fields.append(field)

        if update_fields:
            user.updated_by = updated_by
            user.save(update_fields=update_fields + ['updated_by', 'updated_at'])
            logger.info(f"[ACCOUNT] Updated {user.employee_id}: {', '.join(update_fields)}")
        return user

    @staticmethod
    def set_status(user: User, status: str, updated_by: Optional[User] = None) -> User:
        """Set Aktif/Nonaktif; Nonaktif blocks login."""
        if status not in UserStatus.values:
            raise ValueError(f"Status tidak valid: {status}")
        user.status = status
        user.updated_by = updated_by
        user.save(update_fields=['status', 'is_active', 'updated_by', 'updated_at'])
        logger.info(f"[ACCOUNT] {user.employee_id} status -> {status}")
        return user

    @staticmethod
    def update_user_status(user: User, status: str, handler: User) -> User:
        """MasterAdmin only."""
        _require_master_admin(handler)
        if user.pk == handler.pk:
            raise ValueError("Anda tidak dapat mengubah status akun Anda sendiri.")
        return AccountService.set_status(user, status, updated_by=handler)

    @staticmethod
    def reset_user_password(user: User, new_password: str, handler: User) -> User:
        """MasterAdmin only."""
        _require_master_admin(handler)
        validate_password_length(new_password)
        user.set_password(new_password)
        user.save(update_fields=['password'])
        logger.info(f"[ACCOUNT] Password reset for {user.employee_id} by {handler.employee_id}")
        return user

    @staticmethod
    def delete_user_account(user: User, handler: Optional[User] = None):
        """Delete the account; handler (when given) must be MasterAdmin."""
        if handler is not None:
            _require_master_admin(handler)
            if user.pk == handler.pk:
                raise ValueError("Anda tidak dapat menghapus akun Anda sendiri.")
        employee_id = user.employee_id
        user.delete()
        logger.info(
            f"[ACCOUNT] Deleted {employee_id} "
            f"by {handler.employee_id if handler else 'system'}"
        )

    @staticmethod
    @transaction.atomic
    def setup_master_admin(employee_id: str, full_name: str, email: str, password: str) -> User:
        """One-time creation of the first MasterAdmin."""
        if User.objects.filter(role=UserRole.MASTER_ADMIN).exists():
            raise ValueError("MasterAdmin sudah ada. Setup hanya dapat dilakukan sekali.")
        if len((full_name or '').strip()) < 3:
            raise ValueError("Nama lengkap minimal 3 karakter.")
        if not (employee_id or '').strip():
            raise ValueError("ID Aplikasi wajib diisi (cth: MASTERADMIN01).")

        return AccountService.create_user_account(
            email=email,
            password=password,
            profile={
                'role': UserRole.MASTER_ADMIN,
                'employee_id': employee_id,
                'full_name': full_name,
            },
        )

    # ===========================================
    # SELF-SERVICE (Kurir)
    # ===========================================

    @staticmethod
    def update_own_profile(user: User, full_name: str = None, email: str = None, avatar=None) -> User:
        if not user.is_kurir:
            raise PermissionDenied("Hanya Kurir yang dapat mengubah profil dari halaman ini.")

        changes = {}
        if full_name is not None:
            changes['full_name'] = full_name
        if email is not None:
            changes['email'] = email
        AccountService.update_user_profile(user, changes, updated_by=user)

        if avatar is not None:
            user.avatar.save(avatar.name, avatar, save=False)
            user.save(update_fields=['avatar'])
        return user

    @staticmethod
    def change_own_password(user: User, current_password: str, new_password: str, confirm_password: str) -> User:
        if not user.is_kurir:
            raise PermissionDenied("Hanya Kurir yang dapat mengubah password dari halaman ini.")
        if not user.check_password(current_password):
            raise ValueError("Password saat ini salah.")
        if new_password != confirm_password:
            raise ValueError("Password baru dan konfirmasi tidak cocok.")
        validate_password_length(new_password)

        user.set_password(new_password)
        user.save(update_fields=['password'])
        logger.info(f"[ACCOUNT] {user.employee_id} changed own password")
        return user

    @staticmethod
    def update_notification_preferences(user: User, **prefs) -> User:
        update_fields = []
        for field in ('notify_app_updates', 'notify_performance_reports'):
            if field in prefs and prefs[field] is not None:
                setattr(user, field, bool(prefs[field]))
                update_fields.append(field)
        if update_fields:
            user.save(update_fields=update_fields)
        return user


def hash_password(password: str) -> str:
    """Hash for storage inside approval payloads."""
    validate_password_length(password)
    return make_password(password)
