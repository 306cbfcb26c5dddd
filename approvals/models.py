"""
APPROVALS App - Admin requests awaiting MasterAdmin decision
"""

from django.conf import settings
from django.db import models


class ApprovalRequestType(models.TextChoices):
    NEW_USER_ADMIN = 'NEW_USER_ADMIN', 'Pengguna baru (Admin)'
    NEW_USER_PIC = 'NEW_USER_PIC', 'Pengguna baru (PIC)'
    NEW_USER_KURIR = 'NEW_USER_KURIR', 'Pengguna baru (Kurir)'
    UPDATE_USER_PROFILE = 'UPDATE_USER_PROFILE', 'Perubahan profil'
    ACTIVATE_USER = 'ACTIVATE_USER', 'Aktivasi akun'
    DEACTIVATE_USER = 'DEACTIVATE_USER', 'Nonaktifkan akun'
    DELETE_USER = 'DELETE_USER', 'Hapus akun'


NEW_USER_TYPES = (
    ApprovalRequestType.NEW_USER_ADMIN,
    ApprovalRequestType.NEW_USER_PIC,
    ApprovalRequestType.NEW_USER_KURIR,
)


class ApprovalStatus(models.TextChoices):
    PENDING = 'pending', 'Menunggu'
    APPROVED = 'approved', 'Disetujui'
    REJECTED = 'rejected', 'Ditolak'


class ApprovalRequest(models.Model):
    """
    A user-management change requested by an Admin.

    payload holds the change to apply on approval; for new users it
    carries the hashed password, never the raw one.
    """

    request_type = models.CharField(max_length=30, choices=ApprovalRequestType.choices)
    status = models.CharField(
        max_length=10,
        choices=ApprovalStatus.choices,
        default=ApprovalStatus.PENDING,
        db_index=True
    )

    # Requester (snapshots survive account changes)
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='approval_requests'
    )
    requested_by_name = models.CharField(max_length=150)
    requested_by_role = models.CharField(max_length=20)
    request_timestamp = models.DateTimeField(auto_now_add=True)

    # Target
    target_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    target_user_name = models.CharField(max_length=150, blank=True)

    payload = models.JSONField(default=dict)
    old_payload = models.JSONField(null=True, blank=True)
    notes_from_requester = models.TextField(blank=True)

    # Decision
    handled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    handled_by_name = models.CharField(max_length=150, blank=True)
    action_timestamp = models.DateTimeField(null=True, blank=True)
    notes_from_handler = models.TextField(blank=True)

    class Meta:
        verbose_name = "Permintaan Persetujuan"
        verbose_name_plural = "Permintaan Persetujuan"
        ordering = ['-request_timestamp']

    def __str__(self):
        return f"{self.get_request_type_display()} - {self.target_user_name} ({self.status})"

    @property
    def is_pending(self) -> bool:
        return self.status == ApprovalStatus.PENDING
