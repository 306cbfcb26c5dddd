"""
NOTIFICATIONS App - In-app notifications

Stored per recipient and pushed live over WebSocket.
"""

from django.conf import settings
from django.db import models


class NotificationCategory(models.TextChoices):
    APPROVAL_REQUEST = 'approval_request', 'Permintaan Persetujuan'
    APPROVAL_RESULT = 'approval_result', 'Hasil Persetujuan'
    WORK_SUMMARY = 'work_summary', 'Ringkasan Kerja Kurir'
    ATTENDANCE = 'attendance', 'Absensi'
    SYSTEM = 'system', 'Sistem'


class Notification(models.Model):
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications',
        verbose_name="Penerima"
    )
    title = models.CharField(max_length=200, verbose_name="Judul")
    message = models.TextField(verbose_name="Pesan")
    category = models.CharField(
        max_length=30,
        choices=NotificationCategory.choices,
        default=NotificationCategory.SYSTEM,
        verbose_name="Kategori"
    )
    data = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False, verbose_name="Sudah dibaca")
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Notifikasi"
        verbose_name_plural = "Notifikasi"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', 'is_read']),
        ]

    def __str__(self):
        return f"{self.title} -> {self.recipient_id}"
