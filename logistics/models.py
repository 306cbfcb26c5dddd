"""
LOGISTICS App - Kurir daily tasks & packages for INSAN MOBILE

Handles: daily package intake, scan, delivery, proof of delivery, returns
"""

from django.conf import settings
from django.db import models


class TaskStatus(models.TextChoices):
    """Daily task status enumeration."""
    PENDING = 'pending', 'Input & scan paket'
    IN_PROGRESS = 'in_progress', 'Sedang mengantar'
    COMPLETED = 'completed', 'Selesai'


class PackageStatus(models.TextChoices):
    """Package lifecycle: process -> in_transit -> delivered / pending_return -> returned."""
    PROCESS = 'process', 'Diproses'
    IN_TRANSIT = 'in_transit', 'Dalam pengantaran'
    DELIVERED = 'delivered', 'Terkirim'
    PENDING_RETURN = 'pending_return', 'Menunggu retur'
    RETURNED = 'returned', 'Diretur'


class KurirDailyTask(models.Model):
    """
    One batch of packages handled by a kurir on one day.

    Counts entered at intake (total / cod / non_cod) define the batch;
    final_* counts are frozen when the day is finished.
    """

    kurir = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='daily_tasks',
        verbose_name="Kurir"
    )
    date = models.DateField(verbose_name="Tanggal")

    # Intake
    total_packages = models.PositiveIntegerField(verbose_name="Total paket")
    cod_packages = models.PositiveIntegerField(default=0, verbose_name="Paket COD")
    non_cod_packages = models.PositiveIntegerField(default=0, verbose_name="Paket Non-COD")

    task_status = models.CharField(
        max_length=20,
        choices=TaskStatus.choices,
        default=TaskStatus.PENDING,
        verbose_name="Status tugas"
    )

    # Results (frozen at completion)
    final_delivered_count = models.PositiveIntegerField(null=True, blank=True, verbose_name="Terkirim")
    final_pending_return_count = models.PositiveIntegerField(null=True, blank=True, verbose_name="Retur")

    # Return handover
    return_proof_photo = models.ImageField(
        upload_to='proofs/returns/%Y/%m/',
        null=True,
        blank=True,
        verbose_name="Foto bukti retur"
    )
    return_lead_receiver_name = models.CharField(
        max_length=150,
        blank=True,
        verbose_name="Leader penerima retur"
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    started_at = models.DateTimeField(null=True, blank=True, verbose_name="Mulai mengantar")
    finished_at = models.DateTimeField(null=True, blank=True, verbose_name="Selesai")

    class Meta:
        verbose_name = "Tugas Harian Kurir"
        verbose_name_plural = "Tugas Harian Kurir"
        ordering = ['-date', '-created_at']
        unique_together = ['kurir', 'date']
        indexes = [
            models.Index(fields=['date', 'task_status']),
        ]

    def __str__(self):
        return f"{self.kurir_id} - {self.date} ({self.task_status})"

    @property
    def is_completed(self) -> bool:
        return self.task_status == TaskStatus.COMPLETED

    @property
    def success_rate(self) -> float:
        if not self.total_packages or self.final_delivered_count is None:
            return 0.0
        return round(self.final_delivered_count / self.total_packages * 100, 1)


class PackageItem(models.Model):
    """A package (identified by its resi) inside a daily task."""

    task = models.ForeignKey(
        KurirDailyTask,
        on_delete=models.CASCADE,
        related_name='packages',
        verbose_name="Tugas"
    )
    tracking_number = models.CharField(max_length=64, verbose_name="Nomor resi")
    is_cod = models.BooleanField(default=False, verbose_name="COD")
    status = models.CharField(
        max_length=20,
        choices=PackageStatus.choices,
        default=PackageStatus.PROCESS,
        verbose_name="Status"
    )

    # Proof of delivery
    recipient_name = models.CharField(max_length=150, blank=True, verbose_name="Nama penerima")
    delivery_proof_photo = models.ImageField(
        upload_to='proofs/deliveries/%Y/%m/',
        null=True,
        blank=True,
        verbose_name="Foto bukti kirim"
    )
    delivered_at = models.DateTimeField(null=True, blank=True)

    # Return
    return_proof_photo = models.ImageField(
        upload_to='proofs/returns/%Y/%m/',
        null=True,
        blank=True,
        verbose_name="Foto bukti retur"
    )
    return_lead_receiver_name = models.CharField(max_length=150, blank=True, verbose_name="Leader penerima retur")
    returned_at = models.DateTimeField(null=True, blank=True)
    returned_confirmed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name="Retur dikonfirmasi oleh"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    last_update_time = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Paket"
        verbose_name_plural = "Paket"
        ordering = ['created_at']
        unique_together = ['task', 'tracking_number']
        indexes = [
            models.Index(fields=['tracking_number']),
            models.Index(fields=['status']),
        ]

    def __str__(self):
        return f"{self.tracking_number} ({self.status})"
