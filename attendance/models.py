"""
ATTENDANCE App - Daily courier attendance
"""

from django.conf import settings
from django.db import models


class AttendanceStatus(models.TextChoices):
    PRESENT = 'Present', 'Hadir'
    LATE = 'Late', 'Terlambat'
    ABSENT = 'Absent', 'Tidak Hadir'


# Placeholder status for a day with no record yet (never stored)
NOT_CHECKED_IN = 'Not Checked In'


class AttendanceRecord(models.Model):
    """
    One record per kurir per day.

    check_in_time / check_out_time keep the HH:MM shown in the app;
    check_in_at / check_out_at keep the exact timestamps.
    """

    kurir = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='attendance_records',
        verbose_name="Kurir"
    )
    date = models.DateField(verbose_name="Tanggal")
    check_in_time = models.TimeField(null=True, blank=True, verbose_name="Jam check-in")
    check_out_time = models.TimeField(null=True, blank=True, verbose_name="Jam check-out")
    check_in_at = models.DateTimeField(null=True, blank=True)
    check_out_at = models.DateTimeField(null=True, blank=True)
    status = models.CharField(
        max_length=10,
        choices=AttendanceStatus.choices,
        verbose_name="Status"
    )
    work_location = models.CharField(max_length=150, blank=True, verbose_name="Lokasi kerja")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Catatan Absensi"
        verbose_name_plural = "Catatan Absensi"
        ordering = ['-date']
        unique_together = ['kurir', 'date']
        indexes = [
            models.Index(fields=['date', 'status']),
        ]

    def __str__(self):
        return f"{self.kurir_id} - {self.date} ({self.status})"

    @property
    def is_present(self) -> bool:
        return self.status in (AttendanceStatus.PRESENT, AttendanceStatus.LATE)
