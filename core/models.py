"""
CORE App - Custom User Model for INSAN MOBILE

Handles: Users (MasterAdmin, Admin, PIC, Kurir) and the
Wilayah -> Area -> Hub location hierarchy.
"""

import uuid
from django.conf import settings
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.core.validators import RegexValidator
from django.db import models


class UserRole(models.TextChoices):
    """User role enumeration."""
    MASTER_ADMIN = 'MasterAdmin', 'Master Admin'
    ADMIN = 'Admin', 'Admin'
    PIC = 'PIC', 'PIC (Person in Charge)'
    KURIR = 'Kurir', 'Kurir'


class UserStatus(models.TextChoices):
    AKTIF = 'Aktif', 'Aktif'
    NONAKTIF = 'Nonaktif', 'Nonaktif'


class ContractStatus(models.TextChoices):
    PERMANENT = 'Permanent', 'Karyawan Tetap'
    CONTRACT = 'Contract', 'Kontrak'
    PROBATION = 'Probation', 'Masa Percobaan'


nik_validator = RegexValidator(
    regex=r'^\d{16}$',
    message="NIK harus terdiri dari 16 digit angka."
)

bank_account_validator = RegexValidator(
    regex=r'^\d+$',
    message="Nomor rekening hanya boleh berisi angka."
)


class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('Email wajib diisi')

        email = self.normalize_email(email).lower()
        if extra_fields.get('status') == UserStatus.NONAKTIF:
            extra_fields['is_active'] = False

        user = self.model(email=email, **extra_fields)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', UserRole.MASTER_ADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as login identifier.

    Key Business Logic:
    - employee_id is the "ID Aplikasi" shown everywhere in the app
    - status Nonaktif disables login (is_active follows status)
    - wilayah / area / work_location place the user in the hub hierarchy
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    employee_id = models.CharField(
        max_length=50,
        unique=True,
        verbose_name="ID Aplikasi",
        help_text="Contoh: K1234567, PIC1234567, MASTERADMIN01"
    )
    email = models.EmailField(unique=True, verbose_name="Email")

    # Profile
    full_name = models.CharField(max_length=150, verbose_name="Nama lengkap")
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.KURIR,
        verbose_name="Peran"
    )
    status = models.CharField(
        max_length=10,
        choices=UserStatus.choices,
        default=UserStatus.AKTIF,
        verbose_name="Status"
    )
    nik = models.CharField(
        max_length=16,
        blank=True,
        validators=[nik_validator],
        verbose_name="NIK"
    )
    position = models.CharField(max_length=100, blank=True, verbose_name="Jabatan")

    # Placement
    wilayah = models.CharField(max_length=100, blank=True, verbose_name="Wilayah")
    area = models.CharField(max_length=100, blank=True, verbose_name="Area")
    work_location = models.CharField(
        max_length=150,
        blank=True,
        verbose_name="Lokasi kerja (Hub)",
        help_text="Untuk PIC: area tanggung jawab"
    )

    # Employment
    join_date = models.DateField(null=True, blank=True, verbose_name="Tanggal bergabung")
    contract_status = models.CharField(
        max_length=20,
        choices=ContractStatus.choices,
        blank=True,
        verbose_name="Status kontrak"
    )

    # Bank (salary transfer)
    bank_name = models.CharField(max_length=100, blank=True, verbose_name="Nama bank")
    bank_account_number = models.CharField(
        max_length=30,
        blank=True,
        validators=[bank_account_validator],
        verbose_name="Nomor rekening"
    )
    bank_recipient_name = models.CharField(max_length=150, blank=True, verbose_name="Nama penerima")

    # Documents
    avatar = models.ImageField(upload_to='avatars/', null=True, blank=True, verbose_name="Foto profil")
    photo_id = models.ImageField(upload_to='documents/ktp/', null=True, blank=True, verbose_name="Foto KTP")

    # Notification preferences
    notify_app_updates = models.BooleanField(default=True, verbose_name="Notifikasi pembaruan aplikasi")
    notify_performance_reports = models.BooleanField(default=True, verbose_name="Notifikasi laporan performa")

    # Audit
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name="Dibuat oleh"
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name="Diperbarui oleh"
    )
    updated_at = models.DateTimeField(auto_now=True)

    # Django Auth Fields
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    date_joined = models.DateTimeField(auto_now_add=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['employee_id', 'full_name']

    class Meta:
        verbose_name = "Pengguna"
        verbose_name_plural = "Pengguna"
        ordering = ['full_name']
        indexes = [
            models.Index(fields=['role', 'status']),
            models.Index(fields=['work_location']),
        ]

    def __str__(self):
        return f"{self.full_name} ({self.employee_id})"

    def save(self, *args, **kwargs):
        self.is_active = self.status == UserStatus.AKTIF
        super().save(*args, **kwargs)

    @property
    def is_master_admin(self) -> bool:
        return self.role == UserRole.MASTER_ADMIN

    @property
    def is_admin_role(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_pic(self) -> bool:
        return self.role == UserRole.PIC

    @property
    def is_kurir(self) -> bool:
        return self.role == UserRole.KURIR

    @property
    def is_manager(self) -> bool:
        """MasterAdmin, Admin and PIC see the managerial side of the app."""
        return self.role in (UserRole.MASTER_ADMIN, UserRole.ADMIN, UserRole.PIC)


# ===========================================
# LOCATION HIERARCHY
# ===========================================

class Wilayah(models.Model):
    """Region, e.g. Jabodetabek-Banten."""
    name = models.CharField(max_length=100, unique=True, verbose_name="Nama wilayah")

    class Meta:
        verbose_name = "Wilayah"
        verbose_name_plural = "Wilayah"
        ordering = ['name']

    def __str__(self):
        return self.name


class Area(models.Model):
    wilayah = models.ForeignKey(Wilayah, on_delete=models.CASCADE, related_name='areas')
    name = models.CharField(max_length=100, verbose_name="Nama area")

    class Meta:
        verbose_name = "Area"
        verbose_name_plural = "Area"
        ordering = ['wilayah__name', 'name']
        unique_together = ['wilayah', 'name']

    def __str__(self):
        return f"{self.name} ({self.wilayah.name})"


class Hub(models.Model):
    area = models.ForeignKey(Area, on_delete=models.CASCADE, related_name='hubs')
    name = models.CharField(max_length=150, verbose_name="Nama hub")
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name = "Hub"
        verbose_name_plural = "Hub"
        ordering = ['area__name', 'name']
        unique_together = ['area', 'name']

    def __str__(self):
        return self.name
