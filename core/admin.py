"""
Django Admin configuration for CORE app.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, UserStatus, Wilayah, Area, Hub


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Custom admin for User model with email-based auth."""

    list_display = (
        'employee_id',
        'full_name',
        'email',
        'role',
        'status',
        'work_location',
        'contract_status',
        'date_joined'
    )
    list_filter = ('role', 'status', 'contract_status', 'wilayah', 'area')
    search_fields = ('employee_id', 'full_name', 'email', 'nik')
    ordering = ('full_name',)

    fieldsets = (
        (None, {
            'fields': ('email', 'password')
        }),
        ('Profil', {
            'fields': ('employee_id', 'full_name', 'role', 'status', 'nik', 'position', 'avatar', 'photo_id')
        }),
        ('Penempatan', {
            'fields': ('wilayah', 'area', 'work_location'),
            'description': 'Untuk PIC, lokasi kerja adalah area tanggung jawab'
        }),
        ('Kepegawaian & Bank', {
            'fields': ('join_date', 'contract_status', 'bank_name', 'bank_account_number', 'bank_recipient_name'),
            'classes': ('collapse',)
        }),
        ('Permissions', {
            'fields': ('is_staff', 'is_superuser', 'groups', 'user_permissions'),
            'classes': ('collapse',)
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'employee_id', 'full_name', 'role', 'password1', 'password2'),
        }),
    )

    readonly_fields = ('date_joined',)

    actions = ['activate_users', 'deactivate_users', 'export_users_csv']

    @admin.action(description="✅ Aktifkan pengguna terpilih")
    def activate_users(self, request, queryset):
        updated = queryset.update(status=UserStatus.AKTIF, is_active=True)
        self.message_user(request, f"✅ {updated} pengguna diaktifkan.")

    @admin.action(description="🚫 Nonaktifkan pengguna terpilih")
    def deactivate_users(self, request, queryset):
        updated = queryset.exclude(pk=request.user.pk).update(status=UserStatus.NONAKTIF, is_active=False)
        self.message_user(request, f"✅ {updated} pengguna dinonaktifkan.")

    @admin.action(description="📥 Ekspor ke CSV")
    def export_users_csv(self, request, queryset):
        import csv
        from django.http import HttpResponse

        response = HttpResponse(content_type='text/csv')
        response['Content-Disposition'] = 'attachment; filename="pengguna_insan.csv"'
        response.write('\ufeff')  # BOM for Excel UTF-8

        writer = csv.writer(response)
        writer.writerow([
            'ID Aplikasi', 'Nama', 'Email', 'Peran', 'Status', 'NIK', 'Jabatan',
            'Wilayah', 'Area', 'Lokasi Kerja', 'Tanggal Bergabung', 'Status Kontrak'
        ])
        for user in queryset:
            writer.writerow([
                user.employee_id, user.full_name, user.email, user.role, user.status,
                user.nik, user.position, user.wilayah, user.area, user.work_location,
                user.join_date.strftime('%d/%m/%Y') if user.join_date else '',
                user.contract_status,
            ])
        return response


class AreaInline(admin.TabularInline):
    model = Area
    extra = 0


class HubInline(admin.TabularInline):
    model = Hub
    extra = 0


@admin.register(Wilayah)
class WilayahAdmin(admin.ModelAdmin):
    list_display = ('name',)
    search_fields = ('name',)
    inlines = [AreaInline]


@admin.register(Area)
class AreaAdmin(admin.ModelAdmin):
    list_display = ('name', 'wilayah')
    list_filter = ('wilayah',)
    search_fields = ('name',)
    inlines = [HubInline]


@admin.register(Hub)
class HubAdmin(admin.ModelAdmin):
    list_display = ('name', 'area', 'is_active')
    list_filter = ('area__wilayah', 'area', 'is_active')
    search_fields = ('name',)
