"""
Django Admin configuration for LOGISTICS app.
"""

from django.contrib import admin
from .models import KurirDailyTask, PackageItem


class PackageItemInline(admin.TabularInline):
    model = PackageItem
    extra = 0
    fields = ('tracking_number', 'is_cod', 'status', 'recipient_name', 'delivery_proof_photo', 'delivered_at')
    readonly_fields = ('delivered_at',)


@admin.register(KurirDailyTask)
class KurirDailyTaskAdmin(admin.ModelAdmin):
    list_display = (
        'kurir', 'date', 'total_packages', 'cod_packages', 'non_cod_packages',
        'task_status', 'final_delivered_count', 'final_pending_return_count'
    )
    list_filter = ('task_status', 'date')
    search_fields = ('kurir__full_name', 'kurir__employee_id')
    date_hierarchy = 'date'
    raw_id_fields = ('kurir',)
    readonly_fields = ('created_at', 'updated_at', 'started_at', 'finished_at')
    inlines = [PackageItemInline]


@admin.register(PackageItem)
class PackageItemAdmin(admin.ModelAdmin):
    list_display = ('tracking_number', 'task', 'is_cod', 'status', 'recipient_name', 'last_update_time')
    list_filter = ('status', 'is_cod', 'task__date')
    search_fields = ('tracking_number', 'recipient_name', 'task__kurir__employee_id')
    raw_id_fields = ('task', 'returned_confirmed_by')
    readonly_fields = ('last_update_time', 'delivered_at', 'returned_at')
