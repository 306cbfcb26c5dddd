from django.contrib import admin

from .models import AttendanceRecord


@admin.register(AttendanceRecord)
class AttendanceRecordAdmin(admin.ModelAdmin):
    list_display = ('kurir', 'date', 'check_in_time', 'check_out_time', 'status', 'work_location')
    list_filter = ('status', 'date', 'work_location')
    search_fields = ('kurir__full_name', 'kurir__employee_id')
    date_hierarchy = 'date'
    raw_id_fields = ('kurir',)
