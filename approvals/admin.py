from django.contrib import admin

from .models import ApprovalRequest


@admin.register(ApprovalRequest)
class ApprovalRequestAdmin(admin.ModelAdmin):
    list_display = ('request_type', 'target_user_name', 'requested_by_name', 'status', 'request_timestamp')
    list_filter = ('request_type', 'status')
    search_fields = ('target_user_name', 'requested_by_name')
    readonly_fields = (
        'requested_by', 'requested_by_name', 'requested_by_role', 'request_timestamp',
        'handled_by', 'handled_by_name', 'action_timestamp',
    )
    exclude = ('payload',)
