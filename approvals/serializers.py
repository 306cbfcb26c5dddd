"""
Approvals App Serializers
"""

from rest_framework import serializers

from .models import ApprovalRequest, ApprovalStatus


class ApprovalRequestSerializer(serializers.ModelSerializer):
    request_type_display = serializers.CharField(source='get_request_type_display', read_only=True)
    payload = serializers.SerializerMethodField()

    class Meta:
        model = ApprovalRequest
        fields = [
            'id', 'request_type', 'request_type_display', 'status',
            'requested_by', 'requested_by_name', 'requested_by_role', 'request_timestamp',
            'target_user', 'target_user_name', 'payload', 'old_payload', 'notes_from_requester',
            'handled_by', 'handled_by_name', 'action_timestamp', 'notes_from_handler',
        ]
        read_only_fields = fields

    def get_payload(self, obj):
        return {k: v for k, v in (obj.payload or {}).items() if k != 'password_hash'}


class HandleApprovalSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=[ApprovalStatus.APPROVED, ApprovalStatus.REJECTED])
    notes = serializers.CharField(required=False, allow_blank=True, default='')
