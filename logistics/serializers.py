"""
Logistics App Serializers - Daily Tasks & Packages
"""

from rest_framework import serializers
from django.conf import settings

from .models import KurirDailyTask, PackageItem


class PackageItemSerializer(serializers.ModelSerializer):
    """Full serializer for PackageItem model."""

    kurir_id = serializers.CharField(source='task.kurir.employee_id', read_only=True)
    task_date = serializers.DateField(source='task.date', read_only=True)

    class Meta:
        model = PackageItem
        fields = [
            'id', 'tracking_number', 'is_cod', 'status', 'kurir_id', 'task_date',
            'recipient_name', 'delivery_proof_photo', 'delivered_at',
            'return_proof_photo', 'return_lead_receiver_name', 'returned_at',
            'last_update_time',
        ]
        read_only_fields = fields


class KurirDailyTaskSerializer(serializers.ModelSerializer):
    """Daily task with its counts (packages only on detail)."""

    kurir_id = serializers.CharField(source='kurir.employee_id', read_only=True)
    kurir_name = serializers.CharField(source='kurir.full_name', read_only=True)
    success_rate = serializers.ReadOnlyField()

    class Meta:
        model = KurirDailyTask
        fields = [
            'id', 'kurir_id', 'kurir_name', 'date',
            'total_packages', 'cod_packages', 'non_cod_packages', 'task_status',
            'final_delivered_count', 'final_pending_return_count', 'success_rate',
            'return_proof_photo', 'return_lead_receiver_name',
            'started_at', 'finished_at', 'created_at',
        ]
        read_only_fields = fields


class KurirDailyTaskDetailSerializer(KurirDailyTaskSerializer):
    packages = PackageItemSerializer(many=True, read_only=True)

    class Meta(KurirDailyTaskSerializer.Meta):
        fields = KurirDailyTaskSerializer.Meta.fields + ['packages']
        read_only_fields = fields


class DailyInputSerializer(serializers.Serializer):
    """Package counts entered at the start of the day."""

    total = serializers.IntegerField(
        min_value=1,
        max_value=getattr(settings, 'MAX_DAILY_PACKAGES', 200),
        error_messages={
            'min_value': 'Total paket minimal 1.',
            'max_value': 'Total paket maksimal {max_value}.',
        }
    )
    cod = serializers.IntegerField(min_value=0)
    non_cod = serializers.IntegerField(min_value=0)

    def validate(self, data):
        if data['cod'] + data['non_cod'] != data['total']:
            raise serializers.ValidationError(
                "Jumlah paket COD dan Non-COD harus sama dengan Total Paket."
            )
        return data


class AddPackageSerializer(serializers.Serializer):
    tracking_number = serializers.CharField(max_length=64, allow_blank=True)
    is_cod = serializers.BooleanField(required=False, allow_null=True, default=None)


class TrackingNumberSerializer(serializers.Serializer):
    tracking_number = serializers.CharField(max_length=64)


class RecordDeliverySerializer(TrackingNumberSerializer):
    recipient_name = serializers.CharField(max_length=150, allow_blank=True)


class FinishDaySerializer(serializers.Serializer):
    lead_receiver_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default='')
