from rest_framework import serializers

from .models import AttendanceRecord
from .services import work_duration


class AttendanceRecordSerializer(serializers.ModelSerializer):
    kurir_id = serializers.CharField(source='kurir.employee_id', read_only=True)
    kurir_name = serializers.CharField(source='kurir.full_name', read_only=True)
    check_in_time = serializers.TimeField(format='%H:%M', read_only=True)
    check_out_time = serializers.TimeField(format='%H:%M', read_only=True)
    work_duration = serializers.SerializerMethodField()

    class Meta:
        model = AttendanceRecord
        fields = [
            'id', 'kurir_id', 'kurir_name', 'date', 'check_in_time', 'check_out_time',
            'status', 'work_location', 'work_duration',
        ]
        read_only_fields = fields

    def get_work_duration(self, obj):
        return work_duration(obj.check_in_time, obj.check_out_time)
