"""
Core App Serializers - User Management
"""

from rest_framework import serializers
from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .models import UserRole, UserStatus, ContractStatus, Wilayah, Area, Hub

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    """Serializer for User model (read operations)."""

    class Meta:
        model = User
        fields = [
            'id', 'employee_id', 'email', 'full_name', 'role', 'status',
            'nik', 'position', 'wilayah', 'area', 'work_location',
            'join_date', 'contract_status',
            'bank_name', 'bank_account_number', 'bank_recipient_name',
            'avatar', 'photo_id',
            'notify_app_updates', 'notify_performance_reports',
            'is_active', 'date_joined', 'updated_at',
        ]
        read_only_fields = fields


class UserSummarySerializer(serializers.ModelSerializer):
    """Compact user representation for lists and selections."""

    class Meta:
        model = User
        fields = ['id', 'employee_id', 'full_name', 'role', 'status', 'work_location']
        read_only_fields = fields


class ProfileFieldsSerializer(serializers.Serializer):
    """Profile fields shared by create and update."""

    employee_id = serializers.CharField(max_length=50, required=False, allow_blank=True)
    full_name = serializers.CharField(max_length=150, required=False)
    email = serializers.EmailField(required=False, allow_blank=True)
    nik = serializers.RegexField(
        r'^\d{16}$', required=False, allow_blank=True,
        error_messages={'invalid': 'NIK harus terdiri dari 16 digit angka.'}
    )
    position = serializers.CharField(max_length=100, required=False, allow_blank=True)
    wilayah = serializers.CharField(max_length=100, required=False, allow_blank=True)
    area = serializers.CharField(max_length=100, required=False, allow_blank=True)
    work_location = serializers.CharField(max_length=150, required=False, allow_blank=True)
    join_date = serializers.DateField(required=False, allow_null=True)
    contract_status = serializers.ChoiceField(choices=ContractStatus.choices, required=False, allow_blank=True)
    bank_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    bank_account_number = serializers.RegexField(
        r'^\d+$', required=False, allow_blank=True,
        error_messages={'invalid': 'Nomor rekening hanya boleh berisi angka.'}
    )
    bank_recipient_name = serializers.CharField(max_length=150, required=False, allow_blank=True)


class UserCreateSerializer(ProfileFieldsSerializer):
    """Input for creating a user (directly or via approval request)."""

    KURIR_REQUIRED = ['nik', 'position', 'wilayah', 'area', 'work_location', 'join_date', 'contract_status']

    role = serializers.ChoiceField(choices=[
        (UserRole.ADMIN, 'Admin'),
        (UserRole.PIC, 'PIC'),
        (UserRole.KURIR, 'Kurir'),
    ])
    full_name = serializers.CharField(max_length=150)
    password = serializers.CharField(write_only=True, min_length=getattr(settings, 'MIN_PASSWORD_LENGTH', 6))
    status = serializers.ChoiceField(choices=UserStatus.choices, required=False, default=UserStatus.AKTIF)

    def validate(self, data):
        role = data['role']
        missing = []
        if role in (UserRole.ADMIN, UserRole.PIC) and not data.get('email'):
            missing.append('email')
        if role == UserRole.PIC and not data.get('work_location'):
            missing.append('work_location')
        if role == UserRole.KURIR:
            missing.extend(f for f in self.KURIR_REQUIRED if not data.get(f))
        if missing:
            raise serializers.ValidationError(
                {field: 'Kolom ini wajib diisi.' for field in missing}
            )
        return data


class UserUpdateSerializer(ProfileFieldsSerializer):
    pass


class UserStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=UserStatus.choices)


class PasswordResetSerializer(serializers.Serializer):
    new_password = serializers.CharField(write_only=True)


class ChangePasswordSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True)
    confirm_password = serializers.CharField(write_only=True)


class OwnProfileSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=150, required=False)
    email = serializers.EmailField(required=False)


class NotificationPreferencesSerializer(serializers.Serializer):
    notify_app_updates = serializers.BooleanField(required=False)
    notify_performance_reports = serializers.BooleanField(required=False)


class SetupAdminSerializer(serializers.Serializer):
    employee_id = serializers.CharField(
        max_length=50,
        error_messages={'required': 'ID Aplikasi wajib diisi (cth: MASTERADMIN01).'}
    )
    full_name = serializers.CharField(
        min_length=3, max_length=150,
        error_messages={'min_length': 'Nama lengkap minimal 3 karakter.'}
    )
    email = serializers.EmailField(error_messages={'invalid': 'Format email tidak valid.'})
    password = serializers.CharField(
        write_only=True, min_length=6,
        error_messages={'min_length': 'Password minimal 6 karakter.'}
    )


class GreetingRequestSerializer(serializers.Serializer):
    occasion = serializers.CharField(max_length=200)
    recipient = serializers.CharField(max_length=200)
    tone = serializers.CharField(max_length=100)


# ===========================================
# LOCATIONS
# ===========================================

class HubSerializer(serializers.ModelSerializer):
    class Meta:
        model = Hub
        fields = ['id', 'name', 'is_active']


class AreaSerializer(serializers.ModelSerializer):
    hubs = HubSerializer(many=True, read_only=True)

    class Meta:
        model = Area
        fields = ['id', 'name', 'hubs']


class WilayahSerializer(serializers.ModelSerializer):
    areas = AreaSerializer(many=True, read_only=True)

    class Meta:
        model = Wilayah
        fields = ['id', 'name', 'areas']


# ===========================================
# AUTH
# ===========================================

class InsanTokenObtainPairSerializer(TokenObtainPairSerializer):
    """JWT login by email; embeds role and app id in the token."""

    default_error_messages = {
        'no_active_account': 'Email atau password yang Anda masukkan salah, atau akun dinonaktifkan.',
    }

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['role'] = user.role
        token['employee_id'] = user.employee_id
        token['full_name'] = user.full_name
        return token

    def validate(self, attrs):
        attrs[self.username_field] = (attrs.get(self.username_field) or '').strip().lower()
        data = super().validate(attrs)
        data['user'] = UserSummarySerializer(self.user).data
        return data
