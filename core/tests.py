"""
INSAN MOBILE Core Tests
=======================

Tests for:
1. Custom User Model (creation, roles, status)
2. AccountService (create, update, status, delete, setup, self-service)
3. User API (role visibility, MasterAdmin direct, Admin via approval)
4. Data URL storage helper
5. AI greeting
6. Security Middleware (health, headers, rate limiting)
"""

import base64
import uuid
from unittest.mock import patch, MagicMock

from django.core.exceptions import PermissionDenied
from django.core.cache import cache
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from core.accounts import AccountService, generate_employee_id, internal_email
from core.greeting import generate_greeting, random_quote, GreetingError, MOTIVATIONAL_QUOTES
from core.models import User, UserRole, UserStatus, Wilayah, Area, Hub
from core.storage import decode_data_url

PNG_DATA_URL = 'data:image/png;base64,' + base64.b64encode(b'\x89PNG\r\n\x1a\nfake').decode()


class TestUserModel(TestCase):
    """Tests for the custom User model."""

    def setUp(self):
        """Create one user per role."""
        self.master = User.objects.create_user(
            email='Master@Insan.id', password='testpass123',
            employee_id='MASTERADMIN01', full_name='Master Admin', role=UserRole.MASTER_ADMIN,
        )
        self.admin = User.objects.create_user(
            email='admin@insan.id', password='testpass123',
            employee_id='ADMIN0000001', full_name='Admin Test', role=UserRole.ADMIN,
        )
        self.pic = User.objects.create_user(
            email='pic@insan.id', password='testpass123',
            employee_id='PIC0000001', full_name='PIC Test', role=UserRole.PIC,
            work_location='Hub Cilandak',
        )
        self.kurir = User.objects.create_user(
            email='k001@internal.spx', password='testpass123',
            employee_id='K0000001', full_name='Kurir Test', role=UserRole.KURIR,
        )

    # ==========================================
    # User Creation Tests
    # ==========================================

    def test_email_is_lowercased(self):
        """Login email should be stored lowercase."""
        self.assertEqual(self.master.email, 'master@insan.id')
        self.assertTrue(self.master.check_password('testpass123'))

    def test_user_uuid_primary_key(self):
        """User should have UUID as primary key."""
        self.assertIsInstance(self.kurir.id, uuid.UUID)

    def test_user_without_password_is_unusable(self):
        user = User.objects.create_user(
            email='nopass@insan.id', employee_id='K0000099', full_name='No Pass',
        )
        self.assertFalse(user.has_usable_password())

    def test_role_properties(self):
        """Role helpers should match the role."""
        self.assertTrue(self.master.is_master_admin)
        self.assertTrue(self.admin.is_admin_role)
        self.assertTrue(self.pic.is_pic)
        self.assertTrue(self.kurir.is_kurir)
        self.assertTrue(self.pic.is_manager)
        self.assertFalse(self.kurir.is_manager)

    def test_superuser_defaults_to_master_admin(self):
        superuser = User.objects.create_superuser(
            email='root@insan.id', password='superpass123',
            employee_id='ROOT01', full_name='Root',
        )
        self.assertTrue(superuser.is_staff)
        self.assertEqual(superuser.role, UserRole.MASTER_ADMIN)

    # ==========================================
    # Status Tests
    # ==========================================

    def test_nonaktif_status_blocks_login(self):
        """Nonaktif users should be inactive."""
        self.kurir.status = UserStatus.NONAKTIF
        self.kurir.save()
        self.assertFalse(self.kurir.is_active)

        self.kurir.status = UserStatus.AKTIF
        self.kurir.save()
        self.assertTrue(self.kurir.is_active)

    def test_location_tree(self):
        wilayah = Wilayah.objects.create(name='Jabodetabek-Banten')
        area = Area.objects.create(wilayah=wilayah, name='Jakarta Selatan')
        Hub.objects.create(area=area, name='Hub Cilandak')
        self.assertEqual(wilayah.areas.first().hubs.first().name, 'Hub Cilandak')


class TestAccountService(TestCase):
    """Tests for account lifecycle operations."""

    def setUp(self):
        self.master = User.objects.create_user(
            email='master@insan.id', password='testpass123',
            employee_id='MASTERADMIN01', full_name='Master Admin', role=UserRole.MASTER_ADMIN,
        )
        self.kurir_profile = {
            'role': UserRole.KURIR,
            'full_name': 'Budi Santoso',
            'nik': '3174000000000001',
            'position': 'Kurir',
            'wilayah': 'Jabodetabek-Banten',
            'area': 'Jakarta Selatan',
            'work_location': 'Hub Cilandak',
            'contract_status': 'Contract',
        }

    # ==========================================
    # Creation Tests
    # ==========================================

    def test_kurir_without_email_gets_internal_email(self):
        user = AccountService.create_user_account(
            '', 'rahasia1', {**self.kurir_profile, 'employee_id': 'K 123'}, created_by=self.master
        )
        self.assertEqual(user.email, 'k.123@internal.spx')
        self.assertEqual(user.created_by, self.master)

    def test_generated_employee_id_prefix(self):
        user = AccountService.create_user_account('', 'rahasia1', self.kurir_profile)
        self.assertTrue(user.employee_id.startswith('K'))
        self.assertEqual(len(user.employee_id), 8)

    def test_generate_employee_id_for_roles(self):
        self.assertTrue(generate_employee_id(UserRole.ADMIN).startswith('ADMIN'))
        self.assertTrue(generate_employee_id(UserRole.PIC).startswith('PIC'))

    def test_internal_email(self):
        self.assertEqual(internal_email('K0001'), 'k0001@internal.spx')

    def test_admin_requires_email(self):
        with self.assertRaisesMessage(ValueError, "Email wajib diisi."):
            AccountService.create_user_account(
                '', 'rahasia1', {'role': UserRole.ADMIN, 'full_name': 'Admin Baru'}
            )

    def test_duplicate_email_rejected(self):
        with self.assertRaisesMessage(ValueError, "Email sudah terdaftar."):
            AccountService.create_user_account(
                'MASTER@insan.id', 'rahasia1', {'role': UserRole.ADMIN, 'full_name': 'Dup'}
            )

    def test_duplicate_employee_id_rejected(self):
        with self.assertRaisesMessage(ValueError, "ID Aplikasi sudah digunakan."):
            AccountService.create_user_account(
                'x@insan.id', 'rahasia1',
                {'role': UserRole.ADMIN, 'full_name': 'Dup', 'employee_id': 'MASTERADMIN01'},
            )

    def test_short_password_rejected(self):
        with self.assertRaisesMessage(ValueError, "Password minimal 6 karakter."):
            AccountService.create_user_account('', '123', self.kurir_profile)

    def test_invalid_nik_rejected(self):
        with self.assertRaisesMessage(ValueError, "NIK harus terdiri dari 16 digit angka."):
            AccountService.create_user_account('', 'rahasia1', {**self.kurir_profile, 'nik': '123'})

    def test_invalid_bank_account_rejected(self):
        with self.assertRaisesMessage(ValueError, "Nomor rekening hanya boleh berisi angka."):
            AccountService.create_user_account(
                '', 'rahasia1', {**self.kurir_profile, 'bank_account_number': '12-34'}
            )

    # ==========================================
    # Update / Status / Delete Tests
    # ==========================================

    def test_update_user_profile(self):
        user = AccountService.create_user_account('', 'rahasia1', self.kurir_profile)
        AccountService.update_user_profile(user, {'work_location': 'Hub Kemang'}, updated_by=self.master)
        user.refresh_from_db()
        self.assertEqual(user.work_location, 'Hub Kemang')
        self.assertEqual(user.updated_by, self.master)

    def test_update_status_requires_master_admin(self):
        user = AccountService.create_user_account('', 'rahasia1', self.kurir_profile)
        with self.assertRaises(PermissionDenied):
            AccountService.update_user_status(user, UserStatus.NONAKTIF, handler=user)

    def test_master_admin_cannot_deactivate_self(self):
        with self.assertRaisesMessage(ValueError, "Anda tidak dapat mengubah status akun Anda sendiri."):
            AccountService.update_user_status(self.master, UserStatus.NONAKTIF, handler=self.master)

    def test_deactivate_user(self):
        user = AccountService.create_user_account('', 'rahasia1', self.kurir_profile)
        AccountService.update_user_status(user, UserStatus.NONAKTIF, handler=self.master)
        user.refresh_from_db()
        self.assertEqual(user.status, UserStatus.NONAKTIF)
        self.assertFalse(user.is_active)

    def test_delete_user_account(self):
        user = AccountService.create_user_account('', 'rahasia1', self.kurir_profile)
        AccountService.delete_user_account(user, handler=self.master)
        self.assertFalse(User.objects.filter(employee_id=user.employee_id).exists())

    def test_reset_password(self):
        user = AccountService.create_user_account('', 'rahasia1', self.kurir_profile)
        AccountService.reset_user_password(user, 'barubaru', handler=self.master)
        user.refresh_from_db()
        self.assertTrue(user.check_password('barubaru'))

    # ==========================================
    # Setup & Self-service Tests
    # ==========================================

    def test_setup_master_admin_only_once(self):
        with self.assertRaisesMessage(ValueError, "MasterAdmin sudah ada. Setup hanya dapat dilakukan sekali."):
            AccountService.setup_master_admin('MASTERADMIN02', 'Master Dua', 'm2@insan.id', 'rahasia1')

    def test_change_own_password(self):
        user = AccountService.create_user_account('', 'rahasia1', self.kurir_profile)
        with self.assertRaisesMessage(ValueError, "Password saat ini salah."):
            AccountService.change_own_password(user, 'salah', 'barubaru', 'barubaru')
        with self.assertRaisesMessage(ValueError, "Password baru dan konfirmasi tidak cocok."):
            AccountService.change_own_password(user, 'rahasia1', 'barubaru', 'lainlain')

        AccountService.change_own_password(user, 'rahasia1', 'barubaru', 'barubaru')
        self.assertTrue(user.check_password('barubaru'))

    def test_change_own_password_kurir_only(self):
        with self.assertRaises(PermissionDenied):
            AccountService.change_own_password(self.master, 'testpass123', 'barubaru', 'barubaru')

    def test_notification_preferences(self):
        AccountService.update_notification_preferences(self.master, notify_app_updates=False)
        self.master.refresh_from_db()
        self.assertFalse(self.master.notify_app_updates)
        self.assertTrue(self.master.notify_performance_reports)


class TestUserAPI(TestCase):
    """Tests for the users endpoints."""

    def setUp(self):
        self.api = APIClient()
        self.master = User.objects.create_user(
            email='master@insan.id', password='testpass123',
            employee_id='MASTERADMIN01', full_name='Master Admin', role=UserRole.MASTER_ADMIN,
        )
        self.admin = User.objects.create_user(
            email='admin@insan.id', password='testpass123',
            employee_id='ADMIN0000001', full_name='Admin Test', role=UserRole.ADMIN,
        )
        self.pic = User.objects.create_user(
            email='pic@insan.id', password='testpass123',
            employee_id='PIC0000001', full_name='PIC Test', role=UserRole.PIC,
        )
        self.kurir = User.objects.create_user(
            email='k001@internal.spx', password='testpass123',
            employee_id='K0000001', full_name='Kurir Test', role=UserRole.KURIR,
        )

    def _ids(self, response):
        return {u['employee_id'] for u in response.json()['results']}

    # ==========================================
    # Visibility Tests
    # ==========================================

    def test_master_admin_sees_everyone(self):
        self.api.force_authenticate(self.master)
        response = self.api.get('/api/users/')
        self.assertEqual(len(self._ids(response)), 4)

    def test_pic_sees_only_kurirs(self):
        self.api.force_authenticate(self.pic)
        response = self.api.get('/api/users/')
        self.assertEqual(self._ids(response), {'K0000001'})

    def test_kurir_sees_self(self):
        self.api.force_authenticate(self.kurir)
        response = self.api.get('/api/users/me/')
        self.assertEqual(response.json()['employee_id'], 'K0000001')

    # ==========================================
    # Write Tests
    # ==========================================

    def test_master_admin_creates_directly(self):
        self.api.force_authenticate(self.master)
        response = self.api.post('/api/users/', {
            'role': UserRole.PIC,
            'full_name': 'PIC Baru',
            'email': 'picbaru@insan.id',
            'password': 'rahasia1',
            'work_location': 'Hub Kemang',
        }, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertTrue(User.objects.filter(email='picbaru@insan.id').exists())

    def test_admin_create_becomes_approval_request(self):
        from approvals.models import ApprovalRequest

        self.api.force_authenticate(self.admin)
        response = self.api.post('/api/users/', {
            'role': UserRole.PIC,
            'full_name': 'PIC Baru',
            'email': 'picbaru@insan.id',
            'password': 'rahasia1',
            'work_location': 'Hub Kemang',
        }, format='json')
        self.assertEqual(response.status_code, 202)
        self.assertFalse(User.objects.filter(email='picbaru@insan.id').exists())
        self.assertEqual(ApprovalRequest.objects.count(), 1)
        self.assertNotIn('password_hash', response.json()['approval_request']['payload'])

    def test_pic_create_fields_required(self):
        self.api.force_authenticate(self.master)
        response = self.api.post('/api/users/', {
            'role': UserRole.PIC, 'full_name': 'PIC Baru', 'email': 'p@insan.id', 'password': 'rahasia1',
        }, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertIn('work_location', response.json())

    def test_kurir_cannot_create_users(self):
        self.api.force_authenticate(self.kurir)
        response = self.api.post('/api/users/', {}, format='json')
        self.assertEqual(response.status_code, 403)

    def test_master_admin_sets_status(self):
        self.api.force_authenticate(self.master)
        response = self.api.post(
            f'/api/users/{self.kurir.pk}/status/', {'status': UserStatus.NONAKTIF}, format='json'
        )
        self.assertEqual(response.status_code, 200)
        self.kurir.refresh_from_db()
        self.assertEqual(self.kurir.status, UserStatus.NONAKTIF)

    # ==========================================
    # Setup & Login Tests
    # ==========================================

    def test_setup_admin_not_required_when_master_exists(self):
        response = self.api.get('/api/setup-admin/')
        self.assertFalse(response.json()['setup_required'])

        response = self.api.post('/api/setup-admin/', {
            'employee_id': 'MASTERADMIN02', 'full_name': 'Master Dua',
            'email': 'm2@insan.id', 'password': 'rahasia1',
        }, format='json')
        self.assertEqual(response.status_code, 400)

    def test_login_returns_role_claims(self):
        response = self.api.post('/api/auth/token/', {
            'email': 'k001@internal.spx', 'password': 'testpass123',
        }, format='json')
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertIn('access', data)
        self.assertEqual(data['user']['role'], UserRole.KURIR)

    def test_location_tree_endpoint(self):
        wilayah = Wilayah.objects.create(name='Jawa Barat')
        area = Area.objects.create(wilayah=wilayah, name='Bandung')
        Hub.objects.create(area=area, name='Hub Dago')

        self.api.force_authenticate(self.pic)
        response = self.api.get('/api/locations/')
        self.assertEqual(response.json()[0]['areas'][0]['hubs'][0]['name'], 'Hub Dago')


class TestAccountSettingsAPI(TestCase):

    def setUp(self):
        self.api = APIClient()
        self.kurir = User.objects.create_user(
            email='k001@internal.spx', password='testpass123',
            employee_id='K0000001', full_name='Kurir Test', role=UserRole.KURIR,
        )
        self.api.force_authenticate(self.kurir)

    def test_update_profile_with_avatar_data_url(self):
        response = self.api.patch('/api/account/profile/', {
            'full_name': 'Kurir Baru', 'avatar': PNG_DATA_URL,
        }, format='json')
        self.assertEqual(response.status_code, 200)
        self.kurir.refresh_from_db()
        self.assertEqual(self.kurir.full_name, 'Kurir Baru')
        self.assertTrue(self.kurir.avatar.name.endswith('.png'))

    def test_change_password_mismatch(self):
        response = self.api.post('/api/account/password/', {
            'current_password': 'testpass123', 'new_password': 'abcdef', 'confirm_password': 'abcdeg',
        }, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], "Password baru dan konfirmasi tidak cocok.")


class TestStorage(TestCase):

    def test_decode_data_url(self):
        content = decode_data_url(PNG_DATA_URL, name='pod_RESI1')
        self.assertEqual(content.name, 'pod_RESI1.png')
        self.assertTrue(content.read().startswith(b'\x89PNG'))

    def test_jpeg_extension(self):
        data_url = 'data:image/jpeg;base64,' + base64.b64encode(b'jpeg').decode()
        self.assertTrue(decode_data_url(data_url, name='x').name.endswith('.jpg'))

    def test_invalid_data_url(self):
        with self.assertRaisesMessage(ValueError, "Format data URL tidak valid."):
            decode_data_url('not-a-data-url')


class TestGreeting(TestCase):
    """Tests for the Gemini greeting generator (client mocked)."""

    def test_random_quote_from_list(self):
        self.assertIn(random_quote(), MOTIVATIONAL_QUOTES)

    @patch('core.greeting.genai.Client')
    def test_generate_greeting(self, mock_client):
        mock_client.return_value.models.generate_content.return_value = MagicMock(text='  Selamat ulang tahun!  ')

        result = generate_greeting('ulang tahun', 'Budi', 'hangat')

        self.assertEqual(result, 'Selamat ulang tahun!')
        mock_client.assert_called_once_with(api_key='test-gemini-key')
        prompt = mock_client.return_value.models.generate_content.call_args.kwargs['contents']
        self.assertIn('Budi', prompt)

    @patch('core.greeting.genai.Client')
    def test_empty_response_raises(self, mock_client):
        mock_client.return_value.models.generate_content.return_value = MagicMock(text='')
        with self.assertRaises(GreetingError):
            generate_greeting('ulang tahun', 'Budi', 'hangat')

    @patch('core.greeting.genai.Client')
    def test_api_error_wrapped(self, mock_client):
        mock_client.return_value.models.generate_content.side_effect = RuntimeError('quota')
        with self.assertRaisesMessage(GreetingError, "Gagal membuat ucapan"):
            generate_greeting('ulang tahun', 'Budi', 'hangat')

    @override_settings(GEMINI_API_KEY='')
    def test_missing_api_key(self):
        with self.assertRaisesMessage(GreetingError, "Layanan AI belum dikonfigurasi."):
            generate_greeting('ulang tahun', 'Budi', 'hangat')

    @patch('core.greeting.genai.Client')
    def test_greeting_endpoint(self, mock_client):
        mock_client.return_value.models.generate_content.return_value = MagicMock(text='Halo!')
        user = User.objects.create_user(
            email='k001@internal.spx', password='testpass123',
            employee_id='K0000001', full_name='Kurir Test', role=UserRole.KURIR,
        )
        api = APIClient()
        api.force_authenticate(user)
        response = api.post('/api/greeting/', {
            'occasion': 'lebaran', 'recipient': 'Tim Hub', 'tone': 'formal',
        }, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['greeting'], 'Halo!')


class TestSecurityMiddleware(TestCase):
    """Tests for security middleware behavior."""

    def setUp(self):
        cache.clear()

    def test_health_endpoint_accessible(self):
        """Health check should be accessible without auth."""
        response = self.client.get('/health/')
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['status'], 'ok')
        self.assertEqual(data['service'], 'insan-mobile')

    def test_readiness_endpoint_accessible(self):
        """Readiness check reports database and cache."""
        response = self.client.get('/health/ready/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(set(response.json()['checks']), {'database', 'cache'})

    def test_security_headers_present(self):
        """Response should contain security headers."""
        response = self.client.get('/health/')
        self.assertEqual(response['X-Content-Type-Options'], 'nosniff')
        self.assertEqual(response['X-Frame-Options'], 'DENY')
        self.assertIn('Referrer-Policy', response)

    @override_settings(RATE_LIMIT_ENABLED=True)
    def test_setup_admin_rate_limited(self):
        """Sixth setup attempt within the window should be rejected."""
        for _ in range(5):
            self.client.get('/api/setup-admin/')
        response = self.client.get('/api/setup-admin/')
        self.assertEqual(response.status_code, 429)
        self.assertEqual(response['Retry-After'], '300')
