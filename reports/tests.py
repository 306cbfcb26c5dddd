"""
INSAN MOBILE Reports Tests

Tests for:
1. Excel report generation (XlsxWriter output read back with openpyxl)
2. Bulk user import from Excel
3. Download and import endpoints
"""

import io
from datetime import date, datetime, time

from django.core.exceptions import PermissionDenied
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from openpyxl import Workbook, load_workbook
from rest_framework.test import APIClient

from attendance.models import AttendanceRecord, AttendanceStatus
from core.models import User, UserRole
from logistics.models import KurirDailyTask, PackageItem, PackageStatus, TaskStatus
from reports.importer import import_users, parse_join_date, read_rows
from reports.services import XLSX_CONTENT_TYPE, ReportGenerator, report_filename

KURIR_HEADER = [
    'ID Kurir', 'Nama Lengkap', 'NIK', 'Password Awal', 'Jabatan', 'Wilayah', 'Area',
    'Lokasi Kerja (Hub)', 'Tanggal Join', 'Status Kontrak', 'Nama Bank', 'Nomor Rekening',
]


def xlsx_file(header, rows, name='import.xlsx'):
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(header)
    for row in rows:
        sheet.append(row)
    output = io.BytesIO()
    workbook.save(output)
    return SimpleUploadedFile(name, output.getvalue(), content_type=XLSX_CONTENT_TYPE)


def kurir_row(employee_id='K0000050', nik='3174012345678901', join_date='2025-06-24', bank_account='1234567890'):
    return [
        employee_id, 'Kurir Impor', nik, 'rahasia123', 'Kurir Motor', 'DKI Jakarta',
        'Jakarta Selatan', 'Hub Cilandak', join_date, 'Contract', 'BCA', bank_account,
    ]


def sheet_values(content):
    sheet = load_workbook(io.BytesIO(content)).worksheets[0]
    return [row for row in sheet.iter_rows(values_only=True)]


class ReportsTestCase(TestCase):

    def setUp(self):
        self.admin = User.objects.create_user(
            email='admin@insan.id', password='testpass123',
            employee_id='ADMIN0000001', full_name='Admin', role=UserRole.ADMIN,
        )
        self.kurir = User.objects.create_user(
            email='k001@internal.spx', employee_id='K0000001', full_name='Budi Kurir',
            role=UserRole.KURIR, work_location='Hub Cilandak',
        )


class TestReportGenerator(ReportsTestCase):

    def setUp(self):
        super().setUp()
        AttendanceRecord.objects.create(
            kurir=self.kurir, date=date(2025, 6, 2), status=AttendanceStatus.LATE,
            check_in_time=time(9, 15), check_out_time=time(17, 15), work_location='Hub Cilandak',
        )
        task = KurirDailyTask.objects.create(
            kurir=self.kurir, date=date(2025, 6, 2), total_packages=4, cod_packages=1, non_cod_packages=3,
            task_status=TaskStatus.COMPLETED, final_delivered_count=3, final_pending_return_count=1,
        )
        PackageItem.objects.create(task=task, tracking_number='SPX001', is_cod=True, status=PackageStatus.DELIVERED)
        PackageItem.objects.create(task=task, tracking_number='SPX002', status=PackageStatus.DELIVERED)
        self.kurirs = User.objects.filter(role=UserRole.KURIR)

    def test_attendance_report(self):
        content = ReportGenerator.generate_attendance_report(self.kurirs, date(2025, 6, 1), date(2025, 6, 30))
        rows = sheet_values(content)

        self.assertEqual(rows[0][0], "Laporan Kehadiran Kurir")
        self.assertEqual(rows[1][0], "Periode 01/06/2025 - 30/06/2025")
        self.assertEqual(rows[3][1], 'ID Kurir')
        self.assertEqual(rows[4][1:], ('K0000001', 'Budi Kurir', 'Hub Cilandak', 'Late', '09:15', '17:15', '8 jam'))
        self.assertEqual(rows[4][0], datetime(2025, 6, 2))

    def test_performance_report(self):
        content = ReportGenerator.generate_performance_report(self.kurirs, date(2025, 6, 1), date(2025, 6, 30))
        data_row = sheet_values(content)[4]

        self.assertEqual(data_row[4:9], (4, 1, 3, 3, 1))
        self.assertEqual(data_row[9], 75.0)

    def test_cod_report_only_cod(self):
        content = ReportGenerator.generate_cod_report(self.kurirs, date(2025, 6, 1), date(2025, 6, 30))
        data_rows = [r for r in sheet_values(content)[4:] if any(r)]
        self.assertEqual([r[1] for r in data_rows], ['SPX001'])

    def test_monthly_summary(self):
        content = ReportGenerator.generate_monthly_summary(self.kurirs, date(2025, 6, 15))
        rows = sheet_values(content)

        self.assertEqual(rows[1][0], "Bulan 06/2025")
        self.assertEqual(rows[4][:7], ('K0000001', 'Budi Kurir', 'Hub Cilandak', 0, 1, 0, 1))
        self.assertEqual(rows[4][10], 75.0)

    def test_filename(self):
        self.assertEqual(report_filename('laporan_cod', date(2025, 6, 1)), 'laporan_cod_20250601.xlsx')
        self.assertEqual(
            report_filename('laporan_cod', date(2025, 6, 1), date(2025, 6, 30)),
            'laporan_cod_20250601_20250630.xlsx',
        )


class TestUserImport(ReportsTestCase):

    # ==========================================
    # Parsing
    # ==========================================

    def test_parse_join_date(self):
        self.assertEqual(parse_join_date('2025-06-24'), date(2025, 6, 24))
        self.assertEqual(parse_join_date(45832), date(2025, 6, 24))
        self.assertEqual(parse_join_date(datetime(2025, 6, 24, 0, 0)), date(2025, 6, 24))
        self.assertIsNone(parse_join_date('24/06/2025'))
        self.assertIsNone(parse_join_date(True))
        self.assertIsNone(parse_join_date(False))

    def test_read_rows_maps_headers_and_skips_blank(self):
        rows = read_rows(xlsx_file(['fullName', 'Email', 'Kolom Lain'], [
            ['Admin Baru', 'baru@insan.id', 'x'],
            [None, None, None],
        ]))
        self.assertEqual(rows, [{'full_name': 'Admin Baru', 'email': 'baru@insan.id'}])

    def test_read_rows_rejects_non_xlsx(self):
        upload = SimpleUploadedFile('users.csv', b'fullName,email\nA,a@x.id\n', content_type='text/csv')
        with self.assertRaisesMessage(ValueError, "File Excel tidak valid. Gunakan format .xlsx."):
            read_rows(upload)

    # ==========================================
    # Import
    # ==========================================

    def test_import_kurirs(self):
        result = import_users(xlsx_file(KURIR_HEADER, [kurir_row()]), UserRole.KURIR, self.admin)

        self.assertTrue(result['success'])
        self.assertEqual(result['created_count'], 1)
        user = User.objects.get(employee_id='K0000050')
        self.assertEqual(user.email, 'k0000050@internal.spx')
        self.assertEqual(user.join_date, date(2025, 6, 24))
        self.assertEqual(user.created_by, self.admin)
        self.assertTrue(user.check_password('rahasia123'))

    def test_import_reports_row_errors(self):
        rows = [
            kurir_row(),
            kurir_row(employee_id='K0000051', nik='123'),
            kurir_row(employee_id='K0000052', join_date='kemarin'),
            kurir_row(employee_id='K0000053', bank_account='12-34'),
            kurir_row(employee_id='K0000001', nik='3174012345678902'),
        ]
        result = import_users(xlsx_file(KURIR_HEADER, rows), UserRole.KURIR, self.admin)

        self.assertFalse(result['success'])
        self.assertEqual(result['created_count'], 1)
        self.assertEqual(result['failed_count'], 4)
        self.assertEqual(result['total_rows'], 5)
        self.assertEqual(result['errors'][0], "Baris 3: NIK '123' tidak valid, harus 16 digit angka.")
        self.assertTrue(result['errors'][1].startswith("Baris 4: Format Tanggal Join 'kemarin' tidak valid."))
        self.assertTrue(result['errors'][2].startswith("Baris 5: Nomor Rekening '12-34'"))
        self.assertEqual(result['errors'][3], "Baris 6 (Kurir Impor): ID Aplikasi sudah digunakan.")

    def test_import_missing_columns(self):
        result = import_users(
            xlsx_file(['Nama Lengkap', 'Email'], [['PIC Baru', 'picbaru@insan.id']]), UserRole.PIC, self.admin,
        )
        self.assertEqual(
            result['errors'], ["Baris 2: Kolom berikut wajib diisi: Password, Lokasi Kerja (Hub)."]
        )

    def test_import_permissions(self):
        with self.assertRaises(PermissionDenied):
            import_users(xlsx_file(KURIR_HEADER, []), UserRole.KURIR, self.kurir)
        with self.assertRaisesMessage(ValueError, "Peran tidak valid untuk impor."):
            import_users(xlsx_file(KURIR_HEADER, []), UserRole.MASTER_ADMIN, self.admin)


class TestReportsAPI(ReportsTestCase):

    def setUp(self):
        super().setUp()
        self.api = APIClient()
        self.api.force_authenticate(self.admin)

    def test_download_endpoints(self):
        for url in ('/api/reports/attendance/', '/api/reports/performance/', '/api/reports/cod/',
                    '/api/reports/monthly/', '/api/reports/dashboard/'):
            response = self.api.get(url)
            self.assertEqual(response.status_code, 200, url)
            self.assertEqual(response['Content-Type'], XLSX_CONTENT_TYPE)
            self.assertTrue(response['Content-Disposition'].startswith('attachment; filename="'))

    def test_range_filename(self):
        response = self.api.get('/api/reports/attendance/', {'start': '2025-06-01', 'end': '2025-06-30'})
        self.assertIn('laporan_kehadiran_20250601_20250630.xlsx', response['Content-Disposition'])

    def test_invalid_params(self):
        response = self.api.get('/api/reports/cod/', {'start': '2025-06-30', 'end': '2025-06-01'})
        self.assertEqual(response.status_code, 400)

        response = self.api.get('/api/reports/monthly/', {'month': 'Juni'})
        self.assertEqual(response.status_code, 400)

    def test_kurir_cannot_download(self):
        self.api.force_authenticate(self.kurir)
        response = self.api.get('/api/reports/attendance/')
        self.assertEqual(response.status_code, 403)

    def test_import_endpoint(self):
        response = self.api.post('/api/reports/import-users/', {
            'file': xlsx_file(KURIR_HEADER, [kurir_row()]),
            'role': UserRole.KURIR.value,
        }, format='multipart')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['created_count'], 1)

    def test_import_requires_file(self):
        response = self.api.post('/api/reports/import-users/', {'role': 'Kurir'}, format='multipart')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'File Excel wajib diunggah.')

    def test_import_rejects_csv(self):
        response = self.api.post('/api/reports/import-users/', {
            'file': SimpleUploadedFile('users.csv', b'fullName,email\nA,a@x.id\n', content_type='text/csv'),
            'role': UserRole.ADMIN.value,
        }, format='multipart')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], "File Excel tidak valid. Gunakan format .xlsx.")
        self.assertFalse(User.objects.filter(email='a@x.id').exists())
