"""
REPORTS App - Bulk user import from Excel

Reads the first worksheet with openpyxl. Row 1 is the header; each
following row creates one account of the chosen role.
"""

import logging
import re
import zipfile
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from django.core.exceptions import PermissionDenied
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from core.accounts import AccountService
from core.models import User, UserRole

logger = logging.getLogger(__name__)

# Header text (lowercased) -> profile key
HEADER_ALIASES = {
    'id': 'employee_id',
    'id admin': 'employee_id',
    'id pic': 'employee_id',
    'id kurir': 'employee_id',
    'id aplikasi': 'employee_id',
    'fullname': 'full_name',
    'nama lengkap': 'full_name',
    'email': 'email',
    'passwordvalue': 'password',
    'password': 'password',
    'password awal': 'password',
    'nik': 'nik',
    'jabatan': 'position',
    'wilayah': 'wilayah',
    'area': 'area',
    'worklocation': 'work_location',
    'lokasi kerja': 'work_location',
    'lokasi kerja (hub)': 'work_location',
    'area tanggung jawab': 'work_location',
    'joindate': 'join_date',
    'tanggal join': 'join_date',
    'contractstatus': 'contract_status',
    'status kontrak': 'contract_status',
    'bankname': 'bank_name',
    'nama bank': 'bank_name',
    'bankaccountnumber': 'bank_account_number',
    'nomor rekening': 'bank_account_number',
    'bankrecipientname': 'bank_recipient_name',
    'nama penerima rekening': 'bank_recipient_name',
}

LABELS = {
    'full_name': 'Nama Lengkap',
    'email': 'Email',
    'password': 'Password',
    'nik': 'NIK',
    'position': 'Jabatan',
    'wilayah': 'Wilayah',
    'area': 'Area',
    'work_location': 'Lokasi Kerja (Hub)',
    'join_date': 'Tanggal Join',
    'contract_status': 'Status Kontrak',
}

REQUIRED_COLUMNS = {
    UserRole.ADMIN: ['full_name', 'email', 'password'],
    UserRole.PIC: ['full_name', 'email', 'password', 'work_location'],
    UserRole.KURIR: [
        'full_name', 'nik', 'password', 'position', 'wilayah', 'area',
        'work_location', 'join_date', 'contract_status',
    ],
}

EXCEL_EPOCH = date(1899, 12, 30)


def _text(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def parse_join_date(value: Any) -> Optional[date]:
    """Excel serial number, date/datetime cell or ISO string."""
    if isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        return EXCEL_EPOCH + timedelta(days=int(value))
    text = _text(value)
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def read_rows(file) -> List[Dict[str, Any]]:
    """Rows of the first sheet as dicts keyed by profile field."""
    try:
        workbook = load_workbook(file, read_only=True, data_only=True)
    except (zipfile.BadZipFile, InvalidFileException, KeyError, OSError):
        raise ValueError("File Excel tidak valid. Gunakan format .xlsx.")
    try:
        sheet = workbook.worksheets[0]
        rows = sheet.iter_rows(values_only=True)
        header = next(rows, None)
        if not header:
            return []
        keys = [HEADER_ALIASES.get(_text(h).lower()) for h in header]
        records = []
        for values in rows:
            if not any(_text(v) for v in values):
                continue
            records.append({
                key: value for key, value in zip(keys, values) if key is not None
            })
        return records
    finally:
        workbook.close()


def _row_profile(row: Dict[str, Any], role: str, row_num: int) -> Dict[str, Any]:
    missing = [LABELS[key] for key in REQUIRED_COLUMNS[role] if not _text(row.get(key))]
    if missing:
        raise ValueError(f"Baris {row_num}: Kolom berikut wajib diisi: {', '.join(missing)}.")

    profile = {'role': role, 'full_name': _text(row.get('full_name'))}
    employee_id = _text(row.get('employee_id'))
    if employee_id:
        profile['employee_id'] = employee_id

    if role == UserRole.PIC:
        profile['work_location'] = _text(row['work_location'])

    if role == UserRole.KURIR:
        nik = _text(row['nik'])
        if not re.fullmatch(r'\d{16}', nik):
            raise ValueError(f"Baris {row_num}: NIK '{nik}' tidak valid, harus 16 digit angka.")

        bank_account = _text(row.get('bank_account_number'))
        if bank_account and not bank_account.isdigit():
            raise ValueError(
                f"Baris {row_num}: Nomor Rekening '{bank_account}' tidak valid, hanya boleh berisi angka."
            )

        join_date = parse_join_date(row['join_date'])
        if join_date is None:
            raise ValueError(
                f"Baris {row_num}: Format Tanggal Join '{_text(row['join_date'])}' tidak valid. "
                "Gunakan format YYYY-MM-DD, contoh: 2025-06-24."
            )

        profile.update({
            'nik': nik,
            'position': _text(row['position']),
            'wilayah': _text(row['wilayah']),
            'area': _text(row['area']),
            'work_location': _text(row['work_location']),
            'join_date': join_date,
            'contract_status': _text(row['contract_status']),
            'bank_name': _text(row.get('bank_name')),
            'bank_account_number': bank_account,
            'bank_recipient_name': _text(row.get('bank_recipient_name')),
        })
    return profile


def import_users(file, role: str, created_by: User) -> Dict[str, Any]:
    """
    Create accounts from an Excel file.

    Args:
        file: Uploaded .xlsx file
        role: Admin, PIC or Kurir
        created_by: MasterAdmin or Admin running the import

    Returns:
        Dict with success, created_count, failed_count, total_rows, errors
    """
    if created_by.role not in (UserRole.MASTER_ADMIN, UserRole.ADMIN):
        raise PermissionDenied("Hanya MasterAdmin atau Admin yang dapat mengimpor pengguna.")
    if role not in REQUIRED_COLUMNS:
        raise ValueError("Peran tidak valid untuk impor.")

    rows = read_rows(file)
    created_count = 0
    errors = []

    for index, row in enumerate(rows):
        row_num = index + 2
        try:
            profile = _row_profile(row, role, row_num)
        except ValueError as e:
            errors.append(str(e))
            continue

        try:
            AccountService.create_user_account(
                email=_text(row.get('email')),
                password=_text(row.get('password')),
                profile=profile,
                created_by=created_by,
            )
            created_count += 1
        except ValueError as e:
            errors.append(f"Baris {row_num} ({profile['full_name']}): {e}")

    failed_count = len(errors)
    logger.info(
        f"[IMPORT] {role}: {created_count} created, {failed_count} failed "
        f"by {created_by.employee_id}"
    )
    return {
        'success': created_count > 0 and failed_count == 0,
        'created_count': created_count,
        'failed_count': failed_count,
        'total_rows': len(rows),
        'errors': errors,
    }
