"""
Daily Task Service for INSAN MOBILE Kurirs

State machine of a kurir's working day:
1. PENDING: kurir (checked in) enters total / COD / non-COD, then scans each resi
2. IN_PROGRESS: batch complete, every package is in transit
3. Each package is delivered with a photo + recipient name (or reverted)
4. COMPLETED: finish day, undelivered packages go to pending_return
   and are handed to a hub leader with a photo
"""

import logging
import os
import uuid
from datetime import date
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.core.exceptions import PermissionDenied
from django.db import IntegrityError, transaction
from django.utils import timezone

from attendance.services import AttendanceService
from core.greeting import random_quote
from core.models import User, UserRole
from logistics.models import KurirDailyTask, PackageItem, PackageStatus, TaskStatus

logger = logging.getLogger(__name__)


class PackageNotFound(ValueError):
    """No package with this resi in the expected state."""


def _file_name(upload, stem: str) -> str:
    extension = os.path.splitext(getattr(upload, 'name', '') or '')[1] or '.jpg'
    return f"{stem}_{uuid.uuid4().hex[:8]}{extension}"


def _file_url(field) -> Optional[str]:
    return field.url if field else None


def normalize_resi(tracking_number: str) -> str:
    return (tracking_number or '').strip().upper()


def serialize_package(package: PackageItem) -> Dict[str, Any]:
    return {
        'id': package.id,
        'tracking_number': package.tracking_number,
        'status': package.status,
        'is_cod': package.is_cod,
        'recipient_name': package.recipient_name,
        'delivery_proof_photo_url': _file_url(package.delivery_proof_photo),
        'return_proof_photo_url': _file_url(package.return_proof_photo),
        'return_lead_receiver_name': package.return_lead_receiver_name,
        'delivered_at': package.delivered_at.isoformat() if package.delivered_at else None,
        'last_update_time': package.last_update_time.isoformat() if package.last_update_time else None,
    }


def serialize_task(task: KurirDailyTask) -> Dict[str, Any]:
    return {
        'id': task.id,
        'date': task.date.isoformat(),
        'kurir_id': task.kurir.employee_id,
        'kurir_name': task.kurir.full_name,
        'total_packages': task.total_packages,
        'cod_packages': task.cod_packages,
        'non_cod_packages': task.non_cod_packages,
        'task_status': task.task_status,
        'final_delivered_count': task.final_delivered_count,
        'final_pending_return_count': task.final_pending_return_count,
        'return_proof_photo_url': _file_url(task.return_proof_photo),
        'return_lead_receiver_name': task.return_lead_receiver_name,
        'started_at': task.started_at.isoformat() if task.started_at else None,
        'finished_at': task.finished_at.isoformat() if task.finished_at else None,
    }


def package_counts(task: KurirDailyTask) -> Dict[str, int]:
    packages = list(task.packages.all())
    counts = {status: 0 for status in PackageStatus.values}
    for package in packages:
        counts[package.status] += 1
    cod_scanned = sum(1 for p in packages if p.is_cod)
    return {
        'scanned': len(packages),
        'cod_scanned': cod_scanned,
        'non_cod_scanned': len(packages) - cod_scanned,
        **counts,
    }


class DailyTaskService:
    """
    Kurir daily task operations.

    Every mutation re-reads the task under a row lock.
    """

    @staticmethod
    def max_daily_packages() -> int:
        return getattr(settings, 'MAX_DAILY_PACKAGES', 200)

    @staticmethod
    def _lock(task: KurirDailyTask) -> KurirDailyTask:
        return KurirDailyTask.objects.select_for_update().select_related('kurir').get(pk=task.pk)

    @staticmethod
    def _require_status(task: KurirDailyTask, expected: str):
        if task.task_status == expected:
            return
        if task.task_status == TaskStatus.COMPLETED:
            raise ValueError("Tugas hari ini sudah selesai dan tidak dapat diubah.")
        if expected == TaskStatus.PENDING:
            raise ValueError("Pengantaran sudah dimulai. Daftar paket tidak dapat diubah.")
        raise ValueError("Pengantaran belum dimulai.")

    @staticmethod
    def get_task(kurir: User, on_date: Optional[date] = None) -> Optional[KurirDailyTask]:
        on_date = on_date or timezone.localdate()
        return KurirDailyTask.objects.select_related('kurir').filter(kurir=kurir, date=on_date).first()

    # ===========================================
    # INTAKE
    # ===========================================

    @staticmethod
    @transaction.atomic
    def submit_daily_input(kurir: User, total: int, cod: int, non_cod: int,
                           on_date: Optional[date] = None) -> KurirDailyTask:
        """
        Create (or correct while still scanning) today's package counts.

        Raises:
            ValueError: not checked in, invalid counts, or task already locked
        """
        if kurir.role != UserRole.KURIR:
            raise PermissionDenied("Hanya Kurir yang dapat menginput paket harian.")

        on_date = on_date or timezone.localdate()
        if not AttendanceService.is_checked_in(kurir, on_date):
            raise ValueError("Anda harus check-in terlebih dahulu.")

        max_packages = DailyTaskService.max_daily_packages()
        if total < 1:
            raise ValueError("Total paket minimal 1.")
        if total > max_packages:
            raise ValueError(f"Total paket maksimal {max_packages}.")
        if cod < 0 or non_cod < 0:
            raise ValueError("Jumlah paket tidak boleh negatif.")
        if cod + non_cod != total:
            raise ValueError("Jumlah paket COD dan Non-COD harus sama dengan Total Paket.")

        task = KurirDailyTask.objects.select_for_update().filter(kurir=kurir, date=on_date).first()
        if task is None:
            try:
                with transaction.atomic():
                    task = KurirDailyTask.objects.create(
                        kurir=kurir,
                        date=on_date,
                        total_packages=total,
                        cod_packages=cod,
                        non_cod_packages=non_cod,
                    )
            except IntegrityError:
                raise ValueError("Input paket hari ini sudah tersimpan. Muat ulang halaman.")
            logger.info(
                f"[DAILY_TASK] {kurir.employee_id} {on_date}: "
                f"{total} paket ({cod} COD / {non_cod} non-COD)"
            )
            return task

        DailyTaskService._require_status(task, TaskStatus.PENDING)
        counts = package_counts(task)
        if counts['scanned'] > total:
            raise ValueError(
                f"Sudah ada {counts['scanned']} paket di-scan, total tidak boleh lebih kecil."
            )
        if counts['cod_scanned'] > cod or counts['non_cod_scanned'] > non_cod:
            raise ValueError("Jumlah COD/Non-COD lebih kecil dari paket yang sudah di-scan.")

        task.total_packages = total
        task.cod_packages = cod
        task.non_cod_packages = non_cod
        task.save(update_fields=['total_packages', 'cod_packages', 'non_cod_packages', 'updated_at'])
        logger.info(f"[DAILY_TASK] {kurir.employee_id} {on_date}: input corrected to {total} paket")
        return task

    @staticmethod
    @transaction.atomic
    def add_package(task: KurirDailyTask, tracking_number: str, is_cod: Optional[bool] = None) -> PackageItem:
        """
        Register a scanned resi.

        is_cod=None picks COD while the COD quota is not filled yet.
        """
        task = DailyTaskService._lock(task)
        DailyTaskService._require_status(task, TaskStatus.PENDING)

        resi = normalize_resi(tracking_number)
        if not resi:
            raise ValueError("Nomor resi tidak boleh kosong.")
        if task.packages.filter(tracking_number=resi).exists():
            raise ValueError("Nomor resi ini sudah ada dalam daftar.")

        counts = package_counts(task)
        if counts['scanned'] >= task.total_packages:
            raise ValueError("Jumlah paket sudah mencapai total yang diinput.")

        if is_cod is None:
            is_cod = counts['cod_scanned'] < task.cod_packages
        if is_cod and counts['cod_scanned'] >= task.cod_packages:
            raise ValueError("Kuota paket COD sudah terpenuhi.")
        if not is_cod and counts['non_cod_scanned'] >= task.non_cod_packages:
            raise ValueError("Kuota paket Non-COD sudah terpenuhi.")

        package = PackageItem.objects.create(task=task, tracking_number=resi, is_cod=is_cod)
        logger.info(f"[DAILY_TASK] {task.kurir.employee_id} scanned {resi} ({'COD' if is_cod else 'non-COD'})")
        return package

    @staticmethod
    @transaction.atomic
    def remove_package(task: KurirDailyTask, tracking_number: str):
        task = DailyTaskService._lock(task)
        DailyTaskService._require_status(task, TaskStatus.PENDING)

        deleted, _ = task.packages.filter(tracking_number=normalize_resi(tracking_number)).delete()
        if not deleted:
            raise PackageNotFound("Resi tidak ditemukan dalam daftar paket.")
        logger.info(f"[DAILY_TASK] {task.kurir.employee_id} removed {normalize_resi(tracking_number)}")

    @staticmethod
    @transaction.atomic
    def start_delivery(task: KurirDailyTask) -> KurirDailyTask:
        """Complete batch -> every package in transit."""
        task = DailyTaskService._lock(task)
        DailyTaskService._require_status(task, TaskStatus.PENDING)

        scanned = task.packages.count()
        if scanned != task.total_packages:
            raise ValueError(
                f"Jumlah paket yang di-scan ({scanned}) belum sesuai total ({task.total_packages})."
            )

        now = timezone.now()
        task.packages.update(status=PackageStatus.IN_TRANSIT, last_update_time=now)
        task.task_status = TaskStatus.IN_PROGRESS
        task.started_at = now
        task.save(update_fields=['task_status', 'started_at', 'updated_at'])

        logger.info(f"[DAILY_TASK] {task.kurir.employee_id} started delivery of {scanned} paket")
        return task

    # ===========================================
    # DELIVERY
    # ===========================================

    @staticmethod
    def find_in_transit_package(task: KurirDailyTask, tracking_number: str) -> PackageItem:
        """Scan lookup during delivery."""
        package = task.packages.filter(
            tracking_number=normalize_resi(tracking_number),
            status=PackageStatus.IN_TRANSIT,
        ).first()
        if package is None:
            raise PackageNotFound("Resi tidak ditemukan di daftar paket yang sedang diantar.")
        return package

    @staticmethod
    @transaction.atomic
    def record_delivery(task: KurirDailyTask, tracking_number: str, photo, recipient_name: str) -> PackageItem:
        """
        Proof of delivery: photo + recipient name.

        Raises:
            ValueError: missing proof, task not in progress
            PackageNotFound: resi not in transit
        """
        task = DailyTaskService._lock(task)
        DailyTaskService._require_status(task, TaskStatus.IN_PROGRESS)

        recipient_name = (recipient_name or '').strip()
        if not recipient_name:
            raise ValueError("Harap isi nama penerima paket.")
        if not photo:
            raise ValueError("Harap ambil foto bukti pengiriman.")

        package = DailyTaskService.find_in_transit_package(task, tracking_number)
        package.delivery_proof_photo.save(_file_name(photo, package.tracking_number), photo, save=False)
        package.recipient_name = recipient_name
        package.status = PackageStatus.DELIVERED
        package.delivered_at = timezone.now()
        package.save()

        logger.info(f"[DAILY_TASK] {task.kurir.employee_id} delivered {package.tracking_number} to {recipient_name}")
        return package

    @staticmethod
    @transaction.atomic
    def revert_delivery(task: KurirDailyTask, tracking_number: str) -> PackageItem:
        """Delete the proof, the package goes back in transit."""
        task = DailyTaskService._lock(task)
        DailyTaskService._require_status(task, TaskStatus.IN_PROGRESS)

        package = task.packages.filter(
            tracking_number=normalize_resi(tracking_number),
            status=PackageStatus.DELIVERED,
        ).first()
        if package is None:
            raise PackageNotFound("Paket terkirim dengan resi ini tidak ditemukan.")

        if package.delivery_proof_photo:
            package.delivery_proof_photo.delete(save=False)
        package.delivery_proof_photo = None
        package.recipient_name = ''
        package.delivered_at = None
        package.status = PackageStatus.IN_TRANSIT
        package.save()

        logger.info(f"[DAILY_TASK] {task.kurir.employee_id} reverted delivery of {package.tracking_number}")
        return package

    @staticmethod
    @transaction.atomic
    def finish_day(task: KurirDailyTask, return_photo=None, lead_receiver_name: str = '') -> Dict[str, Any]:
        """
        Close the day.

        Packages still in transit become pending_return; they need the
        return handover photo and the name of the receiving leader.
        """
        task = DailyTaskService._lock(task)
        DailyTaskService._require_status(task, TaskStatus.IN_PROGRESS)

        remaining = task.packages.filter(status=PackageStatus.IN_TRANSIT)
        remaining_count = remaining.count()
        lead_receiver_name = (lead_receiver_name or '').strip()

        if remaining_count:
            if not return_photo:
                raise ValueError("Harap upload foto bukti pengembalian paket yang tidak terkirim.")
            if not lead_receiver_name:
                raise ValueError("Harap isi nama leader yang menerima paket retur.")

            task.return_proof_photo.save(
                _file_name(return_photo, f"retur_{task.kurir.employee_id}_{task.date:%Y%m%d}"),
                return_photo,
                save=False,
            )
            task.return_lead_receiver_name = lead_receiver_name
            remaining.update(
                status=PackageStatus.PENDING_RETURN,
                return_proof_photo=task.return_proof_photo.name,
                return_lead_receiver_name=lead_receiver_name,
                last_update_time=timezone.now(),
            )

        task.final_delivered_count = task.packages.filter(status=PackageStatus.DELIVERED).count()
        task.final_pending_return_count = task.packages.filter(
            status__in=[PackageStatus.PENDING_RETURN, PackageStatus.RETURNED]
        ).count()
        task.task_status = TaskStatus.COMPLETED
        task.finished_at = timezone.now()
        task.save()

        logger.info(
            f"[DAILY_TASK] {task.kurir.employee_id} finished {task.date}: "
            f"{task.final_delivered_count} terkirim, {task.final_pending_return_count} retur"
        )
        return {
            'task': task,
            'delivered': task.final_delivered_count,
            'pending_return': task.final_pending_return_count,
            'total': task.total_packages,
        }

    @staticmethod
    @transaction.atomic
    def confirm_return(package: PackageItem, confirmed_by: User) -> PackageItem:
        """Hub side: a pending_return package has been received back."""
        if not confirmed_by.is_manager:
            raise PermissionDenied("Hanya PIC atau Admin yang dapat mengonfirmasi retur.")

        package = PackageItem.objects.select_for_update().get(pk=package.pk)
        if package.status != PackageStatus.PENDING_RETURN:
            raise ValueError("Paket ini tidak dalam status menunggu retur.")

        package.status = PackageStatus.RETURNED
        package.returned_at = timezone.now()
        package.returned_confirmed_by = confirmed_by
        package.save()

        logger.info(f"[DAILY_TASK] Return of {package.tracking_number} confirmed by {confirmed_by.employee_id}")
        return package

    # ===========================================
    # READ MODELS
    # ===========================================

    @staticmethod
    def get_dashboard_data(kurir: User, on_date: Optional[date] = None) -> Dict[str, Any]:
        """Kurir dashboard: check-in state, task, packages, proof photos, quote."""
        on_date = on_date or timezone.localdate()
        task = DailyTaskService.get_task(kurir, on_date)

        data = {
            'date': on_date.isoformat(),
            'checked_in': AttendanceService.is_checked_in(kurir, on_date),
            'quote': random_quote(),
            'task': None,
            'packages': [],
            'counts': None,
            'delivery_started': False,
            'day_finished': False,
            'photo_map': {},
        }
        if task is None:
            return data

        packages = list(task.packages.all())
        data.update({
            'task': serialize_task(task),
            'packages': [serialize_package(p) for p in packages],
            'counts': package_counts(task),
            'delivery_started': task.task_status != TaskStatus.PENDING,
            'day_finished': task.task_status == TaskStatus.COMPLETED,
            'photo_map': {
                p.tracking_number: p.delivery_proof_photo.url
                for p in packages
                if p.status == PackageStatus.DELIVERED and p.delivery_proof_photo
            },
        })
        return data

    @staticmethod
    def get_task_history(kurir: User, on_date: date, search: str = '') -> Dict[str, Any]:
        """Delivery proofs of one day, delivered packages filtered by resi."""
        task = DailyTaskService.get_task(kurir, on_date)
        if task is None:
            return {'date': on_date.isoformat(), 'task': None, 'delivered_packages': []}

        delivered = task.packages.filter(status=PackageStatus.DELIVERED)
        if search:
            delivered = delivered.filter(tracking_number__icontains=search.strip())
        return {
            'date': on_date.isoformat(),
            'task': serialize_task(task),
            'delivered_packages': [serialize_package(p) for p in delivered],
        }

    @staticmethod
    def get_work_summaries(on_date: Optional[date] = None, kurirs=None) -> List[Dict[str, Any]]:
        """Completed tasks of the day, newest first."""
        on_date = on_date or timezone.localdate()
        tasks = KurirDailyTask.objects.filter(
            date=on_date, task_status=TaskStatus.COMPLETED
        ).select_related('kurir').order_by('-finished_at')
        if kurirs is not None:
            tasks = tasks.filter(kurir__in=kurirs)

        return [
            {
                'id': task.id,
                'kurir_id': task.kurir.employee_id,
                'kurir_name': task.kurir.full_name,
                'hub_location': task.kurir.work_location,
                'timestamp': timezone.localtime(task.finished_at).isoformat() if task.finished_at else None,
                'total_packages_assigned': task.total_packages,
                'packages_delivered': task.final_delivered_count or 0,
                'packages_pending_or_returned': task.final_pending_return_count or 0,
            }
            for task in tasks
        ]
