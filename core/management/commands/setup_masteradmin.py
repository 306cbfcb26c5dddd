"""
Create the first MasterAdmin account.

Usage:
    python manage.py setup_masteradmin --employee-id MASTERADMIN01 \
        --full-name "Master Admin" --email admin@insan.id
"""
import getpass

from django.core.management.base import BaseCommand, CommandError

from core.accounts import AccountService


class Command(BaseCommand):
    help = 'Create the first MasterAdmin (only when none exists)'

    def add_arguments(self, parser):
        parser.add_argument('--employee-id', required=True)
        parser.add_argument('--full-name', required=True)
        parser.add_argument('--email', required=True)
        parser.add_argument('--password', help='Prompted when omitted')

    def handle(self, *args, **options):
        password = options['password'] or getpass.getpass('Password: ')

        try:
            user = AccountService.setup_master_admin(
                employee_id=options['employee_id'],
                full_name=options['full_name'],
                email=options['email'],
                password=password,
            )
        except ValueError as e:
            raise CommandError(str(e))

        self.stdout.write(self.style.SUCCESS(
            f'✅ MasterAdmin {user.full_name} ({user.employee_id}) dibuat. Silakan login.'
        ))
