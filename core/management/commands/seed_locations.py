"""
Django management command to seed the Wilayah -> Area -> Hub hierarchy.

Usage:
    docker-compose exec -T web python manage.py seed_locations
"""
from django.core.management.base import BaseCommand
from core.models import Wilayah, Area, Hub


LOCATIONS = {
    'Jabodetabek-Banten': {
        'Jakarta Pusat': ['Hub Thamrin', 'Hub Sudirman'],
        'Jakarta Timur': ['Hub Cawang', 'Hub Rawamangun'],
    },
    'Jawa Barat': {
        'Bandung Kota': ['Hub Bandung Kota', 'Hub Dago'],
    },
}


class Command(BaseCommand):
    help = 'Seed wilayah, area and hub data'

    def handle(self, *args, **options):
        created_count = 0

        for wilayah_name, areas in LOCATIONS.items():
            wilayah, _ = Wilayah.objects.get_or_create(name=wilayah_name)
            for area_name, hubs in areas.items():
                area, _ = Area.objects.get_or_create(wilayah=wilayah, name=area_name)
                for hub_name in hubs:
                    _, created = Hub.objects.get_or_create(area=area, name=hub_name)
                    if created:
                        created_count += 1
                        self.stdout.write(self.style.SUCCESS(f'✅ Dibuat: {hub_name} ({area_name})'))
                    else:
                        self.stdout.write(f'⏭️  Sudah ada: {hub_name} ({area_name})')

        self.stdout.write(self.style.SUCCESS(f'\n🎉 {created_count} hub baru dibuat.'))
