"""Management command to take drivers offline when they stop checking in"""
from django.conf import settings
from django.core.management.base import BaseCommand


class Command(BaseCommand):
    help = 'Set drivers offline and unavailable when last_online is older than the threshold'

    def add_arguments(self, parser):
        parser.add_argument(
            '--threshold-minutes',
            type=int,
            default=getattr(settings, 'DRIVER_OFFLINE_THRESHOLD_MINUTES', 10),
            help='Minutes without a check-in before a driver is taken offline',
        )

    def handle(self, *args, **options):
        from delivery.services import mark_inactive_drivers_offline

        driver_ids = mark_inactive_drivers_offline(options['threshold_minutes'])
        if driver_ids:
            self.stdout.write(self.style.SUCCESS(f"✓ Marked {len(driver_ids)} drivers offline"))
        else:
            self.stdout.write("No inactive drivers found")
