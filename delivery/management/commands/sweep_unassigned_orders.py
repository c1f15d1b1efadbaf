"""Management command to assign drivers to orders still waiting for one"""
from django.core.management.base import BaseCommand


class Command(BaseCommand):
    help = 'Assign drivers to preparing/ready orders that have none (use when Celery beat is not running)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--limit',
            type=int,
            default=None,
            help='Maximum number of orders to process',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Only report how many orders are waiting',
        )

    def handle(self, *args, **options):
        from delivery.assignment import sweep_unassigned_orders

        result = sweep_unassigned_orders(limit=options['limit'], dry_run=options['dry_run'])

        if options['dry_run']:
            self.stdout.write(f"{result['checked']} orders waiting for a driver (dry run, nothing assigned)")
            return

        self.stdout.write(f"Checked {result['checked']} unassigned orders")
        if result['assigned']:
            self.stdout.write(self.style.SUCCESS(f"✓ Assigned drivers to {result['assigned']} orders"))
        if result['unassigned']:
            self.stdout.write(self.style.WARNING(f"⚠ {result['unassigned']} orders still have no eligible driver"))
