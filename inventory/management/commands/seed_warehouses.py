from django.core.management.base import BaseCommand
from django.db import transaction

from inventory.models import Warehouse
from utils.enums import WarehouseTypeChoices

DEFAULT_WAREHOUSES = [
    ('RM-HOLD', 'Receiving Hold', WarehouseTypeChoices.HOLD),
    ('RM', 'Raw Material Store', WarehouseTypeChoices.RM),
    ('WIP', 'Work In Progress', WarehouseTypeChoices.WIP),
    ('FG', 'Finished Goods Store', WarehouseTypeChoices.FG),
    ('SUB', 'Sub Assembly Store', WarehouseTypeChoices.SUB),
    ('REJECT', 'Rejected Material', WarehouseTypeChoices.REJECT),
]


class Command(BaseCommand):
    help = 'Create the default warehouses (RM-HOLD, RM, WIP, FG, SUB, REJECT)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be done without making changes',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']

        if dry_run:
            self.stdout.write(self.style.WARNING('DRY RUN MODE - No changes will be made'))

        created_count = 0
        with transaction.atomic():
            for code, name, warehouse_type in DEFAULT_WAREHOUSES:
                warehouse, created = Warehouse.objects.get_or_create(
                    code=code,
                    defaults={'name': name, 'warehouse_type': warehouse_type}
                )
                if created:
                    created_count += 1
                    self.stdout.write(self.style.SUCCESS(f'Created warehouse: {warehouse}'))
                else:
                    self.stdout.write(f'Exists: {warehouse}')

            if dry_run:
                transaction.set_rollback(True)

        self.stdout.write(f'Created {created_count} new warehouses')
