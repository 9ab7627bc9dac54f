"""
Management command to import vendor data from CSV file.

Usage:
python manage.py import_vendors_from_csv path/to/vendors.csv [--dry-run] [--update-existing]

Required header: Name
Optional headers: GST_No, Address, Contact_No, Email, Contact_Person
"""

import csv
import os
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.contrib.auth import get_user_model
from third_party.models import Vendor

User = get_user_model()

OPTIONAL_COLUMNS = {
    'GST_No': 'gst_no',
    'Address': 'address',
    'Contact_No': 'phone',
    'Email': 'email',
    'Contact_Person': 'contact_person',
}


class Command(BaseCommand):
    help = 'Import vendor data from CSV file'

    def add_arguments(self, parser):
        parser.add_argument(
            'csv_file',
            type=str,
            help='Path to the CSV file containing vendor data'
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Run the command without actually saving data to database',
        )
        parser.add_argument(
            '--update-existing',
            action='store_true',
            help='Update existing vendors if they already exist (based on name)',
        )
        parser.add_argument(
            '--created-by',
            type=str,
            help='Username of the user who should be recorded as creator of vendors',
        )

    def handle(self, *args, **options):
        csv_file_path = options['csv_file']
        dry_run = options['dry_run']
        update_existing = options['update_existing']
        created_by_username = options.get('created_by')

        created_by_user = None
        if created_by_username:
            try:
                created_by_user = User.objects.get(username=created_by_username)
            except User.DoesNotExist:
                raise CommandError(f'User "{created_by_username}" does not exist.')

        if not os.path.exists(csv_file_path):
            raise CommandError(f'File "{csv_file_path}" does not exist.')

        created_count = 0
        updated_count = 0
        skipped_count = 0
        error_count = 0

        self.stdout.write(f'Starting import from: {csv_file_path}')
        if dry_run:
            self.stdout.write(self.style.WARNING('DRY RUN MODE - No data will be saved'))

        with open(csv_file_path, 'r', encoding='utf-8') as file:
            reader = csv.DictReader(file)

            if not reader.fieldnames or 'Name' not in reader.fieldnames:
                raise CommandError('Missing required header: Name')

            with transaction.atomic():
                for row_num, row in enumerate(reader, start=2):  # row 1 is header
                    name = (row.get('Name') or '').strip()
                    if not name:
                        self.stdout.write(self.style.ERROR(f'Row {row_num}: Name is required'))
                        error_count += 1
                        continue

                    values = {}
                    for column, field in OPTIONAL_COLUMNS.items():
                        value = (row.get(column) or '').strip()
                        if value:
                            values[field] = value
                    if 'gst_no' in values:
                        values['gst_no'] = values['gst_no'].upper()
                    if 'email' in values:
                        values['email'] = values['email'].lower()

                    vendor = Vendor.objects.filter(name=name).first()

                    if vendor is None:
                        if created_by_user:
                            values['created_by'] = created_by_user
                        if not dry_run:
                            Vendor.objects.create(name=name, **values)
                        self.stdout.write(f'{"[DRY RUN] Would create" if dry_run else "Created"}: {name}')
                        created_count += 1
                    elif update_existing:
                        for field, value in values.items():
                            setattr(vendor, field, value)
                        if not dry_run:
                            vendor.save()
                        self.stdout.write(f'{"[DRY RUN] Would update" if dry_run else "Updated"}: {name}')
                        updated_count += 1
                    else:
                        self.stdout.write(self.style.WARNING(f'Skipped (already exists): {name}'))
                        skipped_count += 1

                if dry_run:
                    transaction.set_rollback(True)

        self.stdout.write('\n' + '=' * 50)
        self.stdout.write('IMPORT SUMMARY:')
        self.stdout.write('=' * 50)
        self.stdout.write(f'Vendors Created: {created_count}')
        self.stdout.write(f'Vendors Updated: {updated_count}')
        self.stdout.write(f'Vendors Skipped: {skipped_count}')
        self.stdout.write(f'Errors: {error_count}')

        if dry_run:
            self.stdout.write(self.style.WARNING('\nDRY RUN COMPLETE - No data was actually saved'))
        else:
            self.stdout.write(self.style.SUCCESS('\nImport completed successfully!'))
