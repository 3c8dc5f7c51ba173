"""
Management command to import inventory entries from a CSV file
"""
import os

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from imeistock.core.exceptions import ServiceError
from imeistock.inventory.csv_io import read_entries_csv
from imeistock.inventory.services import get_entry_service

User = get_user_model()


class Command(BaseCommand):
    help = "Imports entries for a user from a CSV file in the export layout"

    def add_arguments(self, parser):
        parser.add_argument('username', type=str, help='Owner of the imported entries')
        parser.add_argument('csv_file', type=str, help='Path to the CSV file')

    def handle(self, *args, **options):
        csv_file = options['csv_file']
        if not os.path.isabs(csv_file):
            csv_file = os.path.normpath(os.path.join(settings.BASE_DIR, csv_file))

        try:
            user = User.objects.get(username=options['username'])
        except User.DoesNotExist:
            raise CommandError(f"User '{options['username']}' does not exist")

        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(self.style.SUCCESS("IMPORTING ENTRIES FROM CSV"))
        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(f"CSV File: {csv_file}")

        if not os.path.exists(csv_file):
            raise CommandError(f"CSV file not found at {csv_file}")

        with open(csv_file, 'r', encoding='utf-8-sig', newline='') as f:
            try:
                rows = read_entries_csv(f)
                result = get_entry_service(user).bulk_add(rows)
            except ServiceError as e:
                raise CommandError(e.message)

        self.stdout.write(self.style.SUCCESS("\n" + "=" * 80))
        self.stdout.write(self.style.SUCCESS("SUMMARY"))
        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(f"Rows Read: {len(rows)}")
        self.stdout.write(f"Entries Created: {result['created']}")
        self.stdout.write(f"Entries Skipped (missing/duplicate IMEI): {result['skipped']}")
        self.stdout.write(self.style.SUCCESS("=" * 80))
