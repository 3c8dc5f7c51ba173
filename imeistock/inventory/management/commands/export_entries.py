"""
Management command to export a user's entries to a CSV file
"""
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from imeistock.inventory.csv_io import EXPORT_FILENAME, write_entries_csv
from imeistock.inventory.services import get_entry_service

User = get_user_model()


class Command(BaseCommand):
    help = "Exports the entries visible to a user as CSV"

    def add_arguments(self, parser):
        parser.add_argument('username', type=str, help='User whose entries are exported')
        parser.add_argument(
            '--output',
            type=str,
            default=EXPORT_FILENAME,
            help=f'Path of the CSV file to write (default: {EXPORT_FILENAME})',
        )

    def handle(self, *args, **options):
        try:
            user = User.objects.get(username=options['username'])
        except User.DoesNotExist:
            raise CommandError(f"User '{options['username']}' does not exist")

        rows = get_entry_service(user).rows()
        if not rows:
            raise CommandError("No data to export.")

        with open(options['output'], 'w', encoding='utf-8', newline='') as f:
            write_entries_csv(rows, f)

        self.stdout.write(self.style.SUCCESS(f"Exported {len(rows)} entries to {options['output']}"))
