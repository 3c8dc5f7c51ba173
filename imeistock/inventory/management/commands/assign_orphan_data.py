"""
Management command to hand owner-less rows to a user
"""
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from imeistock.core.exceptions import ServiceError
from imeistock.inventory.assignment import assign_orphan_data, orphan_counts

User = get_user_model()


class Command(BaseCommand):
    help = "Assigns entries and reference data without an owner to a user"

    def add_arguments(self, parser):
        parser.add_argument(
            '--username',
            type=str,
            help='Target user (default: the first registered user)',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Only show how many rows have no owner',
        )

    def handle(self, *args, **options):
        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(self.style.SUCCESS("ORPHANED DATA"))
        self.stdout.write(self.style.SUCCESS("=" * 80))
        for table, counts in orphan_counts().items():
            self.stdout.write(f"{table}: {counts['orphaned']} of {counts['total']} without owner")

        if options['dry_run']:
            self.stdout.write(self.style.WARNING("Dry run: nothing assigned."))
            return

        user = None
        if options['username']:
            try:
                user = User.objects.get(username=options['username'])
            except User.DoesNotExist:
                raise CommandError(f"User '{options['username']}' does not exist")

        try:
            result = assign_orphan_data(user)
        except ServiceError as e:
            raise CommandError(e.message)

        self.stdout.write(self.style.SUCCESS(f"\nAssigned to {result['username']}:"))
        for table, count in result['assigned'].items():
            self.stdout.write(f"  {table}: {count}")
        self.stdout.write(self.style.SUCCESS("=" * 80))
