"""
Management command to seed common handset brands for a user
"""
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from imeistock.catalog.models import Brand
from imeistock.catalog.services import ReferenceService

User = get_user_model()

DEFAULT_BRANDS = [
    'APPLE',
    'SAMSUNG',
    'ONEPLUS',
    'XIAOMI',
    'REDMI',
    'POCO',
    'REALME',
    'OPPO',
    'VIVO',
    'IQOO',
    'MOTOROLA',
    'NOKIA',
    'GOOGLE',
    'NOTHING',
    'HONOR',
    'INFINIX',
    'TECNO',
    'ITEL',
    'LAVA',
    'MICROMAX',
    'LG',
    'SONY',
    'LENOVO',
    'ASUS',
]


class Command(BaseCommand):
    help = "Adds common handset brands to a user's reference data"

    def add_arguments(self, parser):
        parser.add_argument('username', type=str, help='Owner of the seeded brands')
        parser.add_argument(
            '--brands',
            nargs='+',
            help='Brands to add instead of the built-in list',
        )
        parser.add_argument(
            '--clear',
            action='store_true',
            help="Delete the user's existing brands before adding new ones",
        )

    def handle(self, *args, **options):
        try:
            user = User.objects.get(username=options['username'])
        except User.DoesNotExist:
            raise CommandError(f"User '{options['username']}' does not exist")

        brands = options['brands'] or DEFAULT_BRANDS
        service = ReferenceService(user)

        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(self.style.SUCCESS(f"SEEDING BRANDS FOR {user.username}"))
        self.stdout.write(self.style.SUCCESS("=" * 80))

        if options['clear']:
            self.stdout.write(self.style.WARNING("Clearing existing brands..."))
            for brand in Brand.objects.active().owned_by(user):
                service.delete('brand', brand.pk)
            self.stdout.write(self.style.SUCCESS("Existing brands cleared."))

        created_count = 0
        skipped_count = 0

        for brand_name in brands:
            brand_name = (brand_name or '').strip()
            if not brand_name:
                continue

            if service.queryset('brand').filter(name__iexact=brand_name).exists():
                skipped_count += 1
                self.stdout.write(self.style.WARNING(f"  Skipped (already exists): {brand_name}"))
                continue

            service.ensure('brand', brand_name)
            created_count += 1
            self.stdout.write(self.style.SUCCESS(f"  Created: {brand_name}"))

        self.stdout.write(self.style.SUCCESS("\n" + "=" * 80))
        self.stdout.write(self.style.SUCCESS("SUMMARY"))
        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(f"Brands Created: {created_count}")
        self.stdout.write(f"Brands Skipped (already exist): {skipped_count}")
        self.stdout.write(f"Total Brands for {user.username}: {service.queryset('brand').count()}")
        self.stdout.write(self.style.SUCCESS("=" * 80))
