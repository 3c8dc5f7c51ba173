"""
Entry operations for the database and for the local JSON document.

Views call get_entry_service(user) and never touch either store directly.
"""
import logging
from datetime import date

from django.conf import settings
from django.db import IntegrityError, transaction

from imeistock.catalog.services import ReferenceLookup, ReferenceService, LocalReferenceService
from imeistock.core.exceptions import DuplicateEntry, EmptyImport, EntryNotFound, ValidationFailed
from imeistock.core.local_store import LocalDocumentStore
from imeistock.core.utils import sanitize_user_input, soft_delete
from .csv_io import parse_amount, parse_date
from .filters import EntryFilter
from .imei import is_valid_imei, normalize_imei
from .models import Entry
from .serializers import EntrySerializer
from .stock import database_stock_summary, summarize_rows

logger = logging.getLogger('imeistock.inventory')

NAME_FIELDS = ('brand', 'model', 'seller', 'booking_person')
VALUE_FIELDS = ('buyer', 'inward_date', 'inward_amount', 'outward_date', 'outward_amount')

NO_DATA_MESSAGE = 'No data found.'
NO_VALID_ROWS_MESSAGE = 'No valid entries to import. Every row is missing an IMEI or already exists.'


def clean_imei(value):
    imei = normalize_imei(value)
    if not imei:
        raise ValidationFailed('IMEI is required.')
    if settings.INVENTORY_STRICT_IMEI and not is_valid_imei(imei):
        raise ValidationFailed(f'"{imei}" is not a valid 15-digit IMEI.')
    return imei


def coerce_row(row):
    """Normalise an incoming row (names, raw dates and amounts) to entry fields"""
    return {
        'imei': normalize_imei(row.get('imei')),
        'brand': sanitize_user_input(row.get('brand')),
        'model': sanitize_user_input(row.get('model')),
        'seller': sanitize_user_input(row.get('seller')),
        'booking_person': sanitize_user_input(row.get('booking_person')),
        'buyer': sanitize_user_input(row.get('buyer')),
        'inward_date': parse_date(row.get('inward_date')),
        'inward_amount': parse_amount(row.get('inward_amount')),
        'outward_date': parse_date(row.get('outward_date')),
        'outward_amount': parse_amount(row.get('outward_amount')),
    }


def split_new_rows(rows, existing_imeis):
    """
    Keep rows whose IMEI is present and not yet used, including earlier
    rows of the same batch. Returns (new_rows, skipped_count).
    """
    seen = set(existing_imeis)
    new_rows = []
    skipped = 0
    for row in rows:
        imei = row['imei']
        if not imei or imei in seen:
            skipped += 1
            continue
        seen.add(imei)
        new_rows.append(row)
    return new_rows, skipped


def distinct_names(rows, field):
    names = {}
    for row in rows:
        name = row.get(field)
        if name and name.lower() not in names:
            names[name.lower()] = name
    return list(names.values())


def distinct_models(rows):
    pairs = {}
    for row in rows:
        if row.get('model'):
            key = ((row.get('brand') or '').lower(), row['model'].lower())
            pairs.setdefault(key, (row.get('brand') or '', row['model']))
    return list(pairs.values())


class EntryService:
    """Entries stored in the database"""

    def __init__(self, user):
        self.user = user

    def queryset(self):
        return Entry.objects.visible_to(self.user).select_related(
            'user', 'brand', 'model', 'seller', 'booking_person',
        )

    def own_queryset(self):
        return self.queryset().filter(user=self.user)

    @staticmethod
    def as_row(entry):
        return {
            'imei': entry.imei,
            'brand': entry.brand.name if entry.brand else '',
            'model': entry.model.name if entry.model else '',
            'seller': entry.seller.name if entry.seller else '',
            'booking_person': entry.booking_person.name if entry.booking_person else '',
            'buyer': entry.buyer,
            'inward_date': entry.inward_date,
            'inward_amount': entry.inward_amount,
            'outward_date': entry.outward_date,
            'outward_amount': entry.outward_amount,
        }

    def list(self, filters=None):
        queryset = self.queryset()
        if filters:
            queryset = EntryFilter(filters, queryset=queryset).qs
        return EntrySerializer(queryset, many=True).data

    def rows(self, filters=None):
        queryset = self.queryset()
        if filters:
            queryset = EntryFilter(filters, queryset=queryset).qs
        return [self.as_row(entry) for entry in queryset]

    def _get(self, imei):
        imei = normalize_imei(imei)
        # Own entry first so an admin editing by IMEI hits their own row
        entry = self.own_queryset().filter(imei=imei).first() or self.queryset().filter(imei=imei).first()
        if entry is None:
            raise EntryNotFound(NO_DATA_MESSAGE)
        return entry

    def get(self, imei):
        return EntrySerializer(self._get(imei)).data

    def _apply(self, entry, data, lookup):
        entry.brand = lookup.resolve('brand', data.get('brand'))
        entry.model = lookup.resolve('model', data.get('model'), data.get('brand'))
        entry.seller = lookup.resolve('seller', data.get('seller'))
        entry.booking_person = lookup.resolve('booking_person', data.get('booking_person'))
        entry.buyer = sanitize_user_input(data.get('buyer'))
        entry.inward_date = data.get('inward_date')
        entry.inward_amount = data.get('inward_amount')
        entry.outward_date = data.get('outward_date')
        entry.outward_amount = data.get('outward_amount')

    def add(self, data):
        imei = clean_imei(data.get('imei'))
        if Entry.objects.active().filter(user=self.user, imei=imei).exists():
            raise DuplicateEntry(f'An entry with IMEI "{imei}" already exists.')

        entry = Entry(user=self.user, imei=imei)
        self._apply(entry, data, ReferenceLookup(self.user))
        try:
            with transaction.atomic():
                entry.save()
        except IntegrityError:
            raise DuplicateEntry(f'An entry with IMEI "{imei}" already exists.')
        logger.info(f"User {self.user.pk} added entry {imei} (ID: {entry.pk})")
        return EntrySerializer(entry).data

    def update(self, imei, data):
        entry = self._get(imei)
        owner = entry.user or self.user
        new_imei = clean_imei(data.get('imei') or entry.imei)
        if new_imei != entry.imei:
            clash = Entry.objects.active().filter(user=entry.user, imei=new_imei).exclude(pk=entry.pk)
            if clash.exists():
                raise DuplicateEntry(f'An entry with IMEI "{new_imei}" already exists.')
            entry.imei = new_imei

        self._apply(entry, data, ReferenceLookup(owner))
        try:
            with transaction.atomic():
                entry.save()
        except IntegrityError:
            raise DuplicateEntry(f'An entry with IMEI "{new_imei}" already exists.')
        logger.info(f"User {self.user.pk} updated entry {entry.imei} (ID: {entry.pk})")
        return EntrySerializer(entry).data

    def delete(self, imei):
        entry = self._get(imei)
        soft_delete(entry)
        logger.info(f"User {self.user.pk} deleted entry {entry.imei} (ID: {entry.pk})")

    def reset(self):
        """Hard-delete every entry the user owns"""
        deleted, _ = Entry.objects.filter(user=self.user).delete()
        logger.warning(f"User {self.user.pk} reset their inventory ({deleted} entries removed)")
        return deleted

    def bulk_add(self, rows):
        rows = [coerce_row(row) for row in rows]
        existing = Entry.objects.active().filter(user=self.user).values_list('imei', flat=True)
        new_rows, skipped = split_new_rows(rows, existing)
        if not new_rows:
            raise EmptyImport(NO_VALID_ROWS_MESSAGE)

        references = ReferenceService(self.user)
        # Brands before models, one at a time
        for name in distinct_names(new_rows, 'brand'):
            references.ensure('brand', name)
        for brand_name, model_name in distinct_models(new_rows):
            references.ensure('model', model_name, brand_name=brand_name)
        for name in distinct_names(new_rows, 'seller'):
            references.ensure('seller', name)
        for name in distinct_names(new_rows, 'booking_person'):
            references.ensure('booking_person', name)

        lookup = ReferenceLookup(self.user)
        entries = []
        for row in new_rows:
            entry = Entry(user=self.user, imei=row['imei'])
            self._apply(entry, row, lookup)
            entries.append(entry)

        with transaction.atomic():
            Entry.objects.bulk_create(entries)

        if skipped:
            logger.warning(f"Bulk import for user {self.user.pk} skipped {skipped} row(s)")
        logger.info(f"User {self.user.pk} bulk imported {len(entries)} entries")
        return {'created': len(entries), 'skipped': skipped}

    def stock_summary(self, brand=None, model=None, booking_person=None):
        return database_stock_summary(
            Entry.objects.active().filter(user=self.user),
            brand=brand, model=model, booking_person=booking_person,
        )


class LocalEntryService:
    """Entries kept by name in the user's local JSON document"""

    def __init__(self, user, store=None):
        self.user = user
        self.store = store or LocalDocumentStore(user)

    @staticmethod
    def _load_row(row):
        loaded = dict(row)
        for field in ('inward_date', 'outward_date'):
            loaded[field] = parse_date(row.get(field))
        for field in ('inward_amount', 'outward_amount'):
            loaded[field] = parse_amount(row.get(field))
        return loaded

    @staticmethod
    def _dump_row(row):
        dumped = dict(row)
        for field in ('inward_date', 'outward_date'):
            value = row.get(field)
            dumped[field] = value.isoformat() if isinstance(value, date) else None
        for field in ('inward_amount', 'outward_amount'):
            value = row.get(field)
            dumped[field] = str(value) if value is not None else None
        return dumped

    @staticmethod
    def present(row):
        status = None
        if row.get('inward_date') and row.get('outward_date'):
            status = Entry.STATUS_SOLD
        elif row.get('inward_date'):
            status = Entry.STATUS_IN_STOCK
        return {**row, 'status': status}

    def rows(self, filters=None):
        rows = [self._load_row(row) for row in self.store.load()['entries']]
        if filters:
            rows = [row for row in rows if self._matches(row, filters)]
        return rows

    @staticmethod
    def _matches(row, filters):
        def contains(value, query):
            return query.lower() in (value or '').lower()

        def display(value):
            return value.strftime('%d/%m/%Y') if value else ''

        query = (filters.get('imei_or_date') or '').strip()
        if query and not (contains(row['imei'], query) or contains(display(row['inward_date']), query)
                          or contains(display(row['outward_date']), query)):
            return False
        query = (filters.get('brand_or_model') or '').strip()
        if query and not (contains(row.get('brand'), query) or contains(row.get('model'), query)):
            return False
        query = (filters.get('person_or_buyer') or '').strip()
        if query and not (contains(row.get('booking_person'), query) or contains(row.get('buyer'), query)):
            return False
        for field in ('brand', 'model', 'booking_person'):
            wanted = (filters.get(field) or '').strip()
            if wanted and (row.get(field) or '').lower() != wanted.lower():
                return False
        status = filters.get('status')
        if status and LocalEntryService.present(row)['status'] != status:
            return False
        return True

    def list(self, filters=None):
        return [self.present(row) for row in self.rows(filters)]

    def get(self, imei):
        imei = normalize_imei(imei)
        for row in self.rows():
            if row['imei'] == imei:
                return self.present(row)
        raise EntryNotFound(NO_DATA_MESSAGE)

    def add(self, data):
        imei = clean_imei(data.get('imei'))
        document = self.store.load()
        if any(row['imei'] == imei for row in document['entries']):
            raise DuplicateEntry(f'An entry with IMEI "{imei}" already exists.')
        row = coerce_row({**data, 'imei': imei})
        document['entries'].append(self._dump_row(row))
        self.store.save(document)
        return self.present(row)

    def update(self, imei, data):
        imei = normalize_imei(imei)
        document = self.store.load()
        for index, stored in enumerate(document['entries']):
            if stored['imei'] != imei:
                continue
            new_imei = clean_imei(data.get('imei') or imei)
            if new_imei != imei and any(other['imei'] == new_imei for other in document['entries']):
                raise DuplicateEntry(f'An entry with IMEI "{new_imei}" already exists.')
            row = coerce_row({**data, 'imei': new_imei})
            document['entries'][index] = self._dump_row(row)
            self.store.save(document)
            return self.present(row)
        raise EntryNotFound(NO_DATA_MESSAGE)

    def delete(self, imei):
        imei = normalize_imei(imei)
        document = self.store.load()
        remaining = [row for row in document['entries'] if row['imei'] != imei]
        if len(remaining) == len(document['entries']):
            raise EntryNotFound(NO_DATA_MESSAGE)
        document['entries'] = remaining
        self.store.save(document)

    def reset(self):
        document = self.store.load()
        deleted = len(document['entries'])
        document['entries'] = []
        self.store.save(document)
        return deleted

    def bulk_add(self, rows):
        rows = [coerce_row(row) for row in rows]
        document = self.store.load()
        new_rows, skipped = split_new_rows(rows, {row['imei'] for row in document['entries']})
        if not new_rows:
            raise EmptyImport(NO_VALID_ROWS_MESSAGE)

        document['entries'].extend(self._dump_row(row) for row in new_rows)
        self.store.save(document)

        references = LocalReferenceService(self.user, store=self.store)
        for name in distinct_names(new_rows, 'brand'):
            references.ensure('brand', name)
        for brand_name, model_name in distinct_models(new_rows):
            references.ensure('model', model_name, brand_name=brand_name)
        for name in distinct_names(new_rows, 'seller'):
            references.ensure('seller', name)
        for name in distinct_names(new_rows, 'booking_person'):
            references.ensure('booking_person', name)
        return {'created': len(new_rows), 'skipped': skipped}

    def stock_summary(self, brand=None, model=None, booking_person=None):
        return summarize_rows(self.rows(), brand=brand, model=model, booking_person=booking_person)


def get_entry_service(user):
    if settings.INVENTORY_STORE == 'local':
        return LocalEntryService(user)
    return EntryService(user)
