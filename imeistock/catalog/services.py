"""
Reference data operations: list, add, rename, delete, ensure and lookup.

ReferenceService works on the database, LocalReferenceService on the
per-user JSON document. get_reference_service picks one from settings.
"""
import logging

from django.conf import settings
from django.db import IntegrityError, transaction

from imeistock.core.exceptions import DuplicateEntry, ReferenceNotFound, ValidationFailed
from imeistock.core.local_store import LocalDocumentStore
from imeistock.core.utils import sanitize_user_input, soft_delete
from .cache import cache_reference_list, get_cached_reference_list, invalidate_reference_lists
from .filters import DeviceModelFilter
from .models import Brand, DeviceModel, Seller, BookingPerson
from .serializers import BrandSerializer, DeviceModelSerializer, SellerSerializer, BookingPersonSerializer

logger = logging.getLogger(__name__)

REFERENCE_KINDS = ('brand', 'model', 'seller', 'booking_person')

KIND_MODELS = {
    'brand': Brand,
    'model': DeviceModel,
    'seller': Seller,
    'booking_person': BookingPerson,
}

KIND_SERIALIZERS = {
    'brand': BrandSerializer,
    'model': DeviceModelSerializer,
    'seller': SellerSerializer,
    'booking_person': BookingPersonSerializer,
}

KIND_LABELS = {
    'brand': 'Brand',
    'model': 'Model',
    'seller': 'Seller',
    'booking_person': 'Booking person',
}

# Section names, used for lookup maps and local documents
KIND_SECTIONS = {
    'brand': 'brands',
    'model': 'models',
    'seller': 'sellers',
    'booking_person': 'booking_persons',
}


def clean_reference_name(kind, name):
    name = sanitize_user_input(name)
    if not name:
        raise ValidationFailed(f"{KIND_LABELS[kind]} name is required.")
    return name


def duplicate_message(kind, name, brand_name=None):
    if kind == 'model' and brand_name:
        return f"Model '{name}' already exists for brand '{brand_name}'."
    return f"{KIND_LABELS[kind]} '{name}' already exists."


def not_found_message(kind, name, brand_name=None):
    if kind == 'model' and brand_name:
        return f'Model "{name}" not found for brand "{brand_name}". Add it under reference data first.'
    return f'{KIND_LABELS[kind]} "{name}" not found. Add it under reference data first.'


class ReferenceLookup:
    """Case-insensitive name-to-row maps of one user's reference data"""

    def __init__(self, user):
        self.brands = self._index(Brand.objects.active().owned_by(user))
        self.sellers = self._index(Seller.objects.active().owned_by(user))
        self.booking_persons = self._index(BookingPerson.objects.active().owned_by(user))
        self.models = {
            ((row.brand_name or '').lower(), row.name.lower()): row
            for row in DeviceModel.objects.active().owned_by(user)
        }

    @staticmethod
    def _index(queryset):
        return {row.name.lower(): row for row in queryset}

    def find(self, kind, name, brand_name=None):
        name = (name or '').strip()
        if not name:
            return None
        if kind == 'model':
            return self.models.get(((brand_name or '').strip().lower(), name.lower()))
        return getattr(self, KIND_SECTIONS[kind]).get(name.lower())

    def resolve(self, kind, name, brand_name=None):
        """Row for the name, None for a blank name; unknown names raise ReferenceNotFound"""
        if not (name or '').strip():
            return None
        row = self.find(kind, name, brand_name)
        if row is None:
            raise ReferenceNotFound(not_found_message(kind, name.strip(), (brand_name or '').strip()))
        return row

    def id_maps(self):
        return {
            'brands': {key: row.pk for key, row in self.brands.items()},
            'models': {f"{brand}|{model}": row.pk for (brand, model), row in self.models.items()},
            'sellers': {key: row.pk for key, row in self.sellers.items()},
            'booking_persons': {key: row.pk for key, row in self.booking_persons.items()},
        }


class ReferenceService:
    """Reference data stored in the database, owned by one user"""

    def __init__(self, user):
        self.user = user

    def queryset(self, kind):
        return KIND_MODELS[kind].objects.active().owned_by(self.user)

    def serialize(self, kind, rows, many=False):
        return KIND_SERIALIZERS[kind](rows, many=many).data

    def list(self, kind, filters=None):
        """Non-deleted rows ordered by name, served from the per-user cache when possible"""
        filter_key = 'all'
        if kind == 'model' and filters:
            brand = filters.get('brand') or ''
            brand_name = (filters.get('brand_name') or '').strip().lower()
            if brand or brand_name:
                filter_key = f"brand={brand}:brand_name={brand_name}"

        cached = get_cached_reference_list(kind, self.user.pk, filter_key)
        if cached is not None:
            return cached

        queryset = self.queryset(kind).order_by('name')
        if filter_key != 'all':
            queryset = DeviceModelFilter(filters, queryset=queryset).qs
        data = list(self.serialize(kind, queryset, many=True))
        cache_reference_list(kind, self.user.pk, data, filter_key)
        return data

    def get(self, kind, pk):
        row = self.queryset(kind).filter(pk=pk).first()
        if row is None:
            raise ReferenceNotFound(f"{KIND_LABELS[kind]} not found.", status_code=404)
        return row

    def retrieve(self, kind, pk):
        return self.serialize(kind, self.get(kind, pk))

    def _brand_for_model(self, brand=None, brand_name=None):
        queryset = self.queryset('brand')
        if brand:
            row = queryset.filter(pk=brand).first()
            if row is None:
                raise ReferenceNotFound('Selected brand does not exist.')
            return row
        row = queryset.filter(name__iexact=(brand_name or '').strip()).first()
        if row is None:
            raise ReferenceNotFound(not_found_message('brand', (brand_name or '').strip()))
        return row

    def _clashes(self, kind, name, brand=None, exclude_pk=None):
        queryset = self.queryset(kind).filter(name__iexact=name)
        if kind == 'model':
            queryset = queryset.filter(brand=brand)
        if exclude_pk is not None:
            queryset = queryset.exclude(pk=exclude_pk)
        return queryset.exists()

    def _create(self, kind, name, brand=None):
        fields = {'user': self.user, 'name': name}
        if kind == 'model':
            fields.update(brand=brand, brand_name=brand.name if brand else '')
        with transaction.atomic():
            return KIND_MODELS[kind].objects.create(**fields)

    def add(self, kind, name, brand=None, brand_name=None):
        name = clean_reference_name(kind, name)
        brand_row = self._brand_for_model(brand, brand_name) if kind == 'model' else None
        if self._clashes(kind, name, brand=brand_row):
            raise DuplicateEntry(duplicate_message(kind, name, brand_row.name if brand_row else None))
        try:
            row = self._create(kind, name, brand=brand_row)
        except IntegrityError:
            raise DuplicateEntry(duplicate_message(kind, name, brand_row.name if brand_row else None))
        logger.info(f"User {self.user.pk} added {kind} '{name}' (ID: {row.pk})")
        return self.serialize(kind, row)

    def rename(self, kind, pk, name):
        row = self.get(kind, pk)
        name = clean_reference_name(kind, name)
        if self._clashes(kind, name, brand=getattr(row, 'brand', None), exclude_pk=row.pk):
            raise DuplicateEntry(duplicate_message(kind, name, getattr(row, 'brand_name', None)))
        try:
            with transaction.atomic():
                if kind == 'brand':
                    DeviceModel.objects.filter(brand=row).update(brand_name=name)
                row.name = name
                row.save(update_fields=['name', 'updated_at'])
        except IntegrityError:
            raise DuplicateEntry(duplicate_message(kind, name, getattr(row, 'brand_name', None)))
        logger.info(f"User {self.user.pk} renamed {kind} #{row.pk} to '{name}'")
        return self.serialize(kind, row)

    def delete(self, kind, pk):
        """Soft delete; a brand takes its models with it"""
        row = self.get(kind, pk)
        with transaction.atomic():
            if kind == 'brand':
                for model in self.queryset('model').filter(brand=row):
                    soft_delete(model)
            soft_delete(row)
        invalidate_reference_lists(self.user.pk)
        logger.info(f"User {self.user.pk} deleted {kind} '{row.name}' (ID: {pk})")

    def ensure(self, kind, name, brand_name=None):
        """Get or create by name; never fails on duplicates"""
        name = clean_reference_name(kind, name)
        brand_row = None
        if kind == 'model' and (brand_name or '').strip():
            brand_row = self.ensure('brand', brand_name)

        queryset = self.queryset(kind).filter(name__iexact=name)
        if kind == 'model':
            queryset = queryset.filter(brand=brand_row)
        row = queryset.first()
        if row is not None:
            return row
        try:
            row = self._create(kind, name, brand=brand_row)
        except IntegrityError:
            # Created concurrently
            return queryset.first()
        logger.info(f"User {self.user.pk} auto-created {kind} '{name}' (ID: {row.pk})")
        return row


class LocalReferenceService:
    """Reference data kept by name in the user's local JSON document"""

    def __init__(self, user, store=None):
        self.user = user
        self.store = store or LocalDocumentStore(user)

    @staticmethod
    def _find(rows, name, brand_name=None, kind=None):
        for row in rows:
            if row['name'].lower() != name.lower():
                continue
            if kind == 'model' and (row.get('brand_name') or '').lower() != (brand_name or '').lower():
                continue
            return row
        return None

    def list(self, kind, filters=None):
        rows = self.store.load()[KIND_SECTIONS[kind]]
        if kind == 'model' and filters:
            brand = filters.get('brand')
            brand_name = (filters.get('brand_name') or '').strip().lower()
            if brand:
                rows = [row for row in rows if str(row.get('brand')) == str(brand)]
            if brand_name:
                rows = [row for row in rows if (row.get('brand_name') or '').lower() == brand_name]
        return sorted(rows, key=lambda row: row['name'].lower())

    def _get(self, document, kind, pk):
        for row in document[KIND_SECTIONS[kind]]:
            if row['id'] == pk:
                return row
        raise ReferenceNotFound(f"{KIND_LABELS[kind]} not found.", status_code=404)

    def retrieve(self, kind, pk):
        return self._get(self.store.load(), kind, pk)

    def _local_brand(self, document, brand=None, brand_name=None):
        if brand:
            return self._get(document, 'brand', brand)
        row = self._find(document['brands'], (brand_name or '').strip())
        if row is None:
            raise ReferenceNotFound(not_found_message('brand', (brand_name or '').strip()))
        return row

    def _append(self, document, kind, name, brand_row=None):
        row = {'id': LocalDocumentStore.allocate_id(document), 'name': name}
        if kind == 'model':
            row.update(brand=brand_row['id'] if brand_row else None,
                       brand_name=brand_row['name'] if brand_row else '')
        document[KIND_SECTIONS[kind]].append(row)
        return row

    def add(self, kind, name, brand=None, brand_name=None):
        name = clean_reference_name(kind, name)
        document = self.store.load()
        brand_row = self._local_brand(document, brand, brand_name) if kind == 'model' else None
        if self._find(document[KIND_SECTIONS[kind]], name, brand_row['name'] if brand_row else None, kind):
            raise DuplicateEntry(duplicate_message(kind, name, brand_row['name'] if brand_row else None))
        row = self._append(document, kind, name, brand_row)
        self.store.save(document)
        return row

    def rename(self, kind, pk, name):
        name = clean_reference_name(kind, name)
        document = self.store.load()
        row = self._get(document, kind, pk)
        clash = self._find(document[KIND_SECTIONS[kind]], name, row.get('brand_name'), kind)
        if clash and clash['id'] != row['id']:
            raise DuplicateEntry(duplicate_message(kind, name, row.get('brand_name')))
        if kind == 'brand':
            for model in document['models']:
                if model.get('brand') == row['id']:
                    model['brand_name'] = name
        row['name'] = name
        self.store.save(document)
        return row

    def delete(self, kind, pk):
        document = self.store.load()
        row = self._get(document, kind, pk)
        document[KIND_SECTIONS[kind]].remove(row)
        if kind == 'brand':
            document['models'] = [model for model in document['models'] if model.get('brand') != row['id']]
        self.store.save(document)

    def ensure(self, kind, name, brand_name=None):
        name = clean_reference_name(kind, name)
        document = self.store.load()
        brand_row = None
        if kind == 'model' and (brand_name or '').strip():
            brand_row = self._find(document['brands'], brand_name.strip())
            if brand_row is None:
                brand_row = self._append(document, 'brand', brand_name.strip())
        row = self._find(document[KIND_SECTIONS[kind]], name, brand_row['name'] if brand_row else '', kind)
        if row is None:
            row = self._append(document, kind, name, brand_row)
        self.store.save(document)
        return row


def get_reference_service(user):
    if settings.INVENTORY_STORE == 'local':
        return LocalReferenceService(user)
    return ReferenceService(user)
