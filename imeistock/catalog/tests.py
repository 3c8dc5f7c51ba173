"""
Test suite for the catalog module
Tests: brands, models, sellers, booking persons, lookups, caching, seeding
"""
import shutil
import tempfile
from io import StringIO
from unittest import mock

from django.core.cache import cache
from django.core.management import call_command
from django.db import OperationalError, ProgrammingError
from django.test import TestCase, override_settings
from rest_framework import status

from imeistock.core.exceptions import ReferenceNotFound
from imeistock.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import Brand, DeviceModel, Seller
from .services import ReferenceLookup, ReferenceService


class BrandTests(TestCase):
    """Test brand endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_list_brands_only_own(self):
        """Test listing returns the user's non-deleted brands ordered by name"""
        TestDataFactory.create_brand(self.user, name='Samsung')
        TestDataFactory.create_brand(self.user, name='Apple')
        TestDataFactory.create_brand(self.user, name='Nokia', is_deleted=True)
        TestDataFactory.create_brand(TestDataFactory.create_user(), name='Oppo')

        response = self.client.get('/api/v1/brands/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([b['name'] for b in response.data], ['Apple', 'Samsung'])

    def test_create_brand(self):
        response = self.client.post('/api/v1/brands/', {'name': '  Vivo  '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'Vivo')
        self.assertTrue(Brand.objects.filter(user=self.user, name='Vivo').exists())

    def test_create_brand_empty_name(self):
        response = self.client.post('/api/v1/brands/', {'name': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_create_duplicate_brand_case_insensitive(self):
        TestDataFactory.create_brand(self.user, name='Samsung')
        response = self.client.post('/api/v1/brands/', {'name': 'SAMSUNG'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], "Brand 'SAMSUNG' already exists.")

    def test_same_brand_name_for_different_users(self):
        TestDataFactory.create_brand(TestDataFactory.create_user(), name='Samsung')
        response = self.client.post('/api/v1/brands/', {'name': 'Samsung'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_deleted_brand_name_can_be_reused(self):
        TestDataFactory.create_brand(self.user, name='Samsung', is_deleted=True)
        response = self.client.post('/api/v1/brands/', {'name': 'Samsung'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_rename_brand_updates_models(self):
        """Test renaming a brand carries the new name onto its models"""
        brand = TestDataFactory.create_brand(self.user, name='Mi')
        model = TestDataFactory.create_model(self.user, brand=brand, name='Note 10')

        response = self.client.put(f'/api/v1/brands/{brand.pk}/', {'name': 'Xiaomi'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        model.refresh_from_db()
        self.assertEqual(model.brand_name, 'Xiaomi')

    def test_rename_brand_collision(self):
        TestDataFactory.create_brand(self.user, name='Apple')
        brand = TestDataFactory.create_brand(self.user, name='Samsung')
        response = self.client.patch(f'/api/v1/brands/{brand.pk}/', {'name': 'apple'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_rename_brand_change_case_only(self):
        brand = TestDataFactory.create_brand(self.user, name='samsung')
        response = self.client.patch(f'/api/v1/brands/{brand.pk}/', {'name': 'Samsung'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Samsung')

    def test_delete_brand_is_soft(self):
        brand = TestDataFactory.create_brand(self.user, name='Samsung')
        response = self.client.delete(f'/api/v1/brands/{brand.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        brand.refresh_from_db()
        self.assertTrue(brand.is_deleted)

    def test_delete_falls_back_to_hard_delete(self):
        """Test rows are removed when the soft-delete flag cannot be written"""
        brand = TestDataFactory.create_brand(self.user, name='Samsung')
        with mock.patch.object(Brand, 'save', side_effect=ProgrammingError('column "is_deleted" does not exist')):
            response = self.client.delete(f'/api/v1/brands/{brand.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Brand.objects.filter(pk=brand.pk).exists())

    def test_delete_keeps_row_on_other_database_errors(self):
        """Test a locked database does not turn a soft delete into a hard delete"""
        brand = TestDataFactory.create_brand(self.user, name='Samsung')
        with mock.patch.object(Brand, 'save', side_effect=OperationalError('database is locked')):
            with self.assertRaises(OperationalError):
                self.client.delete(f'/api/v1/brands/{brand.pk}/')
        brand.refresh_from_db()
        self.assertFalse(brand.is_deleted)

    def test_cannot_touch_other_users_brand(self):
        other = TestDataFactory.create_brand(TestDataFactory.create_user(), name='Oppo')
        response = self.client.delete(f'/api/v1/brands/{other.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_cache_invalidated_on_change(self):
        """Test the cached list reflects additions"""
        TestDataFactory.create_brand(self.user, name='Apple')
        self.assertEqual(len(self.client.get('/api/v1/brands/').data), 1)
        self.client.post('/api/v1/brands/', {'name': 'Samsung'}, format='json')
        self.assertEqual(len(self.client.get('/api/v1/brands/').data), 2)


class DeviceModelTests(TestCase):
    """Test model endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.samsung = TestDataFactory.create_brand(self.user, name='Samsung')
        self.apple = TestDataFactory.create_brand(self.user, name='Apple')

    def test_create_model_by_brand_id(self):
        response = self.client.post('/api/v1/models/', {'name': 'Galaxy S23', 'brand': self.samsung.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['brand_name'], 'Samsung')

    def test_create_model_by_brand_name(self):
        response = self.client.post('/api/v1/models/', {'name': 'iPhone 15', 'brand_name': 'apple'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['brand'], self.apple.pk)

    def test_create_model_requires_brand(self):
        response = self.client.post('/api/v1/models/', {'name': 'Galaxy S23'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('brand', response.data)

    def test_create_model_unknown_brand(self):
        response = self.client.post('/api/v1/models/', {'name': 'Pixel 8', 'brand_name': 'Google'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('not found', response.data['error'])

    def test_same_model_name_under_different_brands(self):
        TestDataFactory.create_model(self.user, brand=self.samsung, name='X1')
        response = self.client.post('/api/v1/models/', {'name': 'X1', 'brand': self.apple.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_duplicate_model_within_brand(self):
        TestDataFactory.create_model(self.user, brand=self.samsung, name='Galaxy S23')
        response = self.client.post('/api/v1/models/', {'name': 'galaxy s23', 'brand': self.samsung.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_filter_models_by_brand(self):
        TestDataFactory.create_model(self.user, brand=self.samsung, name='Galaxy S23')
        TestDataFactory.create_model(self.user, brand=self.apple, name='iPhone 15')

        response = self.client.get(f'/api/v1/models/?brand={self.samsung.pk}')
        self.assertEqual([m['name'] for m in response.data], ['Galaxy S23'])

        response = self.client.get('/api/v1/models/?brand_name=APPLE')
        self.assertEqual([m['name'] for m in response.data], ['iPhone 15'])

        response = self.client.get('/api/v1/models/')
        self.assertEqual(len(response.data), 2)


    def test_deleting_brand_removes_its_models(self):
        """Test models go with their brand, so re-adding the brand starts clean"""
        old = TestDataFactory.create_model(self.user, brand=self.samsung, name='Galaxy S23')
        response = self.client.delete(f'/api/v1/brands/{self.samsung.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        old.refresh_from_db()
        self.assertTrue(old.is_deleted)
        self.assertEqual(self.client.get('/api/v1/models/?brand_name=samsung').data, [])

        self.client.post('/api/v1/brands/', {'name': 'Samsung'}, format='json')
        response = self.client.post('/api/v1/models/', {'name': 'Galaxy S23', 'brand_name': 'Samsung'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.get('/api/v1/models/?brand_name=samsung')
        self.assertEqual(len(response.data), 1)
        self.assertNotEqual(response.data[0]['id'], old.pk)
        self.assertEqual(ReferenceLookup(self.user).find('model', 'galaxy s23', 'SAMSUNG').pk, response.data[0]['id'])

    def test_deleting_brand_keeps_other_brands_models(self):
        kept = TestDataFactory.create_model(self.user, brand=self.apple, name='iPhone 15')
        self.client.delete(f'/api/v1/brands/{self.samsung.pk}/')
        kept.refresh_from_db()
        self.assertFalse(kept.is_deleted)


class SellerAndBookingPersonTests(TestCase):
    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_and_list_sellers(self):
        self.client.post('/api/v1/sellers/', {'name': 'Metro Mobiles'}, format='json')
        response = self.client.get('/api/v1/sellers/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['name'], 'Metro Mobiles')

    def test_duplicate_booking_person_message(self):
        TestDataFactory.create_booking_person(self.user, name='Anil')
        response = self.client.post('/api/v1/booking-persons/', {'name': 'anil'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], "Booking person 'anil' already exists.")

    def test_reference_data_bundle(self):
        TestDataFactory.create_model(self.user, name='A54')
        TestDataFactory.create_seller(self.user, name='Metro Mobiles')
        response = self.client.get('/api/v1/reference-data/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(set(response.data), {'brands', 'models', 'sellers', 'booking_persons'})
        self.assertEqual(len(response.data['brands']), 1)
        self.assertEqual(response.data['models'][0]['name'], 'A54')


class ReferenceServiceTests(TestCase):
    """Test ensure and lookup"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.service = ReferenceService(self.user)

    def test_ensure_is_get_or_create(self):
        first = self.service.ensure('seller', 'Metro Mobiles')
        second = self.service.ensure('seller', 'METRO MOBILES')
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(Seller.objects.filter(user=self.user).count(), 1)

    def test_ensure_model_creates_brand(self):
        model = self.service.ensure('model', 'Galaxy S23', brand_name='Samsung')
        self.assertEqual(model.brand.name, 'Samsung')
        self.assertEqual(model.brand_name, 'Samsung')
        self.assertEqual(DeviceModel.objects.filter(user=self.user).count(), 1)

    def test_lookup_is_case_insensitive(self):
        model = self.service.ensure('model', 'Galaxy S23', brand_name='Samsung')
        lookup = ReferenceLookup(self.user)
        self.assertEqual(lookup.resolve('brand', 'samsung').pk, model.brand_id)
        self.assertEqual(lookup.resolve('model', 'GALAXY s23', 'SAMSUNG').pk, model.pk)
        self.assertIsNone(lookup.resolve('seller', ''))
        self.assertEqual(lookup.id_maps()['models'], {'samsung|galaxy s23': model.pk})

    def test_lookup_unknown_name(self):
        lookup = ReferenceLookup(self.user)
        with self.assertRaises(ReferenceNotFound) as ctx:
            lookup.resolve('brand', 'Nokia')
        self.assertEqual(ctx.exception.message, 'Brand "Nokia" not found. Add it under reference data first.')


class LocalReferenceStoreTests(TestCase):
    """Test reference endpoints against the local JSON store"""

    def setUp(self):
        self.store_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.store_dir, ignore_errors=True)
        override = override_settings(INVENTORY_STORE='local', INVENTORY_LOCAL_STORE_DIR=self.store_dir)
        override.enable()
        self.addCleanup(override.disable)

        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_add_list_rename_delete(self):
        response = self.client.post('/api/v1/brands/', {'name': 'Samsung'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        brand_id = response.data['id']

        response = self.client.post('/api/v1/models/', {'name': 'A54', 'brand_name': 'samsung'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.post('/api/v1/brands/', {'name': 'SAMSUNG'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.put(f'/api/v1/brands/{brand_id}/', {'name': 'Galaxy'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        models = self.client.get('/api/v1/models/').data
        self.assertEqual(models[0]['brand_name'], 'Galaxy')

        response = self.client.delete(f'/api/v1/brands/{brand_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.client.get('/api/v1/brands/').data, [])
        self.assertEqual(self.client.get('/api/v1/models/').data, [])
        self.assertFalse(Brand.objects.exists())


class SeedBrandsCommandTests(TestCase):
    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(username='shop')

    def test_seed_brands(self):
        TestDataFactory.create_brand(self.user, name='apple')
        out = StringIO()
        call_command('seed_brands', 'shop', '--brands', 'Apple', 'Samsung', stdout=out)
        self.assertEqual(
            sorted(Brand.objects.active().owned_by(self.user).values_list('name', flat=True)),
            ['Samsung', 'apple'],
        )
        self.assertIn('Brands Created: 1', out.getvalue())
