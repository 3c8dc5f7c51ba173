"""
Test suite for the inventory module
Tests: entries, filters, bulk import, CSV, IMEI extraction, stock summary,
local store, orphan assignment, management commands
"""
import os
import shutil
import tempfile
from datetime import date
from decimal import Decimal
from io import StringIO
from unittest import mock

from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.db import OperationalError, ProgrammingError
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework import status

from imeistock.catalog.models import Brand, DeviceModel, Seller, BookingPerson
from imeistock.core.exceptions import EmptyImport
from imeistock.core.local_store import LocalDocumentStore
from imeistock.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .csv_io import entries_to_csv, parse_amount, parse_date, read_entries_csv
from .imei import extract_imeis, is_valid_imei, normalize_imei
from .models import Entry
from .stock import summarize_rows

VALID_IMEI = '490154203237518'
OTHER_VALID_IMEI = '354626223546262'


class ImeiTests(SimpleTestCase):
    """Test IMEI validation and extraction"""

    def test_luhn(self):
        self.assertTrue(is_valid_imei(VALID_IMEI))
        self.assertTrue(is_valid_imei(OTHER_VALID_IMEI))
        self.assertFalse(is_valid_imei('490154203237519'))
        self.assertFalse(is_valid_imei('49015420323751'))
        self.assertFalse(is_valid_imei('49015420323751A'))

    def test_extract_labelled_and_bare(self):
        text = f'IMEI1: {VALID_IMEI}\nIMEI2: 490154203237519\nS/N R58N'
        result = extract_imeis(text)
        self.assertEqual(result[0], {'imei': VALID_IMEI, 'valid': True})
        self.assertIn({'imei': '490154203237519', 'valid': False}, result)

    def test_extract_lists_labelled_numbers_first(self):
        text = f'{OTHER_VALID_IMEI}\nIMEI: {VALID_IMEI}'
        result = extract_imeis(text)
        self.assertEqual([r['imei'] for r in result], [VALID_IMEI, OTHER_VALID_IMEI])

    def test_extract_card_layout(self):
        result = extract_imeis(f'IMEI(MEID) and S/N\nIMEI1\n{OTHER_VALID_IMEI} / 19')
        self.assertEqual(result, [{'imei': OTHER_VALID_IMEI, 'valid': True}])

    def test_extract_drops_product_barcodes(self):
        result = extract_imeis(f'6932204509475123 {VALID_IMEI} 693220450947512')
        self.assertEqual([r['imei'] for r in result], [VALID_IMEI])

    def test_extract_nothing(self):
        self.assertEqual(extract_imeis(''), [])
        self.assertEqual(extract_imeis('no numbers here 12345'), [])


class CSVTests(SimpleTestCase):
    """Test CSV parsing helpers"""

    def test_parse_date_formats(self):
        self.assertEqual(parse_date('05/01/2024'), date(2024, 1, 5))
        self.assertEqual(parse_date('2024-01-05'), date(2024, 1, 5))
        self.assertEqual(parse_date('2024-01-05T10:30:00'), date(2024, 1, 5))
        self.assertEqual(parse_date('45296'), date(2024, 1, 5))
        self.assertIsNone(parse_date('not a date'))
        self.assertIsNone(parse_date(''))

    def test_parse_amount(self):
        self.assertEqual(parse_amount('12,500.5'), Decimal('12500.50'))
        self.assertEqual(parse_amount(15000), Decimal('15000.00'))
        self.assertIsNone(parse_amount('abc'))
        self.assertIsNone(parse_amount(''))

    def test_parse_amount_rejects_non_finite_and_oversized(self):
        self.assertIsNone(parse_amount('NaN'))
        self.assertIsNone(parse_amount('Infinity'))
        self.assertIsNone(parse_amount('1e30'))
        self.assertIsNone(parse_amount('12345678901234'))
        self.assertEqual(parse_amount('9999999999.99'), Decimal('9999999999.99'))

    def test_parse_date_rejects_non_finite_serials(self):
        self.assertIsNone(parse_date('nan'))
        self.assertIsNone(parse_date('NaN'))
        self.assertIsNone(parse_date('inf'))
        self.assertIsNone(parse_date('-inf'))
        self.assertIsNone(parse_date('1e300'))
        self.assertIsNone(parse_date('0'))
        self.assertEqual(parse_date(45296.0), date(2024, 1, 5))

    def test_normalize_imei_accepts_numbers(self):
        self.assertEqual(normalize_imei(354626223546262), OTHER_VALID_IMEI)
        self.assertEqual(normalize_imei(f' {VALID_IMEI} '), VALID_IMEI)
        self.assertEqual(normalize_imei(None), '')

    def test_read_csv_by_header_name(self):
        content = (
            'Model,IMEI,Brand,Inward Date,Inward Amount,Unused\n'
            f'A54,{VALID_IMEI},Samsung,05/01/2024,15000,x\n'
            ',,,,,\n'
        )
        rows = read_entries_csv(content)
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['imei'], VALID_IMEI)
        self.assertEqual(rows[0]['model'], 'A54')
        self.assertEqual(rows[0]['inward_date'], date(2024, 1, 5))
        self.assertEqual(rows[0]['inward_amount'], Decimal('15000.00'))
        self.assertEqual(rows[0]['seller'], '')
        self.assertIsNone(rows[0]['outward_date'])

    def test_read_empty_csv(self):
        with self.assertRaises(EmptyImport):
            read_entries_csv('')

    def test_export_layout(self):
        content = entries_to_csv([{
            'imei': VALID_IMEI, 'brand': 'Samsung', 'model': 'A54', 'seller': '', 'booking_person': '',
            'inward_date': date(2024, 1, 5), 'inward_amount': Decimal('15000.00'), 'buyer': '',
            'outward_date': None, 'outward_amount': None,
        }])
        lines = content.splitlines()
        self.assertEqual(lines[0], 'IMEI,Brand,Model,Seller,Booking Person,Inward Date,Inward Amount,'
                                   'Buyer,Outward Date,Outward Amount')
        self.assertEqual(lines[1], f'{VALID_IMEI},Samsung,A54,,,05/01/2024,15000.00,,,')

    def test_summarize_rows(self):
        rows = [
            {'imei': '1', 'model': 'A54', 'inward_date': date(2024, 1, 1), 'outward_date': None},
            {'imei': '2', 'model': 'A54', 'inward_date': date(2024, 1, 1), 'outward_date': date(2024, 2, 1)},
            {'imei': '3', 'model': 'X1', 'inward_date': date(2024, 1, 1), 'outward_date': date(2024, 2, 1)},
            {'imei': '4', 'model': '', 'inward_date': date(2024, 1, 1), 'outward_date': None},
        ]
        summary = summarize_rows(rows)
        self.assertEqual(summary['items'], [{'model': 'A54', 'in_stock': 1, 'sold': 1, 'total': 2}])
        self.assertEqual(summary['total_unit_stock'], 2)
        self.assertEqual(summary['total_sold_stock'], 2)
        self.assertEqual(summary['total_items'], 4)


class EntryTests(TestCase):
    """Test entry endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.brand = TestDataFactory.create_brand(self.user, name='Samsung')
        self.model = TestDataFactory.create_model(self.user, brand=self.brand, name='A54')
        self.seller = TestDataFactory.create_seller(self.user, name='Metro Mobiles')
        self.person = TestDataFactory.create_booking_person(self.user, name='Anil')

    def entry_payload(self, **overrides):
        payload = {
            'imei': VALID_IMEI,
            'brand': 'samsung',
            'model': 'a54',
            'seller': 'Metro Mobiles',
            'booking_person': 'Anil',
            'inward_date': '05/01/2024',
            'inward_amount': '15000',
        }
        payload.update(overrides)
        return payload

    def test_add_entry_resolves_names(self):
        """Test names are resolved to the user's reference rows"""
        response = self.client.post('/api/v1/entries/', self.entry_payload(imei=f'  {VALID_IMEI} '), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        entry = Entry.objects.get(imei=VALID_IMEI)
        self.assertEqual(entry.brand, self.brand)
        self.assertEqual(entry.model, self.model)
        self.assertEqual(entry.seller, self.seller)
        self.assertEqual(entry.booking_person, self.person)
        self.assertEqual(entry.inward_date, date(2024, 1, 5))
        self.assertEqual(response.data['brand'], 'Samsung')
        self.assertEqual(response.data['status'], 'in_stock')

    def test_add_entry_requires_imei(self):
        response = self.client.post('/api/v1/entries/', self.entry_payload(imei='   '), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('imei', response.data)

    def test_add_duplicate_imei(self):
        TestDataFactory.create_entry(self.user, imei=VALID_IMEI)
        response = self.client.post('/api/v1/entries/', self.entry_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('already exists', response.data['error'])

    def test_add_entry_unknown_brand(self):
        response = self.client.post('/api/v1/entries/', self.entry_payload(brand='Nokia', model=''), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Brand "Nokia" not found. Add it under reference data first.')
        self.assertFalse(Entry.objects.exists())

    @override_settings(INVENTORY_STRICT_IMEI=True)
    def test_strict_imei_rejects_bad_checksum(self):
        response = self.client.post('/api/v1/entries/', self.entry_payload(imei='490154203237519'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_search_by_imei(self):
        TestDataFactory.create_entry(self.user, imei=VALID_IMEI, model=self.model)
        response = self.client.get(f'/api/v1/entries/{VALID_IMEI}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['model'], 'A54')

    def test_search_missing_imei(self):
        response = self.client.get('/api/v1/entries/000000000000000/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'No data found.')

    def test_update_entry_marks_sold(self):
        TestDataFactory.create_entry(self.user, imei=VALID_IMEI, model=self.model)
        response = self.client.put(f'/api/v1/entries/{VALID_IMEI}/', self.entry_payload(
            buyer='Suresh', outward_date='2024-02-10', outward_amount='17000',
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'sold')
        entry = Entry.objects.get(imei=VALID_IMEI)
        self.assertEqual(entry.outward_amount, Decimal('17000.00'))
        self.assertEqual(entry.buyer, 'Suresh')

    def test_put_entry_replaces_whole_entry(self):
        """Test fields left out of a PUT are cleared"""
        TestDataFactory.create_entry(self.user, imei=VALID_IMEI, model=self.model, seller=self.seller, buyer='Old')
        response = self.client.put(f'/api/v1/entries/{VALID_IMEI}/', {'inward_date': '05/01/2024'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        entry = Entry.objects.get(imei=VALID_IMEI)
        self.assertIsNone(entry.model)
        self.assertIsNone(entry.seller)
        self.assertEqual(entry.buyer, '')
        self.assertIsNone(entry.inward_amount)
        self.assertEqual(entry.inward_date, date(2024, 1, 5))

    def test_patch_entry_keeps_other_fields(self):
        TestDataFactory.create_entry(self.user, imei=VALID_IMEI, model=self.model, seller=self.seller)
        response = self.client.patch(f'/api/v1/entries/{VALID_IMEI}/', {'buyer': 'Suresh'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        entry = Entry.objects.get(imei=VALID_IMEI)
        self.assertEqual(entry.seller, self.seller)
        self.assertEqual(entry.model, self.model)
        self.assertEqual(entry.buyer, 'Suresh')

    def test_delete_entry_is_soft(self):
        entry = TestDataFactory.create_entry(self.user, imei=VALID_IMEI)
        response = self.client.delete(f'/api/v1/entries/{VALID_IMEI}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        entry.refresh_from_db()
        self.assertTrue(entry.is_deleted)
        self.assertEqual(self.client.get(f'/api/v1/entries/{VALID_IMEI}/').status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_entry_hard_fallback(self):
        entry = TestDataFactory.create_entry(self.user, imei=VALID_IMEI)
        with mock.patch.object(Entry, 'save', side_effect=OperationalError('no such column: is_deleted')):
            response = self.client.delete(f'/api/v1/entries/{VALID_IMEI}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Entry.objects.filter(pk=entry.pk).exists())

    def test_delete_entry_keeps_row_when_database_locked(self):
        entry = TestDataFactory.create_entry(self.user, imei=VALID_IMEI)
        with mock.patch.object(Entry, 'save', side_effect=OperationalError('database is locked')):
            with self.assertRaises(OperationalError):
                self.client.delete(f'/api/v1/entries/{VALID_IMEI}/')
        entry.refresh_from_db()
        self.assertFalse(entry.is_deleted)

    def test_deleted_imei_can_be_added_again(self):
        TestDataFactory.create_entry(self.user, imei=VALID_IMEI, is_deleted=True)
        response = self.client.post('/api/v1/entries/', self.entry_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_reset_removes_only_own_entries(self):
        TestDataFactory.create_entry(self.user)
        TestDataFactory.create_entry(self.user, is_deleted=True)
        other = TestDataFactory.create_entry(TestDataFactory.create_user())
        response = self.client.post('/api/v1/entries/reset/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['deleted'], 2)
        self.assertEqual(list(Entry.objects.all()), [other])

    def test_list_visibility(self):
        """Test users see their own entries and admins see everyone's"""
        TestDataFactory.create_entry(self.user, imei='111111111111111')
        TestDataFactory.create_entry(TestDataFactory.create_user(), imei='222222222222222')

        response = self.client.get('/api/v1/entries/')
        self.assertEqual([e['imei'] for e in response.data], ['111111111111111'])

        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.get('/api/v1/entries/')
        self.assertEqual(len(response.data), 2)


class EntryFilterTests(TestCase):
    """Test the entry search filters"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        samsung = TestDataFactory.create_model(
            self.user, brand=TestDataFactory.create_brand(self.user, name='Samsung'), name='A54')
        apple = TestDataFactory.create_model(
            self.user, brand=TestDataFactory.create_brand(self.user, name='Apple'), name='iPhone 15')
        person = TestDataFactory.create_booking_person(self.user, name='Anil')
        TestDataFactory.create_entry(self.user, imei='111111111111111', model=samsung,
                                     booking_person=person, inward_date=date(2024, 1, 5))
        TestDataFactory.create_entry(self.user, imei='222222222222222', model=apple, buyer='Suresh',
                                     inward_date=date(2024, 3, 9), outward_date=date(2024, 4, 1))

    def imeis(self, query):
        response = self.client.get(f'/api/v1/entries/?{query}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        return sorted(e['imei'] for e in response.data)

    def test_imei_or_date(self):
        self.assertEqual(self.imeis('imei_or_date=1111'), ['111111111111111'])
        self.assertEqual(self.imeis('imei_or_date=05/01/2024'), ['111111111111111'])
        self.assertEqual(self.imeis('imei_or_date=04/2024'), ['222222222222222'])
        self.assertEqual(self.imeis('imei_or_date=2024'), ['111111111111111', '222222222222222'])

    def test_brand_or_model(self):
        self.assertEqual(self.imeis('brand_or_model=iphone'), ['222222222222222'])
        self.assertEqual(self.imeis('brand_or_model=SAMS'), ['111111111111111'])

    def test_person_or_buyer(self):
        self.assertEqual(self.imeis('person_or_buyer=anil'), ['111111111111111'])
        self.assertEqual(self.imeis('person_or_buyer=sure'), ['222222222222222'])

    def test_filters_combine(self):
        self.assertEqual(self.imeis('brand_or_model=a&person_or_buyer=suresh'), ['222222222222222'])
        self.assertEqual(self.imeis('brand_or_model=samsung&person_or_buyer=suresh'), [])

    def test_exact_filters_and_status(self):
        self.assertEqual(self.imeis('brand=apple'), ['222222222222222'])
        self.assertEqual(self.imeis('model=A54'), ['111111111111111'])
        self.assertEqual(self.imeis('booking_person=Anil'), ['111111111111111'])
        self.assertEqual(self.imeis('status=in_stock'), ['111111111111111'])
        self.assertEqual(self.imeis('status=sold'), ['222222222222222'])


class BulkImportTests(TestCase):
    """Test bulk add and CSV import/export"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_bulk_add_creates_references(self):
        TestDataFactory.create_entry(self.user, imei='333333333333333')
        response = self.client.post('/api/v1/entries/bulk/', {'entries': [
            {'imei': '111111111111111', 'brand': 'Samsung', 'model': 'A54', 'seller': 'Metro',
             'inward_date': '05/01/2024', 'inward_amount': '15000'},
            {'imei': '222222222222222', 'brand': 'samsung', 'model': 'a54', 'booking_person': 'Anil'},
            {'imei': '222222222222222', 'brand': 'Apple', 'model': 'iPhone 15'},
            {'imei': '333333333333333', 'brand': 'Apple'},
            {'imei': '', 'brand': 'Nokia'},
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data, {'created': 2, 'skipped': 3})

        self.assertEqual(list(Brand.objects.filter(user=self.user).values_list('name', flat=True)), ['Samsung'])
        self.assertEqual(DeviceModel.objects.filter(user=self.user).count(), 1)
        self.assertTrue(Seller.objects.filter(user=self.user, name='Metro').exists())
        self.assertTrue(BookingPerson.objects.filter(user=self.user, name='Anil').exists())

        entry = Entry.objects.get(imei='111111111111111')
        self.assertEqual(entry.model.name, 'A54')
        self.assertEqual(entry.inward_date, date(2024, 1, 5))
        self.assertEqual(entry.inward_amount, Decimal('15000.00'))

    def test_bulk_add_numeric_imei(self):
        response = self.client.post('/api/v1/entries/bulk/', {'entries': [
            {'imei': 354626223546262, 'brand': 'Samsung', 'model': 'A54', 'inward_amount': 15000},
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data, {'created': 1, 'skipped': 0})
        entry = Entry.objects.get(user=self.user, imei=OTHER_VALID_IMEI)
        self.assertEqual(entry.inward_amount, Decimal('15000.00'))

    def test_bulk_add_drops_oversized_amounts(self):
        response = self.client.post('/api/v1/entries/bulk/', {'entries': [
            {'imei': VALID_IMEI, 'inward_amount': '12345678901234', 'outward_amount': '1e30'},
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        entry = Entry.objects.get(user=self.user, imei=VALID_IMEI)
        self.assertIsNone(entry.inward_amount)
        self.assertIsNone(entry.outward_amount)

        response = self.client.get('/api/v1/entries/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_csv_import_blanks_unparseable_cells(self):
        content = (
            'IMEI,Brand,Model,Inward Date,Inward Amount,Outward Date,Outward Amount\n'
            f'{VALID_IMEI},Samsung,A54,NaN,1e30,inf,NaN\n'
        ).encode('utf-8')
        upload = SimpleUploadedFile('stock.csv', content, content_type='text/csv')
        response = self.client.post('/api/v1/entries/import/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        entry = Entry.objects.get(user=self.user, imei=VALID_IMEI)
        self.assertIsNone(entry.inward_date)
        self.assertIsNone(entry.inward_amount)
        self.assertIsNone(entry.outward_date)
        self.assertIsNone(entry.outward_amount)

    def test_bulk_add_nothing_valid(self):
        response = self.client.post('/api/v1/entries/bulk/', {'entries': [{'imei': ''}]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_csv_import(self):
        content = (
            'IMEI,Brand,Model,Seller,Booking Person,Inward Date,Inward Amount,Buyer,Outward Date,Outward Amount\n'
            f'{VALID_IMEI},Samsung,A54,Metro,Anil,05/01/2024,15000,,,\n'
            f'{OTHER_VALID_IMEI},Apple,iPhone 15,,,2024-01-06,70000,Suresh,45330,72000\n'
        ).encode('utf-8')
        upload = SimpleUploadedFile('stock.csv', content, content_type='text/csv')
        response = self.client.post('/api/v1/entries/import/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['created'], 2)
        sold = Entry.objects.get(imei=OTHER_VALID_IMEI)
        self.assertEqual(sold.outward_date, date(2024, 2, 8))
        self.assertEqual(sold.status, 'sold')

    def test_csv_import_empty_file(self):
        upload = SimpleUploadedFile('empty.csv', b'', content_type='text/csv')
        response = self.client.post('/api/v1/entries/import/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_csv_export(self):
        model = TestDataFactory.create_model(self.user, name='A54')
        TestDataFactory.create_entry(self.user, imei=VALID_IMEI, model=model, inward_date=date(2024, 1, 5))
        response = self.client.get('/api/v1/entries/export/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'text/csv')
        self.assertIn('inventory_data.csv', response['Content-Disposition'])
        lines = response.content.decode('utf-8').splitlines()
        self.assertEqual(len(lines), 2)
        self.assertIn(f'{VALID_IMEI},{model.brand_name},A54,,,05/01/2024', lines[1])

    def test_csv_export_no_data(self):
        response = self.client.get('/api/v1/entries/export/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'No data to export.')

    def test_extract_imei_endpoint(self):
        response = self.client.post('/api/v1/entries/extract-imei/', {'text': f'IMEI: {VALID_IMEI}'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['imeis'], [{'imei': VALID_IMEI, 'valid': True}])


class StockSummaryTests(TestCase):
    """Test the stock summary endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        samsung = TestDataFactory.create_brand(self.user, name='Samsung')
        self.a54 = TestDataFactory.create_model(self.user, brand=samsung, name='A54')
        self.s23 = TestDataFactory.create_model(self.user, brand=samsung, name='S23')
        self.iphone = TestDataFactory.create_model(
            self.user, brand=TestDataFactory.create_brand(self.user, name='Apple'), name='iPhone 15')

        TestDataFactory.create_entry(self.user, model=self.a54)
        TestDataFactory.create_entry(self.user, model=self.a54)
        TestDataFactory.create_entry(self.user, model=self.a54, outward_date=date.today())
        TestDataFactory.create_entry(self.user, model=self.s23, outward_date=date.today())
        TestDataFactory.create_entry(self.user, model=self.iphone)
        TestDataFactory.create_entry(self.user, model=self.iphone, is_deleted=True)
        TestDataFactory.create_entry(TestDataFactory.create_user(), model=None)

    def test_summary(self):
        response = self.client.get('/api/v1/stock/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['items'], [
            {'model': 'A54', 'in_stock': 2, 'sold': 1, 'total': 3},
            {'model': 'iPhone 15', 'in_stock': 1, 'sold': 0, 'total': 1},
        ])
        self.assertEqual(response.data['total_unit_stock'], 3)
        self.assertEqual(response.data['total_sold_stock'], 2)
        self.assertEqual(response.data['total_items'], 5)

    def test_summary_filtered_by_brand(self):
        response = self.client.get('/api/v1/stock/summary/?brand=apple')
        self.assertEqual([item['model'] for item in response.data['items']], ['iPhone 15'])
        # Totals cover all of the user's entries
        self.assertEqual(response.data['total_items'], 5)

    def test_filter_options(self):
        response = self.client.get('/api/v1/stock/filter-options/?brand=Samsung')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['brands'], ['Apple', 'Samsung'])
        self.assertEqual(response.data['models'], ['A54', 'S23'])


class LocalEntryStoreTests(TestCase):
    """Test entry endpoints against the local JSON store"""

    def setUp(self):
        self.store_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.store_dir, ignore_errors=True)
        override = override_settings(INVENTORY_STORE='local', INVENTORY_LOCAL_STORE_DIR=self.store_dir)
        override.enable()
        self.addCleanup(override.disable)

        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_entry_lifecycle(self):
        payload = {'imei': VALID_IMEI, 'brand': 'Samsung', 'model': 'A54', 'inward_date': '05/01/2024'}
        response = self.client.post('/api/v1/entries/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(Entry.objects.exists())

        response = self.client.post('/api/v1/entries/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get(f'/api/v1/entries/{VALID_IMEI}/')
        self.assertEqual(response.data['model'], 'A54')
        self.assertEqual(response.data['status'], 'in_stock')

        response = self.client.get('/api/v1/entries/?imei_or_date=05/01')
        self.assertEqual(len(response.data), 1)

        response = self.client.patch(f'/api/v1/entries/{VALID_IMEI}/', {'outward_date': '2024-02-01'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'sold')

        response = self.client.delete(f'/api/v1/entries/{VALID_IMEI}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.client.get('/api/v1/entries/').data, [])

    def test_bulk_add_and_reset(self):
        response = self.client.post('/api/v1/entries/bulk/', {'entries': [
            {'imei': '111111111111111', 'brand': 'Samsung', 'model': 'A54', 'inward_date': '2024-01-05'},
            {'imei': '111111111111111', 'brand': 'Samsung', 'model': 'A54'},
        ]}, format='json')
        self.assertEqual(response.data, {'created': 1, 'skipped': 1})
        self.assertEqual([b['name'] for b in self.client.get('/api/v1/brands/').data], ['Samsung'])

        summary = self.client.get('/api/v1/stock/summary/').data
        self.assertEqual(summary['total_unit_stock'], 1)

        response = self.client.post('/api/v1/entries/reset/')
        self.assertEqual(response.data['deleted'], 1)

    def test_corrupt_document_is_treated_as_empty(self):
        store = LocalDocumentStore(self.user)
        os.makedirs(self.store_dir, exist_ok=True)
        with open(store.path, 'w', encoding='utf-8') as fh:
            fh.write('{not json')
        response = self.client.get('/api/v1/entries/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, [])


class DataAssignmentTests(TestCase):
    """Test orphaned data assignment"""

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_admin(username='boss')
        self.user = TestDataFactory.create_user(username='clerk')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        Brand.objects.create(name='Legacy')
        Entry.objects.create(imei=VALID_IMEI, inward_date=date(2024, 1, 5))

    def test_counts(self):
        TestDataFactory.create_entry(self.user)
        response = self.client.get('/api/v1/data-assignment/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['entries'], {'total': 2, 'orphaned': 1})
        self.assertEqual(response.data['brands'], {'total': 1, 'orphaned': 1})

    def test_assign_to_user(self):
        response = self.client.post('/api/v1/data-assignment/assign/', {'user': self.user.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['assigned']['entries'], 1)
        self.assertEqual(Entry.objects.get(imei=VALID_IMEI).user, self.user)
        self.assertEqual(Brand.objects.get(name='Legacy').user, self.user)

    def test_assign_defaults_to_first_user(self):
        response = self.client.post('/api/v1/data-assignment/assign/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], 'boss')

    def test_requires_admin(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/data-assignment/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ManagementCommandTests(TestCase):
    """Test import_entries, export_entries and assign_orphan_data"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(username='shop')
        self.tmp_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.tmp_dir, ignore_errors=True)

    def test_import_then_export(self):
        source = os.path.join(self.tmp_dir, 'in.csv')
        with open(source, 'w', encoding='utf-8') as fh:
            fh.write('IMEI,Brand,Model,Inward Date\n')
            fh.write(f'{VALID_IMEI},Samsung,A54,05/01/2024\n')

        out = StringIO()
        call_command('import_entries', 'shop', source, stdout=out)
        self.assertIn('Entries Created: 1', out.getvalue())

        target = os.path.join(self.tmp_dir, 'out.csv')
        call_command('export_entries', 'shop', '--output', target, stdout=StringIO())
        with open(target, encoding='utf-8') as fh:
            lines = fh.read().splitlines()
        self.assertEqual(lines[1], f'{VALID_IMEI},Samsung,A54,,,05/01/2024,,,,')

    def test_import_and_export_use_local_store(self):
        """Test the commands follow INVENTORY_STORE=local"""
        store_dir = os.path.join(self.tmp_dir, 'store')
        source = os.path.join(self.tmp_dir, 'in.csv')
        with open(source, 'w', encoding='utf-8') as fh:
            fh.write('IMEI,Brand,Model,Inward Date\n')
            fh.write(f'{VALID_IMEI},Samsung,A54,05/01/2024\n')

        target = os.path.join(self.tmp_dir, 'out.csv')
        with override_settings(INVENTORY_STORE='local', INVENTORY_LOCAL_STORE_DIR=store_dir):
            call_command('import_entries', 'shop', source, stdout=StringIO())
            document = LocalDocumentStore(self.user).load()
            call_command('export_entries', 'shop', '--output', target, stdout=StringIO())

        self.assertFalse(Entry.objects.filter(imei=VALID_IMEI).exists())
        self.assertEqual([row['imei'] for row in document['entries']], [VALID_IMEI])
        with open(target, encoding='utf-8') as fh:
            lines = fh.read().splitlines()
        self.assertEqual(lines[1], f'{VALID_IMEI},Samsung,A54,,,05/01/2024,,,,')

    def test_assign_orphan_data_command(self):
        Entry.objects.create(imei=VALID_IMEI)
        call_command('assign_orphan_data', '--username', 'shop', stdout=StringIO())
        self.assertEqual(Entry.objects.get(imei=VALID_IMEI).user, self.user)
