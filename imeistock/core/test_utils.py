"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from imeistock.catalog.models import Brand, DeviceModel, Seller, BookingPerson
from imeistock.inventory.models import Entry
from decimal import Decimal
from datetime import date
import random
import string

User = get_user_model()

TEST_PASSWORD = 'Str0ng!Pass99'


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def random_imei():
        return ''.join(random.choices(string.digits, k=15))

    @staticmethod
    def create_user(username=None, email=None, password=TEST_PASSWORD, role=User.ROLE_USER, **extra):
        """Create a test user"""
        if not username:
            username = f'user_{TestDataFactory.random_string(6).lower()}'
        if not email:
            email = f'{username}@shopmail.in'
        extra.setdefault('email_verified_at', timezone.now())
        return User.objects.create_user(username=username, email=email, password=password, role=role, **extra)

    @staticmethod
    def create_admin(username=None, **extra):
        """Create a user with the admin role"""
        return TestDataFactory.create_user(username=username, role=User.ROLE_ADMIN, **extra)

    @staticmethod
    def create_brand(user, name=None, **extra):
        if not name:
            name = f'Brand_{TestDataFactory.random_string(6)}'
        return Brand.objects.create(user=user, name=name, **extra)

    @staticmethod
    def create_model(user, brand=None, name=None, **extra):
        """Create a device model, with a new brand unless one is given"""
        if brand is None:
            brand = TestDataFactory.create_brand(user)
        if not name:
            name = f'Model_{TestDataFactory.random_string(6)}'
        return DeviceModel.objects.create(user=user, brand=brand, brand_name=brand.name, name=name, **extra)

    @staticmethod
    def create_seller(user, name=None, **extra):
        if not name:
            name = f'Seller_{TestDataFactory.random_string(6)}'
        return Seller.objects.create(user=user, name=name, **extra)

    @staticmethod
    def create_booking_person(user, name=None, **extra):
        if not name:
            name = f'Person_{TestDataFactory.random_string(6)}'
        return BookingPerson.objects.create(user=user, name=name, **extra)

    @staticmethod
    def create_entry(user, imei=None, model=None, inward_date=None, outward_date=None, **extra):
        """Create an in-stock entry (inward today) unless dates are given"""
        if not imei:
            imei = TestDataFactory.random_imei()
        if model is not None:
            extra.setdefault('brand', model.brand)
        return Entry.objects.create(
            user=user,
            imei=imei,
            model=model,
            inward_date=inward_date or date.today(),
            inward_amount=extra.pop('inward_amount', Decimal('10000.00')),
            outward_date=outward_date,
            **extra
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
