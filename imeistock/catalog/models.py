from django.conf import settings
from django.db import models
from django.db.models import Q
from django.db.models.functions import Lower


class ReferenceQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_deleted=False)

    def owned_by(self, user):
        return self.filter(user=user)


class ReferenceData(models.Model):
    """Common columns for user-owned reference tables"""
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, null=True, blank=True,
        related_name='%(class)s_set',
    )
    name = models.CharField(max_length=200)
    is_deleted = models.BooleanField(default=False, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ReferenceQuerySet.as_manager()

    class Meta:
        abstract = True
        ordering = ['name']

    def __str__(self):
        return self.name


class Brand(ReferenceData):
    """Handset brands"""

    class Meta(ReferenceData.Meta):
        db_table = 'brands'
        constraints = [
            models.UniqueConstraint(
                Lower('name'), 'user', condition=Q(is_deleted=False), name='unique_active_brand_name_per_user',
            ),
        ]


class DeviceModel(ReferenceData):
    """Handset models, scoped to a brand"""
    brand = models.ForeignKey(Brand, on_delete=models.SET_NULL, null=True, blank=True, related_name='device_models')
    brand_name = models.CharField(max_length=200, blank=True)

    class Meta(ReferenceData.Meta):
        db_table = 'models'
        constraints = [
            models.UniqueConstraint(
                Lower('name'), 'user', 'brand', condition=Q(is_deleted=False),
                name='unique_active_model_name_per_brand',
            ),
        ]


class Seller(ReferenceData):
    class Meta(ReferenceData.Meta):
        db_table = 'sellers'
        constraints = [
            models.UniqueConstraint(
                Lower('name'), 'user', condition=Q(is_deleted=False), name='unique_active_seller_name_per_user',
            ),
        ]


class BookingPerson(ReferenceData):
    class Meta(ReferenceData.Meta):
        db_table = 'booking_persons'
        constraints = [
            models.UniqueConstraint(
                Lower('name'), 'user', condition=Q(is_deleted=False),
                name='unique_active_booking_person_name_per_user',
            ),
        ]
