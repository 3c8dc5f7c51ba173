from django.conf import settings
from django.db import models
from django.db.models import Q

from imeistock.catalog.models import Brand, DeviceModel, Seller, BookingPerson


class EntryQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_deleted=False)

    def visible_to(self, user):
        """Admins see every user's entries, everyone else only their own"""
        queryset = self.active()
        if user.is_app_admin:
            return queryset
        return queryset.filter(user=user)

    def in_stock(self):
        return self.filter(inward_date__isnull=False, outward_date__isnull=True)

    def sold(self):
        return self.filter(inward_date__isnull=False, outward_date__isnull=False)


class Entry(models.Model):
    """One handset moving through the shop, keyed by IMEI"""
    STATUS_IN_STOCK = 'in_stock'
    STATUS_SOLD = 'sold'

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, null=True, blank=True, related_name='entries',
    )
    imei = models.CharField(max_length=32, db_index=True)
    brand = models.ForeignKey(Brand, on_delete=models.SET_NULL, null=True, blank=True, related_name='entries')
    model = models.ForeignKey(DeviceModel, on_delete=models.SET_NULL, null=True, blank=True, related_name='entries')
    seller = models.ForeignKey(Seller, on_delete=models.SET_NULL, null=True, blank=True, related_name='entries')
    booking_person = models.ForeignKey(
        BookingPerson, on_delete=models.SET_NULL, null=True, blank=True, related_name='entries',
    )
    buyer = models.CharField(max_length=200, blank=True)
    inward_date = models.DateField(null=True, blank=True)
    inward_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    outward_date = models.DateField(null=True, blank=True)
    outward_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    is_deleted = models.BooleanField(default=False, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = EntryQuerySet.as_manager()

    @property
    def status(self):
        if self.inward_date and self.outward_date:
            return self.STATUS_SOLD
        if self.inward_date:
            return self.STATUS_IN_STOCK
        return None

    def __str__(self):
        return self.imei

    class Meta:
        db_table = 'entries'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'imei'], condition=Q(is_deleted=False), name='unique_active_imei_per_user',
            ),
        ]
        indexes = [
            models.Index(fields=['user', 'is_deleted'], name='idx_entries_user_deleted'),
        ]
