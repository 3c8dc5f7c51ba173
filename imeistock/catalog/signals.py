"""
Cache invalidation signals
Retire a user's cached reference lists whenever one of their rows changes
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from .cache import invalidate_reference_lists
from .models import Brand, DeviceModel, Seller, BookingPerson


@receiver(post_save, sender=Brand)
@receiver(post_save, sender=DeviceModel)
@receiver(post_save, sender=Seller)
@receiver(post_save, sender=BookingPerson)
@receiver(post_delete, sender=Brand)
@receiver(post_delete, sender=DeviceModel)
@receiver(post_delete, sender=Seller)
@receiver(post_delete, sender=BookingPerson)
def invalidate_reference_cache(sender, instance, **kwargs):
    invalidate_reference_lists(instance.user_id)
