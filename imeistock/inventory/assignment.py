"""
Owner-less data: counts per table and bulk assignment to a user
"""
import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction

from imeistock.catalog.cache import invalidate_reference_lists
from imeistock.catalog.models import Brand, DeviceModel, Seller, BookingPerson
from imeistock.core.exceptions import ValidationFailed
from .models import Entry

logger = logging.getLogger('imeistock.inventory')

User = get_user_model()

ASSIGNABLE_TABLES = [
    ('entries', Entry),
    ('brands', Brand),
    ('models', DeviceModel),
    ('sellers', Seller),
    ('booking_persons', BookingPerson),
]


def orphan_counts():
    """{'entries': {'total': n, 'orphaned': m}, ...}"""
    return {
        table: {
            'total': model.objects.count(),
            'orphaned': model.objects.filter(user__isnull=True).count(),
        }
        for table, model in ASSIGNABLE_TABLES
    }


def default_assignee():
    return User.objects.order_by('date_joined', 'pk').first()


def assign_orphan_data(user=None):
    """Give every owner-less row to ``user`` (default: the first registered user)"""
    user = user or default_assignee()
    if user is None:
        raise ValidationFailed('There is no user to assign the data to.')

    assigned = {}
    try:
        with transaction.atomic():
            for table, model in ASSIGNABLE_TABLES:
                assigned[table] = model.objects.filter(user__isnull=True).update(user=user)
    except IntegrityError:
        raise ValidationFailed(f"Some orphaned rows clash with data '{user.username}' already owns.")

    # Queryset updates bypass the cache signals
    invalidate_reference_lists(user.pk)
    logger.info(f"Assigned orphaned data to user {user.pk}: {assigned}")
    return {'user': user.pk, 'username': user.username, 'assigned': assigned}
