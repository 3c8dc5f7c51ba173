"""Shared helpers for user input and responses"""
import logging

from django.core.exceptions import FieldError
from django.db import OperationalError, ProgrammingError, transaction
from django.utils.html import strip_tags

logger = logging.getLogger('imeistock.core')


def sanitize_user_input(value):
    """Strip markup and surrounding whitespace from free-text input"""
    if not value:
        return ''
    return strip_tags(str(value)).strip()


def absolute_media_url(request, file_field):
    """Public URL for an uploaded file, or None when nothing is stored"""
    if not file_field:
        return None
    url = file_field.url
    if request is not None:
        return request.build_absolute_uri(url)
    return url


def _missing_soft_delete_column(error):
    # sqlite: "no such column: is_deleted"; postgres: column "is_deleted" does not exist
    return 'is_deleted' in str(error)


def _hard_delete(instance, error):
    logger.warning(f"Soft delete unavailable for {instance._meta.db_table} #{instance.pk}, deleting: {error}")
    instance.delete()
    return False


def soft_delete(instance):
    """
    Mark a row deleted by setting ``is_deleted``.

    Falls back to a hard delete only when the flag column is missing (legacy
    tables). Any other database error propagates and the row is kept.
    Returns True for a soft delete.
    """
    try:
        with transaction.atomic():
            instance.is_deleted = True
            instance.save(update_fields=['is_deleted', 'updated_at'])
        return True
    except FieldError as e:
        return _hard_delete(instance, e)
    except (ProgrammingError, OperationalError) as e:
        if not _missing_soft_delete_column(e):
            instance.is_deleted = False
            raise
        return _hard_delete(instance, e)
