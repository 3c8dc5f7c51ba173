import os

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


def avatar_upload_path(instance, filename):
    """avatars/<user id>-<timestamp>.<ext>"""
    ext = os.path.splitext(filename)[1].lstrip('.').lower() or 'png'
    stamp = int(timezone.now().timestamp() * 1000)
    return f"avatars/{instance.pk}-{stamp}.{ext}"


class User(AbstractUser):
    """Application user and profile"""
    ROLE_USER = 'user'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = [
        (ROLE_USER, 'User'),
        (ROLE_ADMIN, 'Admin'),
    ]

    mobile = models.CharField(max_length=20, blank=True)
    country_code = models.CharField(max_length=5, default='+91')
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_USER, db_index=True)
    avatar = models.ImageField(upload_to=avatar_upload_path, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    email_verified_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_app_admin(self):
        return self.role == self.ROLE_ADMIN or self.is_superuser

    @property
    def is_email_verified(self):
        # Superusers are created from the shell and never receive a link
        return self.email_verified_at is not None or self.is_superuser

    class Meta:
        db_table = 'users'
