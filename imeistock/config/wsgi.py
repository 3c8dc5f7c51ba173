"""
WSGI config for the IMEI stock project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'imeistock.config.settings')

application = get_wsgi_application()
