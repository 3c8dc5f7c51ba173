from django.apps import AppConfig


class CatalogConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'imeistock.catalog'

    def ready(self):
        """Import signals when app is ready"""
        import imeistock.catalog.signals  # noqa: F401
