"""Products app configuration and signal registration."""

from django.apps import AppConfig


class ProductsConfig(AppConfig):
    """Django app config for the catalog; registers signal handlers."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'products'

    def ready(self):
        import products.signals  # noqa: F401
