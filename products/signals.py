"""Signals that keep the cached catalog listing in step with the database."""

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import Category, Product
from .views import invalidate_catalog_cache


@receiver(post_save, sender=Product)
@receiver(post_delete, sender=Product)
@receiver(post_save, sender=Category)
@receiver(post_delete, sender=Category)
def refresh_catalog_cache(sender, instance, **kwargs):
    """Invalidate cached product listings on any catalog write."""
    invalidate_catalog_cache()
