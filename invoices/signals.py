"""Signals that keep stored invoice PDFs in step with invoice rows."""

import logging

from django.db.models.signals import post_delete
from django.dispatch import receiver

from .models import Invoice

logger = logging.getLogger(__name__)


@receiver(post_delete, sender=Invoice)
def delete_invoice_pdf(sender, instance, **kwargs):
    """Remove the PDF from storage once its invoice is deleted."""
    if instance.pdf_file:
        instance.pdf_file.delete(save=False)
        logger.info('Deleted PDF for invoice %s', instance.pk)
