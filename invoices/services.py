"""Invoice generation and retrieval used by checkout and the download API."""

import logging

from django.db import DatabaseError
from rest_framework.exceptions import NotFound

from orders.models import Order
from .models import Invoice
from .rendering import artifact_is_complete, discard_artifact, render_invoice

logger = logging.getLogger(__name__)


def visible_invoices(user):
    """Invoices the user may see: their own, or all of them for admins."""
    queryset = Invoice.objects.select_related('order', 'user')
    if getattr(user, 'is_admin', False):
        return queryset
    return queryset.filter(user=user)


def generate_invoice_artifact(invoice) -> str:
    """Render ``invoice`` from freshly loaded order data and record the file.

    If the rendered file cannot be recorded on the invoice row, it is removed
    again and the database error propagates.
    """
    order = (
        Order.objects.select_related('user', 'shipping_address')
        .prefetch_related('items__product')
        .get(pk=invoice.order_id)
    )
    name = render_invoice(invoice, order, order.user, order.shipping_address)
    invoice.pdf_file.name = name
    try:
        invoice.save(update_fields=['pdf_file', 'updated_at'])
    except DatabaseError:
        logger.error('Could not record invoice %s file %s, discarding it', invoice.pk, name)
        invoice.pdf_file.name = ''
        discard_artifact(name)
        raise
    return name


def get_invoice_artifact(invoice_id, user) -> str:
    """Return the storage name of the invoice PDF, regenerating it when absent."""
    try:
        invoice = visible_invoices(user).get(pk=invoice_id)
    except Invoice.DoesNotExist:
        raise NotFound('Invoice not found.')

    if artifact_is_complete(invoice.pdf_file.name):
        return invoice.pdf_file.name

    logger.info('Invoice %s has no stored PDF, regenerating', invoice.pk)
    return generate_invoice_artifact(invoice)
