"""Checkout: turn the user's cart into an order, an invoice and its PDF.

Validation happens before anything is written. Stock decrements, the order,
its lines and the invoice are written in one transaction; the PDF is rendered
only after that transaction commits, so a rendering failure never undoes a
placed order.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from accounts.models import ShippingAddress
from cart.models import Cart
from core.exceptions import PersistenceError
from invoices.exceptions import InvoiceRenderError
from invoices.models import Invoice
from invoices.pricing import invoice_summary
from invoices.services import generate_invoice_artifact
from products.models import Product
from products.views import invalidate_catalog_cache
from .exceptions import EmptyCart, InsufficientStock, ProductNotFound
from .models import Order, OrderItem

logger = logging.getLogger(__name__)

INVOICE_WARNING = 'Order placed, but the invoice PDF could not be generated. It will be regenerated on download.'


@dataclass
class CheckoutResult:
    order: Order
    invoice: Invoice
    warning: str | None = None


def _validate_cart_items(items):
    for item in items:
        if item.product is None:
            raise ProductNotFound()
        if item.product.stock < item.quantity:
            logger.warning(
                'Insufficient stock for %s: requested %s, available %s',
                item.product.name, item.quantity, item.product.stock,
            )
            raise InsufficientStock(item.product.name)


def _reserve_stock(item):
    """Decrement stock only if enough is left; never drives it negative."""
    updated = (
        Product.objects.filter(pk=item.product_id, stock__gte=item.quantity)
        .update(stock=F('stock') - item.quantity)
    )
    if updated:
        return
    if not Product.objects.filter(pk=item.product_id).exists():
        raise ProductNotFound()
    logger.warning('Stock for %s changed during checkout', item.product.name)
    raise InsufficientStock(item.product.name)


def _create_order(user, items, shipping_address, payment_mode):
    total = Decimal('0.00')
    for item in items:
        _reserve_stock(item)
        total += item.product.price * item.quantity

    order = Order.objects.create(
        user=user,
        total_amount=total,
        payment_mode=payment_mode,
        shipping_address=shipping_address,
    )
    OrderItem.objects.bulk_create([
        OrderItem(order=order, product=item.product, quantity=item.quantity, price=item.product.price)
        for item in items
    ])

    invoice = Invoice.objects.create(
        order=order,
        user=user,
        amount=invoice_summary(total).total,
        payment_method=payment_mode,
        order_date=timezone.now(),
    )
    transaction.on_commit(invalidate_catalog_cache)
    return order, invoice


def _attach_invoice_pdf(order, invoice):
    """Render and record the invoice PDF after commit; failures become a warning."""
    try:
        generate_invoice_artifact(invoice)
    except InvoiceRenderError as exc:
        logger.error('Invoice PDF for order %s failed: %s', order.pk, exc.detail)
        return INVOICE_WARNING
    except DatabaseError as exc:
        logger.error('Invoice PDF for order %s could not be recorded: %s', order.pk, exc)
        return INVOICE_WARNING
    return None


def place_order(user, *, shipping_address_id=None, payment_mode='cod') -> CheckoutResult:
    """Place an order for everything in ``user``'s cart.

    Raises :class:`EmptyCart`, :class:`ProductNotFound` or
    :class:`InsufficientStock` before any write, and
    :class:`~core.exceptions.PersistenceError` if the database fails while
    writing. A PDF failure is reported through ``CheckoutResult.warning``.
    """
    cart = Cart.objects.filter(user=user).prefetch_related('items__product').first()
    items = list(cart.items.all()) if cart is not None else []
    if not items:
        raise EmptyCart()

    _validate_cart_items(items)

    shipping_address = None
    if shipping_address_id is not None:
        shipping_address = ShippingAddress.objects.filter(pk=shipping_address_id, user=user).first()
        if shipping_address is None:
            raise ValidationError({'shipping_address_id': 'Shipping address not found.'})

    try:
        with transaction.atomic():
            order, invoice = _create_order(user, items, shipping_address, payment_mode)
    except DatabaseError as exc:
        logger.error('Checkout failed for %s: %s', user.email, exc)
        raise PersistenceError() from exc

    logger.info('Order %s placed by %s, total %s', order.pk, user.email, order.total_amount)

    warning = _attach_invoice_pdf(order, invoice)

    cart.items.all().delete()
    cart.save(update_fields=['updated_at'])

    order = Order.objects.select_related('shipping_address').prefetch_related('items__product').get(pk=order.pk)
    invoice.refresh_from_db()
    return CheckoutResult(order=order, invoice=invoice, warning=warning)
