"""Assembly of the data printed on an invoice.

ORM rows are resolved here, in the request thread, into frozen dataclasses.
The PDF layout only ever sees these plain values and never touches the
database.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.utils import timezone

from .exceptions import InvalidInvoiceInput, NoValidLineItems
from .pricing import InvoiceSummary, invoice_summary, money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreIdentity:
    name: str
    address: str
    phone: str
    email: str
    logo_path: str

    @classmethod
    def from_settings(cls):
        return cls(
            name=settings.STORE_NAME,
            address=settings.STORE_ADDRESS,
            phone=settings.STORE_PHONE,
            email=settings.STORE_EMAIL,
            logo_path=str(settings.INVOICE_LOGO_PATH or ''),
        )


@dataclass(frozen=True)
class LineItem:
    name: str
    quantity: int
    unit_price: Decimal

    @property
    def amount(self) -> Decimal:
        return money(self.unit_price * self.quantity)


@dataclass(frozen=True)
class InvoiceDocument:
    invoice_id: int
    order_id: int
    issued_at: datetime
    payment_method: str
    payment_status: str
    bill_to: tuple
    items: tuple
    summary: InvoiceSummary
    store: StoreIdentity


def _as_price(value):
    if value is None or isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite() or price < 0:
        return None
    return price


def _as_quantity(value):
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value > 0 else None


def resolve_line_items(order_items):
    """Turn order lines into :class:`LineItem` values, skipping unusable ones.

    A line is skipped when its product is gone or unnamed, or when its price
    or quantity is not a usable number.
    """
    resolved = []
    for item in order_items:
        product = getattr(item, 'product', None)
        name = (getattr(product, 'name', '') or '').strip()
        price = _as_price(getattr(item, 'price', None))
        quantity = _as_quantity(getattr(item, 'quantity', None))
        if not name or price is None or quantity is None:
            logger.warning('Skipping invalid invoice line %s', getattr(item, 'pk', None))
            continue
        resolved.append(LineItem(name=name, quantity=quantity, unit_price=price))
    return tuple(resolved)


def _bill_to_lines(user, shipping_address):
    lines = [user.full_name, user.email]
    if shipping_address is not None:
        lines.append(shipping_address.address_line1)
        lines.append(shipping_address.address_line2)
        lines.append(f"{shipping_address.city}, {shipping_address.state} {shipping_address.pin_code}".strip(', '))
        lines.append(shipping_address.country)
        if shipping_address.phone_number:
            lines.append(f"Phone: {shipping_address.phone_number}")
    return tuple(line.strip() for line in lines if line and line.strip())


def build_invoice_document(invoice, order, user, shipping_address) -> InvoiceDocument:
    """Validate the inputs and snapshot everything the layout needs.

    Raises :class:`InvalidInvoiceInput` when the invoice, order or user is
    missing or the order has no lines, and :class:`NoValidLineItems` when
    every line had to be skipped.
    """
    if invoice is None or order is None or user is None:
        raise InvalidInvoiceInput()

    order_items = list(order.items.all())
    if not order_items:
        raise InvalidInvoiceInput('Order has no items.')

    items = resolve_line_items(order_items)
    if not items:
        raise NoValidLineItems()

    subtotal = sum((item.amount for item in items), Decimal('0'))
    return InvoiceDocument(
        invoice_id=invoice.pk,
        order_id=order.pk,
        issued_at=timezone.localtime(invoice.order_date or timezone.now()),
        payment_method=invoice.get_payment_method_display(),
        payment_status=invoice.get_payment_status_display(),
        bill_to=_bill_to_lines(user, shipping_address),
        items=items,
        summary=invoice_summary(subtotal),
        store=StoreIdentity.from_settings(),
    )
