"""Invoice money arithmetic.

One function computes the summary so the stored invoice amount and the
TOTAL printed on the PDF can never disagree.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings

CENT = Decimal('0.01')


@dataclass(frozen=True)
class InvoiceSummary:
    subtotal: Decimal
    tax_rate: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal


def money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def invoice_summary(subtotal) -> InvoiceSummary:
    """Tax is a flat rate on the subtotal; shipping is free above the threshold.

    Shipping is shown on the invoice but only added to the total when
    ``INVOICE_TOTAL_INCLUDES_SHIPPING`` is enabled.
    """
    subtotal = money(subtotal)
    tax_rate = Decimal(settings.INVOICE_TAX_RATE)
    tax = money(subtotal * tax_rate)
    if subtotal > Decimal(settings.INVOICE_FREE_SHIPPING_THRESHOLD):
        shipping = money(0)
    else:
        shipping = money(settings.INVOICE_SHIPPING_FEE)
    total = subtotal + tax
    if settings.INVOICE_TOTAL_INCLUDES_SHIPPING:
        total += shipping
    return InvoiceSummary(
        subtotal=subtotal, tax_rate=tax_rate, tax=tax, shipping=shipping, total=total,
    )


def format_currency(value) -> str:
    return f"Rs. {money(value):,.2f}"
