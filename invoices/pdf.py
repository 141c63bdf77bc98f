"""A4 invoice layout with fpdf2.

Coordinates are in points with a top-left origin. The layout is a single
top-to-bottom pass: header, bill-to and invoice details side by side, the
item table (repeating its header row on every continuation page), the money
summary, then the footer.
"""

import logging
import os

from fpdf import FPDF
from fpdf.errors import FPDFException
from PIL import Image

from .exceptions import GenerationTimeout
from .pricing import format_currency

logger = logging.getLogger(__name__)

MARGIN = 40
LOGO_SIZE = 60
ROW_H = 18
LINE_H = 14
FOOTER_H = 50

# (title, width, align)
COLUMNS = (
    ('Product', 275, 'L'),
    ('Qty', 60, 'R'),
    ('Unit Price', 90, 'R'),
    ('Amount', 90, 'R'),
)

# Colors (RGB)
COLOR_BRAND = (184, 134, 11)
COLOR_TEXT = (51, 51, 51)
COLOR_MUTED = (110, 110, 110)
COLOR_HEADER_FILL = (58, 58, 58)
COLOR_HEADER_TEXT = (255, 255, 255)
COLOR_ROW_ALT = (245, 241, 230)

FONT = 'Helvetica'


def _latin1(text) -> str:
    # Core PDF fonts only cover latin-1.
    return str(text).encode('latin-1', 'replace').decode('latin-1')


def _fit(pdf, text, width, padding=4):
    """Truncate ``text`` with an ellipsis so it fits inside ``width``."""
    text = _latin1(text)
    available = width - 2 * padding
    if pdf.get_string_width(text) <= available:
        return text
    while text and pdf.get_string_width(text + '...') > available:
        text = text[:-1]
    return text.rstrip() + '...'


def logo_is_usable(path) -> bool:
    if not path or not os.path.isfile(path):
        return False
    try:
        with Image.open(path) as image:
            image.verify()
    except (OSError, SyntaxError, ValueError):
        logger.warning('Invoice logo at %s is unreadable, using placeholder', path)
        return False
    return True


def _check_cancelled(cancel_event):
    if cancel_event is not None and cancel_event.is_set():
        raise GenerationTimeout()


class InvoiceLayout:
    """Draws one :class:`~invoices.documents.InvoiceDocument` onto a new PDF."""

    def __init__(self, document, cancel_event=None):
        self.document = document
        self.cancel_event = cancel_event
        self.pdf = FPDF(orientation='portrait', unit='pt', format='A4')
        self.pdf.set_auto_page_break(False)
        self.pdf.set_margins(MARGIN, MARGIN, MARGIN)
        self.pdf.creation_date = document.issued_at
        self.pdf.set_title(f'Invoice #{document.invoice_id}')
        self.pdf.set_author(_latin1(document.store.name))
        self.content_bottom = self.pdf.h - MARGIN - FOOTER_H

    def render(self) -> bytes:
        self.pdf.add_page()
        self._header()
        self._parties()
        self._items_table()
        self._summary()
        self._footer()
        return bytes(self.pdf.output())

    def _draw_logo(self, path) -> bool:
        if not logo_is_usable(path):
            return False
        try:
            self.pdf.image(path, x=MARGIN, y=MARGIN, w=LOGO_SIZE, h=LOGO_SIZE)
        except (OSError, ValueError, FPDFException) as exc:
            # verify() only checks chunk structure; pixel data can still be corrupt.
            logger.warning('Invoice logo at %s could not be decoded (%s), using placeholder', path, exc)
            return False
        return True

    # 1. Logo and company identity
    def _header(self):
        pdf = self.pdf
        store = self.document.store
        if not self._draw_logo(store.logo_path):
            pdf.set_fill_color(*COLOR_BRAND)
            pdf.rect(MARGIN, MARGIN, LOGO_SIZE, LOGO_SIZE, style='F')
            pdf.set_text_color(*COLOR_HEADER_TEXT)
            pdf.set_font(FONT, 'B', 20)
            initials = ''.join(word[0] for word in store.name.split()[:2]).upper() or 'GB'
            pdf.set_xy(MARGIN, MARGIN)
            pdf.cell(LOGO_SIZE, LOGO_SIZE, _latin1(initials), align='C')

        x = MARGIN + LOGO_SIZE + 15
        pdf.set_text_color(*COLOR_BRAND)
        pdf.set_font(FONT, 'B', 22)
        pdf.set_xy(x, MARGIN)
        pdf.cell(0, 26, _latin1(store.name))

        pdf.set_text_color(*COLOR_MUTED)
        pdf.set_font(FONT, '', 10)
        y = MARGIN + 28
        for line in (store.address, f'Phone: {store.phone}', f'Email: {store.email}'):
            pdf.set_xy(x, y)
            pdf.cell(0, 12, _latin1(line))
            y += 12

        pdf.set_text_color(*COLOR_TEXT)
        pdf.set_font(FONT, 'B', 18)
        pdf.set_xy(MARGIN, MARGIN)
        pdf.cell(pdf.w - 2 * MARGIN, 26, 'INVOICE', align='R')

        pdf.set_draw_color(*COLOR_BRAND)
        pdf.line(MARGIN, MARGIN + LOGO_SIZE + 15, pdf.w - MARGIN, MARGIN + LOGO_SIZE + 15)

    # 2. Bill-to (left) and invoice details (right), same vertical offset
    def _parties(self):
        pdf = self.pdf
        doc = self.document
        top = MARGIN + LOGO_SIZE + 30
        half = (pdf.w - 2 * MARGIN) / 2

        pdf.set_text_color(*COLOR_TEXT)
        pdf.set_font(FONT, 'B', 12)
        pdf.set_xy(MARGIN, top)
        pdf.cell(half, LINE_H + 2, 'Billed To:')
        pdf.set_font(FONT, '', 10)
        left_y = top + LINE_H + 4
        for line in doc.bill_to:
            pdf.set_xy(MARGIN, left_y)
            pdf.cell(half, LINE_H, _fit(pdf, line, half, padding=0))
            left_y += LINE_H

        details = (
            ('Invoice ID', f'#{doc.invoice_id}'),
            ('Order ID', f'#{doc.order_id}'),
            ('Invoice Date', doc.issued_at.strftime('%d %b %Y, %I:%M %p')),
            ('Payment Method', doc.payment_method),
            ('Status', doc.payment_status),
        )
        right_x = MARGIN + half
        pdf.set_font(FONT, 'B', 12)
        pdf.set_xy(right_x, top)
        pdf.cell(half, LINE_H + 2, 'Invoice Details', align='R')
        right_y = top + LINE_H + 4
        for label, value in details:
            pdf.set_xy(right_x, right_y)
            pdf.set_font(FONT, '', 10)
            pdf.cell(half, LINE_H, _latin1(f'{label}: {value}'), align='R')
            right_y += LINE_H

        pdf.set_y(max(left_y, right_y) + 20)

    # 3. Items
    def _table_header(self):
        pdf = self.pdf
        pdf.set_fill_color(*COLOR_HEADER_FILL)
        pdf.set_text_color(*COLOR_HEADER_TEXT)
        pdf.set_font(FONT, 'B', 10)
        pdf.set_x(MARGIN)
        for title, width, align in COLUMNS:
            pdf.cell(width, ROW_H, title, align=align, fill=True)
        pdf.ln(ROW_H)

    def _items_table(self):
        pdf = self.pdf
        self._table_header()
        for index, item in enumerate(self.document.items):
            _check_cancelled(self.cancel_event)
            if pdf.get_y() + ROW_H > self.content_bottom:
                pdf.add_page()
                self._table_header()

            pdf.set_text_color(*COLOR_TEXT)
            pdf.set_font(FONT, '', 10)
            pdf.set_fill_color(*COLOR_ROW_ALT)
            fill = index % 2 == 1
            values = (
                _fit(pdf, item.name, COLUMNS[0][1]),
                str(item.quantity),
                format_currency(item.unit_price),
                format_currency(item.amount),
            )
            pdf.set_x(MARGIN)
            for (title, width, align), value in zip(COLUMNS, values):
                pdf.cell(width, ROW_H, value, align=align, fill=fill)
            pdf.ln(ROW_H)

    # 4. Money summary
    def _summary(self):
        pdf = self.pdf
        summary = self.document.summary
        shipping = 'FREE' if not summary.shipping else format_currency(summary.shipping)
        rows = (
            ('Subtotal', format_currency(summary.subtotal), False),
            (f'Tax ({(summary.tax_rate * 100).normalize():f}%)', format_currency(summary.tax), False),
            ('Shipping', shipping, False),
            ('TOTAL', format_currency(summary.total), True),
        )
        if pdf.get_y() + 10 + ROW_H * len(rows) > self.content_bottom:
            pdf.add_page()

        label_w = sum(width for _, width, _ in COLUMNS[:3])
        amount_w = COLUMNS[3][1]
        pdf.set_y(pdf.get_y() + 10)
        pdf.set_text_color(*COLOR_TEXT)
        for label, value, bold in rows:
            pdf.set_font(FONT, 'B' if bold else '', 12 if bold else 10)
            pdf.set_x(MARGIN)
            pdf.cell(label_w, ROW_H, label, align='R')
            pdf.cell(amount_w, ROW_H, value, align='R')
            pdf.ln(ROW_H)

    # 5. Footer
    def _footer(self):
        pdf = self.pdf
        store = self.document.store
        width = pdf.w - 2 * MARGIN
        y = pdf.h - MARGIN - FOOTER_H + 10
        pdf.set_draw_color(*COLOR_BRAND)
        pdf.line(MARGIN, y, pdf.w - MARGIN, y)
        pdf.set_text_color(*COLOR_MUTED)
        pdf.set_font(FONT, '', 10)
        for line in (
            f'Thank you for shopping with {store.name}!',
            'This is a system-generated invoice.',
            f'Questions? Contact {store.email} or {store.phone}',
        ):
            y += 12
            pdf.set_xy(MARGIN, y)
            pdf.cell(width, 12, _latin1(line), align='C')


def layout_invoice(document, cancel_event=None) -> bytes:
    """Render ``document`` to PDF bytes.

    ``cancel_event`` is checked between table rows; once set, the layout
    stops with :class:`GenerationTimeout` and its partial output is dropped.
    """
    _check_cancelled(cancel_event)
    return InvoiceLayout(document, cancel_event=cancel_event).render()
