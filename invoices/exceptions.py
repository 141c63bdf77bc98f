"""Errors raised while rendering or storing an invoice PDF.

Every renderer failure derives from :class:`InvoiceRenderError`, so checkout
can turn any of them into a warning while retrieval lets them propagate.
"""

from rest_framework import status
from rest_framework.exceptions import APIException


class InvoiceRenderError(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Invoice generation failed.'
    default_code = 'invoice_render_error'


class InvalidInvoiceInput(InvoiceRenderError):
    default_detail = 'Invalid input for invoice generation.'
    default_code = 'invalid_invoice_input'


class NoValidLineItems(InvoiceRenderError):
    default_detail = 'No valid items to render on the invoice.'
    default_code = 'no_valid_line_items'


class GenerationTimeout(InvoiceRenderError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    default_detail = 'Invoice generation timed out.'
    default_code = 'generation_timeout'


class StreamWriteError(InvoiceRenderError):
    default_detail = 'Failed to write the invoice file.'
    default_code = 'stream_write_error'
