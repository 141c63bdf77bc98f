"""Invoice PDF rendering with a hard time limit and verified storage."""

import logging
import threading
from concurrent import futures

from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from fpdf.errors import FPDFException

from .documents import build_invoice_document
from .exceptions import GenerationTimeout, InvoiceRenderError, StreamWriteError
from .pdf import layout_invoice

logger = logging.getLogger(__name__)


def artifact_name(invoice_id) -> str:
    return f'invoices/invoice-{invoice_id}.pdf'


def artifact_is_complete(name) -> bool:
    """True only if ``name`` exists in storage and is non-empty."""
    if not name:
        return False
    try:
        return default_storage.exists(name) and default_storage.size(name) > 0
    except OSError:
        return False


def discard_artifact(name):
    if name and default_storage.exists(name):
        default_storage.delete(name)


def store_artifact(invoice_id, content: bytes) -> str:
    """Write the PDF bytes for ``invoice_id``, replacing any previous file."""
    name = artifact_name(invoice_id)
    discard_artifact(name)
    try:
        saved = default_storage.save(name, ContentFile(content))
    except OSError as exc:
        logger.error('Failed to write invoice artifact %s: %s', name, exc)
        discard_artifact(name)
        raise StreamWriteError() from exc

    if saved != name:
        # A concurrent render stored the canonical file first; keep that one.
        logger.info('Invoice artifact %s already written, dropping duplicate %s', name, saved)
        discard_artifact(saved)
        saved = name

    if not artifact_is_complete(saved):
        logger.error('Invoice artifact %s is missing or empty after write', saved)
        discard_artifact(saved)
        raise StreamWriteError()
    return saved


def _layout_with_timeout(document, timeout):
    cancel_event = threading.Event()
    executor = futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix='invoice-render')
    try:
        future = executor.submit(layout_invoice, document, cancel_event)
        try:
            return future.result(timeout=timeout)
        except futures.TimeoutError:
            cancel_event.set()
            logger.error('Invoice %s generation timed out after %ss', document.invoice_id, timeout)
            raise GenerationTimeout() from None
        except InvoiceRenderError:
            raise
        except FPDFException as exc:
            logger.error('Invoice %s layout failed: %s', document.invoice_id, exc)
            raise InvoiceRenderError() from exc
        except Exception as exc:
            logger.exception('Invoice %s layout crashed', document.invoice_id)
            raise InvoiceRenderError() from exc
    finally:
        executor.shutdown(wait=False, cancel_futures=True)


def render_invoice(invoice, order, user, shipping_address, *, timeout=None) -> str:
    """Render the invoice PDF and return its storage name.

    The document data is resolved in the calling thread; only the layout
    runs on the worker. Raises an :class:`InvoiceRenderError` subclass on
    any failure, in which case no artifact is left behind.
    """
    document = build_invoice_document(invoice, order, user, shipping_address)
    if timeout is None:
        timeout = settings.INVOICE_GENERATION_TIMEOUT

    logger.info('Generating invoice %s for order %s (%d items)', invoice.pk, order.pk, len(document.items))
    try:
        content = _layout_with_timeout(document, timeout)
    except InvoiceRenderError:
        discard_artifact(artifact_name(invoice.pk))
        raise

    name = store_artifact(invoice.pk, content)
    logger.info('Invoice %s written to %s (%d bytes)', invoice.pk, name, len(content))
    return name
