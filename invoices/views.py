"""Invoice APIs: list own invoices and download (or regenerate) the PDF."""

import logging

from django.core.files.storage import default_storage
from django.http import FileResponse
from rest_framework import mixins, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from products.views import StandardResultsSetPagination
from .models import Invoice
from .serializers import InvoiceSerializer
from .services import get_invoice_artifact

logger = logging.getLogger(__name__)


class InvoiceViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """List the authenticated user's invoices."""

    serializer_class = InvoiceSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        return Invoice.objects.filter(user=self.request.user).select_related('order')


class InvoiceDownloadView(APIView):
    """Stream the invoice PDF.

    Owners and admins may download. A missing or empty stored file is
    regenerated from the order before it is sent.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request, invoice_id):
        name = get_invoice_artifact(invoice_id, request.user)
        logger.info('Invoice %s downloaded by %s', invoice_id, request.user.email)
        return FileResponse(
            default_storage.open(name, 'rb'),
            as_attachment=True,
            filename=f'invoice-{invoice_id}.pdf',
            content_type='application/pdf',
        )
