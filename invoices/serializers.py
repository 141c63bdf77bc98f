"""Serializers for invoices."""

from django.urls import reverse
from rest_framework import serializers

from .models import Invoice


class InvoiceSerializer(serializers.ModelSerializer):
    """Invoice summary with a link to its PDF download."""

    download_url = serializers.SerializerMethodField()
    has_pdf = serializers.SerializerMethodField()

    class Meta:
        model = Invoice
        fields = [
            'id', 'order', 'user', 'amount', 'payment_method', 'payment_status',
            'order_date', 'has_pdf', 'download_url', 'created_at',
        ]
        read_only_fields = fields

    def get_download_url(self, obj):
        url = reverse('invoice-download', kwargs={'invoice_id': obj.pk})
        request = self.context.get('request')
        return request.build_absolute_uri(url) if request else url

    def get_has_pdf(self, obj):
        return bool(obj.pdf_file)
