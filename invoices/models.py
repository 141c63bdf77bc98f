"""Database models for invoices."""

from django.conf import settings
from django.db import models

from orders.models import PAYMENT_MODE_CHOICES


class Invoice(models.Model):
    """Invoice issued for an order; ``pdf_file`` names the rendered artifact."""

    PAYMENT_STATUS_CHOICES = [
        ('paid', 'Paid'),
        ('unpaid', 'Unpaid'),
        ('refunded', 'Refunded'),
        ('failed', 'Failed'),
    ]

    order = models.OneToOneField('orders.Order', on_delete=models.CASCADE, related_name='invoice')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='invoices')
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    payment_method = models.CharField(max_length=12, choices=PAYMENT_MODE_CHOICES)
    payment_status = models.CharField(max_length=10, choices=PAYMENT_STATUS_CHOICES, default='unpaid')
    order_date = models.DateTimeField()
    pdf_file = models.FileField(upload_to='invoices/', max_length=255, blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['user', 'created_at'], name='invoice_user_created_idx'),
        ]

    def __str__(self):
        return f"Invoice #{self.id} for Order #{self.order_id}"
