"""Database models for orders and order lines."""

from django.conf import settings
from django.db import models

from accounts.models import ShippingAddress
from products.models import Product

PAYMENT_MODE_CHOICES = [
    ('card', 'Card'),
    ('paypal', 'PayPal'),
    ('upi', 'UPI'),
    ('cod', 'Cash on delivery'),
    ('net_banking', 'Net banking'),
]


class Order(models.Model):
    """A customer's order with an immutable snapshot of its lines."""

    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('failed', 'Failed'),
    ]
    ORDER_STATUS_CHOICES = [
        ('processing', 'Processing'),
        ('shipped', 'Shipped'),
        ('delivered', 'Delivered'),
        ('cancelled', 'Cancelled'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='orders')
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    payment_status = models.CharField(max_length=10, choices=PAYMENT_STATUS_CHOICES, default='pending')
    order_status = models.CharField(max_length=12, choices=ORDER_STATUS_CHOICES, default='processing')
    payment_mode = models.CharField(max_length=12, choices=PAYMENT_MODE_CHOICES, default='cod')
    shipping_address = models.ForeignKey(
        ShippingAddress, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders'
    )

    tracking_number = models.CharField(max_length=120, blank=True, default='')
    tracking_url = models.URLField(blank=True, default='')
    transaction_id = models.CharField(max_length=120, blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['user', 'created_at'], name='order_user_created_idx'),
            models.Index(fields=['order_status', 'created_at'], name='order_status_created_idx'),
        ]

    def __str__(self):
        return f"Order #{self.id} - {self.user.email}"


class OrderItem(models.Model):
    """Line item inside an order. ``price`` is the unit price at purchase time."""

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='order_items')
    quantity = models.PositiveIntegerField()
    price = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        ordering = ['id']
        indexes = [
            models.Index(fields=['order', 'product'], name='orderitem_order_product_idx'),
        ]

    def __str__(self):
        return f"Line for Order #{self.order_id} - {self.product or 'deleted product'}"

    @property
    def line_total(self):
        return self.price * self.quantity
