"""Database models for per-user shopping carts."""

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from products.models import Product

class Cart(models.Model):
    """Shopping cart owned 1:1 by a user, created lazily on first access."""

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='cart')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Cart of {self.user}"

    @property
    def total_price(self):
        return sum(item.subtotal for item in self.items.all())

class CartItem(models.Model):
    """Line item inside a cart.

    ``product`` becomes null when the product is deleted; checkout reports
    such items as missing products.
    """

    cart = models.ForeignKey(Cart, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, related_name='cart_items')
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])

    class Meta:
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(fields=['cart', 'product'], name='unique_cart_product'),
        ]

    def __str__(self):
        name = self.product.name if self.product else 'Missing product'
        return f"{self.quantity} x {name}"

    @property
    def subtotal(self):
        if self.product is None:
            return 0
        return self.product.price * self.quantity
