"""Database models for the grocery catalog."""

from django.core.validators import MinValueValidator
from django.db import models


# 1. Categories
class Category(models.Model):
    """Product category (e.g., Fruits, Dairy)."""

    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "Categories"
        ordering = ['name']

    def __str__(self):
        return self.name


# 2. Products
class Product(models.Model):
    """Sellable grocery item with its price and available stock.

    ``stock`` is a positive integer column, so the database itself refuses a
    negative value; checkout additionally decrements it with a conditional
    update (see :func:`orders.services.place_order`).
    """

    LOW_STOCK_LIMIT = 5
    LIMITED_STOCK_LIMIT = 15

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    stock = models.PositiveIntegerField(default=0)
    images = models.JSONField(default=list, blank=True)
    ratings = models.FloatField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['name'], name='product_name_idx'),
            models.Index(fields=['category'], name='product_category_idx'),
            models.Index(fields=['price'], name='product_price_idx'),
            models.Index(fields=['stock'], name='product_stock_idx'),
            models.Index(fields=['-created_at'], name='product_created_idx'),
            models.Index(fields=['category', 'price', 'stock'], name='product_cat_price_stock_idx'),
        ]

    def __str__(self):
        return self.name

    @property
    def stock_status(self):
        if self.stock == 0:
            return 'out_of_stock'
        if self.stock <= self.LOW_STOCK_LIMIT:
            return 'low_stock'
        if self.stock <= self.LIMITED_STOCK_LIMIT:
            return 'limited_stock'
        return 'in_stock'
