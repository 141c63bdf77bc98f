"""Django admin configuration for shopping cart models."""

from django.contrib import admin
from .models import Cart, CartItem

# Show cart contents inside the cart page
class CartItemInline(admin.TabularInline):
    """Inline display/edit for cart items within a cart."""

    model = CartItem
    extra = 0
    readonly_fields = ('subtotal',)

@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    """Admin configuration for shopping carts."""

    list_display = ('user', 'total_price', 'created_at', 'updated_at')
    search_fields = ('user__email',)
    inlines = [CartItemInline]
