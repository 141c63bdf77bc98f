"""Django admin configuration for orders."""

from django.contrib import admin
from .models import Order, OrderItem

# 1. Order lines are a snapshot; show them read-only
class OrderItemInline(admin.TabularInline):
    """Inline display of order line items."""

    model = OrderItem
    extra = 0
    readonly_fields = ('product', 'price', 'quantity')
    can_delete = False

# 2. Orders
@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Admin configuration for customer orders."""

    list_display = ('id', 'user', 'total_amount', 'order_status', 'payment_status', 'payment_mode', 'created_at')
    list_filter = ('order_status', 'payment_status', 'payment_mode', 'created_at')
    search_fields = ('id', 'user__email', 'transaction_id', 'tracking_number')
    readonly_fields = ('user', 'total_amount', 'created_at')
    inlines = [OrderItemInline]
