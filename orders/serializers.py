"""Serializers for orders and checkout input."""

from rest_framework import serializers

from accounts.serializers import ShippingAddressSerializer
from .models import PAYMENT_MODE_CHOICES, Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    """Order line with the product name resolved (``None`` once the product is deleted)."""

    product_name = serializers.SerializerMethodField()
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = ['id', 'product', 'product_name', 'quantity', 'price', 'line_total']
        read_only_fields = fields

    def get_product_name(self, obj):
        return obj.product.name if obj.product is not None else None


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    shipping_address = ShippingAddressSerializer(read_only=True)
    user_email = serializers.ReadOnlyField(source='user.email')
    invoice_id = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'user', 'user_email', 'items', 'total_amount', 'payment_status',
            'order_status', 'payment_mode', 'shipping_address', 'invoice_id',
            'tracking_number', 'tracking_url', 'transaction_id', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_invoice_id(self, obj):
        invoice = getattr(obj, 'invoice', None)
        return invoice.pk if invoice is not None else None


class PlaceOrderSerializer(serializers.Serializer):
    shipping_address_id = serializers.IntegerField(required=False, allow_null=True)
    payment_mode = serializers.ChoiceField(choices=PAYMENT_MODE_CHOICES, default='cod')
