"""DRF serializers for cart APIs."""

from rest_framework import serializers
from .models import Cart, CartItem


class CartProductSerializer(serializers.Serializer):
    """Slim product representation embedded in cart lines."""

    id = serializers.IntegerField()
    name = serializers.CharField()
    price = serializers.DecimalField(max_digits=10, decimal_places=2)
    stock = serializers.IntegerField()
    images = serializers.ListField(child=serializers.CharField())


class CartItemSerializer(serializers.ModelSerializer):
    """Serializer for cart line items with the resolved product."""

    product = CartProductSerializer(read_only=True, allow_null=True)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = CartItem
        fields = ['id', 'product', 'quantity', 'subtotal']


class CartSerializer(serializers.ModelSerializer):
    """Serializer for the shopping cart including nested items."""

    items = CartItemSerializer(many=True, read_only=True)
    total_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Cart
        fields = ['id', 'user', 'items', 'total_price', 'updated_at']


class CartItemInputSerializer(serializers.Serializer):
    """Payload for add/update: a product id and a quantity of at least 1."""

    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)


class CartItemRemoveSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
