"""Serializers for the grocery catalog."""

from rest_framework import serializers

from .models import Category, Product


class CategorySerializer(serializers.ModelSerializer):
    """Product category serializer.

    ``name`` is validated by hand so that create-or-update by name can reuse
    the serializer without tripping the unique validator.
    """

    name = serializers.CharField(max_length=100)

    class Meta:
        model = Category
        fields = ['id', 'name', 'description', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']


class ProductSerializer(serializers.ModelSerializer):
    """Product serializer with the resolved category name and stock status."""

    category_name = serializers.ReadOnlyField(source='category.name')
    stock_status = serializers.ReadOnlyField()
    images = serializers.ListField(child=serializers.URLField(), required=False)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'description', 'price', 'category', 'category_name',
            'stock', 'stock_status', 'images', 'ratings', 'created_at', 'updated_at',
        ]
        read_only_fields = ['ratings', 'created_at', 'updated_at']
        extra_kwargs = {
            'category': {'required': True, 'allow_null': False},
        }

    def validate_name(self, value):
        name = value.strip()
        if not name:
            raise serializers.ValidationError("Name is required.")
        return name
