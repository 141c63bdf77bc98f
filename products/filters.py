"""django-filter definitions for catalog listing and search."""

import django_filters

from .models import Product


class ProductFilter(django_filters.FilterSet):
    """Filters shared by the product list and search endpoints.

    - ``category``: category id
    - ``min_price`` / ``max_price``: inclusive price range
    - ``in_stock=true``: only products with stock left
    """

    min_price = django_filters.NumberFilter(field_name='price', lookup_expr='gte')
    max_price = django_filters.NumberFilter(field_name='price', lookup_expr='lte')
    in_stock = django_filters.BooleanFilter(method='filter_in_stock')

    class Meta:
        model = Product
        fields = ['category', 'min_price', 'max_price', 'in_stock']

    def filter_in_stock(self, queryset, name, value):
        if value:
            return queryset.filter(stock__gt=0)
        return queryset
