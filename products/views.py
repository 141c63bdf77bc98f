"""Catalog API views.

Includes CRUD for products (admin writes, public reads) and categories.
Filtering/search/ordering/pagination are provided for list endpoints, and the
public product listing is served from a versioned response cache.
"""

import logging

from django.conf import settings
from django.core.cache import cache
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response

from accounts.permissions import IsAdminOrReadOnly
from .filters import ProductFilter
from .models import Category, Product
from .serializers import CategorySerializer, ProductSerializer

logger = logging.getLogger(__name__)

CATALOG_VERSION_KEY = 'catalog:version'


def catalog_cache_version():
    version = cache.get(CATALOG_VERSION_KEY)
    if version is None:
        cache.add(CATALOG_VERSION_KEY, 1, None)
        version = cache.get(CATALOG_VERSION_KEY, 1)
    return version


def invalidate_catalog_cache():
    """Move cached listings to a fresh key space after any catalog write."""
    try:
        cache.incr(CATALOG_VERSION_KEY)
    except ValueError:
        cache.set(CATALOG_VERSION_KEY, 2, None)


# Pagination shared by list endpoints across apps
class StandardResultsSetPagination(PageNumberPagination):
    """Default pagination used by most API endpoints."""
    page_size = 20
    page_size_query_param = 'limit'
    max_page_size = 100


class CatalogSearchFilter(filters.SearchFilter):
    """Text search over name and description using the ``q`` parameter."""
    search_param = 'q'


class ProductViewSet(viewsets.ModelViewSet):
    """Products CRUD.

    - Public users: list, search and read products.
    - Admins: create, update and delete products.
    """

    serializer_class = ProductSerializer
    pagination_class = StandardResultsSetPagination
    permission_classes = [IsAdminOrReadOnly]

    filter_backends = [DjangoFilterBackend, CatalogSearchFilter, filters.OrderingFilter]
    filterset_class = ProductFilter
    search_fields = ['name', 'description']
    ordering_fields = ['name', 'price', 'created_at', 'ratings', 'stock']

    def get_queryset(self):
        return Product.objects.select_related('category').all()

    def list(self, request, *args, **kwargs):
        cache_key = f"catalog:{catalog_cache_version()}:{request.get_full_path()}"
        cached = cache.get(cache_key)
        if cached is not None:
            return Response(cached)

        response = super().list(request, *args, **kwargs)
        cache.set(cache_key, response.data, settings.CATALOG_CACHE_SECONDS)
        logger.info('Products listed: %s (cache miss)', request.get_full_path())
        return response

    @action(detail=False, methods=['get'], url_path='search')
    def search(self, request):
        """Search products by text (``q``) plus the list filters."""
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        if page is not None:
            serializer = self.get_serializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        serializer = self.get_serializer(queryset, many=True)
        return Response(serializer.data)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        name = serializer.validated_data['name']
        if Product.objects.filter(name__iexact=name).exists():
            logger.warning('Product creation attempt with existing name: %s', name)
            return Response({'detail': 'Product with this name already exists.'}, status=status.HTTP_409_CONFLICT)

        self.perform_create(serializer)
        logger.info('Product created: %s by %s', serializer.instance.name, request.user.email)
        headers = self.get_success_headers(serializer.data)
        return Response(serializer.data, status=status.HTTP_201_CREATED, headers=headers)

    def perform_update(self, serializer):
        product = serializer.save()
        logger.info('Product updated: %s by %s', product.name, self.request.user.email)

    def perform_destroy(self, instance):
        logger.info('Product deleted: %s by %s', instance.name, self.request.user.email)
        instance.delete()


class CategoryViewSet(mixins.ListModelMixin,
                      mixins.RetrieveModelMixin,
                      mixins.CreateModelMixin,
                      viewsets.GenericViewSet):
    """Categories: public reads, admin create-or-update by name."""

    queryset = Category.objects.order_by('name')
    serializer_class = CategorySerializer
    permission_classes = [IsAdminOrReadOnly]
    pagination_class = None

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        name = serializer.validated_data['name'].strip()
        description = serializer.validated_data.get('description', '')
        category, created = Category.objects.update_or_create(
            name=name,
            defaults={'description': description},
        )
        logger.info('Category %s: %s by %s', 'created' if created else 'updated', category.name, request.user.email)
        return Response(self.get_serializer(category).data, status=status.HTTP_201_CREATED)
