"""Orders API views: checkout, the user's own orders and the admin listing."""

import logging

from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import IsAdminRole
from invoices.serializers import InvoiceSerializer
from products.views import StandardResultsSetPagination
from .models import Order
from .serializers import OrderSerializer, PlaceOrderSerializer
from .services import place_order

logger = logging.getLogger(__name__)


class OrderViewSet(viewsets.GenericViewSet):
    """Order API endpoints.

    - ``POST orders/place/``: check out the current cart
    - ``GET orders/``: the authenticated user's orders
    - ``GET orders/all/``: every order (admins only)
    """

    permission_classes = [IsAuthenticated]
    serializer_class = OrderSerializer
    pagination_class = StandardResultsSetPagination
    filter_backends = [filters.OrderingFilter]
    ordering_fields = ['created_at', 'total_amount']
    ordering = ['-created_at']

    def get_queryset(self):
        return (
            Order.objects.select_related('user', 'shipping_address', 'invoice')
            .prefetch_related('items__product')
        )

    def _paginated(self, queryset):
        queryset = self.filter_queryset(queryset)
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(queryset, many=True).data)

    def list(self, request):
        return self._paginated(self.get_queryset().filter(user=request.user))

    @action(detail=False, methods=['get'], url_path='all', permission_classes=[IsAdminRole])
    def all_orders(self, request):
        queryset = self.get_queryset()
        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(order_status=status_filter)
        return self._paginated(queryset)

    @action(detail=False, methods=['post'], url_path='place')
    def place(self, request):
        serializer = PlaceOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = place_order(
            request.user,
            shipping_address_id=serializer.validated_data.get('shipping_address_id'),
            payment_mode=serializer.validated_data['payment_mode'],
        )

        payload = {
            'order': OrderSerializer(result.order, context={'request': request}).data,
            'invoice': InvoiceSerializer(result.invoice, context={'request': request}).data,
        }
        if result.warning:
            payload['warning'] = result.warning
        return Response(payload, status=status.HTTP_201_CREATED)
