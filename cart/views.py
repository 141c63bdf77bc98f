"""Cart APIs for the authenticated user.

The cart is created lazily on first access. Adding or updating a line is
validated against the product's current stock.
"""

import logging

from django.db import transaction
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from products.models import Product
from .models import Cart, CartItem
from .serializers import CartItemInputSerializer, CartItemRemoveSerializer, CartSerializer

logger = logging.getLogger(__name__)


def get_cart(user):
    """Return the user's cart, creating it on first access."""
    cart, created = Cart.objects.get_or_create(user=user)
    if created:
        logger.info('Cart created for %s', user.email)
    return cart


def _cart_queryset():
    return Cart.objects.prefetch_related('items__product')


class CartViewSet(viewsets.ViewSet):
    """Cart API.

    - ``GET cart/``: current cart with resolved products
    - ``POST cart/add/``: add a product (merging quantities)
    - ``PUT cart/update/``: set a line's quantity
    - ``DELETE cart/remove/``: drop a product from the cart
    - ``POST cart/clear/``: empty the cart
    """

    permission_classes = [IsAuthenticated]

    def _respond(self, cart, status_code=status.HTTP_200_OK):
        cart = _cart_queryset().get(pk=cart.pk)
        return Response(CartSerializer(cart).data, status=status_code)

    def _get_product(self, product_id):
        try:
            return Product.objects.get(pk=product_id)
        except Product.DoesNotExist:
            raise NotFound('Product not found.')

    def list(self, request):
        """Return the current cart (create if missing)."""
        return self._respond(get_cart(request.user))

    @action(detail=False, methods=['post'], url_path='add')
    def add(self, request):
        """Add an item to the cart, merging quantity if it already exists."""
        serializer = CartItemInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product = self._get_product(serializer.validated_data['product_id'])
        quantity = serializer.validated_data['quantity']
        cart = get_cart(request.user)

        with transaction.atomic():
            item = CartItem.objects.select_for_update().filter(cart=cart, product=product).first()
            desired = quantity + (item.quantity if item else 0)
            # Do not exceed available stock with the merged quantity.
            if desired > product.stock:
                raise ValidationError({'quantity': f'Not enough stock available. Only {product.stock} left.'})
            if item is None:
                CartItem.objects.create(cart=cart, product=product, quantity=desired)
            else:
                item.quantity = desired
                item.save(update_fields=['quantity'])
            cart.save(update_fields=['updated_at'])

        return self._respond(cart)

    @action(detail=False, methods=['put'], url_path='update')
    def update_item(self, request):
        """Set the quantity of a product already in the cart."""
        serializer = CartItemInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product = self._get_product(serializer.validated_data['product_id'])
        quantity = serializer.validated_data['quantity']

        if quantity > product.stock:
            raise ValidationError({'quantity': f'Not enough stock available. Only {product.stock} left.'})

        cart = get_cart(request.user)
        item = CartItem.objects.filter(cart=cart, product=product).first()
        if item is None:
            raise NotFound('Item not found in cart.')

        item.quantity = quantity
        item.save(update_fields=['quantity'])
        cart.save(update_fields=['updated_at'])
        return self._respond(cart)

    @action(detail=False, methods=['delete'], url_path='remove')
    def remove(self, request):
        """Remove a product from the cart."""
        data = request.data if request.data else request.query_params
        serializer = CartItemRemoveSerializer(data=data)
        serializer.is_valid(raise_exception=True)

        cart = get_cart(request.user)
        CartItem.objects.filter(cart=cart, product_id=serializer.validated_data['product_id']).delete()
        cart.save(update_fields=['updated_at'])
        return self._respond(cart)

    @action(detail=False, methods=['post'], url_path='clear')
    def clear(self, request):
        """Remove every line from the cart."""
        cart = get_cart(request.user)
        cart.items.all().delete()
        cart.save(update_fields=['updated_at'])
        return Response({'detail': 'Cart cleared.'})
