"""Checkout errors, raised as DRF API exceptions so views can let them propagate."""

from rest_framework import status
from rest_framework.exceptions import APIException


class EmptyCart(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Cart is empty.'
    default_code = 'empty_cart'


class ProductNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Product not found.'
    default_code = 'product_not_found'


class InsufficientStock(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'insufficient_stock'

    def __init__(self, product_name):
        self.product_name = product_name
        super().__init__(f'Insufficient stock for {product_name}')
