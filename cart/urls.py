from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import CartViewSet

router = DefaultRouter()

# GET cart/, POST cart/add/, PUT cart/update/, DELETE cart/remove/, POST cart/clear/
router.register(r'cart', CartViewSet, basename='cart')

urlpatterns = [
    path('', include(router.urls)),
]
