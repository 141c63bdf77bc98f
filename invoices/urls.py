from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import InvoiceDownloadView, InvoiceViewSet

router = DefaultRouter()

# GET invoices/
router.register(r'invoices', InvoiceViewSet, basename='invoice')

urlpatterns = [
    path('invoice/<int:invoice_id>/', InvoiceDownloadView.as_view(), name='invoice-download'),
    path('', include(router.urls)),
]
