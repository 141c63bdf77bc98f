"""Django admin configuration for catalog models."""

import csv
from django.contrib import admin
from django.utils.html import format_html
from django.http import HttpResponse
from .models import Category, Product

class ProductInline(admin.TabularInline):
    """Inline list of a category's products."""

    model = Product
    extra = 0
    fields = ('name', 'price', 'stock')

@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    """Admin configuration for categories."""

    list_display = ('name', 'description')
    search_fields = ('name',)
    inlines = [ProductInline]

@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """Admin configuration for inventory management."""

    list_display = ('name', 'category', 'price', 'colored_stock', 'created_at')
    list_filter = (
        ('category', admin.RelatedOnlyFieldListFilter),
    )
    search_fields = ('name', 'description')

    actions = ['export_to_csv']

    def export_to_csv(self, request, queryset):
        """Export selected products as a CSV inventory report."""
        response = HttpResponse(content_type='text/csv; charset=utf-8-sig')
        response['Content-Disposition'] = 'attachment; filename="inventory_report.csv"'

        writer = csv.writer(response)
        writer.writerow(['ID', 'Product', 'Category', 'Price', 'Stock'])

        for product in queryset.select_related('category'):
            writer.writerow([product.id, product.name, getattr(product.category, 'name', ''), product.price, product.stock])

        return response
    export_to_csv.short_description = "Export selected products to CSV"

    # Colour the stock column to highlight low inventory
    def colored_stock(self, obj):
        """Render stock in color to highlight low inventory."""
        stock = obj.stock
        if stock <= Product.LOW_STOCK_LIMIT:
            color = 'red'
        elif stock <= Product.LIMITED_STOCK_LIMIT:
            color = 'orange'
        else:
            color = 'green'
        return format_html('<b style="color: {};">{}</b>', color, stock)

    colored_stock.short_description = 'Stock'
    colored_stock.admin_order_field = 'stock'
