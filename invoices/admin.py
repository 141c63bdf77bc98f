"""Django admin configuration for invoices."""

from django.contrib import admin
from django.utils.html import format_html, format_html_join

from .models import Invoice
from .pricing import format_currency


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    """Admin configuration for invoices."""

    list_display = ('id', 'get_order_id', 'get_customer', 'get_total', 'payment_status', 'order_date', 'download_link')
    list_filter = ('payment_status', 'payment_method', 'order_date')
    search_fields = ('id', 'order__id', 'user__email')

    readonly_fields = ('order', 'user', 'amount', 'order_date', 'pdf_file', 'get_order_details')

    def get_order_id(self, obj):
        return f"#{obj.order_id}"
    get_order_id.short_description = 'Order'

    def get_customer(self, obj):
        return obj.user.email
    get_customer.short_description = 'Customer'

    def get_total(self, obj):
        return format_currency(obj.amount)
    get_total.short_description = 'Amount'

    # Render order lines safely (escape all dynamic values).
    def get_order_details(self, obj):
        lines = obj.order.items.select_related('product')
        rows = format_html_join(
            '',
            '<tr>'
            '<td style="padding: 8px; border: 1px solid #ddd;">{}</td>'
            '<td style="padding: 8px; border: 1px solid #ddd; text-align: center;">{}</td>'
            '<td style="padding: 8px; border: 1px solid #ddd; text-align: center;">{}</td>'
            '</tr>',
            ((line.product or 'deleted product', line.quantity, format_currency(line.price)) for line in lines),
        )
        return format_html(
            '<table style="width:100%; border-collapse: collapse; border:1px solid #ccc;">'
            '<thead style="background: #f4f4f4;">'
            '<tr>'
            '<th style="padding: 8px; border: 1px solid #ddd; text-align: left;">Product</th>'
            '<th style="padding: 8px; border: 1px solid #ddd; text-align: center;">Qty</th>'
            '<th style="padding: 8px; border: 1px solid #ddd; text-align: center;">Unit price</th>'
            '</tr>'
            '</thead>'
            '<tbody>{}</tbody>'
            '</table>',
            rows,
        )
    get_order_details.short_description = 'Order lines'

    def download_link(self, obj):
        if not obj.pdf_file:
            return '-'
        return format_html('<a class="button" href="{}">PDF</a>', obj.pdf_file.url)
    download_link.short_description = 'Invoice'
