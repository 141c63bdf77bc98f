from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from .models import User, ShippingAddress

# 1. Prevent double registration
if admin.site.is_registered(User):
    admin.site.unregister(User)

# 2. Addresses shown inside the user page
class ShippingAddressInline(admin.TabularInline):
    model = ShippingAddress
    extra = 0

# 3. User admin with role and contact fields
class CustomUserAdmin(UserAdmin):
    model = User
    list_display = ['email', 'first_name', 'last_name', 'role', 'is_staff', 'phone', 'email_verified']
    list_filter = ['role', 'is_staff', 'is_active', 'email_verified']
    search_fields = ['email', 'first_name', 'last_name']
    ordering = ['email']
    inlines = [ShippingAddressInline]

    fieldsets = UserAdmin.fieldsets + (
        ('Role & Contact', {'fields': ('role', 'phone')}),
        ('Security', {'fields': ('email_verified', 'failed_login_attempts', 'locked_until')}),
    )

admin.site.register(User, CustomUserAdmin)

@admin.register(ShippingAddress)
class ShippingAddressAdmin(admin.ModelAdmin):
    list_display = ('user', 'address_line1', 'city', 'state', 'pin_code', 'is_default')
    search_fields = ('user__email', 'city', 'pin_code')
    list_filter = ('state', 'is_default')
