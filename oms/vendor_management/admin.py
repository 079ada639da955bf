from django.contrib import admin
from .models import Vendor


@admin.register(Vendor)
class VendorAdmin(admin.ModelAdmin):
    list_display = ['company_name', 'vendor_code', 'email', 'phone', 'status', 'verified']
    list_filter = ['status', 'verified']
    search_fields = ['company_name', 'vendor_code', 'email']
    ordering = ['company_name']
