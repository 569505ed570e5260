from django.contrib import admin

from operational.models import Customer
from tenancy.admin import TenantScopedAdmin


@admin.register(Customer)
class CustomerAdmin(TenantScopedAdmin):
    list_display = ("display_name", "email", "phone", "is_corporate", "is_active", "company")
    search_fields = ("first_name", "last_name", "company_name", "email", "phone")
    list_filter = ("company", "is_corporate", "is_active")
    raw_id_fields = ("assigned_to",)
