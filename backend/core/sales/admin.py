from django.contrib import admin

from sales.models import Sale
from tenancy.admin import TenantScopedAdmin


@admin.register(Sale)
class SaleAdmin(TenantScopedAdmin):
    list_display = ("id", "policy", "customer", "sales_agent", "amount", "commission", "sale_date", "company")
    list_filter = ("company",)
    search_fields = ("policy__policy_number", "customer__email", "sales_agent__username")
    raw_id_fields = ("policy", "customer", "sales_agent")
    readonly_fields = ("policy", "created_at", "updated_at")
