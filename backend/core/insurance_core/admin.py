from django.contrib import admin

from insurance_core.models import InsuranceProduct, Partner, Policy, PolicyReminder
from tenancy.admin import TenantScopedAdmin


@admin.register(Partner)
class PartnerAdmin(TenantScopedAdmin):
    list_display = ("name", "code", "email", "is_active", "company")
    list_filter = ("company", "is_active")
    search_fields = ("name", "code", "email")


@admin.register(InsuranceProduct)
class InsuranceProductAdmin(TenantScopedAdmin):
    list_display = ("name", "partner", "category", "premium", "commission_rate", "is_active", "company")
    list_filter = ("company", "category", "is_active")
    search_fields = ("name", "partner__name")


class PolicyReminderInline(admin.TabularInline):
    model = PolicyReminder
    extra = 0
    fields = ("kind", "reminder_date", "expiry_date", "is_sent", "sent_at", "last_error")
    readonly_fields = ("sent_at", "last_error")

    def get_queryset(self, request):
        return self.model.all_objects.all()


@admin.register(Policy)
class PolicyAdmin(TenantScopedAdmin):
    list_display = (
        "policy_number",
        "customer",
        "product",
        "status",
        "start_date",
        "end_date",
        "premium",
        "commission",
        "company",
    )
    list_filter = ("company", "status")
    search_fields = ("policy_number", "notes", "customer__email")
    readonly_fields = ("policy_number", "status", "created_at", "updated_at")
    raw_id_fields = ("customer", "product", "partner", "sales_agent")
    inlines = (PolicyReminderInline,)
