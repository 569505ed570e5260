from django.contrib import admin

from customers.models import Company, CompanyMembership, TenantEmailConfig


class CompanyMembershipInline(admin.TabularInline):
    model = CompanyMembership
    extra = 0
    fields = ("user", "role", "phone", "is_active")
    raw_id_fields = ("user",)


class TenantEmailConfigInline(admin.StackedInline):
    model = TenantEmailConfig
    extra = 0
    max_num = 1


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("name", "tenant_code", "subdomain", "email", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "tenant_code", "subdomain", "email")
    prepopulated_fields = {"subdomain": ("tenant_code",)}
    readonly_fields = ("created_at", "updated_at")
    inlines = (CompanyMembershipInline, TenantEmailConfigInline)
    fieldsets = (
        (None, {"fields": ("name", "tenant_code", "subdomain", "is_active")}),
        ("Contact", {"fields": ("email", "phone", "address", "website")}),
        (
            "Access control",
            {
                "fields": ("rbac_overrides",),
                "description": (
                    "Per-resource method overrides, e.g. "
                    "{'sales_stats': {'GET': ['AGENCY_MANAGER', 'HR_MANAGER']}}"
                ),
            },
        ),
        ("Metadata", {"fields": ("created_at", "updated_at")}),
    )


@admin.register(CompanyMembership)
class CompanyMembershipAdmin(admin.ModelAdmin):
    list_display = ("user", "company", "role", "is_active")
    list_filter = ("role", "is_active", "company")
    list_select_related = ("company", "user")
    search_fields = ("company__tenant_code", "user__username", "user__email")
    raw_id_fields = ("user",)


@admin.register(TenantEmailConfig)
class TenantEmailConfigAdmin(admin.ModelAdmin):
    list_display = ("company", "smtp_host", "smtp_port", "default_from_email", "is_enabled")
    list_filter = ("is_enabled",)
    search_fields = ("company__tenant_code", "smtp_host", "default_from_email")
    exclude = ("smtp_password",)
