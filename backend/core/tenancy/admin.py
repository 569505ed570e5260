from django.contrib import admin


class TenantScopedAdmin(admin.ModelAdmin):
    """Admin over every agency's rows; the request-bound manager would show none."""

    list_select_related = ("company",)

    def get_queryset(self, request):
        return self.model.all_objects.all()
