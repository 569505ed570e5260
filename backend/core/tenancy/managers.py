from django.db import models

from tenancy.context import get_current_company


class TenantManager(models.Manager):
    """Rows of the agency bound to the current request; nothing when unbound."""

    def get_queryset(self):
        queryset = super().get_queryset()
        company = get_current_company()
        if company is None:
            return queryset.none()
        return queryset.filter(company=company)


class UnscopedTenantManager(models.Manager):
    pass
