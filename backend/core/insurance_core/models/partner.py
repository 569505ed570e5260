from __future__ import annotations

from django.db import models

from tenancy.models import BaseTenantModel


class Partner(BaseTenantModel):
    """Insurance carrier the agency distributes products for."""

    name = models.CharField(max_length=255)
    code = models.SlugField(max_length=40)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=40, blank=True)
    website = models.URLField(blank=True)
    address = models.CharField(max_length=255, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ("name",)
        verbose_name = "Partner"
        verbose_name_plural = "Partners"
        constraints = [
            models.UniqueConstraint(
                fields=("company", "code"),
                name="uq_partner_code_per_company",
            ),
        ]
        indexes = [
            models.Index(
                fields=("company", "is_active"),
                name="idx_partner_company_active",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.name
