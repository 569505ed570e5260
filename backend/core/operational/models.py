from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from tenancy.models import BaseTenantModel


class Customer(BaseTenantModel):
    """Insured party: a person or a business buying policies from the agency."""

    first_name = models.CharField(max_length=120, blank=True)
    last_name = models.CharField(max_length=120, blank=True)
    company_name = models.CharField(max_length=255, blank=True)
    is_corporate = models.BooleanField(default=False)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=40, blank=True)
    address = models.CharField(max_length=255, blank=True)
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="assigned_customers",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ("last_name", "first_name", "company_name")
        indexes = [
            models.Index(fields=("company", "is_active"), name="idx_customer_company_active"),
            models.Index(fields=("company", "email"), name="idx_customer_company_email"),
        ]

    def __str__(self):
        return self.display_name

    @property
    def display_name(self) -> str:
        if self.is_corporate and self.company_name:
            return self.company_name
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.company_name or f"Customer {self.pk}"

    def clean(self):
        super().clean()
        if self.is_corporate and not self.company_name:
            raise ValidationError({"company_name": "Corporate customers need a company name."})
        if not self.is_corporate and not (self.first_name or self.last_name):
            raise ValidationError({"first_name": "Individual customers need a name."})
