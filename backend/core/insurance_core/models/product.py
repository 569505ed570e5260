from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from insurance_core.models.partner import Partner
from tenancy.models import BaseTenantModel


class InsuranceProduct(BaseTenantModel):
    class Category(models.TextChoices):
        MOTOR = "MOTOR", "Motor"
        HEALTH = "HEALTH", "Health"
        LIFE = "LIFE", "Life"
        PROPERTY = "PROPERTY", "Property"
        TRAVEL = "TRAVEL", "Travel"
        BUSINESS = "BUSINESS", "Business"
        OTHER = "OTHER", "Other"

    partner = models.ForeignKey(
        Partner,
        related_name="products",
        on_delete=models.PROTECT,
    )
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    category = models.CharField(
        max_length=20,
        choices=Category.choices,
        default=Category.OTHER,
        db_index=True,
    )
    premium = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
        help_text="Base premium quoted for the product.",
    )
    commission_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
        help_text="Agency commission as a percentage of the policy premium.",
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ("name",)
        verbose_name = "Insurance Product"
        verbose_name_plural = "Insurance Products"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(commission_rate__gte=0) & models.Q(commission_rate__lte=100),
                name="ck_product_commission_rate_range",
            ),
        ]
        indexes = [
            models.Index(
                fields=("company", "category", "is_active"),
                name="idx_product_cmp_cat_active",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.name} ({self.get_category_display()})"

    def clean(self):
        super().clean()
        if self.partner_id and self.company_id and self.partner.company_id != self.company_id:
            raise ValidationError(
                {"partner": "InsuranceProduct and Partner must belong to the same agency."}
            )

    def save(self, *args, **kwargs):
        if self.partner_id and self.company_id is None:
            self.company = self.partner.company
        return super().save(*args, **kwargs)
