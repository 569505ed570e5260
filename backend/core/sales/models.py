from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from insurance_core.models import Policy
from operational.models import Customer
from tenancy.models import BaseTenantModel


class Sale(BaseTenantModel):
    """The single completed sale recorded for a policy.

    Immutable apart from amount/commission corrections.
    """

    policy = models.OneToOneField(
        Policy,
        related_name="sale",
        on_delete=models.PROTECT,
    )
    customer = models.ForeignKey(
        Customer,
        related_name="sales",
        on_delete=models.PROTECT,
    )
    sales_agent = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="sales",
        on_delete=models.PROTECT,
    )
    amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    commission = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    sale_date = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ("-sale_date", "-id")
        verbose_name = "Sale"
        verbose_name_plural = "Sales"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="ck_sale_amount_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(commission__gte=0),
                name="ck_sale_commission_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=("company", "sale_date"), name="idx_sale_company_date"),
            models.Index(fields=("company", "sales_agent"), name="idx_sale_company_agent"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Sale {self.pk} for policy {self.policy_id}"
