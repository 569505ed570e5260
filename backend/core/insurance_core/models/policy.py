from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from insurance_core.models.partner import Partner
from insurance_core.models.product import InsuranceProduct
from operational.models import Customer
from tenancy.models import BaseTenantModel


_MIN_ZERO = MinValueValidator(Decimal("0.00"))


class Policy(BaseTenantModel):
    """Insurance contract sold by the agency (tenant scoped)."""

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        PENDING = "PENDING", "Pending"
        ACTIVE = "ACTIVE", "Active"
        CANCELLED = "CANCELLED", "Cancelled"
        EXPIRED = "EXPIRED", "Expired"

    TERMINAL_STATUSES = frozenset((Status.CANCELLED, Status.EXPIRED))

    policy_number = models.CharField(max_length=40)
    customer = models.ForeignKey(
        Customer,
        related_name="policies",
        on_delete=models.PROTECT,
    )
    product = models.ForeignKey(
        InsuranceProduct,
        related_name="policies",
        on_delete=models.PROTECT,
    )
    partner = models.ForeignKey(
        Partner,
        related_name="policies",
        on_delete=models.PROTECT,
    )
    sales_agent = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="sold_policies",
        on_delete=models.PROTECT,
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.DRAFT,
        db_index=True,
    )
    start_date = models.DateField()
    end_date = models.DateField()
    premium = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[_MIN_ZERO],
    )
    commission = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[_MIN_ZERO],
    )
    notes = models.TextField(blank=True)
    documents = models.JSONField(
        default=list,
        blank=True,
        help_text="Document references (storage keys or URLs) attached to the policy.",
    )

    class Meta:
        ordering = ("-created_at", "-id")
        verbose_name = "Policy"
        verbose_name_plural = "Policies"
        constraints = [
            models.UniqueConstraint(
                fields=("company", "policy_number"),
                name="uq_policy_number_per_company",
            ),
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F("start_date")),
                name="ck_policy_end_after_start",
            ),
            models.CheckConstraint(
                condition=models.Q(premium__gte=0),
                name="ck_policy_premium_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(commission__gte=0),
                name="ck_policy_commission_non_negative",
            ),
        ]
        indexes = [
            models.Index(
                fields=("company", "status", "end_date"),
                name="idx_pol_cmp_stat_end",
            ),
            models.Index(
                fields=("company", "customer"),
                name="idx_pol_cmp_customer",
            ),
            models.Index(
                fields=("company", "sales_agent"),
                name="idx_pol_cmp_agent",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.policy_number} ({self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    def is_past_end(self, today=None) -> bool:
        today = today or timezone.localdate()
        return self.end_date < today

    def clean(self):
        super().clean()

        errors: dict[str, str] = {}

        if self.start_date and self.end_date and self.end_date <= self.start_date:
            errors["end_date"] = "End date must be after start date."

        for field_name in ("customer", "product", "partner"):
            related = getattr(self, field_name, None) if getattr(self, f"{field_name}_id") else None
            if related is not None and self.company_id and related.company_id != self.company_id:
                errors[field_name] = f"Policy and {field_name} must belong to the same agency."

        if not isinstance(self.documents, list):
            errors["documents"] = "Documents must be a list of references."

        if errors:
            raise ValidationError(errors)


class PolicySequence(BaseTenantModel):
    """Per-agency, per-year counter behind policy numbers."""

    year = models.PositiveSmallIntegerField()
    last_value = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = "Policy Number Sequence"
        verbose_name_plural = "Policy Number Sequences"
        constraints = [
            models.UniqueConstraint(
                fields=("company", "year"),
                name="uq_policy_sequence_company_year",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.company_id}/{self.year}: {self.last_value}"
