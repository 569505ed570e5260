from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from tenancy.rbac import (
    ROLE_AGENCY_MANAGER,
    ROLE_HR_MANAGER,
    ROLE_SALES_AGENT,
    validate_rbac_overrides_schema,
)


class Company(models.Model):
    """An insurance agency: the tenant every business row belongs to."""

    name = models.CharField(max_length=150)
    tenant_code = models.SlugField(
        max_length=63,
        unique=True,
        help_text="Identifier used in the X-Tenant-ID header.",
    )
    subdomain = models.SlugField(
        max_length=63,
        unique=True,
        help_text="Agency subdomain used for host-based tenant resolution.",
    )
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=40, blank=True)
    address = models.CharField(max_length=255, blank=True)
    website = models.URLField(blank=True)
    is_active = models.BooleanField(default=True)
    rbac_overrides = models.JSONField(
        default=dict,
        blank=True,
        validators=[validate_rbac_overrides_schema],
        help_text=(
            "Optional agency RBAC overrides. "
            "Example: {'sales': {'POST': ['AGENCY_MANAGER']}}"
        ),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("name",)
        verbose_name = "Agency"
        verbose_name_plural = "Agencies"

    def __str__(self):
        return f"{self.name} ({self.tenant_code})"

    def clean(self):
        super().clean()
        try:
            validate_rbac_overrides_schema(self.rbac_overrides)
        except ValidationError as exc:
            try:
                detail = exc.message_dict
            except (AttributeError, TypeError):
                detail = exc.messages
            raise ValidationError({"rbac_overrides": detail}) from exc


class CompanyMembership(models.Model):
    ROLE_AGENCY_MANAGER = ROLE_AGENCY_MANAGER
    ROLE_SALES_AGENT = ROLE_SALES_AGENT
    ROLE_HR_MANAGER = ROLE_HR_MANAGER
    ROLE_CHOICES = [
        (ROLE_AGENCY_MANAGER, "Agency manager"),
        (ROLE_SALES_AGENT, "Sales agent"),
        (ROLE_HR_MANAGER, "HR manager"),
    ]

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="company_memberships",
    )
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_SALES_AGENT)
    phone = models.CharField(max_length=40, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("company__name", "user__username")
        constraints = [
            models.UniqueConstraint(
                fields=("company", "user"),
                name="uq_company_membership_company_user",
            ),
        ]
        verbose_name = "Agency Membership"
        verbose_name_plural = "Agency Memberships"

    def __str__(self):
        return f"{self.user} @ {self.company} ({self.role})"


class TenantEmailConfig(models.Model):
    company = models.OneToOneField(
        Company,
        on_delete=models.CASCADE,
        related_name="email_config",
    )
    smtp_host = models.CharField(max_length=255)
    smtp_port = models.PositiveIntegerField(
        default=587,
        validators=[MinValueValidator(1), MaxValueValidator(65535)],
    )
    smtp_username = models.CharField(max_length=255, blank=True)
    smtp_password = models.CharField(max_length=255, blank=True)
    smtp_use_tls = models.BooleanField(default=True)
    smtp_use_ssl = models.BooleanField(default=False)
    default_from_email = models.EmailField(blank=True)
    default_from_name = models.CharField(max_length=150, blank=True)
    reply_to_email = models.EmailField(blank=True)
    is_enabled = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("company__name",)
        verbose_name = "Agency Email Config"
        verbose_name_plural = "Agency Email Configs"

    def clean(self):
        super().clean()
        if self.smtp_use_tls and self.smtp_use_ssl:
            raise ValidationError(
                {"smtp_use_ssl": "SSL and TLS cannot be enabled together."}
            )

    def __str__(self):
        return f"Email config for {self.company.tenant_code}"
