import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import tenancy.rbac


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Company",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=150)),
                (
                    "tenant_code",
                    models.SlugField(
                        help_text="Identifier used in the X-Tenant-ID header.",
                        max_length=63,
                        unique=True,
                    ),
                ),
                (
                    "subdomain",
                    models.SlugField(
                        help_text="Agency subdomain used for host-based tenant resolution.",
                        max_length=63,
                        unique=True,
                    ),
                ),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("phone", models.CharField(blank=True, max_length=40)),
                ("address", models.CharField(blank=True, max_length=255)),
                ("website", models.URLField(blank=True)),
                ("is_active", models.BooleanField(default=True)),
                (
                    "rbac_overrides",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Optional agency RBAC overrides. Example: {'sales': {'POST': ['AGENCY_MANAGER']}}",
                        validators=[tenancy.rbac.validate_rbac_overrides_schema],
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Agency",
                "verbose_name_plural": "Agencies",
                "ordering": ("name",),
            },
        ),
        migrations.CreateModel(
            name="CompanyMembership",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "role",
                    models.CharField(
                        choices=[
                            ("AGENCY_MANAGER", "Agency manager"),
                            ("SALES_AGENT", "Sales agent"),
                            ("HR_MANAGER", "HR manager"),
                        ],
                        default="SALES_AGENT",
                        max_length=20,
                    ),
                ),
                ("phone", models.CharField(blank=True, max_length=40)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="memberships",
                        to="customers.company",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="company_memberships",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Agency Membership",
                "verbose_name_plural": "Agency Memberships",
                "ordering": ("company__name", "user__username"),
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company", "user"),
                        name="uq_company_membership_company_user",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="TenantEmailConfig",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("smtp_host", models.CharField(max_length=255)),
                (
                    "smtp_port",
                    models.PositiveIntegerField(
                        default=587,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(65535),
                        ],
                    ),
                ),
                ("smtp_username", models.CharField(blank=True, max_length=255)),
                ("smtp_password", models.CharField(blank=True, max_length=255)),
                ("smtp_use_tls", models.BooleanField(default=True)),
                ("smtp_use_ssl", models.BooleanField(default=False)),
                ("default_from_email", models.EmailField(blank=True, max_length=254)),
                ("default_from_name", models.CharField(blank=True, max_length=150)),
                ("reply_to_email", models.EmailField(blank=True, max_length=254)),
                ("is_enabled", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="email_config",
                        to="customers.company",
                    ),
                ),
            ],
            options={
                "verbose_name": "Agency Email Config",
                "verbose_name_plural": "Agency Email Configs",
                "ordering": ("company__name",),
            },
        ),
    ]
