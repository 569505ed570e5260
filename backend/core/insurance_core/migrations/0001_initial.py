import django.core.validators
import django.db.models.deletion
from decimal import Decimal

from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("customers", "0001_initial"),
        ("operational", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Partner",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=255)),
                ("code", models.SlugField(max_length=40)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("phone", models.CharField(blank=True, max_length=40)),
                ("website", models.URLField(blank=True)),
                ("address", models.CharField(blank=True, max_length=255)),
                ("is_active", models.BooleanField(default=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="%(app_label)s_%(class)s_set",
                        to="customers.company",
                    ),
                ),
            ],
            options={
                "verbose_name": "Partner",
                "verbose_name_plural": "Partners",
                "ordering": ("name",),
                "indexes": [
                    models.Index(fields=["company", "is_active"], name="idx_partner_company_active"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "code"), name="uq_partner_code_per_company"),
                ],
            },
        ),
        migrations.CreateModel(
            name="InsuranceProduct",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("MOTOR", "Motor"),
                            ("HEALTH", "Health"),
                            ("LIFE", "Life"),
                            ("PROPERTY", "Property"),
                            ("TRAVEL", "Travel"),
                            ("BUSINESS", "Business"),
                            ("OTHER", "Other"),
                        ],
                        db_index=True,
                        default="OTHER",
                        max_length=20,
                    ),
                ),
                (
                    "premium",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Base premium quoted for the product.",
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.01"))],
                    ),
                ),
                (
                    "commission_rate",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Agency commission as a percentage of the policy premium.",
                        max_digits=5,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0")),
                            django.core.validators.MaxValueValidator(Decimal("100")),
                        ],
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="%(app_label)s_%(class)s_set",
                        to="customers.company",
                    ),
                ),
                (
                    "partner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="products",
                        to="insurance_core.partner",
                    ),
                ),
            ],
            options={
                "verbose_name": "Insurance Product",
                "verbose_name_plural": "Insurance Products",
                "ordering": ("name",),
                "indexes": [
                    models.Index(fields=["company", "category", "is_active"], name="idx_product_cmp_cat_active"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("commission_rate__gte", 0), ("commission_rate__lte", 100)),
                        name="ck_product_commission_rate_range",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Policy",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("policy_number", models.CharField(max_length=40)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("DRAFT", "Draft"),
                            ("PENDING", "Pending"),
                            ("ACTIVE", "Active"),
                            ("CANCELLED", "Cancelled"),
                            ("EXPIRED", "Expired"),
                        ],
                        db_index=True,
                        default="DRAFT",
                        max_length=20,
                    ),
                ),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                (
                    "premium",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "commission",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                ("notes", models.TextField(blank=True)),
                (
                    "documents",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Document references (storage keys or URLs) attached to the policy.",
                    ),
                ),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="%(app_label)s_%(class)s_set",
                        to="customers.company",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="policies",
                        to="operational.customer",
                    ),
                ),
                (
                    "partner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="policies",
                        to="insurance_core.partner",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="policies",
                        to="insurance_core.insuranceproduct",
                    ),
                ),
                (
                    "sales_agent",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sold_policies",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Policy",
                "verbose_name_plural": "Policies",
                "ordering": ("-created_at", "-id"),
                "indexes": [
                    models.Index(fields=["company", "status", "end_date"], name="idx_pol_cmp_stat_end"),
                    models.Index(fields=["company", "customer"], name="idx_pol_cmp_customer"),
                    models.Index(fields=["company", "sales_agent"], name="idx_pol_cmp_agent"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company", "policy_number"),
                        name="uq_policy_number_per_company",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("end_date__gt", models.F("start_date"))),
                        name="ck_policy_end_after_start",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("premium__gte", 0)),
                        name="ck_policy_premium_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("commission__gte", 0)),
                        name="ck_policy_commission_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PolicySequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("year", models.PositiveSmallIntegerField()),
                ("last_value", models.PositiveIntegerField(default=0)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="%(app_label)s_%(class)s_set",
                        to="customers.company",
                    ),
                ),
            ],
            options={
                "verbose_name": "Policy Number Sequence",
                "verbose_name_plural": "Policy Number Sequences",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company", "year"),
                        name="uq_policy_sequence_company_year",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PolicyReminder",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "kind",
                    models.CharField(
                        choices=[("AUTO", "Automatic"), ("MANUAL", "Manual")],
                        default="AUTO",
                        max_length=10,
                    ),
                ),
                ("reminder_date", models.DateField()),
                ("expiry_date", models.DateField()),
                ("is_sent", models.BooleanField(default=False)),
                ("sent_at", models.DateTimeField(blank=True, null=True)),
                ("claimed_at", models.DateTimeField(blank=True, null=True)),
                ("customer_notified", models.BooleanField(default=False)),
                ("agent_notified", models.BooleanField(default=False)),
                ("last_error", models.TextField(blank=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="%(app_label)s_%(class)s_set",
                        to="customers.company",
                    ),
                ),
                (
                    "policy",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reminders",
                        to="insurance_core.policy",
                    ),
                ),
            ],
            options={
                "verbose_name": "Policy Reminder",
                "verbose_name_plural": "Policy Reminders",
                "ordering": ("reminder_date", "id"),
                "indexes": [
                    models.Index(fields=["company", "is_sent", "reminder_date"], name="idx_rem_cmp_sent_date"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("kind", "AUTO")),
                        fields=("policy", "expiry_date"),
                        name="uq_auto_reminder_per_policy_expiry",
                    ),
                ],
            },
        ),
    ]
