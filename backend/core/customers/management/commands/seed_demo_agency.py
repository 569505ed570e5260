from __future__ import annotations

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from rest_framework.authtoken.models import Token

from customers.models import Company, CompanyMembership
from insurance_core.models import InsuranceProduct, Partner
from operational.models import Customer

DEMO_USERS = (
    ("admin", "admin@insurance.com", "Admin", "User", CompanyMembership.ROLE_AGENCY_MANAGER),
    ("agent", "agent@insurance.com", "Sales", "Agent", CompanyMembership.ROLE_SALES_AGENT),
)


class Command(BaseCommand):
    help = "Create (or refresh) a demo agency with a manager, a sales agent and a small catalog."

    def add_arguments(self, parser):
        parser.add_argument("--tenant", dest="tenant_code", default="test001")
        parser.add_argument("--name", default="Test Insurance Agency")
        parser.add_argument("--password", default="password123")

    @transaction.atomic
    def handle(self, *args, **options):
        tenant_code = options["tenant_code"].strip().lower()
        company, created = Company.objects.get_or_create(
            tenant_code=tenant_code,
            defaults={
                "name": options["name"],
                "subdomain": tenant_code,
                "address": "123 Test Street, Test City",
                "phone": "+1234567890",
                "email": "contact@testagency.com",
                "website": "https://testagency.com",
            },
        )
        self.stdout.write(f"Agency {'created' if created else 'found'}: {company.name} ({tenant_code})")

        User = get_user_model()
        for suffix, email, first_name, last_name, role in DEMO_USERS:
            username = f"{tenant_code}-{suffix}"
            user, _ = User.objects.get_or_create(
                username=username,
                defaults={"email": email, "first_name": first_name, "last_name": last_name},
            )
            user.set_password(options["password"])
            user.save(update_fields=["password"])
            CompanyMembership.objects.update_or_create(
                company=company,
                user=user,
                defaults={"role": role, "is_active": True},
            )
            token, _ = Token.objects.get_or_create(user=user)
            self.stdout.write(f"{role}: {username} / token {token.key}")

        partner, _ = Partner.all_objects.get_or_create(
            company=company,
            code="demo-insurer",
            defaults={"name": "Demo Insurer", "email": "partners@demo-insurer.com"},
        )
        InsuranceProduct.all_objects.get_or_create(
            company=company,
            partner=partner,
            name="Motor Comprehensive",
            defaults={
                "category": InsuranceProduct.Category.MOTOR,
                "premium": Decimal("1000.00"),
                "commission_rate": Decimal("5.00"),
            },
        )
        Customer.all_objects.get_or_create(
            company=company,
            email="jane.doe@example.com",
            defaults={"first_name": "Jane", "last_name": "Doe", "phone": "+1234567892"},
        )

        self.stdout.write(self.style.SUCCESS(f"seed_demo_agency: {tenant_code} ready"))
