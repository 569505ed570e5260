from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from customers.models import Company, CompanyMembership
from insurance_core.models import InsuranceProduct, Partner, Policy
from operational.models import Customer


class AgencyFixturesMixin:
    """Builds an agency with a manager, an agent and a small catalog."""

    def create_agency(self, code="acme"):
        return Company.objects.create(name=f"{code.title()} Agency", tenant_code=code, subdomain=code)

    def create_member(self, company, username, role=CompanyMembership.ROLE_SALES_AGENT, email=""):
        user = get_user_model().objects.create_user(
            username=username,
            password="pass-123",
            email=email,
            first_name=username.title(),
        )
        CompanyMembership.objects.create(company=company, user=user, role=role)
        return user

    def create_catalog(self, company, commission_rate=Decimal("5.00"), category=InsuranceProduct.Category.MOTOR):
        partner = Partner.all_objects.create(company=company, name="Carrier One", code="carrier-one")
        product = InsuranceProduct.all_objects.create(
            company=company,
            partner=partner,
            name="Motor Comprehensive",
            category=category,
            premium=Decimal("1000.00"),
            commission_rate=commission_rate,
        )
        customer = Customer.all_objects.create(
            company=company,
            first_name="Jane",
            last_name="Doe",
            email="jane.doe@example.com",
            phone="+15550001",
        )
        return partner, product, customer

    def create_policy(
        self,
        *,
        company,
        agent,
        customer,
        product,
        partner,
        status=Policy.Status.DRAFT,
        start_date=date(2026, 1, 1),
        end_date=date(2027, 1, 1),
        premium=Decimal("1000.00"),
        number="POL-2026-900001",
    ):
        return Policy.all_objects.create(
            company=company,
            policy_number=number,
            customer=customer,
            product=product,
            partner=partner,
            sales_agent=agent,
            status=status,
            start_date=start_date,
            end_date=end_date,
            premium=premium,
            commission=Decimal("50.00"),
        )

    def api_client_for(self, user, company):
        client = APIClient()
        token, _ = Token.objects.get_or_create(user=user)
        client.credentials(
            HTTP_AUTHORIZATION=f"Bearer {token.key}",
            HTTP_X_TENANT_ID=company.tenant_code,
        )
        return client
