from django.core.exceptions import ValidationError
from django.test import TestCase

from customers.models import Company
from operational.models import Customer
from tenancy.context import get_current_company, tenant_context


class TenantScopeTests(TestCase):
    def setUp(self):
        self.acme = Company.objects.create(name="Acme", tenant_code="acme", subdomain="acme")
        self.other = Company.objects.create(name="Other", tenant_code="other", subdomain="other")
        Customer.all_objects.create(company=self.acme, first_name="Ann")
        Customer.all_objects.create(company=self.other, first_name="Olga")

    def test_default_manager_is_empty_without_bound_agency(self):
        self.assertIsNone(get_current_company())
        self.assertEqual(Customer.objects.count(), 0)
        self.assertEqual(Customer.all_objects.count(), 2)

    def test_default_manager_only_sees_bound_agency(self):
        with tenant_context(self.acme):
            self.assertEqual(list(Customer.objects.values_list("first_name", flat=True)), ["Ann"])
        self.assertIsNone(get_current_company())

    def test_write_for_another_agency_is_blocked(self):
        with tenant_context(self.acme):
            with self.assertRaises(ValidationError):
                Customer.all_objects.create(company=self.other, first_name="Intruder")
            created = Customer(first_name="Bound")
            created.save()
        self.assertEqual(created.company, self.acme)
