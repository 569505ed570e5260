from datetime import timedelta
from io import StringIO

from django.core.management import CommandError, call_command
from django.test import TestCase
from django.utils import timezone

from customers.models import Company, CompanyMembership
from insurance_core.models import Policy, PolicyReminder
from insurance_core.tests.base import AgencyFixturesMixin


class ReminderCommandTests(AgencyFixturesMixin, TestCase):
    def setUp(self):
        self.company = self.create_agency("acme")
        self.agent = self.create_member(self.company, "agent", email="agent@acme.test")
        partner, product, customer = self.create_catalog(self.company)
        today = timezone.localdate()
        self.policy = self.create_policy(
            company=self.company,
            agent=self.agent,
            customer=customer,
            product=product,
            partner=partner,
            status=Policy.Status.ACTIVE,
            start_date=today - timedelta(days=300),
            end_date=today + timedelta(days=10),
        )
        self.lapsed = self.create_policy(
            company=self.company,
            agent=self.agent,
            customer=customer,
            product=product,
            partner=partner,
            status=Policy.Status.ACTIVE,
            start_date=today - timedelta(days=400),
            end_date=today - timedelta(days=2),
            number="POL-2026-900002",
        )

    def test_dry_run_tick_reports_counts(self):
        out = StringIO()
        call_command("send_policy_expiry_reminders", "--mode", "daily", "--dry-run", stdout=out)

        output = out.getvalue()
        self.assertIn("reminded=1", output)
        self.assertIn("expired=1", output)
        self.assertIn("customer_notifications=1", output)
        self.assertTrue(PolicyReminder.all_objects.get(policy=self.policy).is_sent)

    def test_unknown_tenant_filter_is_reported(self):
        out = StringIO()
        call_command("send_policy_expiry_reminders", "--tenant", "ghost", stdout=out)
        self.assertIn("No active agency", out.getvalue())

    def test_expire_policies_command(self):
        out = StringIO()
        call_command("expire_policies", "--tenant", "acme", stdout=out)

        self.assertIn("Expired 1 policies.", out.getvalue())
        self.lapsed.refresh_from_db()
        self.assertEqual(self.lapsed.status, Policy.Status.EXPIRED)

    def test_expire_policies_rejects_unknown_tenant(self):
        with self.assertRaises(CommandError):
            call_command("expire_policies", "--tenant", "ghost", stdout=StringIO())

    def test_scheduler_once_runs_daily_tick(self):
        out = StringIO()
        call_command("run_reminder_scheduler", "--once", stdout=out)
        self.assertIn("[daily]", out.getvalue())
        self.assertIn("expired=1", out.getvalue())


class SeedDemoAgencyCommandTests(TestCase):
    def test_seed_is_idempotent(self):
        call_command("seed_demo_agency", stdout=StringIO())
        call_command("seed_demo_agency", stdout=StringIO())

        company = Company.objects.get(tenant_code="test001")
        roles = sorted(CompanyMembership.objects.filter(company=company).values_list("role", flat=True))
        self.assertEqual(roles, [CompanyMembership.ROLE_AGENCY_MANAGER, CompanyMembership.ROLE_SALES_AGENT])
        self.assertEqual(Policy.all_objects.filter(company=company).count(), 0)
