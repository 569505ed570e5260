from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase

from agency_backend.exceptions import DependencyError, DomainValidationError, DuplicateError, NotFoundError
from customers.models import CompanyMembership
from insurance_core.models import InsuranceProduct, Policy
from insurance_core.tests.base import AgencyFixturesMixin
from sales import services as sale_services
from sales.models import Sale
from sales.services import correct_sale, record_sale, sale_stats


class RecordSaleTests(AgencyFixturesMixin, TestCase):
    def setUp(self):
        self.company = self.create_agency("acme")
        self.agent = self.create_member(self.company, "agent")
        self.partner, self.product, self.customer = self.create_catalog(self.company)
        self.policy = self.create_policy(
            company=self.company,
            agent=self.agent,
            customer=self.customer,
            product=self.product,
            partner=self.partner,
            status=Policy.Status.ACTIVE,
        )

    def _record(self, **overrides):
        values = {
            "company": self.company,
            "policy_id": self.policy.id,
            "customer_id": self.customer.id,
            "agent_id": self.agent.id,
            "amount": Decimal("1000.00"),
        }
        values.update(overrides)
        return record_sale(**values)

    def test_commission_defaults_to_zero(self):
        sale = self._record()
        self.assertEqual(sale.commission, Decimal("0.00"))
        self.assertEqual(sale.sales_agent, self.agent)

    def test_second_sale_for_policy_is_rejected(self):
        self._record(commission=Decimal("50"))

        with self.assertRaises(DuplicateError):
            self._record()
        self.assertEqual(Sale.all_objects.filter(policy=self.policy).count(), 1)

    def test_insert_race_on_policy_is_reported_as_duplicate(self):
        self._record(commission=Decimal("50"))

        # The pre-check misses the stored sale, so the one-to-one constraint decides.
        with patch.object(sale_services, "_policy_already_sold", return_value=False):
            with self.assertRaisesMessage(DuplicateError, "Sale already exists for this policy."):
                self._record()
        self.assertEqual(Sale.all_objects.filter(policy=self.policy).count(), 1)

    def test_amount_must_be_positive(self):
        with self.assertRaises(DomainValidationError):
            self._record(amount=Decimal("0"))
        with self.assertRaises(DomainValidationError):
            self._record(commission=Decimal("-1"))

    def test_references_must_resolve_inside_agency(self):
        other = self.create_agency("other")
        outsider = self.create_member(other, "outsider")
        _partner, _product, foreign_customer = self.create_catalog(other)

        with self.assertRaisesMessage(DependencyError, "Invalid customer."):
            self._record(customer_id=foreign_customer.id)
        with self.assertRaisesMessage(DependencyError, "Invalid sales agent."):
            self._record(agent_id=outsider.id)
        with self.assertRaisesMessage(DependencyError, "Invalid policy."):
            self._record(company=other, customer_id=foreign_customer.id, agent_id=outsider.id)

    def test_cancelled_policy_cannot_be_sold(self):
        Policy.all_objects.filter(id=self.policy.id).update(status=Policy.Status.CANCELLED)
        with self.assertRaisesMessage(DependencyError, "Invalid policy."):
            self._record()

    def test_correction_updates_amount_and_keeps_commission(self):
        sale = self._record(commission=Decimal("40"))

        corrected = correct_sale(company=self.company, sale_id=sale.id, amount=Decimal("1200"))

        self.assertEqual(corrected.amount, Decimal("1200"))
        self.assertEqual(corrected.commission, Decimal("40"))

    def test_correction_outside_agency_is_not_found(self):
        sale = self._record()
        other = self.create_agency("other")
        with self.assertRaises(NotFoundError):
            correct_sale(company=other, sale_id=sale.id, amount=Decimal("1"))


class SaleStatsTests(AgencyFixturesMixin, TestCase):
    def setUp(self):
        self.company = self.create_agency("acme")
        self.agent = self.create_member(self.company, "agent")
        self.closer = self.create_member(self.company, "closer")
        self.partner, self.product, self.customer = self.create_catalog(self.company)
        self.life = InsuranceProduct.all_objects.create(
            company=self.company,
            partner=self.partner,
            name="Term Life",
            category=InsuranceProduct.Category.LIFE,
            premium=Decimal("500.00"),
            commission_rate=Decimal("10.00"),
        )

    def _sale(self, number, agent, amount, commission, product, sale_date):
        policy = self.create_policy(
            company=self.company,
            agent=agent,
            customer=self.customer,
            product=product,
            partner=self.partner,
            status=Policy.Status.ACTIVE,
            number=number,
        )
        sale = record_sale(
            company=self.company,
            policy_id=policy.id,
            customer_id=self.customer.id,
            agent_id=agent.id,
            amount=amount,
            commission=commission,
        )
        Sale.all_objects.filter(id=sale.id).update(sale_date=sale_date)
        return sale

    def test_empty_ledger(self):
        stats = sale_stats(company=self.company, today=date(2026, 10, 19))
        self.assertEqual(stats["total_sales"], "0.00")
        self.assertEqual(stats["total_policies"], 0)
        self.assertEqual(stats["average_sale"], "0.00")
        self.assertEqual(stats["top_agents"], [])
        self.assertEqual(len(stats["monthly_trend"]), 12)

    def test_totals_breakdown_and_trend(self):
        self._sale(
            "POL-2026-000001",
            self.agent,
            Decimal("1000"),
            Decimal("50"),
            self.product,
            datetime(2026, 9, 10, 12, tzinfo=dt_timezone.utc),
        )
        self._sale(
            "POL-2026-000002",
            self.closer,
            Decimal("500"),
            Decimal("50"),
            self.life,
            datetime(2026, 10, 2, 12, tzinfo=dt_timezone.utc),
        )
        self._sale(
            "POL-2026-000003",
            self.agent,
            Decimal("300"),
            Decimal("15"),
            self.product,
            datetime(2026, 10, 5, 12, tzinfo=dt_timezone.utc),
        )

        stats = sale_stats(company=self.company, today=date(2026, 10, 19))

        self.assertEqual(stats["total_sales"], "1800.00")
        self.assertEqual(stats["total_commission"], "115.00")
        self.assertEqual(stats["total_policies"], 3)
        self.assertEqual(stats["average_sale"], "600.00")
        self.assertEqual(
            [(row["username"], row["total_amount"]) for row in stats["top_agents"]],
            [("agent", "1300.00"), ("closer", "500.00")],
        )
        self.assertEqual(
            {row["category"]: row["sales_count"] for row in stats["category_breakdown"]},
            {"MOTOR": 2, "LIFE": 1},
        )
        trend = {row["month"]: row for row in stats["monthly_trend"]}
        self.assertEqual(stats["monthly_trend"][-1]["month"], "2026-10")
        self.assertEqual(stats["monthly_trend"][0]["month"], "2025-11")
        self.assertEqual(trend["2026-10"]["total_amount"], "800.00")
        self.assertEqual(trend["2026-09"]["sales_count"], 1)
        self.assertEqual(trend["2026-08"]["sales_count"], 0)

    def test_trend_window_starts_eleven_months_back(self):
        self._sale(
            "POL-2025-000001",
            self.agent,
            Decimal("200"),
            Decimal("10"),
            self.product,
            datetime(2025, 4, 2, 12, tzinfo=dt_timezone.utc),
        )
        self._sale(
            "POL-2025-000002",
            self.agent,
            Decimal("300"),
            Decimal("10"),
            self.product,
            datetime(2025, 3, 30, 12, tzinfo=dt_timezone.utc),
        )

        stats = sale_stats(company=self.company, today=date(2026, 3, 31))

        self.assertEqual(stats["monthly_trend"][0]["month"], "2025-04")
        self.assertEqual(stats["monthly_trend"][0]["total_amount"], "200.00")
        self.assertEqual(stats["monthly_trend"][-1]["month"], "2026-03")
        self.assertEqual(sum(row["sales_count"] for row in stats["monthly_trend"]), 1)
        self.assertEqual(stats["total_policies"], 2)

    def test_other_agency_sales_are_ignored(self):
        other = self.create_agency("other")
        other_agent = self.create_member(other, "other-agent")
        partner, product, customer = self.create_catalog(other)
        policy = self.create_policy(
            company=other,
            agent=other_agent,
            customer=customer,
            product=product,
            partner=partner,
            status=Policy.Status.ACTIVE,
        )
        record_sale(
            company=other,
            policy_id=policy.id,
            customer_id=customer.id,
            agent_id=other_agent.id,
            amount=Decimal("999"),
        )

        self.assertEqual(sale_stats(company=self.company)["total_policies"], 0)


class SalesAPITests(AgencyFixturesMixin, TestCase):
    def setUp(self):
        self.company = self.create_agency("acme")
        self.manager = self.create_member(self.company, "manager", role=CompanyMembership.ROLE_AGENCY_MANAGER)
        self.agent = self.create_member(self.company, "agent")
        self.partner, self.product, self.customer = self.create_catalog(self.company)
        self.policy = self.create_policy(
            company=self.company,
            agent=self.agent,
            customer=self.customer,
            product=self.product,
            partner=self.partner,
            status=Policy.Status.ACTIVE,
        )
        self.client = self.api_client_for(self.agent, self.company)

    def _payload(self):
        return {
            "policy_id": self.policy.id,
            "customer_id": self.customer.id,
            "amount": "1000.00",
            "commission": "50.00",
        }

    def test_record_sale_defaults_agent_to_caller(self):
        response = self.client.post("/api/sales/", data=self._payload(), format="json")

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["sales_agent"]["id"], self.agent.id)
        self.assertEqual(body["policy"]["policy_number"], self.policy.policy_number)
        self.assertEqual(body["amount"], "1000.00")

    def test_duplicate_sale_returns_400_and_keeps_one_row(self):
        self.client.post("/api/sales/", data=self._payload(), format="json")

        response = self.client.post("/api/sales/", data=self._payload(), format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "duplicate")
        self.assertEqual(Sale.all_objects.filter(policy=self.policy).count(), 1)

    def test_list_and_correct(self):
        sale_id = self.client.post("/api/sales/", data=self._payload(), format="json").json()["id"]

        listed = self.client.get("/api/sales/").json()
        self.assertEqual(listed["pagination"]["total"], 1)
        self.assertEqual(listed["sales"][0]["id"], sale_id)

        corrected = self.client.patch(f"/api/sales/{sale_id}/", data={"amount": "900.00"}, format="json")
        self.assertEqual(corrected.status_code, 200)
        self.assertEqual(corrected.json()["amount"], "900.00")
        self.assertEqual(corrected.json()["commission"], "50.00")

    def test_sales_cannot_be_deleted(self):
        sale_id = self.client.post("/api/sales/", data=self._payload(), format="json").json()["id"]
        manager_client = self.api_client_for(self.manager, self.company)

        self.assertEqual(manager_client.delete(f"/api/sales/{sale_id}/").status_code, 405)

    def test_stats_endpoint(self):
        self.client.post("/api/sales/", data=self._payload(), format="json")

        response = self.client.get("/api/sales/stats/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["total_sales"], "1000.00")
        self.assertEqual(response.json()["total_policies"], 1)

    def test_invalid_amount_returns_field_errors(self):
        payload = self._payload()
        payload["amount"] = "abc"
        response = self.client.post("/api/sales/", data=payload, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("amount", response.json()["errors"])
