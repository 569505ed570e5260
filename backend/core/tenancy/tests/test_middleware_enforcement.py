from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework.authtoken.models import Token

from customers.models import Company, CompanyMembership


@override_settings(ALLOWED_HOSTS=["testserver", ".localhost", ".example.com"])
class TenantContextMiddlewareTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.company = Company.objects.create(
            name="Acme Agency",
            tenant_code="acme",
            subdomain="acme",
        )
        self.other = Company.objects.create(
            name="Other Agency",
            tenant_code="other",
            subdomain="other",
        )
        self.agent = User.objects.create_user(username="agent", password="pass-123")
        CompanyMembership.objects.create(
            company=self.company,
            user=self.agent,
            role=CompanyMembership.ROLE_SALES_AGENT,
        )
        self.token = Token.objects.create(user=self.agent)

    def _auth(self):
        return {"HTTP_AUTHORIZATION": f"Bearer {self.token.key}"}

    def test_missing_tenant_is_rejected_with_correlation_id(self):
        response = self.client.get("/api/policies/", HTTP_X_CORRELATION_ID="corr-test-001")
        self.assertEqual(response.status_code, 400)
        payload = response.json()
        self.assertEqual(payload["reason"], "MISSING")
        self.assertEqual(payload["correlation_id"], "corr-test-001")
        self.assertEqual(response["X-Correlation-ID"], "corr-test-001")

    def test_unknown_tenant_header_returns_404(self):
        response = self.client.get("/api/policies/", HTTP_X_TENANT_ID="ghost", **self._auth())
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["reason"], "UNKNOWN")

    def test_inactive_agency_is_blocked_before_the_view(self):
        self.company.is_active = False
        self.company.save(update_fields=["is_active"])

        response = self.client.get("/api/policies/", HTTP_X_TENANT_ID="acme", **self._auth())
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["reason"], "INACTIVE")

    def test_host_and_header_mismatch_is_rejected(self):
        response = self.client.get(
            "/api/policies/",
            HTTP_HOST="other.localhost",
            HTTP_X_TENANT_ID="acme",
            **self._auth(),
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["reason"], "MISMATCH")

    def test_subdomain_resolves_tenant(self):
        response = self.client.get("/api/policies/", HTTP_HOST="acme.localhost", **self._auth())
        self.assertEqual(response.status_code, 200)

    def test_single_membership_credential_resolves_tenant(self):
        response = self.client.get("/api/auth/tenant-me/", **self._auth())
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["tenant_code"], "acme")
        self.assertEqual(response.json()["role"], CompanyMembership.ROLE_SALES_AGENT)

    def test_credential_of_another_agency_is_forbidden(self):
        response = self.client.get("/api/policies/", HTTP_X_TENANT_ID="other", **self._auth())
        self.assertEqual(response.status_code, 403)

    def test_missing_credential_is_unauthorized(self):
        response = self.client.get("/api/policies/", HTTP_X_TENANT_ID="acme")
        self.assertEqual(response.status_code, 401)
        self.assertIn("error", response.json())

    def test_invalid_token_is_unauthorized(self):
        response = self.client.get(
            "/api/policies/",
            HTTP_X_TENANT_ID="acme",
            HTTP_AUTHORIZATION="Bearer not-a-real-token",
        )
        self.assertEqual(response.status_code, 401)

    def test_exempt_auth_endpoint_is_not_tenant_gated(self):
        response = self.client.post(
            "/api/auth/token/",
            data={"username": "agent", "password": "pass-123"},
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["token"], self.token.key)

    def test_healthz_is_public(self):
        response = self.client.get("/healthz/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})


class RoleMatrixTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.company = Company.objects.create(
            name="Acme Agency",
            tenant_code="acme",
            subdomain="acme",
        )
        self.hr = User.objects.create_user(username="hr", password="pass-123")
        CompanyMembership.objects.create(
            company=self.company,
            user=self.hr,
            role=CompanyMembership.ROLE_HR_MANAGER,
        )
        self.token = Token.objects.create(user=self.hr)

    def test_hr_manager_cannot_read_policies(self):
        response = self.client.get(
            "/api/policies/",
            HTTP_X_TENANT_ID="acme",
            HTTP_AUTHORIZATION=f"Bearer {self.token.key}",
        )
        self.assertEqual(response.status_code, 403)

    def test_agency_override_can_open_sales_stats_to_hr(self):
        self.company.rbac_overrides = {"sales_stats": {"GET": ["AGENCY_MANAGER", "HR_MANAGER"]}}
        self.company.save(update_fields=["rbac_overrides"])

        response = self.client.get(
            "/api/sales/stats/",
            HTTP_X_TENANT_ID="acme",
            HTTP_AUTHORIZATION=f"Bearer {self.token.key}",
        )
        self.assertEqual(response.status_code, 200)
