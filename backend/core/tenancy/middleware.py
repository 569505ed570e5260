import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.http import JsonResponse
from rest_framework.authtoken.models import Token

from customers.models import Company, CompanyMembership
from tenancy.authentication import parse_authorization_key
from tenancy.context import reset_current_company, set_current_company


@dataclass(frozen=True)
class TenantResolutionResult:
    company: Optional[Company]
    error_response: Optional[JsonResponse] = None


class TenantContextMiddleware:
    """Identity guard: binds every API request to exactly one agency.

    The agency is taken from the ``X-Tenant-ID`` header, then from the host
    subdomain, then from the bearer credential when its user belongs to a
    single active agency. Disabled agencies are refused before any view runs.
    """

    def __init__(self, get_response):
        self.get_response = get_response
        self.logger = logging.getLogger(__name__)
        self.tenant_id_header = getattr(settings, "TENANT_ID_HEADER", "X-Tenant-ID")
        self.required_path_prefixes = tuple(
            getattr(settings, "TENANT_REQUIRED_PATH_PREFIXES", ["/api/"])
        )
        self.exempt_path_prefixes = tuple(
            getattr(
                settings,
                "TENANT_EXEMPT_PATH_PREFIXES",
                ["/api/auth/token/", "/api/auth/me/"],
            )
        )
        self.public_hosts = set(
            host.lower() for host in getattr(settings, "TENANT_PUBLIC_HOSTS", [])
        )
        self.reserved_subdomains = set(
            subdomain.lower()
            for subdomain in getattr(settings, "TENANT_RESERVED_SUBDOMAINS", [])
        )
        self.base_domain = getattr(settings, "TENANT_BASE_DOMAIN", "").lower()

    def __call__(self, request):
        request.correlation_id = self._resolve_correlation_id(request)
        tenant_resolution = self._resolve_company(request)

        if tenant_resolution.error_response is not None:
            tenant_resolution.error_response["X-Correlation-ID"] = request.correlation_id
            return tenant_resolution.error_response

        token = set_current_company(tenant_resolution.company)
        request.company = tenant_resolution.company
        try:
            response = self.get_response(request)
            response["X-Correlation-ID"] = request.correlation_id
            return response
        finally:
            reset_current_company(token)

    def _resolve_company(self, request) -> TenantResolutionResult:
        if request.path.startswith(self.exempt_path_prefixes):
            return TenantResolutionResult(company=None)

        if not request.path.startswith(self.required_path_prefixes):
            return TenantResolutionResult(company=None)

        header_value = request.headers.get(self.tenant_id_header, "").strip().lower()
        host_company = self._company_from_host(request.get_host())

        if header_value:
            header_company = (
                Company.objects.filter(tenant_code=header_value)
                .only("id", "name", "tenant_code", "is_active", "rbac_overrides")
                .first()
            )
            if header_company is None:
                return self._reject(request, "Invalid tenant identifier.", 404, "UNKNOWN")

            if host_company is not None and host_company.id != header_company.id:
                return self._reject(
                    request,
                    "Tenant mismatch between host and header.",
                    400,
                    "MISMATCH",
                    company=header_company,
                )

            return self._validate_company_access(request, header_company)

        if host_company is not None:
            return self._validate_company_access(request, host_company)

        credential_company = self._company_from_credential(request)
        if credential_company is not None:
            return self._validate_company_access(request, credential_company)

        return self._reject(
            request,
            "Tenant not provided. Send X-Tenant-ID or use the agency subdomain.",
            400,
            "MISSING",
        )

    def _validate_company_access(self, request, company: Company) -> TenantResolutionResult:
        if company.is_active:
            return TenantResolutionResult(company=company)
        return self._reject(request, "Tenant is inactive.", 403, "INACTIVE", company=company)

    def _reject(self, request, message, http_status, reason_code, company=None):
        self.logger.warning(
            "tenant request blocked",
            extra={
                "correlation_id": request.correlation_id,
                "tenant_id": getattr(company, "id", None),
                "reason": reason_code,
                "path": request.path,
            },
        )
        return TenantResolutionResult(
            company=None,
            error_response=JsonResponse(
                {
                    "error": message,
                    "reason": reason_code,
                    "correlation_id": request.correlation_id,
                },
                status=http_status,
            ),
        )

    def _company_from_credential(self, request) -> Optional[Company]:
        key = parse_authorization_key(request.headers.get("Authorization", ""))
        if not key:
            return None

        user_id = Token.objects.filter(key=key).values_list("user_id", flat=True).first()
        if user_id is None:
            return None

        company_ids = list(
            CompanyMembership.objects.filter(user_id=user_id, is_active=True)
            .values_list("company_id", flat=True)[:2]
        )
        if len(company_ids) != 1:
            return None
        return Company.objects.filter(pk=company_ids[0]).first()

    def _company_from_host(self, host_with_port: str) -> Optional[Company]:
        host = host_with_port.split(":", 1)[0].lower()
        if not host or host in self.public_hosts:
            return None

        subdomain = self._extract_subdomain(host)
        if not subdomain or subdomain in self.reserved_subdomains:
            return None

        return (
            Company.objects.filter(subdomain=subdomain)
            .only("id", "name", "tenant_code", "is_active", "rbac_overrides")
            .first()
        )

    def _extract_subdomain(self, host: str) -> Optional[str]:
        if self.base_domain:
            suffix = self.base_domain
            if not suffix.startswith("."):
                suffix = f".{suffix}"

            if host.endswith(suffix):
                subdomain = host[: -len(suffix)]
                if subdomain and "." not in subdomain:
                    return subdomain
                return None

        if host.endswith(".localhost"):
            local_subdomain = host.split(".", 1)[0]
            return local_subdomain if local_subdomain else None

        return None

    @staticmethod
    def _resolve_correlation_id(request) -> str:
        header_value = (request.headers.get("X-Correlation-ID", "") or "").strip()
        return header_value or str(uuid.uuid4())
