from __future__ import annotations

import logging
from dataclasses import dataclass, field
from email.utils import formataddr

from django.conf import settings
from django.core.mail import EmailMultiAlternatives, get_connection
from django.template.loader import render_to_string

from customers.models import Company, TenantEmailConfig

logger = logging.getLogger(__name__)


class TenantEmailServiceError(Exception):
    """Raised when agency email delivery cannot be performed safely."""


@dataclass(frozen=True)
class _DeliveryRoute:
    backend: str
    from_email: str
    host: str | None = None
    port: int | None = None
    username: str | None = None
    password: str | None = None
    use_tls: bool = False
    use_ssl: bool = False
    reply_to: list[str] = field(default_factory=list)
    is_fallback: bool = False

    def connection(self):
        return get_connection(
            backend=self.backend,
            host=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            use_tls=self.use_tls,
            use_ssl=self.use_ssl,
            fail_silently=False,
        )


class EmailService:
    """Agency-aware SMTP sender.

    Each agency may configure its own SMTP relay (``TenantEmailConfig``).
    Agencies without one go through the global Django e-mail settings unless
    ``TENANT_EMAIL_ALLOW_GLOBAL_FALLBACK`` is off.
    """

    SMTP_BACKEND = "django.core.mail.backends.smtp.EmailBackend"

    def __init__(self, *, allow_global_fallback: bool | None = None):
        if allow_global_fallback is None:
            allow_global_fallback = getattr(settings, "TENANT_EMAIL_ALLOW_GLOBAL_FALLBACK", True)
        self.allow_global_fallback = bool(allow_global_fallback)

    def send_email(
        self,
        *,
        company: Company,
        to_list: list[str],
        subject: str,
        text: str,
        html: str = "",
    ) -> int:
        recipients = [address.strip() for address in to_list if address and address.strip()]
        if not recipients:
            raise TenantEmailServiceError("Recipient list cannot be empty.")

        route = self._route_for(company)
        message = EmailMultiAlternatives(
            subject=subject,
            body=text,
            from_email=route.from_email,
            to=recipients,
            reply_to=route.reply_to,
            connection=route.connection(),
        )
        if html:
            message.attach_alternative(html, "text/html")

        sent_count = message.send(fail_silently=False)
        logger.info(
            "agency email sent",
            extra={
                "company_id": company.id,
                "tenant_code": company.tenant_code,
                "to_count": len(recipients),
                "smtp_host": route.host or "<default>",
                "fallback": route.is_fallback,
            },
        )
        return sent_count

    def send_template(
        self,
        *,
        company: Company,
        to_list: list[str],
        subject: str,
        template_name: str,
        context: dict,
    ) -> int:
        """Render ``<template_name>.txt`` and ``<template_name>.html`` and send both parts."""

        text = render_to_string(f"{template_name}.txt", context)
        html = render_to_string(f"{template_name}.html", context)
        return self.send_email(
            company=company,
            to_list=to_list,
            subject=subject,
            text=text,
            html=html,
        )

    def _route_for(self, company: Company) -> _DeliveryRoute:
        tenant_config = TenantEmailConfig.objects.filter(company=company, is_enabled=True).first()
        global_from = self._build_from_email(
            getattr(settings, "DEFAULT_FROM_NAME", ""),
            getattr(settings, "DEFAULT_FROM_EMAIL", ""),
        )

        if tenant_config is not None:
            from_email = (
                self._build_from_email(
                    tenant_config.default_from_name or company.name,
                    tenant_config.default_from_email,
                )
                or global_from
            )
            if not from_email:
                raise TenantEmailServiceError(
                    "Agency SMTP is enabled, but no default sender email is configured."
                )
            return _DeliveryRoute(
                backend=self.SMTP_BACKEND,
                from_email=from_email,
                host=tenant_config.smtp_host,
                port=int(tenant_config.smtp_port),
                username=tenant_config.smtp_username or None,
                password=tenant_config.smtp_password or None,
                use_tls=tenant_config.smtp_use_tls,
                use_ssl=tenant_config.smtp_use_ssl,
                reply_to=[tenant_config.reply_to_email] if tenant_config.reply_to_email else [],
            )

        if not self.allow_global_fallback:
            raise TenantEmailServiceError("Agency SMTP configuration is missing or disabled.")
        if not global_from:
            raise TenantEmailServiceError(
                "Global email fallback is enabled, but DEFAULT_FROM_EMAIL is empty."
            )

        return _DeliveryRoute(
            backend=getattr(settings, "EMAIL_BACKEND", self.SMTP_BACKEND),
            from_email=global_from,
            host=getattr(settings, "EMAIL_HOST", None),
            port=getattr(settings, "EMAIL_PORT", None),
            username=getattr(settings, "EMAIL_HOST_USER", None),
            password=getattr(settings, "EMAIL_HOST_PASSWORD", None),
            use_tls=bool(getattr(settings, "EMAIL_USE_TLS", False)),
            use_ssl=bool(getattr(settings, "EMAIL_USE_SSL", False)),
            reply_to=[company.email] if company.email else [],
            is_fallback=True,
        )

    @staticmethod
    def _build_from_email(from_name: str, from_email: str) -> str:
        safe_email = (from_email or "").strip()
        if not safe_email:
            return ""
        safe_name = (from_name or "").strip()
        return formataddr((safe_name, safe_email)) if safe_name else safe_email
