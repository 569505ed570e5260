from __future__ import annotations

import logging

from agency_backend.exceptions import NotificationDeliveryError
from customers.services import EmailService, TenantEmailServiceError

logger = logging.getLogger(__name__)

CUSTOMER_EXPIRY_TEMPLATE = "insurance_core/emails/policy_expiry_reminder"
AGENT_EXPIRY_TEMPLATE = "insurance_core/emails/agent_policy_expiry_notification"


class NotificationSink:
    """Where reminder notifications go. Subclasses deliver one message per call."""

    def send(self, *, company, to: str, subject: str, template_name: str, context: dict) -> None:
        raise NotImplementedError


class EmailNotificationSink(NotificationSink):
    """Renders the reminder templates and mails them through the agency SMTP route."""

    def __init__(self, email_service: EmailService | None = None):
        self.email_service = email_service or EmailService()

    def send(self, *, company, to: str, subject: str, template_name: str, context: dict) -> None:
        try:
            self.email_service.send_template(
                company=company,
                to_list=[to],
                subject=subject,
                template_name=template_name,
                context=context,
            )
        except (TenantEmailServiceError, OSError) as exc:
            raise NotificationDeliveryError(str(exc) or exc.__class__.__name__, to=to) from exc


class RecordingNotificationSink(NotificationSink):
    """Keeps messages in memory; used by ``--dry-run`` and tests."""

    def __init__(self):
        self.messages: list[dict] = []

    def send(self, *, company, to: str, subject: str, template_name: str, context: dict) -> None:
        self.messages.append(
            {
                "company_id": company.id,
                "to": to,
                "subject": subject,
                "template_name": template_name,
                "context": context,
            }
        )
        logger.info(
            "notification recorded",
            extra={"company_id": company.id, "to": to, "template_name": template_name},
        )
