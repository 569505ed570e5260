from customers.services.email_service import EmailService, TenantEmailServiceError

__all__ = ["EmailService", "TenantEmailServiceError"]
