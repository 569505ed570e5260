"""Domain errors raised by the service layer and their HTTP rendering.

Services raise these and never touch HTTP; ``api_exception_handler`` is the
single place that turns them into JSON responses.
"""

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class DomainError(Exception):
    code = "error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request could not be processed."

    def __init__(self, message: str = "", **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)


class DomainValidationError(DomainError):
    code = "validation_error"
    default_message = "Invalid input."

    def __init__(self, message: str = "", *, field: str = "", **context):
        self.field = field
        super().__init__(message, **context)


class NotFoundError(DomainError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found."


class InvalidTransitionError(DomainError):
    code = "invalid_transition"
    default_message = "Transition is not allowed from the current status."


class DuplicateError(DomainError):
    code = "duplicate"
    default_message = "Resource already exists."


class DependencyError(DomainError):
    """A referenced resource does not resolve inside the caller's agency."""

    code = "dependency_error"
    default_message = "Referenced resource is invalid."


class NotificationDeliveryError(DomainError):
    code = "notification_delivery_failed"
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Notification could not be delivered."


def _django_validation_payload(exc: DjangoValidationError):
    if hasattr(exc, "error_dict"):
        return exc.message_dict
    return {"non_field_errors": exc.messages}


def api_exception_handler(exc, context):
    if isinstance(exc, DomainError):
        payload = {"error": exc.message, "code": exc.code}
        if isinstance(exc, DomainValidationError) and exc.field:
            payload["field"] = exc.field
        return Response(payload, status=exc.status_code)

    if isinstance(exc, DjangoValidationError):
        return Response(
            {"errors": _django_validation_payload(exc)},
            status=status.HTTP_400_BAD_REQUEST,
        )

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, drf_exceptions.ValidationError):
        errors = response.data
        if not isinstance(errors, dict):
            errors = {"non_field_errors": errors}
        response.data = {"errors": errors}
        return response

    detail = getattr(exc, "detail", None)
    if isinstance(exc, Http404) or detail is None:
        message = "Not found."
    else:
        message = str(detail)
    response.data = {"error": message}
    return response
