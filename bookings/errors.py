"""
Booking engine error taxonomy.

Every error the core raises is a DRF ``APIException`` so the request
boundary maps it to a stable HTTP status and machine-readable code
without any per-view try/except.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class BookingError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Booking request failed."
    default_code = "booking_error"
    retryable = False


class ValidationError(BookingError):
    """Malformed or out-of-range input, rejected before any side effect."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid booking request."
    default_code = "invalid"


class SecurityError(BookingError):
    """Signature or identity check failed. The message never says whether the resource exists."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Request could not be authenticated."
    default_code = "security"


class NotFoundError(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"


class ConflictError(BookingError):
    """Room taken, lock contention or reference code exhaustion. Try another room or time."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The room is no longer available for the selected time."
    default_code = "conflict"
    retryable = True


class ConfigurationError(BookingError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Booking engine is misconfigured."
    default_code = "configuration"


class ExternalServiceError(BookingError):
    """Payment gateway unreachable or erroring. Nothing was committed."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Payment service is unavailable. Please try again."
    default_code = "external_service"
    retryable = True


def exception_handler(exc, context):
    response = drf_exception_handler(exc, context)
    if response is None or not isinstance(exc, BookingError):
        return response

    if exc.status_code >= 500:
        logger.error("%s: %s", type(exc).__name__, exc.detail)
    response.data = {
        "success": False,
        "detail": exc.detail,
        "code": exc.default_code,
        "retryable": exc.retryable,
    }
    return response
