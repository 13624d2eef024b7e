import logging

from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status

logger = logging.getLogger(__name__)


class BusinessLogicException(Exception):
    """
    Base class for domain-specific errors (e.g., InvalidTransition, Forbidden).
    These are expected operational errors, not 500s.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "invalid_request"

    def __init__(self, message, code=None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)


class ValidationError(BusinessLogicException):
    default_code = "validation_error"


class InvalidTransition(BusinessLogicException):
    """Requested edge does not exist from the order's current status."""
    default_code = "invalid_transition"


class PreconditionFailed(BusinessLogicException):
    """Edge exists but its precondition (proof floor, upload cap...) does not hold."""
    default_code = "precondition_failed"


class AcceptConflict(PreconditionFailed):
    """Another driver won the accept race for the same order."""
    status_code = status.HTTP_409_CONFLICT
    default_code = "accept_conflict"


class Forbidden(BusinessLogicException):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "forbidden"


class NotFound(BusinessLogicException):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"


class RateLimited(BusinessLogicException):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_code = "rate_limited"


class UpstreamUnavailable(BusinessLogicException):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_code = "upstream_unavailable"


def custom_exception_handler(exc, context):
    """
    Custom DRF Exception Handler.
    Maps BusinessLogicException subclasses to their HTTP status with a standard
    error structure, and hides anything unexpected behind a generic 500.
    """
    if isinstance(exc, BusinessLogicException):
        return Response(
            {
                "error": {
                    "code": exc.code,
                    "message": exc.message,
                    "type": exc.__class__.__name__,
                },
                "message": exc.message,
            },
            status=exc.status_code
        )

    response = exception_handler(exc, context)

    if response is None:
        view = context.get("view")
        logger.error(
            f"Unhandled error in {view.__class__.__name__ if view else 'unknown view'}: {exc}",
            exc_info=exc
        )
        return Response(
            {"error": {"code": "internal_error", "message": "Internal server error"}},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    if response.status_code == 400:
        if "error" not in response.data:
            response.data = {
                "error": {
                    "code": "validation_error",
                    "details": response.data
                }
            }

    return response
