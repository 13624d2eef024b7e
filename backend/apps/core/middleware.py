import re
import uuid
import logging
from contextvars import ContextVar

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Client-supplied ids are echoed back, so only accept short opaque tokens
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

# ContextVar for Request ID (Async Safe)
_correlation_id = ContextVar("correlation_id", default=None)


def get_correlation_id():
    return _correlation_id.get()


def set_correlation_id(value):
    """Used by Celery workers to restore the id carried in task headers."""
    return _correlation_id.set(value)


class CorrelationIDMiddleware:
    """
    Tags each request with an id that ends up on every log line it
    produces, on the response headers, and on any Celery task it queues.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        incoming = request.headers.get(REQUEST_ID_HEADER, "")
        if _VALID_REQUEST_ID.match(incoming):
            request_id = incoming
        else:
            request_id = uuid.uuid4().hex

        token = _correlation_id.set(request_id)
        request.correlation_id = request_id

        try:
            response = self.get_response(request)
            response[REQUEST_ID_HEADER] = request_id
            if response.status_code >= 500:
                logger.warning(
                    "%s %s -> %s", request.method, request.path, response.status_code
                )
            return response
        finally:
            _correlation_id.reset(token)
