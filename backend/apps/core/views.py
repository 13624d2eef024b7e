import logging
from django.http import JsonResponse
from django.db import connection
from django.core.cache import cache

logger = logging.getLogger(__name__)


def api_root(request):
    return JsonResponse({"message": "Delivery API running"})


def _check_db():
    with connection.cursor() as cursor:
        cursor.execute("SELECT 1")


def _check_cache():
    # Login throttling, token revocation and the geocoding rate limiter live here
    cache.set("health_ping", "pong", timeout=5)
    if cache.get("health_ping") != "pong":
        raise RuntimeError("Cache R/W mismatch")


HEALTH_CHECKS = (
    ("db", _check_db),
    ("cache", _check_cache),
)


def health_check(request):
    """
    Readiness check: 200 when the database and cache answer, 503 otherwise.
    Push delivery (Celery) is not checked; a stalled worker
    only delays notifications.
    """
    services = {}
    healthy = True

    for name, check in HEALTH_CHECKS:
        try:
            check()
            services[name] = "ok"
        except Exception as e:
            logger.critical(f"Health check {name} failed: {e}")
            services[name] = "unreachable"
            healthy = False

    return JsonResponse(
        {"status": "ok" if healthy else "error", "services": services},
        status=200 if healthy else 503
    )
