# apps/utils/resilience.py
import logging
from functools import wraps
from django.core.cache import cache

from .exceptions import UpstreamUnavailable

logger = logging.getLogger(__name__)


class CircuitBreakerOpenException(UpstreamUnavailable):
    pass


class CircuitBreaker:
    """
    Prevents cascading failures by stopping requests to a failing service.
    Only exceptions listed in `failure_exceptions` count towards tripping.
    """
    def __init__(self, service_name, failure_threshold=5, recovery_timeout=60, failure_exceptions=(Exception,)):
        self.service_name = service_name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_exceptions = failure_exceptions
        self.key_failures = f"cb:fails:{service_name}"
        self.key_open = f"cb:open:{service_name}"

    def __call__(self, func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            # 1. Check Circuit State (Fail Open if cache error)
            try:
                is_open = cache.get(self.key_open)
            except Exception as e:
                logger.error(f"CircuitBreaker cache check failed: {e}")
                is_open = False

            if is_open:
                logger.warning(f"Circuit OPEN: {self.service_name}. Fast failing.")
                raise CircuitBreakerOpenException(f"{self.service_name} is temporarily down")

            # 2. Attempt Execution
            try:
                return func(*args, **kwargs)
            except self.failure_exceptions:
                # 3. Record Failure
                self._safe_record_failure()
                raise

        return wrapper

    def _safe_record_failure(self):
        try:
            # First failure opens the window, later ones count inside it
            if cache.add(self.key_failures, 1, timeout=self.recovery_timeout):
                fails = 1
            else:
                fails = cache.incr(self.key_failures)

            # Trip Circuit
            if fails >= self.failure_threshold:
                logger.critical(f"Circuit TRIPPED for {self.service_name}!")
                cache.set(self.key_open, "OPEN", timeout=self.recovery_timeout)
                cache.delete(self.key_failures)
        except Exception as e:
            logger.error(f"CircuitBreaker failed to record failure for {self.service_name}: {e}")

    def reset(self):
        cache.delete_many([self.key_failures, self.key_open])
