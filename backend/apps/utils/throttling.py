# apps/utils/throttling.py
import time

from django.conf import settings
from django.core.cache import cache

from .exceptions import RateLimited


class RateLimiter:
    """
    Minimum-interval limiter keyed by caller identity.

    Each key lives in the cache for exactly `interval` seconds, so entries
    evict themselves and memory stays bounded by the number of callers active
    within one interval.
    """

    def __init__(self, scope, interval=None, backend=None):
        self.scope = scope
        self._interval = interval
        self.backend = backend or cache

    @property
    def interval(self):
        if self._interval is not None:
            return self._interval
        return getattr(settings, "GEOCODE_MIN_INTERVAL_SECONDS", 1)

    def _key(self, identity):
        return f"throttle:{self.scope}:{identity}"

    def hit(self, identity):
        """
        Registers a call for `identity`. Raises RateLimited if the previous
        call happened less than `interval` seconds ago.
        """
        interval = self.interval
        if not interval or interval <= 0:
            return

        key = self._key(identity)
        now = time.time()

        # cache.add is atomic: only the first caller inside the window wins
        if self.backend.add(key, now, timeout=interval):
            return

        last = self.backend.get(key)
        wait = interval - (now - float(last)) if last is not None else interval
        raise RateLimited(
            f"Too many requests. Try again in {max(wait, 0):.1f}s."
        )

    def reset(self, identity):
        self.backend.delete(self._key(identity))
