# apps/locations/services.py
import math
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple

import requests
from django.conf import settings

from apps.utils.exceptions import RateLimited, UpstreamUnavailable, ValidationError
from apps.utils.resilience import CircuitBreaker
from apps.utils.throttling import RateLimiter

logger = logging.getLogger(__name__)


class GeoPoint(NamedTuple):
    lat: float
    lng: float

    def as_param(self):
        return f"{self.lat},{self.lng}"


class RouteEstimate(NamedTuple):
    distance_km: Decimal
    eta_minutes: int


def _round_km(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class LocationService:
    EARTH_RADIUS_KM = 6371

    @staticmethod
    def calculate_distance_km(lat1, lon1, lat2, lon2) -> float:
        """
        Calculates distance between two points using Haversine formula.
        Returns distance in Kilometers.
        """
        # Convert to float for math operations
        lat1, lon1, lat2, lon2 = map(float, [lat1, lon1, lat2, lon2])

        dlat = math.radians(lat2 - lat1)
        dlon = math.radians(lon2 - lon1)

        a = (
            math.sin(dlat / 2) ** 2
            + math.cos(math.radians(lat1))
            * math.cos(math.radians(lat2))
            * math.sin(dlon / 2) ** 2
        )

        c = 2 * math.asin(math.sqrt(a))
        return LocationService.EARTH_RADIUS_KM * c


class GoogleMapsClient:
    """
    Thin HTTP wrapper around the Google Maps web services.
    Transport errors trip a shared circuit breaker; provider statuses are
    mapped onto the domain exception taxonomy by the callers.
    """
    BASE_URL = "https://maps.googleapis.com/maps/api"

    def __init__(self, api_key=None, timeout=None, session=None):
        self.api_key = api_key if api_key is not None else getattr(settings, "GOOGLE_MAPS_KEY", "")
        self.timeout = timeout or getattr(settings, "GEO_REQUEST_TIMEOUT", 5)
        self.session = session or requests

    @CircuitBreaker("google_maps", failure_exceptions=(requests.RequestException,))
    def _fetch(self, endpoint, params):
        response = self.session.get(
            f"{self.BASE_URL}/{endpoint}/json",
            params={**params, "key": self.api_key},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def get(self, endpoint, params):
        if not self.api_key:
            raise UpstreamUnavailable("Maps provider is not configured")

        try:
            payload = self._fetch(endpoint, params)
        except requests.Timeout:
            logger.warning(f"Maps {endpoint} request timed out")
            raise UpstreamUnavailable("Maps provider timed out")
        except requests.RequestException as e:
            logger.error(f"Maps {endpoint} request failed: {e}")
            raise UpstreamUnavailable("Maps provider unavailable")
        except ValueError:
            raise UpstreamUnavailable("Maps provider returned an invalid response")

        provider_status = payload.get("status")
        if provider_status == "OVER_QUERY_LIMIT":
            raise RateLimited("Maps provider quota exceeded. Try again shortly.")
        if provider_status not in ("OK", "ZERO_RESULTS"):
            logger.error(f"Maps {endpoint} returned {provider_status}: {payload.get('error_message', '')}")
            raise UpstreamUnavailable(f"Maps provider error ({provider_status})")
        return payload


class GeocodingService:

    def __init__(self, client=None):
        self.client = client or GoogleMapsClient()

    def geocode(self, address: str) -> GeoPoint:
        payload = self.client.get("geocode", {"address": address})
        results = payload.get("results") or []
        if not results:
            raise ValidationError(f"Could not locate address: {address}", code="address_not_found")

        location = results[0]["geometry"]["location"]
        return GeoPoint(float(location["lat"]), float(location["lng"]))


class HaversineRouteStrategy:
    """Straight-line distance at a fixed average speed."""

    def __init__(self, average_speed_kmh=None):
        self.average_speed_kmh = average_speed_kmh or getattr(settings, "AVERAGE_SPEED_KMH", 30)

    def estimate(self, origin: GeoPoint, destination: GeoPoint) -> RouteEstimate:
        km = LocationService.calculate_distance_km(origin.lat, origin.lng, destination.lat, destination.lng)
        eta = math.ceil(km / float(self.average_speed_kmh) * 60)
        return RouteEstimate(_round_km(km), eta)


class GoogleRouteStrategy:
    """Driving distance and duration from the Distance Matrix API."""

    def __init__(self, client=None):
        self.client = client or GoogleMapsClient()

    def estimate(self, origin: GeoPoint, destination: GeoPoint) -> RouteEstimate:
        payload = self.client.get("distancematrix", {
            "origins": origin.as_param(),
            "destinations": destination.as_param(),
            "mode": "driving",
        })
        try:
            element = payload["rows"][0]["elements"][0]
        except (KeyError, IndexError):
            raise UpstreamUnavailable("Maps provider returned no route")

        if element.get("status") != "OK":
            raise ValidationError("No drivable route between pickup and dropoff", code="route_not_found")

        meters = element["distance"]["value"]
        seconds = element["duration"]["value"]
        return RouteEstimate(_round_km(meters / 1000), math.ceil(seconds / 60))


ROUTE_STRATEGIES = {
    "haversine": HaversineRouteStrategy,
    "google": GoogleRouteStrategy,
}


class GeoResolver:
    """
    Address -> coordinate and coordinate pair -> trip estimate.
    Geocoding calls are throttled per caller identity.
    """

    def __init__(self, geocoder=None, route_strategy=None, rate_limiter=None):
        self.geocoder = geocoder or GeocodingService()
        self.route_strategy = route_strategy or self._default_strategy()
        self.rate_limiter = rate_limiter or RateLimiter("geocode")

    @staticmethod
    def _default_strategy():
        name = getattr(settings, "ROUTE_STRATEGY", "haversine")
        try:
            return ROUTE_STRATEGIES[name]()
        except KeyError:
            raise ValueError(f"Unknown ROUTE_STRATEGY: {name}")

    def geocode(self, address, identity=None) -> GeoPoint:
        if identity is not None:
            self.rate_limiter.hit(identity)
        return self.geocoder.geocode(address)

    def route(self, origin: GeoPoint, destination: GeoPoint) -> RouteEstimate:
        return self.route_strategy.estimate(origin, destination)
