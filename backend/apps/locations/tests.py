from decimal import Decimal
from unittest.mock import Mock

import requests
from django.core.cache import cache
from django.test import SimpleTestCase

from apps.locations.services import (
    GeoPoint,
    GeoResolver,
    GeocodingService,
    GoogleMapsClient,
    GoogleRouteStrategy,
    HaversineRouteStrategy,
    LocationService,
)
from apps.utils.exceptions import RateLimited, UpstreamUnavailable, ValidationError
from apps.utils.throttling import RateLimiter


def fake_session(payload=None, exc=None):
    session = Mock()
    if exc is not None:
        session.get.side_effect = exc
    else:
        session.get.return_value.json.return_value = payload
    return session


class HaversineTestCase(SimpleTestCase):
    def test_one_degree_of_latitude(self):
        km = LocationService.calculate_distance_km(0, 0, 1, 0)
        self.assertAlmostEqual(km, 111.19, places=1)

    def test_route_estimate_uses_average_speed(self):
        strategy = HaversineRouteStrategy(average_speed_kmh=60)
        estimate = strategy.estimate(GeoPoint(0, 0), GeoPoint(0.5, 0))

        self.assertEqual(estimate.distance_km, Decimal("55.60"))
        self.assertEqual(estimate.eta_minutes, 56)


class GoogleMapsTestCase(SimpleTestCase):
    def setUp(self):
        cache.clear()

    def test_geocode_success(self):
        session = fake_session({
            "status": "OK",
            "results": [{"geometry": {"location": {"lat": 43.65, "lng": -79.38}}}],
        })
        service = GeocodingService(GoogleMapsClient(api_key="k", timeout=2, session=session))

        point = service.geocode("1 Front St")

        self.assertEqual(point, GeoPoint(43.65, -79.38))
        _, kwargs = session.get.call_args
        self.assertEqual(kwargs["timeout"], 2)
        self.assertEqual(kwargs["params"]["address"], "1 Front St")

    def test_geocode_zero_results_is_validation_error(self):
        service = GeocodingService(GoogleMapsClient(api_key="k", session=fake_session({"status": "ZERO_RESULTS", "results": []})))
        with self.assertRaises(ValidationError):
            service.geocode("nowhere")

    def test_provider_quota_maps_to_rate_limited(self):
        service = GeocodingService(GoogleMapsClient(api_key="k", session=fake_session({"status": "OVER_QUERY_LIMIT"})))
        with self.assertRaises(RateLimited):
            service.geocode("1 Front St")

    def test_timeout_maps_to_upstream_unavailable(self):
        service = GeocodingService(GoogleMapsClient(api_key="k", session=fake_session(exc=requests.Timeout())))
        with self.assertRaises(UpstreamUnavailable):
            service.geocode("1 Front St")

    def test_missing_key_is_upstream_unavailable(self):
        service = GeocodingService(GoogleMapsClient(api_key="", session=fake_session({})))
        with self.assertRaises(UpstreamUnavailable):
            service.geocode("1 Front St")

    def test_circuit_opens_after_repeated_failures(self):
        session = fake_session(exc=requests.ConnectionError())
        client = GoogleMapsClient(api_key="k", session=session)

        for _ in range(5):
            with self.assertRaises(UpstreamUnavailable):
                client.get("geocode", {"address": "x"})

        with self.assertRaises(UpstreamUnavailable):
            client.get("geocode", {"address": "x"})
        # Fifth failure tripped the breaker; the sixth call never hit the network
        self.assertEqual(session.get.call_count, 5)

    def test_distance_matrix_route(self):
        session = fake_session({
            "status": "OK",
            "rows": [{"elements": [{
                "status": "OK",
                "distance": {"value": 5234},
                "duration": {"value": 610},
            }]}],
        })
        strategy = GoogleRouteStrategy(GoogleMapsClient(api_key="k", session=session))

        estimate = strategy.estimate(GeoPoint(1, 2), GeoPoint(3, 4))

        self.assertEqual(estimate.distance_km, Decimal("5.23"))
        self.assertEqual(estimate.eta_minutes, 11)


class GeoResolverTestCase(SimpleTestCase):
    def setUp(self):
        cache.clear()
        self.geocoder = Mock()
        self.geocoder.geocode.return_value = GeoPoint(1.0, 2.0)
        self.resolver = GeoResolver(
            geocoder=self.geocoder,
            route_strategy=HaversineRouteStrategy(average_speed_kmh=30),
            rate_limiter=RateLimiter("geocode-test", interval=60),
        )

    def test_geocode_is_throttled_per_identity(self):
        self.assertEqual(self.resolver.geocode("a", identity="store:1"), GeoPoint(1.0, 2.0))

        with self.assertRaises(RateLimited):
            self.resolver.geocode("b", identity="store:1")

        # A different caller is unaffected
        self.resolver.geocode("c", identity="store:2")
        self.assertEqual(self.geocoder.geocode.call_count, 2)

    def test_rate_limiter_reset(self):
        limiter = RateLimiter("reset-test", interval=60)
        limiter.hit("x")
        limiter.reset("x")
        limiter.hit("x")

    def test_zero_interval_disables_limiter(self):
        limiter = RateLimiter("off", interval=0)
        limiter.hit("x")
        limiter.hit("x")
