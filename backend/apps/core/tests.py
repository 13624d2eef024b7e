# apps/core/tests.py
import logging
import os
from io import StringIO
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase, SimpleTestCase, RequestFactory
from django.core.cache import cache
from django.http import JsonResponse

from apps.core.middleware import CorrelationIDMiddleware, get_correlation_id
from apps.utils.logging import GDPRJsonFormatter, CorrelationIdFilter


class MiddlewareTestCase(SimpleTestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.seen = {}

        def get_response(req):
            self.seen["correlation_id"] = get_correlation_id()
            return JsonResponse({"status": "ok"})

        self.get_response = get_response

    def test_correlation_id_generation(self):
        middleware = CorrelationIDMiddleware(self.get_response)
        request = self.factory.get("/")
        response = middleware(request)

        self.assertTrue(response.has_header("X-Request-ID"))
        self.assertIsNotNone(request.correlation_id)
        self.assertEqual(self.seen["correlation_id"], request.correlation_id)
        # Context is reset once the request is done
        self.assertIsNone(get_correlation_id())

    def test_correlation_id_is_propagated_from_header(self):
        middleware = CorrelationIDMiddleware(self.get_response)
        request = self.factory.get("/", HTTP_X_REQUEST_ID="abc-123")
        response = middleware(request)

        self.assertEqual(response["X-Request-ID"], "abc-123")

    def test_malformed_request_id_is_replaced(self):
        middleware = CorrelationIDMiddleware(self.get_response)
        request = self.factory.get("/", HTTP_X_REQUEST_ID="bad id with spaces")
        response = middleware(request)

        self.assertNotEqual(response["X-Request-ID"], "bad id with spaces")
        self.assertEqual(len(response["X-Request-ID"]), 32)


class JsonFormatterTestCase(SimpleTestCase):
    def _record(self, **extra):
        record = logging.LogRecord("test", logging.INFO, __file__, 10, "hello", None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_masks_sensitive_metadata(self):
        record = self._record(metadata={"password": "hunter2", "nested": {"push_token": "xyz"}, "order_id": 4})
        CorrelationIdFilter().filter(record)
        output = GDPRJsonFormatter().format(record)

        self.assertNotIn("hunter2", output)
        self.assertNotIn("xyz", output)
        self.assertIn('"order_id": 4', output)
        self.assertIn('"correlation_id": "N/A"', output)


class HealthCheckTestCase(TestCase):
    def setUp(self):
        cache.clear()

    def test_root_message(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"message": "Delivery API running"})

    def test_health_check_ok(self):
        response = self.client.get("/health/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["services"], {"db": "ok", "cache": "ok"})

    @patch("apps.core.views.cache")
    def test_health_check_cache_down(self, mock_cache):
        mock_cache.set.side_effect = ConnectionError("redis down")

        response = self.client.get("/health/")

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["services"], {"db": "ok", "cache": "unreachable"})


class CreateSuperuserCommandTestCase(TestCase):
    def test_skips_without_credentials(self):
        with patch.dict(os.environ, {"DJANGO_SUPERUSER_EMAIL": "", "DJANGO_SUPERUSER_PASSWORD": ""}):
            call_command("create_superuser_auto", stdout=StringIO())
        self.assertFalse(get_user_model().objects.exists())

    def test_creates_once(self):
        env = {"DJANGO_SUPERUSER_EMAIL": "ops@example.com", "DJANGO_SUPERUSER_PASSWORD": "s3cret"}
        with patch.dict(os.environ, env):
            call_command("create_superuser_auto", stdout=StringIO())
            call_command("create_superuser_auto", stdout=StringIO())

        user = get_user_model().objects.get()
        self.assertTrue(user.is_superuser)
        self.assertTrue(user.is_staff)
