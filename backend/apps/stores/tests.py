from decimal import Decimal
from io import StringIO
from unittest.mock import Mock

from django.core.management import CommandError, call_command
from django.test import TestCase

from apps.locations.services import GeoPoint
from apps.stores.models import Store
from apps.stores.services import StoreService


class StoreServiceTestCase(TestCase):
    def test_create_store_account_is_idempotent(self):
        store = StoreService.create_store_account(
            "shop@example.com", "pass", name="Petals", address="1 Front St"
        )
        again = StoreService.create_store_account(
            "shop@example.com", "other", name="Ignored", address="Elsewhere"
        )

        self.assertEqual(store.pk, again.pk)
        self.assertEqual(again.name, "Petals")
        self.assertEqual(store.user.role, "store")
        self.assertEqual(Store.objects.count(), 1)

    def test_pickup_point_uses_saved_coordinates(self):
        store = StoreService.create_store_account(
            "a@example.com", "pass", name="A", address="x", lat=Decimal("43.1"), lng=Decimal("-79.2")
        )
        geo = Mock()

        point = StoreService.pickup_point(store, geo)

        self.assertEqual(point, GeoPoint(43.1, -79.2))
        geo.geocode.assert_not_called()

    def test_pickup_point_geocodes_once(self):
        store = StoreService.create_store_account("b@example.com", "pass", name="B", address="2 King St")
        geo = Mock()
        geo.geocode.return_value = GeoPoint(43.648, -79.3805)

        StoreService.pickup_point(store, geo, identity="store:1")
        store.refresh_from_db()
        StoreService.pickup_point(store, geo)

        self.assertEqual(store.lat, Decimal("43.648000"))
        geo.geocode.assert_called_once_with("2 King St", identity="store:1")


class CreateStoreCommandTestCase(TestCase):
    def test_creates_store_with_coordinates(self):
        out = StringIO()
        call_command(
            "create_store", "shop@example.com", "pass",
            name="Petals", address="1 Front St", lat="43.645", lng="-79.38",
            stdout=out,
        )

        store = Store.objects.get(user__email="shop@example.com")
        self.assertEqual(store.lat, Decimal("43.645"))
        self.assertEqual(store.user.role, "store")
        self.assertIn("ready", out.getvalue())

    def test_lat_without_lng_is_rejected(self):
        with self.assertRaises(CommandError):
            call_command("create_store", "shop@example.com", "pass", name="P", address="A", lat="43.6", stdout=StringIO())
        self.assertFalse(Store.objects.exists())
