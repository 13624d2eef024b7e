from datetime import datetime
from decimal import Decimal

from django.test import SimpleTestCase
from django.utils import timezone

from apps.pricing.services import PricingEngine


def local(hour, minute=0):
    return timezone.make_aware(datetime(2026, 5, 4, hour, minute))


NOON = local(12, 0)


class PricingEngineTestCase(SimpleTestCase):

    def test_five_km_off_peak(self):
        price = PricingEngine.price(5, now=NOON)

        self.assertEqual(price.driver_price, Decimal("9.00"))
        self.assertEqual(price.profit_raw, Decimal("4.60"))
        self.assertEqual(price.platform_profit, Decimal("4.60"))
        self.assertEqual(price.store_price, Decimal("13.60"))
        self.assertEqual(price.rush_fee, Decimal("0.00"))
        self.assertFalse(price.rush_applied)

    def test_driver_tiers(self):
        self.assertEqual(PricingEngine.price(1, now=NOON).driver_price, Decimal("6.00"))
        self.assertEqual(PricingEngine.price(2, now=NOON).driver_price, Decimal("6.00"))
        self.assertEqual(PricingEngine.price(3, now=NOON).driver_price, Decimal("8.00"))
        self.assertEqual(PricingEngine.price(4, now=NOON).driver_price, Decimal("8.00"))

    def test_profit_cap_overflow_goes_to_driver(self):
        price = PricingEngine.price(10, now=NOON)

        self.assertEqual(price.profit_raw, Decimal("5.20"))
        self.assertEqual(price.platform_profit, Decimal("5.00"))
        self.assertEqual(price.driver_price, Decimal("14.20"))
        self.assertEqual(price.store_price, Decimal("19.20"))

    def test_negative_distance_is_clamped(self):
        price = PricingEngine.price(-3, now=NOON)

        self.assertEqual(price.driver_price, Decimal("6.00"))
        self.assertEqual(price.profit_raw, Decimal("4.00"))
        self.assertEqual(price.store_price, Decimal("10.00"))

    def test_rush_surcharge_only_hits_store_price(self):
        calm = PricingEngine.price(5, now=NOON)
        rush = PricingEngine.price(5, now=local(7, 30))

        self.assertTrue(rush.rush_applied)
        self.assertEqual(rush.rush_fee, Decimal("3.00"))
        self.assertEqual(rush.store_price - calm.store_price, Decimal("3.00"))
        self.assertEqual(rush.driver_price, calm.driver_price)
        self.assertEqual(rush.base_price, calm.store_price)
        self.assertEqual(rush.total_price, rush.store_price)

    def test_rush_window_bounds_are_inclusive(self):
        for hour, minute in [(7, 0), (8, 30), (16, 0), (18, 30)]:
            self.assertTrue(PricingEngine.is_rush_hour(local(hour, minute)), (hour, minute))
        for hour, minute in [(6, 59), (8, 31), (15, 59), (18, 31)]:
            self.assertFalse(PricingEngine.is_rush_hour(local(hour, minute)), (hour, minute))

    def test_deliver_before_overrides_now(self):
        price = PricingEngine.price(5, deliver_before=local(17, 0), now=NOON)
        self.assertTrue(price.rush_applied)

    def test_deliver_after_overrides_deliver_before(self):
        price = PricingEngine.price(
            5, deliver_before=local(17, 0), deliver_after=local(12, 0), now=local(7, 45)
        )
        self.assertFalse(price.rush_applied)

    def test_is_deterministic(self):
        self.assertEqual(PricingEngine.price(7.3, now=NOON), PricingEngine.price(7.3, now=NOON))
