# apps/pricing/services.py
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple, Optional

from django.utils import timezone

TWO_PLACES = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


class PriceBreakdown(NamedTuple):
    driver_price: Decimal
    platform_profit: Decimal
    profit_raw: Decimal
    store_price: Decimal
    rush_fee: Decimal
    rush_applied: bool

    @property
    def base_price(self) -> Decimal:
        """Store-facing price before the rush surcharge."""
        return self.store_price - self.rush_fee

    @property
    def total_price(self) -> Decimal:
        return self.store_price

    def as_dict(self):
        return {
            "driver_price": self.driver_price,
            "platform_profit": self.platform_profit,
            "profit_raw": self.profit_raw,
            "store_price": self.store_price,
            "rush_fee": self.rush_fee,
            "rush_applied": self.rush_applied,
            "total_price": self.total_price,
            "base_price": self.base_price,
        }


class PricingEngine:
    """
    Distance + time-of-day pricing.
    Pure: no DB access, no clock access other than the `now` fallback.
    """

    BASE_TIER_KM = Decimal("2")
    MID_TIER_KM = Decimal("4")
    BASE_TIER_PAY = Decimal("6.00")
    MID_TIER_PAY = Decimal("8.00")
    PER_KM_BEYOND_MID = Decimal("1.00")

    PROFIT_BASE = Decimal("4.00")
    PROFIT_PER_KM = Decimal("0.12")
    PROFIT_CAP = Decimal("5.00")

    RUSH_FEE = Decimal("3.00")
    # Inclusive [start, end] windows, in fractional local hours
    RUSH_WINDOWS = ((7.0, 8.5), (16.0, 18.5))

    @staticmethod
    def resolve_effective_instant(
        deliver_before: Optional[datetime] = None,
        deliver_after: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> datetime:
        """
        Picks the instant used for rush-hour evaluation.
        Precedence: now < deliver_before < deliver_after.
        """
        instant = now or timezone.now()
        if deliver_before:
            instant = deliver_before
        if deliver_after:
            instant = deliver_after

        if timezone.is_aware(instant):
            instant = timezone.localtime(instant)
        return instant

    @classmethod
    def is_rush_hour(cls, instant: datetime) -> bool:
        value = instant.hour + instant.minute / 60
        return any(start <= value <= end for start, end in cls.RUSH_WINDOWS)

    @classmethod
    def driver_base_pay(cls, km: Decimal) -> Decimal:
        if km <= cls.BASE_TIER_KM:
            return cls.BASE_TIER_PAY
        if km <= cls.MID_TIER_KM:
            return cls.MID_TIER_PAY
        return cls.MID_TIER_PAY + (km - cls.MID_TIER_KM) * cls.PER_KM_BEYOND_MID

    @classmethod
    def price(cls, distance_km, deliver_before=None, deliver_after=None, now=None) -> PriceBreakdown:
        # 1. Clamp distance (str() keeps float inputs from leaking binary noise)
        km = max(Decimal("0"), Decimal(str(distance_km)))

        # 2. Scheduling context
        instant = cls.resolve_effective_instant(deliver_before, deliver_after, now)
        rush = cls.is_rush_hour(instant)

        # 3. Driver base + platform take
        driver = cls.driver_base_pay(km)
        profit_raw = cls.PROFIT_BASE + cls.PROFIT_PER_KM * km
        profit = min(profit_raw, cls.PROFIT_CAP)

        # 4. Platform caps its take, the excess goes to the driver
        if profit_raw > cls.PROFIT_CAP:
            driver += profit_raw - cls.PROFIT_CAP

        # 5. Store-facing price; surcharge never reaches the driver
        store = driver + profit
        rush_fee = cls.RUSH_FEE if rush else Decimal("0")
        store += rush_fee

        return PriceBreakdown(
            driver_price=to_money(driver),
            platform_profit=to_money(profit),
            profit_raw=to_money(profit_raw),
            store_price=to_money(store),
            rush_fee=to_money(rush_fee),
            rush_applied=rush,
        )
