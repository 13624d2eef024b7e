from django.db import models
from django.utils import timezone

from apps.drivers.models import DriverProfile
from apps.stores.models import Store


class OrderStatus:
    CREATED = "CREATED"
    PREPARING = "PREPARING"
    READY_FOR_PICKUP = "READY_FOR_PICKUP"
    ACCEPTED = "ACCEPTED"
    PICKED_UP = "PICKED_UP"
    DELIVERED = "DELIVERED"

    CHOICES = (
        (CREATED, "Created"),
        (PREPARING, "Preparing"),
        (READY_FOR_PICKUP, "Ready For Pickup"),
        (ACCEPTED, "Accepted"),
        (PICKED_UP, "Picked Up"),
        (DELIVERED, "Delivered"),
    )


# States in which a driver must be attached to the order
ASSIGNED_STATUSES = (
    OrderStatus.ACCEPTED,
    OrderStatus.PICKED_UP,
    OrderStatus.DELIVERED,
)


class Order(models.Model):
    store = models.ForeignKey(Store, on_delete=models.PROTECT, related_name="orders")
    driver = models.ForeignKey(
        DriverProfile,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="orders",
    )

    recipient_name = models.CharField(max_length=120)
    recipient_phone = models.CharField(max_length=20)
    tag_number = models.CharField(max_length=50, blank=True)

    # Snapshot of both ends at creation time (store address may change later)
    pickup_address = models.CharField(max_length=255)
    pickup_lat = models.DecimalField(max_digits=9, decimal_places=6)
    pickup_lng = models.DecimalField(max_digits=9, decimal_places=6)
    dropoff_address = models.CharField(max_length=255)
    dropoff_lat = models.DecimalField(max_digits=9, decimal_places=6)
    dropoff_lng = models.DecimalField(max_digits=9, decimal_places=6)

    distance_km = models.DecimalField(max_digits=8, decimal_places=2)
    eta_minutes = models.PositiveIntegerField()

    deliver_after = models.DateTimeField(null=True, blank=True)
    deliver_before = models.DateTimeField(null=True, blank=True)

    status = models.CharField(
        max_length=20, choices=OrderStatus.CHOICES, default=OrderStatus.CREATED
    )

    # Price breakdown, frozen at creation
    driver_price = models.DecimalField(max_digits=10, decimal_places=2)
    platform_profit = models.DecimalField(max_digits=10, decimal_places=2)
    profit_raw = models.DecimalField(max_digits=10, decimal_places=2)
    store_price = models.DecimalField(max_digits=10, decimal_places=2)
    rush_fee = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    rush_applied = models.BooleanField(default=False)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            # Store dashboard
            models.Index(fields=["store", "-created_at"], name="order_store_created_idx"),
            # Driver job board
            models.Index(fields=["status", "driver"], name="order_status_driver_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(status__in=ASSIGNED_STATUSES, driver__isnull=False)
                    | (~models.Q(status__in=ASSIGNED_STATUSES) & models.Q(driver__isnull=True))
                ),
                name="order_driver_matches_status",
            ),
        ]

    def __str__(self):
        return f"Order #{self.id} ({self.status})"


class DeliveryInstructions(models.Model):
    order = models.OneToOneField(Order, on_delete=models.CASCADE, related_name="instructions")
    buzz_code = models.CharField(max_length=50, blank=True)
    unit = models.CharField(max_length=50, blank=True)
    note = models.TextField(blank=True)

    class Meta:
        verbose_name_plural = "Delivery instructions"

    def as_dict(self):
        return {"buzz_code": self.buzz_code, "unit": self.unit, "note": self.note}


class ProofRecord(models.Model):
    UPLOADER_CHOICES = (
        ("STORE", "Store"),
        ("DRIVER", "Driver"),
    )

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="proofs")
    image_url = models.CharField(max_length=500)
    uploaded_by_role = models.CharField(max_length=10, choices=UPLOADER_CHOICES)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["order", "uploaded_by_role"], name="proof_order_role_idx"),
        ]

    def __str__(self):
        return f"Proof #{self.id} for order {self.order_id}"
