from django.conf import settings
from django.db import models
from django.utils import timezone

User = settings.AUTH_USER_MODEL


class Store(models.Model):
    """
    Sender side of a delivery. The store address is the pickup point of
    every order it creates.
    """
    user = models.OneToOneField(
        User, on_delete=models.CASCADE, related_name="store_profile"
    )

    name = models.CharField(max_length=120)
    phone = models.CharField(max_length=20, blank=True)
    address = models.CharField(max_length=255)

    # Filled lazily by geocoding the address on first use
    lat = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    lng = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)

    @property
    def has_coordinates(self):
        return self.lat is not None and self.lng is not None

    def __str__(self):
        return self.name
