# apps/drivers/models.py
from django.conf import settings
from django.db import models
from django.utils import timezone

User = settings.AUTH_USER_MODEL


class DriverProfile(models.Model):
    user = models.OneToOneField(
        User, on_delete=models.CASCADE, related_name="driver_profile"
    )

    name = models.CharField(max_length=120)
    phone = models.CharField(max_length=20, blank=True)

    # Inactive drivers keep their history but stop receiving broadcasts
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        indexes = [
            models.Index(fields=["is_active"], name="driver_active_idx"),
        ]

    def __str__(self):
        return f"Driver {self.name}"
