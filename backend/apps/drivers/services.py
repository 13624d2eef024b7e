# apps/drivers/services.py
from django.contrib.auth import get_user_model
from django.db import transaction

from apps.accounts.models import UserRole
from apps.utils.exceptions import BusinessLogicException
from .models import DriverProfile

User = get_user_model()


class DriverService:

    @staticmethod
    @transaction.atomic
    def create_driver_account(email, password, name, phone=""):
        """
        Idempotent account + profile creation.
        """
        user = User.objects.filter(email__iexact=email).first()
        if user is None:
            user = User.objects.create_user(email=email, password=password, phone=phone)
        UserRole.objects.get_or_create(user=user, role=UserRole.DRIVER)

        profile, created = DriverProfile.objects.get_or_create(
            user=user, defaults={"name": name, "phone": phone}
        )
        return profile

    @staticmethod
    def set_active(profile: DriverProfile, active: bool):
        """
        Prevent deactivating a driver who is carrying a live order.
        """
        if not active:
            carrying = profile.orders.filter(status__in=["ACCEPTED", "PICKED_UP"]).exists()
            if carrying:
                raise BusinessLogicException(
                    "Cannot deactivate a driver with active deliveries.",
                    code="active_delivery_restriction"
                )

        profile.is_active = active
        profile.save(update_fields=["is_active"])

    @staticmethod
    def broadcast_recipients():
        """Users that should hear about newly ready orders."""
        return User.objects.filter(
            is_active=True,
            driver_profile__is_active=True,
        ).exclude(push_token="")
