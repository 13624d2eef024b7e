# apps/stores/services.py
import logging
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import transaction

from apps.accounts.models import UserRole
from apps.locations.services import GeoPoint
from .models import Store

logger = logging.getLogger(__name__)
User = get_user_model()


class StoreService:

    @staticmethod
    @transaction.atomic
    def create_store_account(email, password, name, address, phone="", lat=None, lng=None):
        """
        Idempotent: re-running for an existing email only adds what is missing.
        """
        user = User.objects.filter(email__iexact=email).first()
        if user is None:
            user = User.objects.create_user(email=email, password=password, phone=phone)
        UserRole.objects.get_or_create(user=user, role=UserRole.STORE)

        store, _ = Store.objects.get_or_create(
            user=user,
            defaults={
                "name": name,
                "phone": phone,
                "address": address,
                "lat": lat,
                "lng": lng,
            }
        )
        return store

    @staticmethod
    def pickup_point(store: Store, geo, identity=None) -> GeoPoint:
        """
        Returns the store's coordinates, geocoding and saving them once
        if the store was registered without any.
        """
        if store.has_coordinates:
            return GeoPoint(float(store.lat), float(store.lng))

        point = geo.geocode(store.address, identity=identity)
        store.lat = Decimal(str(round(point.lat, 6)))
        store.lng = Decimal(str(round(point.lng, 6)))
        store.save(update_fields=["lat", "lng"])
        logger.info(f"Geocoded pickup address for store {store.id}")
        return point
