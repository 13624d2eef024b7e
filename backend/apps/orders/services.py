import logging
import secrets

from django.conf import settings
from django.core.files.storage import default_storage
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from apps.locations.services import GeoResolver
from apps.notifications.services import NotificationService
from apps.pricing.services import PricingEngine
from apps.stores.services import StoreService
from apps.utils.exceptions import (
    AcceptConflict,
    Forbidden,
    InvalidTransition,
    NotFound,
    PreconditionFailed,
    ValidationError,
)

from . import lifecycle
from .guards import AuthorizationGuard, Principal
from .models import DeliveryInstructions, Order, OrderStatus, ProofRecord

logger = logging.getLogger(__name__)


def _dispatch(description, callback, *args):
    """
    Runs a notification callback once the surrounding transaction commits.
    Failures are logged and never reach the caller.
    """
    def run():
        try:
            callback(*args)
        except Exception as e:
            logger.error(f"Notification '{description}' failed: {e}", exc_info=True)

    transaction.on_commit(run)


class OrderService:

    @staticmethod
    def _get(order_id, lock=False) -> Order:
        qs = Order.objects.select_for_update() if lock else Order.objects.all()
        order = qs.filter(pk=order_id).first()
        if order is None:
            raise NotFound(f"Order {order_id} not found")
        return order

    @staticmethod
    def _require_store(principal: Principal):
        if not principal.is_store:
            raise Forbidden("Store account required")

    @staticmethod
    def quote(principal: Principal, dropoff_address, deliver_before=None, deliver_after=None, geo=None, now=None):
        """
        Resolves both ends of the trip and prices it. Any geo failure
        propagates before anything is written.
        """
        OrderService._require_store(principal)
        geo = geo or GeoResolver()
        store = principal.store

        pickup = StoreService.pickup_point(store, geo)
        dropoff = geo.geocode(dropoff_address, identity=principal.identity)
        route = geo.route(pickup, dropoff)

        price = PricingEngine.price(
            route.distance_km,
            deliver_before=deliver_before,
            deliver_after=deliver_after,
            now=now,
        )

        return {
            "distance_km": route.distance_km,
            "eta_minutes": route.eta_minutes,
            **price.as_dict(),
            "pickup_address": store.address,
            "pickup_lat": pickup.lat,
            "pickup_lng": pickup.lng,
            "dropoff_address": dropoff_address,
            "dropoff_lat": dropoff.lat,
            "dropoff_lng": dropoff.lng,
        }

    @staticmethod
    def create_order(principal: Principal, data, geo=None, now=None):
        """
        Creates an order in CREATED with its pricing frozen.
        Returns (order, quote).
        """
        quote = OrderService.quote(
            principal,
            data["dropoff_address"],
            deliver_before=data.get("deliver_before"),
            deliver_after=data.get("deliver_after"),
            geo=geo,
            now=now,
        )

        with transaction.atomic():
            order = Order.objects.create(
                store=principal.store,
                recipient_name=data["recipient_name"],
                recipient_phone=data["recipient_phone"],
                tag_number=data.get("tag_number") or "",
                pickup_address=quote["pickup_address"],
                pickup_lat=round(quote["pickup_lat"], 6),
                pickup_lng=round(quote["pickup_lng"], 6),
                dropoff_address=quote["dropoff_address"],
                dropoff_lat=round(quote["dropoff_lat"], 6),
                dropoff_lng=round(quote["dropoff_lng"], 6),
                distance_km=quote["distance_km"],
                eta_minutes=quote["eta_minutes"],
                deliver_after=data.get("deliver_after"),
                deliver_before=data.get("deliver_before"),
                status=OrderStatus.CREATED,
                driver_price=quote["driver_price"],
                platform_profit=quote["platform_profit"],
                profit_raw=quote["profit_raw"],
                store_price=quote["store_price"],
                rush_fee=quote["rush_fee"],
                rush_applied=quote["rush_applied"],
            )

            instructions = {
                field: (data.get(field) or "").strip()
                for field in ("buzz_code", "unit", "note")
            }
            if any(instructions.values()):
                DeliveryInstructions.objects.create(order=order, **instructions)

        logger.info(f"Order {order.id} created by store {principal.store.id} ({quote['distance_km']} km)")
        return order, quote

    @staticmethod
    def orders_for_store(principal: Principal):
        OrderService._require_store(principal)
        return (
            Order.objects.filter(store=principal.store)
            .select_related("driver", "instructions")
            .prefetch_related("proofs")
            .order_by("-created_at")
        )

    @staticmethod
    def orders_for_driver(principal: Principal):
        """
        The open job board plus the caller's own in-flight orders.
        """
        if not principal.is_driver:
            raise Forbidden("Driver account required")

        open_jobs = Q(status=OrderStatus.READY_FOR_PICKUP, driver__isnull=True)
        mine = Q(
            driver=principal.driver,
            status__in=[OrderStatus.ACCEPTED, OrderStatus.PICKED_UP],
        )
        return (
            Order.objects.filter(open_jobs | mine)
            .select_related("store")
            .order_by("-created_at")
        )

    @staticmethod
    def transition(principal: Principal, order_id, target_status) -> Order:
        order = OrderService._get(order_id)
        return OrderService.apply_transition(principal, order, target_status)

    @staticmethod
    def apply_transition(principal: Principal, order: Order, target_status) -> Order:
        """
        Moves `order` along one lifecycle edge.

        `order` is only a snapshot used for the checks; the write itself is a
        conditional UPDATE on the expected source state, so a concurrent
        change makes it affect zero rows instead of overwriting.
        """
        edge = AuthorizationGuard.authorize(principal, order, target_status)
        lifecycle.validate(order.status, edge.target)

        if edge.target == OrderStatus.DELIVERED and not ProofService.can_mark_delivered(order):
            raise PreconditionFailed(
                f"{ProofService.required()} proof photos required before delivery",
                code="proof_required"
            )

        with transaction.atomic():
            qs = Order.objects.filter(pk=order.pk, status=edge.source)
            changes = {"status": edge.target, "updated_at": timezone.now()}

            if edge.target == OrderStatus.ACCEPTED:
                qs = qs.filter(driver__isnull=True)
                changes["driver"] = principal.driver
            elif edge.actor == lifecycle.DRIVER:
                qs = qs.filter(driver=principal.driver)
            else:
                qs = qs.filter(store=principal.store)

            if qs.update(**changes) == 0:
                if edge.target == OrderStatus.ACCEPTED:
                    raise AcceptConflict("Order already accepted by another driver")
                raise InvalidTransition(f"Order must be {edge.source} first")

            order.refresh_from_db()
            logger.info(f"Order {order.id}: {edge.source} -> {edge.target} by {principal.identity}")

            if edge.target == OrderStatus.READY_FOR_PICKUP:
                _dispatch("new delivery broadcast", NotificationService.queue_new_delivery_broadcast, order)
            elif edge.actor == lifecycle.DRIVER:
                _dispatch("store status update", NotificationService.notify_store_status, order)

        return order

    @staticmethod
    @transaction.atomic
    def delete_order(principal: Principal, order_id):
        """
        Row lock keeps a concurrent status change from slipping in between
        the check and the delete. Instructions and proofs cascade.
        """
        order = OrderService._get(order_id, lock=True)
        AuthorizationGuard.require_owner(principal, order)

        if not lifecycle.can_delete(order.status):
            raise PreconditionFailed(
                f"Order cannot be deleted once it is {order.status}",
                code="not_deletable"
            )

        order.delete()
        logger.info(f"Order {order_id} deleted by store {principal.store.id}")


class ProofService:
    ALLOWED_CONTENT_TYPES = {
        "image/jpeg": "jpg",
        "image/png": "png",
        "image/webp": "webp",
    }
    MAX_UPLOAD_BYTES = 5 * 1024 * 1024

    @staticmethod
    def required():
        return getattr(settings, "PROOF_PHOTOS_REQUIRED", 2)

    @staticmethod
    def maximum():
        return getattr(settings, "PROOF_PHOTOS_MAX", 2)

    @staticmethod
    def driver_proof_count(order) -> int:
        return ProofRecord.objects.filter(order=order, uploaded_by_role="DRIVER").count()

    @staticmethod
    def can_mark_delivered(order) -> bool:
        return ProofService.driver_proof_count(order) >= ProofService.required()

    @staticmethod
    def store_upload(order, upload) -> str:
        """
        Saves an uploaded photo through the configured storage backend
        (S3 in production) and returns its URL.
        """
        extension = ProofService.ALLOWED_CONTENT_TYPES.get(upload.content_type)
        if extension is None:
            raise ValidationError("Unsupported file type. Use JPEG, PNG or WEBP.")
        if upload.size > ProofService.MAX_UPLOAD_BYTES:
            raise ValidationError("File too large (max 5MB)")

        name = f"proofs/order_{order.id}_{secrets.token_hex(4)}.{extension}"
        path = default_storage.save(name, upload)
        return default_storage.url(path)

    @staticmethod
    @transaction.atomic
    def add_proof(principal: Principal, order_id, image_url=None, upload=None) -> ProofRecord:
        # Lock the order so two concurrent uploads cannot both pass the cap
        order = OrderService._get(order_id, lock=True)
        AuthorizationGuard.require_assignee(principal, order)

        if order.status != OrderStatus.PICKED_UP:
            raise PreconditionFailed("Order must be PICKED_UP to upload proof")

        if ProofService.driver_proof_count(order) >= ProofService.maximum():
            raise PreconditionFailed(
                f"Maximum of {ProofService.maximum()} proof photos already uploaded",
                code="proof_limit"
            )

        if upload is not None:
            image_url = ProofService.store_upload(order, upload)
        elif not image_url:
            raise ValidationError("Provide image_url or a photo file")

        proof = ProofRecord.objects.create(
            order=order,
            image_url=image_url,
            uploaded_by_role="DRIVER",
        )
        logger.info(f"Proof {proof.id} added to order {order.id}")
        return proof
