from datetime import datetime
from decimal import Decimal
from unittest.mock import Mock, patch

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase, TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from apps.drivers.services import DriverService
from apps.locations.services import GeoPoint, RouteEstimate
from apps.orders import lifecycle
from apps.orders.guards import AuthorizationGuard, Principal
from apps.orders.models import DeliveryInstructions, Order, OrderStatus, ProofRecord
from apps.orders.serializers import DriverStatusSerializer, StoreStatusSerializer
from apps.orders.services import OrderService, ProofService
from apps.stores.services import StoreService
from apps.utils.exceptions import (
    AcceptConflict,
    Forbidden,
    InvalidTransition,
    NotFound,
    PreconditionFailed,
    UpstreamUnavailable,
    ValidationError,
)

NOON = timezone.make_aware(datetime(2026, 5, 4, 12, 0))


def make_store(email="store@example.com", name="Petals"):
    return StoreService.create_store_account(
        email, "pass", name=name, address="1 Front St", phone="555-0100",
        lat=Decimal("43.645000"), lng=Decimal("-79.380000"),
    )


def make_driver(email="driver@example.com", name="Dee"):
    return DriverService.create_driver_account(email, "pass", name=name, phone="555-0200")


def make_order(status=OrderStatus.CREATED, driver=None, store=None, **extra):
    store = store or make_store()
    values = {
        "store": store,
        "driver": driver,
        "recipient_name": "Rae",
        "recipient_phone": "555-0300",
        "pickup_address": store.address,
        "pickup_lat": store.lat,
        "pickup_lng": store.lng,
        "dropoff_address": "2 King St",
        "dropoff_lat": Decimal("43.650000"),
        "dropoff_lng": Decimal("-79.390000"),
        "distance_km": Decimal("5.00"),
        "eta_minutes": 10,
        "status": status,
        "driver_price": Decimal("9.00"),
        "platform_profit": Decimal("4.60"),
        "profit_raw": Decimal("4.60"),
        "store_price": Decimal("13.60"),
    }
    values.update(extra)
    return Order.objects.create(**values)


def add_driver_proofs(order, count):
    for i in range(count):
        ProofRecord.objects.create(order=order, image_url=f"https://cdn.example.com/{i}.jpg", uploaded_by_role="DRIVER")


def fake_geo(distance_km="5.00", eta=12, error=None):
    geo = Mock()
    if error is not None:
        geo.geocode.side_effect = error
    else:
        geo.geocode.return_value = GeoPoint(43.65, -79.39)
    geo.route.return_value = RouteEstimate(Decimal(distance_km), eta)
    return geo


class LifecycleTestCase(SimpleTestCase):

    def test_forward_edges(self):
        path = [
            OrderStatus.CREATED,
            OrderStatus.PREPARING,
            OrderStatus.READY_FOR_PICKUP,
            OrderStatus.ACCEPTED,
            OrderStatus.PICKED_UP,
            OrderStatus.DELIVERED,
        ]
        for current, target in zip(path, path[1:]):
            edge = lifecycle.validate(current, target)
            self.assertEqual(edge.source, current)

    def test_skipped_edge_is_rejected(self):
        with self.assertRaises(InvalidTransition) as ctx:
            lifecycle.validate(OrderStatus.ACCEPTED, OrderStatus.DELIVERED)
        self.assertIn("must be PICKED_UP first", str(ctx.exception))

    def test_backward_edge_is_rejected(self):
        with self.assertRaises(InvalidTransition):
            lifecycle.validate(OrderStatus.PICKED_UP, OrderStatus.ACCEPTED)

    def test_same_state_is_rejected(self):
        with self.assertRaises(InvalidTransition):
            lifecycle.validate(OrderStatus.ACCEPTED, OrderStatus.ACCEPTED)

    def test_nothing_leads_back_to_created(self):
        with self.assertRaises(InvalidTransition):
            lifecycle.edge_into(OrderStatus.CREATED)

    def test_actor_targets(self):
        self.assertEqual(lifecycle.targets_for(lifecycle.STORE), ["PREPARING", "READY_FOR_PICKUP"])
        self.assertEqual(lifecycle.targets_for(lifecycle.DRIVER), ["ACCEPTED", "PICKED_UP", "DELIVERED"])

    def test_status_inputs_follow_actor_targets(self):
        self.assertTrue(StoreStatusSerializer(data={"status": "READY_FOR_PICKUP"}).is_valid())
        self.assertFalse(StoreStatusSerializer(data={"status": "ACCEPTED"}).is_valid())
        self.assertTrue(DriverStatusSerializer(data={"status": "DELIVERED"}).is_valid())
        self.assertFalse(DriverStatusSerializer(data={"status": "PREPARING"}).is_valid())

    def test_deletable_states(self):
        self.assertTrue(lifecycle.can_delete(OrderStatus.CREATED))
        self.assertTrue(lifecycle.can_delete(OrderStatus.PREPARING))
        self.assertFalse(lifecycle.can_delete(OrderStatus.READY_FOR_PICKUP))
        self.assertFalse(lifecycle.can_delete(OrderStatus.ACCEPTED))


class AuthorizationGuardTestCase(TestCase):
    def setUp(self):
        self.store = make_store()
        self.other_store = make_store("other@example.com", "Other")
        self.driver = make_driver()
        self.other_driver = make_driver("other-driver@example.com", "Oz")

        self.store_principal = Principal.from_user(self.store.user)
        self.driver_principal = Principal.from_user(self.driver.user)

    def test_principal_resolution(self):
        self.assertTrue(self.store_principal.is_store)
        self.assertEqual(self.store_principal.store, self.store)
        self.assertTrue(self.driver_principal.is_driver)
        self.assertEqual(self.driver_principal.identity, f"driver:{self.driver.user.id}")

    def test_dual_role_account_resolves_to_requested_side(self):
        dual_store = make_store("dual@example.com", "Dual Blooms")
        dual_driver = make_driver("dual@example.com", "Dual")

        as_store = Principal.from_user(dual_store.user, lifecycle.STORE)
        as_driver = Principal.from_user(dual_store.user, lifecycle.DRIVER)

        self.assertEqual(as_store.store, dual_store)
        self.assertTrue(as_driver.is_driver)
        self.assertEqual(as_driver.driver, dual_driver)

    def test_requested_side_without_profile_is_forbidden(self):
        with self.assertRaises(Forbidden):
            Principal.from_user(self.store.user, lifecycle.DRIVER)

    def test_user_without_profile_is_forbidden(self):
        from django.contrib.auth import get_user_model
        user = get_user_model().objects.create_user(email="nobody@example.com", password="pass")
        with self.assertRaises(Forbidden):
            Principal.from_user(user)

    def test_driver_cannot_run_store_edge(self):
        order = make_order(store=self.store)
        with self.assertRaises(Forbidden):
            AuthorizationGuard.authorize(self.driver_principal, order, OrderStatus.PREPARING)

    def test_store_cannot_run_driver_edge(self):
        order = make_order(status=OrderStatus.READY_FOR_PICKUP, store=self.store)
        with self.assertRaises(Forbidden):
            AuthorizationGuard.authorize(self.store_principal, order, OrderStatus.ACCEPTED)

    def test_store_must_own_order(self):
        order = make_order(store=self.other_store)
        with self.assertRaises(Forbidden):
            AuthorizationGuard.authorize(self.store_principal, order, OrderStatus.PREPARING)

    def test_only_assignee_past_accept(self):
        order = make_order(status=OrderStatus.ACCEPTED, driver=self.other_driver, store=self.store)
        with self.assertRaises(Forbidden):
            AuthorizationGuard.authorize(self.driver_principal, order, OrderStatus.PICKED_UP)

    def test_accept_requires_unassigned(self):
        order = make_order(status=OrderStatus.ACCEPTED, driver=self.other_driver, store=self.store)
        with self.assertRaises(PreconditionFailed) as ctx:
            AuthorizationGuard.authorize(self.driver_principal, order, OrderStatus.ACCEPTED)
        self.assertIn("already accepted by another driver", str(ctx.exception))

    def test_forbidden_before_lifecycle(self):
        # Wrong owner AND wrong state: ownership wins
        order = make_order(status=OrderStatus.DELIVERED, driver=self.driver, store=self.other_store)
        with self.assertRaises(Forbidden):
            OrderService.apply_transition(self.store_principal, order, OrderStatus.PREPARING)


class OrderTransitionTestCase(TestCase):
    def setUp(self):
        self.store = make_store()
        self.driver = make_driver()
        self.rival = make_driver("rival@example.com", "Rival")

        self.store_p = Principal.from_user(self.store.user)
        self.driver_p = Principal.from_user(self.driver.user)
        self.rival_p = Principal.from_user(self.rival.user)

    def assertDriverMatchesStatus(self, order):
        order.refresh_from_db()
        if order.status in ("ACCEPTED", "PICKED_UP", "DELIVERED"):
            self.assertIsNotNone(order.driver_id)
        else:
            self.assertIsNone(order.driver_id)

    def test_full_happy_path(self):
        order = make_order(store=self.store)

        OrderService.transition(self.store_p, order.id, OrderStatus.PREPARING)
        self.assertDriverMatchesStatus(order)
        OrderService.transition(self.store_p, order.id, OrderStatus.READY_FOR_PICKUP)
        self.assertDriverMatchesStatus(order)

        accepted = OrderService.transition(self.driver_p, order.id, OrderStatus.ACCEPTED)
        self.assertEqual(accepted.driver, self.driver)
        self.assertDriverMatchesStatus(order)

        OrderService.transition(self.driver_p, order.id, OrderStatus.PICKED_UP)
        ProofService.add_proof(self.driver_p, order.id, image_url="https://cdn.example.com/a.jpg")
        ProofService.add_proof(self.driver_p, order.id, image_url="https://cdn.example.com/b.jpg")

        delivered = OrderService.transition(self.driver_p, order.id, OrderStatus.DELIVERED)
        self.assertEqual(delivered.status, OrderStatus.DELIVERED)
        self.assertDriverMatchesStatus(order)

    def test_invalid_edge_leaves_status_unchanged(self):
        order = make_order(status=OrderStatus.READY_FOR_PICKUP, store=self.store)
        OrderService.transition(self.driver_p, order.id, OrderStatus.ACCEPTED)

        with self.assertRaises(InvalidTransition):
            OrderService.transition(self.driver_p, order.id, OrderStatus.DELIVERED)

        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.ACCEPTED)

    def test_store_cannot_skip_preparing(self):
        order = make_order(store=self.store)
        with self.assertRaises(InvalidTransition):
            OrderService.transition(self.store_p, order.id, OrderStatus.READY_FOR_PICKUP)

    def test_repeat_accept_is_rejected(self):
        order = make_order(status=OrderStatus.READY_FOR_PICKUP, store=self.store)
        OrderService.transition(self.driver_p, order.id, OrderStatus.ACCEPTED)

        with self.assertRaises(InvalidTransition):
            OrderService.transition(self.driver_p, order.id, OrderStatus.ACCEPTED)

    def test_accept_race_has_single_winner(self):
        order = make_order(status=OrderStatus.READY_FOR_PICKUP, store=self.store)
        # Both drivers read the order before either writes
        seen_by_driver = Order.objects.get(pk=order.pk)
        seen_by_rival = Order.objects.get(pk=order.pk)

        OrderService.apply_transition(self.driver_p, seen_by_driver, OrderStatus.ACCEPTED)
        with self.assertRaises(AcceptConflict):
            OrderService.apply_transition(self.rival_p, seen_by_rival, OrderStatus.ACCEPTED)

        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.ACCEPTED)
        self.assertEqual(order.driver, self.driver)

    def test_stale_pickup_affects_nothing(self):
        order = make_order(status=OrderStatus.ACCEPTED, driver=self.driver, store=self.store)
        stale = Order.objects.get(pk=order.pk)
        OrderService.transition(self.driver_p, order.id, OrderStatus.PICKED_UP)

        with self.assertRaises(InvalidTransition):
            OrderService.apply_transition(self.driver_p, stale, OrderStatus.PICKED_UP)

    def test_deliver_needs_two_driver_proofs(self):
        order = make_order(status=OrderStatus.PICKED_UP, driver=self.driver, store=self.store)
        add_driver_proofs(order, 1)
        # Store-sourced evidence does not count towards the floor
        ProofRecord.objects.create(order=order, image_url="https://cdn.example.com/s.jpg", uploaded_by_role="STORE")

        with self.assertRaises(PreconditionFailed) as ctx:
            OrderService.transition(self.driver_p, order.id, OrderStatus.DELIVERED)
        self.assertIn("2 proof photos required before delivery", str(ctx.exception))

        add_driver_proofs(order, 1)
        order = OrderService.transition(self.driver_p, order.id, OrderStatus.DELIVERED)
        self.assertEqual(order.status, OrderStatus.DELIVERED)

    def test_missing_order(self):
        with self.assertRaises(NotFound):
            OrderService.transition(self.store_p, 999999, OrderStatus.PREPARING)

    @patch("apps.orders.services.NotificationService.queue_new_delivery_broadcast")
    def test_ready_broadcasts_to_drivers(self, mock_broadcast):
        order = make_order(status=OrderStatus.PREPARING, store=self.store)

        with self.captureOnCommitCallbacks(execute=True):
            OrderService.transition(self.store_p, order.id, OrderStatus.READY_FOR_PICKUP)

        mock_broadcast.assert_called_once()
        self.assertEqual(mock_broadcast.call_args[0][0].id, order.id)

    @patch("apps.orders.services.NotificationService.notify_store_status")
    def test_driver_moves_notify_store(self, mock_notify):
        order = make_order(status=OrderStatus.READY_FOR_PICKUP, store=self.store)

        with self.captureOnCommitCallbacks(execute=True):
            OrderService.transition(self.driver_p, order.id, OrderStatus.ACCEPTED)
            OrderService.transition(self.driver_p, order.id, OrderStatus.PICKED_UP)

        self.assertEqual(mock_notify.call_count, 2)

    @patch("apps.orders.services.NotificationService.notify_store_status", side_effect=RuntimeError("push down"))
    def test_notification_failure_keeps_transition(self, mock_notify):
        order = make_order(status=OrderStatus.READY_FOR_PICKUP, store=self.store)

        with self.captureOnCommitCallbacks(execute=True):
            OrderService.transition(self.driver_p, order.id, OrderStatus.ACCEPTED)

        mock_notify.assert_called_once()
        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.ACCEPTED)


class ProofServiceTestCase(TestCase):
    def setUp(self):
        self.store = make_store()
        self.driver = make_driver()
        self.driver_p = Principal.from_user(self.driver.user)
        self.order = make_order(status=OrderStatus.PICKED_UP, driver=self.driver, store=self.store)

    def test_third_upload_is_rejected(self):
        ProofService.add_proof(self.driver_p, self.order.id, image_url="https://cdn.example.com/1.jpg")
        ProofService.add_proof(self.driver_p, self.order.id, image_url="https://cdn.example.com/2.jpg")

        with self.assertRaises(PreconditionFailed):
            ProofService.add_proof(self.driver_p, self.order.id, image_url="https://cdn.example.com/3.jpg")

        self.assertEqual(ProofService.driver_proof_count(self.order), 2)
        self.assertTrue(ProofService.can_mark_delivered(self.order))

    def test_upload_requires_picked_up(self):
        order = make_order(status=OrderStatus.ACCEPTED, driver=self.driver, store=self.store)
        with self.assertRaises(PreconditionFailed):
            ProofService.add_proof(self.driver_p, order.id, image_url="https://cdn.example.com/1.jpg")

    def test_upload_requires_assignee(self):
        rival = make_driver("rival@example.com", "Rival")
        with self.assertRaises(Forbidden):
            ProofService.add_proof(Principal.from_user(rival.user), self.order.id, image_url="x")

    def test_upload_requires_image(self):
        with self.assertRaises(ValidationError):
            ProofService.add_proof(self.driver_p, self.order.id)

    @patch("apps.orders.services.default_storage")
    def test_file_upload_goes_through_storage(self, storage):
        storage.save.return_value = "proofs/stored.jpg"
        storage.url.return_value = "https://cdn.example.com/proofs/stored.jpg"
        upload = SimpleUploadedFile("photo.jpg", b"\xff\xd8\xff" + b"0" * 200, content_type="image/jpeg")

        proof = ProofService.add_proof(self.driver_p, self.order.id, upload=upload)

        self.assertEqual(proof.image_url, "https://cdn.example.com/proofs/stored.jpg")
        self.assertEqual(proof.uploaded_by_role, "DRIVER")
        name = storage.save.call_args[0][0]
        self.assertTrue(name.startswith(f"proofs/order_{self.order.id}_"))
        self.assertTrue(name.endswith(".jpg"))

    @patch("apps.orders.services.default_storage")
    def test_rejects_non_image_upload(self, storage):
        upload = SimpleUploadedFile("doc.pdf", b"%PDF-1.4", content_type="application/pdf")

        with self.assertRaises(ValidationError):
            ProofService.add_proof(self.driver_p, self.order.id, upload=upload)

        storage.save.assert_not_called()
        self.assertFalse(ProofRecord.objects.exists())


class OrderCreationTestCase(TestCase):
    def setUp(self):
        self.store = make_store()
        self.principal = Principal.from_user(self.store.user)
        self.data = {
            "dropoff_address": "2 King St",
            "recipient_name": "Rae",
            "recipient_phone": "555-0300",
        }

    def test_persists_price_and_route(self):
        order, quote = OrderService.create_order(self.principal, self.data, geo=fake_geo(), now=NOON)

        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.CREATED)
        self.assertIsNone(order.driver)
        self.assertEqual(order.distance_km, Decimal("5.00"))
        self.assertEqual(order.eta_minutes, 12)
        self.assertEqual(order.driver_price, Decimal("9.00"))
        self.assertEqual(order.profit_raw, Decimal("4.60"))
        self.assertEqual(order.platform_profit, Decimal("4.60"))
        self.assertEqual(order.store_price, Decimal("13.60"))
        self.assertEqual(order.rush_fee, Decimal("0.00"))
        self.assertFalse(order.rush_applied)
        self.assertEqual(order.pickup_address, "1 Front St")
        self.assertEqual(order.dropoff_lat, Decimal("43.650000"))
        self.assertEqual(quote["total_price"], Decimal("13.60"))
        self.assertFalse(DeliveryInstructions.objects.filter(order=order).exists())

    def test_instructions_created_when_supplied(self):
        data = dict(self.data, buzz_code="1234", unit="", note="Leave at door")
        order, _ = OrderService.create_order(self.principal, data, geo=fake_geo(), now=NOON)

        self.assertEqual(order.instructions.buzz_code, "1234")
        self.assertEqual(order.instructions.note, "Leave at door")

    def test_geocoder_failure_creates_nothing(self):
        geo = fake_geo(error=UpstreamUnavailable("Maps provider timed out"))

        with self.assertRaises(UpstreamUnavailable):
            OrderService.create_order(self.principal, self.data, geo=geo, now=NOON)

        self.assertFalse(Order.objects.exists())

    def test_drivers_cannot_quote(self):
        driver = make_driver()
        with self.assertRaises(Forbidden):
            OrderService.quote(Principal.from_user(driver.user), "2 King St", geo=fake_geo())

    def test_store_without_coordinates_is_geocoded(self):
        store = StoreService.create_store_account("new@example.com", "pass", name="New", address="9 Bay St")
        geo = fake_geo()

        OrderService.quote(Principal.from_user(store.user), "2 King St", geo=geo, now=NOON)

        store.refresh_from_db()
        self.assertTrue(store.has_coordinates)
        self.assertEqual(geo.geocode.call_count, 2)


class OrderDeletionTestCase(TestCase):
    def setUp(self):
        self.store = make_store()
        self.principal = Principal.from_user(self.store.user)

    def test_delete_removes_dependents(self):
        for state in (OrderStatus.CREATED, OrderStatus.PREPARING):
            order = make_order(status=state, store=self.store)
            DeliveryInstructions.objects.create(order=order, buzz_code="12")
            ProofRecord.objects.create(order=order, image_url="https://cdn.example.com/s.jpg", uploaded_by_role="STORE")

            OrderService.delete_order(self.principal, order.id)

            self.assertFalse(Order.objects.filter(pk=order.pk).exists())
            self.assertFalse(DeliveryInstructions.objects.filter(order_id=order.pk).exists())
            self.assertFalse(ProofRecord.objects.filter(order_id=order.pk).exists())

    def test_delete_refused_once_driver_engaged(self):
        driver = make_driver()
        for state in (OrderStatus.ACCEPTED, OrderStatus.PICKED_UP, OrderStatus.DELIVERED):
            order = make_order(status=state, driver=driver, store=self.store)
            with self.assertRaises(PreconditionFailed):
                OrderService.delete_order(self.principal, order.id)
            self.assertTrue(Order.objects.filter(pk=order.pk).exists())

    def test_delete_other_stores_order(self):
        order = make_order(store=make_store("other@example.com", "Other"))
        with self.assertRaises(Forbidden):
            OrderService.delete_order(self.principal, order.id)


@patch("apps.orders.services.GeoResolver")
class StoreOrderAPITestCase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.store = make_store()
        self.client.force_authenticate(user=self.store.user)
        self.payload = {
            "dropoff_address": "2 King St",
            "deliver_after": "2026-05-04T12:00:00",
        }

    def test_preview(self, resolver):
        resolver.return_value = fake_geo()

        response = self.client.post("/store/orders/preview", self.payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data
        self.assertEqual(data["distance_km"], Decimal("5.00"))
        self.assertEqual(data["driver_price"], Decimal("9.00"))
        self.assertEqual(data["store_price"], Decimal("13.60"))
        self.assertEqual(data["base_price"], Decimal("13.60"))
        self.assertEqual(data["total_price"], Decimal("13.60"))
        self.assertFalse(data["rush_applied"])
        self.assertEqual(data["pickup_address"], "1 Front St")
        self.assertAlmostEqual(data["dropoff_lat"], 43.65)
        self.assertFalse(Order.objects.exists())

    def test_preview_rush(self, resolver):
        resolver.return_value = fake_geo()
        payload = {"dropoff_address": "2 King St", "deliver_after": "2026-05-04T07:30:00"}

        response = self.client.post("/store/orders/preview", payload, format="json")

        self.assertTrue(response.data["rush_applied"])
        self.assertEqual(response.data["store_price"], Decimal("16.60"))
        self.assertEqual(response.data["base_price"], Decimal("13.60"))
        self.assertEqual(response.data["driver_price"], Decimal("9.00"))

    def test_create(self, resolver):
        resolver.return_value = fake_geo()
        payload = dict(self.payload, recipient_name="Rae", recipient_phone="555-0300", unit="4B")

        response = self.client.post("/store/orders", payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["success"])
        order = Order.objects.get(pk=response.data["id"])
        self.assertEqual(order.status, OrderStatus.CREATED)
        self.assertEqual(order.store_price, Decimal("13.60"))
        self.assertEqual(response.data["eta_minutes"], 12)
        self.assertEqual(order.instructions.unit, "4B")

    def test_create_requires_recipient(self, resolver):
        resolver.return_value = fake_geo()

        response = self.client.post("/store/orders", self.payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["code"], "validation_error")
        self.assertIn("recipient_name", response.data["error"]["details"])

    def test_create_geocoder_failure_is_502(self, resolver):
        resolver.return_value = fake_geo(error=UpstreamUnavailable("Maps provider timed out"))
        payload = dict(self.payload, recipient_name="Rae", recipient_phone="555-0300")

        response = self.client.post("/store/orders", payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data["error"]["code"], "upstream_unavailable")
        self.assertFalse(Order.objects.exists())

    def test_list_is_enriched(self, resolver):
        driver = make_driver()
        mine = make_order(status=OrderStatus.PICKED_UP, driver=driver, store=self.store)
        DeliveryInstructions.objects.create(order=mine, buzz_code="12", unit="4B", note="")
        add_driver_proofs(mine, 1)
        make_order(store=self.store)
        make_order(store=make_store("other@example.com", "Other"))

        response = self.client.get("/store/orders")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)
        row = next(r for r in response.data if r["id"] == mine.id)
        self.assertEqual(row["proof_images"], ["https://cdn.example.com/0.jpg"])
        self.assertEqual(row["instructions"], {"buzz_code": "12", "unit": "4B", "note": ""})
        self.assertEqual(row["driver"], {"id": driver.id, "name": "Dee", "phone": "555-0200"})
        other = next(r for r in response.data if r["id"] != mine.id)
        self.assertIsNone(other["instructions"])
        self.assertIsNone(other["driver"])

    def test_list_filters_by_status(self, resolver):
        preparing = make_order(status=OrderStatus.PREPARING, store=self.store)
        make_order(store=self.store)

        response = self.client.get("/store/orders", {"status": "PREPARING"})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row["id"] for row in response.data], [preparing.id])

    def test_list_rejects_unknown_status_filter(self, resolver):
        response = self.client.get("/store/orders", {"status": "LOST"})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("status", response.data["error"]["details"])

    def test_status_update(self, resolver):
        order = make_order(store=self.store)

        response = self.client.put(f"/store/orders/{order.id}/status", {"status": "PREPARING"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "PREPARING")

    def test_status_update_rejects_driver_states(self, resolver):
        order = make_order(store=self.store)

        response = self.client.put(f"/store/orders/{order.id}/status", {"status": "ACCEPTED"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invalid_transition_has_reason(self, resolver):
        order = make_order(store=self.store)

        response = self.client.put(f"/store/orders/{order.id}/status", {"status": "READY_FOR_PICKUP"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["code"], "invalid_transition")
        self.assertEqual(response.data["message"], "Order must be PREPARING first")

    def test_other_stores_order_is_403(self, resolver):
        order = make_order(store=make_store("other@example.com", "Other"))

        response = self.client.put(f"/store/orders/{order.id}/status", {"status": "PREPARING"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_missing_order_is_404(self, resolver):
        response = self.client.put("/store/orders/999999/status", {"status": "PREPARING"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete(self, resolver):
        order = make_order(status=OrderStatus.PREPARING, store=self.store)

        response = self.client.delete(f"/store/orders/{order.id}")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Order.objects.filter(pk=order.pk).exists())

    def test_delete_after_ready_is_refused(self, resolver):
        order = make_order(status=OrderStatus.READY_FOR_PICKUP, store=self.store)

        response = self.client.delete(f"/store/orders/{order.id}")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Order.objects.filter(pk=order.pk).exists())

    def test_driver_cannot_use_store_routes(self, resolver):
        driver = make_driver()
        self.client.force_authenticate(user=driver.user)

        response = self.client.get("/store/orders")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unauthenticated(self, resolver):
        self.client.force_authenticate(user=None)
        response = self.client.get("/store/orders")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class DriverOrderAPITestCase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.store = make_store()
        self.driver = make_driver()
        self.rival = make_driver("rival@example.com", "Rival")
        self.client.force_authenticate(user=self.driver.user)

    def test_dual_role_account_sees_job_board(self):
        open_job = make_order(status=OrderStatus.READY_FOR_PICKUP, store=self.store)
        make_driver(self.store.user.email, "Store Owner Driving")
        self.client.force_authenticate(user=self.store.user)

        response = self.client.get("/driver/orders")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row["id"] for row in response.data], [open_job.id])

    def test_job_board(self):
        open_job = make_order(status=OrderStatus.READY_FOR_PICKUP, store=self.store)
        mine = make_order(status=OrderStatus.PICKED_UP, driver=self.driver, store=self.store)
        make_order(status=OrderStatus.ACCEPTED, driver=self.rival, store=self.store)
        make_order(status=OrderStatus.DELIVERED, driver=self.driver, store=self.store)
        make_order(status=OrderStatus.PREPARING, store=self.store)

        response = self.client.get("/driver/orders")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual({row["id"] for row in response.data}, {open_job.id, mine.id})
        self.assertEqual(
            response.data[0]["store"],
            {"id": self.store.id, "name": "Petals", "phone": "555-0100", "address": "1 Front St"},
        )

    def test_accept_conflict_is_409(self):
        order = make_order(status=OrderStatus.ACCEPTED, driver=self.rival, store=self.store)

        response = self.client.put(f"/driver/orders/{order.id}/status", {"status": "ACCEPTED"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        order.refresh_from_db()
        self.assertEqual(order.driver, self.rival)

    def test_deliver_without_proof(self):
        order = make_order(status=OrderStatus.PICKED_UP, driver=self.driver, store=self.store)

        response = self.client.put(f"/driver/orders/{order.id}/status", {"status": "DELIVERED"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["message"], "2 proof photos required before delivery")

    def test_proof_then_deliver(self):
        order = make_order(status=OrderStatus.PICKED_UP, driver=self.driver, store=self.store)

        for i in range(2):
            response = self.client.post(
                f"/driver/orders/{order.id}/proof", {"image_url": f"https://cdn.example.com/{i}.jpg"}, format="json"
            )
            self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.post(
            f"/driver/orders/{order.id}/proof", {"image_url": "https://cdn.example.com/2.jpg"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.put(f"/driver/orders/{order.id}/status", {"status": "DELIVERED"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "DELIVERED")

    @patch("apps.orders.services.default_storage")
    def test_multipart_proof(self, storage):
        storage.save.return_value = "proofs/p.png"
        storage.url.return_value = "/media/proofs/p.png"
        order = make_order(status=OrderStatus.PICKED_UP, driver=self.driver, store=self.store)
        upload = SimpleUploadedFile("p.png", b"\x89PNG" + b"0" * 100, content_type="image/png")

        response = self.client.post(f"/driver/orders/{order.id}/proof", {"file": upload}, format="multipart")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["image_url"], "/media/proofs/p.png")

    def test_proof_requires_payload(self):
        order = make_order(status=OrderStatus.PICKED_UP, driver=self.driver, store=self.store)
        response = self.client.post(f"/driver/orders/{order.id}/proof", {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_other_drivers_order_is_403(self):
        order = make_order(status=OrderStatus.ACCEPTED, driver=self.rival, store=self.store)

        response = self.client.put(f"/driver/orders/{order.id}/status", {"status": "PICKED_UP"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_store_states_rejected_on_driver_route(self):
        order = make_order(status=OrderStatus.CREATED, store=self.store)
        response = self.client.put(f"/driver/orders/{order.id}/status", {"status": "PREPARING"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @patch("apps.orders.services.NotificationService.notify_store_status", side_effect=RuntimeError("push down"))
    def test_notification_failure_still_200(self, mock_notify):
        order = make_order(status=OrderStatus.READY_FOR_PICKUP, store=self.store)

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.put(f"/driver/orders/{order.id}/status", {"status": "ACCEPTED"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        mock_notify.assert_called_once()
