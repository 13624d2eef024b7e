from unittest.mock import patch

import requests
from django.test import TestCase, override_settings
from rest_framework.test import APIClient
from rest_framework import status

from apps.drivers.services import DriverService
from apps.notifications.models import Notification
from apps.notifications.services import NotificationService
from apps.notifications.tasks import fan_out_new_delivery, send_push_notification


class NotificationServiceTestCase(TestCase):
    def setUp(self):
        self.driver = DriverService.create_driver_account("d@example.com", "pass", name="Dee")
        self.user = self.driver.user

    @patch("apps.notifications.services.send_push_notification.delay")
    def test_notify_without_token_only_records_history(self, mock_delay):
        NotificationService.notify(self.user, "Hi", "There")

        self.assertEqual(Notification.objects.filter(user=self.user).count(), 1)
        mock_delay.assert_not_called()

    @patch("apps.notifications.services.send_push_notification.delay")
    def test_notify_enqueues_push_after_commit(self, mock_delay):
        self.user.push_token = "ExponentPushToken[x]"
        self.user.save()

        with self.captureOnCommitCallbacks(execute=True):
            NotificationService.notify(self.user, "Hi", "There", {"order_id": 1})

        mock_delay.assert_called_once_with("ExponentPushToken[x]", "Hi", "There", {"order_id": 1})

    @patch("apps.notifications.services.send_push_notification.delay")
    def test_broadcast_reaches_active_drivers_only(self, mock_delay):
        self.user.push_token = "ExponentPushToken[x]"
        self.user.save()
        idle = DriverService.create_driver_account("idle@example.com", "pass", name="Idle")
        idle.user.push_token = "ExponentPushToken[y]"
        idle.user.save()
        DriverService.set_active(idle, False)

        count = NotificationService.broadcast(
            DriverService.broadcast_recipients(), "New delivery available", "Pickup"
        )

        self.assertEqual(count, 1)
        self.assertFalse(Notification.objects.filter(user=idle.user).exists())

    def _ready_drivers(self, count):
        users = []
        for i in range(count):
            profile = DriverService.create_driver_account(f"d{i}@example.com", "pass", name=f"D{i}")
            profile.user.push_token = f"ExponentPushToken[{i}]"
            profile.user.save()
            users.append(profile.user)
        return users

    @patch("apps.notifications.services.send_push_notification.delay")
    def test_broker_failure_for_one_driver_does_not_stop_broadcast(self, mock_delay):
        from apps.orders.tests import make_order

        self._ready_drivers(3)
        mock_delay.side_effect = [ConnectionError("broker down"), None, None]
        order = make_order(status="READY_FOR_PICKUP")

        with self.captureOnCommitCallbacks(execute=True):
            count = NotificationService.broadcast_new_delivery(order)

        self.assertEqual(count, 3)
        self.assertEqual(mock_delay.call_count, 3)
        self.assertEqual(Notification.objects.filter(title="New delivery available").count(), 3)

    @patch("apps.notifications.services.NotificationService.notify")
    def test_broadcast_continues_past_failing_recipient(self, mock_notify):
        users = self._ready_drivers(3)
        mock_notify.side_effect = [RuntimeError("db hiccup"), None, None]

        count = NotificationService.broadcast(users, "New delivery available", "Pickup")

        self.assertEqual(mock_notify.call_count, 3)
        self.assertEqual(count, 2)

    @patch("apps.notifications.services.fan_out_new_delivery.delay")
    def test_new_delivery_broadcast_is_queued_for_worker(self, mock_delay):
        from apps.orders.tests import make_order

        order = make_order(status="READY_FOR_PICKUP")
        NotificationService.queue_new_delivery_broadcast(order)

        mock_delay.assert_called_once_with(order.id)
        self.assertFalse(Notification.objects.exists())


class PushTaskTestCase(TestCase):
    @override_settings(PUSH_PROVIDER_URL="https://push.example.com/send", PUSH_REQUEST_TIMEOUT=3)
    @patch("apps.notifications.tasks.requests.post")
    def test_push_payload(self, mock_post):
        result = send_push_notification.apply(args=("tok", "T", "M", {"a": 1})).get()

        self.assertEqual(result, "Sent")
        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], "https://push.example.com/send")
        self.assertEqual(kwargs["json"], {"to": "tok", "title": "T", "body": "M", "data": {"a": 1}})
        self.assertEqual(kwargs["timeout"], 3)

    @override_settings(PUSH_PROVIDER_URL="")
    @patch("apps.notifications.tasks.requests.post")
    def test_missing_config_skips_provider(self, mock_post):
        result = send_push_notification.apply(args=("tok", "T", "M")).get()

        self.assertEqual(result, "Config Missing")
        mock_post.assert_not_called()

    @override_settings(PUSH_PROVIDER_URL="https://push.example.com/send")
    @patch("apps.notifications.tasks.requests.post")
    def test_provider_failure_is_retried(self, mock_post):
        mock_post.side_effect = requests.ConnectionError("down")

        result = send_push_notification.apply(args=("tok", "T", "M"))

        # Eager retries run inline until max_retries is exhausted
        self.assertGreater(mock_post.call_count, 1)
        self.assertTrue(result.failed())

    @patch("apps.notifications.services.NotificationService.broadcast_new_delivery", return_value=2)
    def test_fan_out_task_broadcasts_order(self, mock_broadcast):
        from apps.orders.tests import make_order

        order = make_order(status="READY_FOR_PICKUP")
        result = fan_out_new_delivery.apply(args=(order.id,)).get()

        self.assertEqual(result, 2)
        self.assertEqual(mock_broadcast.call_args[0][0].id, order.id)

    @patch("apps.notifications.services.NotificationService.broadcast_new_delivery")
    def test_fan_out_task_skips_deleted_order(self, mock_broadcast):
        result = fan_out_new_delivery.apply(args=(999999,)).get()

        self.assertEqual(result, 0)
        mock_broadcast.assert_not_called()


class NotificationAPITestCase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.driver = DriverService.create_driver_account("d@example.com", "pass", name="Dee")
        Notification.objects.create(user=self.driver.user, title="T", message="M")

    def test_history_requires_auth(self):
        response = self.client.get("/notifications/")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_history_lists_own_notifications(self):
        self.client.force_authenticate(user=self.driver.user)
        response = self.client.get("/notifications/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data["results"]), 1)
        self.assertEqual(response.data["results"][0]["title"], "T")
