from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse
from django.contrib.auth import get_user_model

from apps.drivers.models import DriverProfile
from apps.drivers.services import DriverService
from apps.utils.exceptions import BusinessLogicException

User = get_user_model()


class DriverServiceTestCase(TestCase):
    def setUp(self):
        self.profile = DriverService.create_driver_account("d@example.com", "pass", name="Dee", phone="555")

    def test_create_driver_account_is_idempotent(self):
        again = DriverService.create_driver_account("d@example.com", "pass", name="Other")
        self.assertEqual(again.pk, self.profile.pk)
        self.assertEqual(self.profile.user.role, "driver")
        self.assertEqual(DriverProfile.objects.count(), 1)

    def test_set_active_toggle(self):
        DriverService.set_active(self.profile, False)
        self.profile.refresh_from_db()
        self.assertFalse(self.profile.is_active)

    def test_cannot_deactivate_while_carrying(self):
        from apps.orders.tests import make_order
        make_order(status="PICKED_UP", driver=self.profile)

        with self.assertRaises(BusinessLogicException):
            DriverService.set_active(self.profile, False)

    def test_broadcast_recipients(self):
        user = self.profile.user
        self.assertNotIn(user, DriverService.broadcast_recipients())

        user.push_token = "ExponentPushToken[x]"
        user.save()
        self.assertIn(user, DriverService.broadcast_recipients())

        DriverService.set_active(self.profile, False)
        self.assertNotIn(user, DriverService.broadcast_recipients())


class CreateDriverCommandTestCase(TestCase):
    def test_creates_driver(self):
        call_command("create_driver", "dee@example.com", "pass", name="Dee", phone="555-0200", stdout=StringIO())

        profile = DriverProfile.objects.get(user__email="dee@example.com")
        self.assertEqual(profile.name, "Dee")
        self.assertTrue(profile.user.check_password("pass"))


class DriverAdminActionTestCase(TestCase):
    def setUp(self):
        admin_user = User.objects.create_superuser(email="ops@example.com", password="pass")
        self.client.force_login(admin_user)
        self.url = reverse("admin:drivers_driverprofile_changelist")
        self.idle = DriverService.create_driver_account("idle@example.com", "pass", name="Idle")
        self.busy = DriverService.create_driver_account("busy@example.com", "pass", name="Busy")

    def test_deactivate_skips_driver_on_delivery(self):
        from apps.orders.tests import make_order
        make_order(status="ACCEPTED", driver=self.busy)

        response = self.client.post(self.url, {
            "action": "deactivate_drivers",
            "_selected_action": [self.idle.pk, self.busy.pk],
        }, follow=True)

        self.assertEqual(response.status_code, 200)
        self.idle.refresh_from_db()
        self.busy.refresh_from_db()
        self.assertFalse(self.idle.is_active)
        self.assertTrue(self.busy.is_active)
        self.assertIn("Busy", " ".join(str(m) for m in response.context["messages"]))

    def test_activate(self):
        DriverService.set_active(self.idle, False)

        self.client.post(self.url, {"action": "activate_drivers", "_selected_action": [self.idle.pk]})

        self.idle.refresh_from_db()
        self.assertTrue(self.idle.is_active)
