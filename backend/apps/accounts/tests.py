# apps/accounts/tests.py
from django.core.cache import cache
from django.test import TestCase
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework import status
from apps.accounts.models import UserRole

User = get_user_model()


class AccountServiceTestCase(TestCase):
    def test_create_user_manager(self):
        user = User.objects.create_user(email="shop@Example.com", password="password123")
        self.assertEqual(user.email, "shop@example.com")
        self.assertTrue(user.check_password("password123"))
        self.assertFalse(user.is_staff)
        self.assertFalse(user.is_superuser)

    def test_create_superuser(self):
        admin = User.objects.create_superuser(email="admin@example.com", password="adminpass")
        self.assertTrue(admin.is_staff)
        self.assertTrue(admin.is_superuser)

    def test_email_required(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email=None, password="pass")

    def test_role_property(self):
        user = User.objects.create_user(email="d@example.com", password="pass")
        self.assertIsNone(user.role)
        UserRole.objects.create(user=user, role=UserRole.DRIVER)
        self.assertEqual(user.role, "driver")


class AuthAPITestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user = User.objects.create_user(email="store@example.com", password="testpass")
        UserRole.objects.create(user=self.user, role=UserRole.STORE)

    def test_login_returns_tokens_and_role(self):
        response = self.client.post(
            "/auth/login", {"email": "store@example.com", "password": "testpass"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("access", response.data)
        self.assertIn("refresh", response.data)
        self.assertEqual(response.data["role"], "store")
        self.assertEqual(response.data["user_id"], self.user.id)

    def test_login_wrong_password(self):
        response = self.client.post(
            "/auth/login", {"email": "store@example.com", "password": "nope"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_rejects_get(self):
        response = self.client.get("/auth/login")
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_me_endpoint_authenticated(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.get("/auth/me")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["email"], self.user.email)
        self.assertEqual(response.data["role"], "store")

    def test_me_endpoint_unauthenticated(self):
        response = self.client.get("/auth/me")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_bearer_token_grants_access(self):
        login = self.client.post(
            "/auth/login", {"email": "store@example.com", "password": "testpass"}, format="json"
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {login.data['access']}")

        response = self.client.get("/auth/me")
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_logout_revokes_access_token(self):
        login = self.client.post(
            "/auth/login", {"email": "store@example.com", "password": "testpass"}, format="json"
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {login.data['access']}")

        response = self.client.post("/auth/logout", {"refresh": login.data["refresh"]}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.get("/auth/me")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        self.client.credentials()
        response = self.client.post("/auth/refresh", {"refresh": login.data["refresh"]}, format="json")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_register_push_token(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.post("/auth/push-token", {"push_token": "ExponentPushToken[abc]"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.push_token, "ExponentPushToken[abc]")
