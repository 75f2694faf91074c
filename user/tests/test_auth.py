from rest_framework import status
from rest_framework.test import APITestCase

from user.models import get_global_role
from utils.testing import make_user


class LoginTests(APITestCase):

    def setUp(self):
        self.user = make_user("dana", role="manager")

    def test_login_sets_cookies_and_authenticates(self):
        response = self.client.post(
            "/api/auth/login/email/",
            {"email": "DANA@example.com", "password": "pass12345"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["user"]["role"], "manager")
        self.assertTrue(response.cookies["access_token"].value)
        self.assertTrue(response.cookies["access_token"]["httponly"])
        self.assertNotIn("access", response.json())

        # the cookie alone authenticates follow-up requests
        self.assertEqual(self.client.get("/api/users/").status_code, status.HTTP_200_OK)

    def test_bad_password(self):
        response = self.client.post(
            "/api/auth/login/email/",
            {"email": "dana@example.com", "password": "nope"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json(), {"error": "Invalid email or password"})

    def test_missing_fields(self):
        response = self.client.post("/api/auth/login/email/", {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_logout_clears_cookies(self):
        response = self.client.post("/api/auth/logout/")
        self.assertEqual(response.cookies["access_token"].value, "")
        self.assertEqual(response.cookies["refresh_token"].value, "")

    def test_refresh_without_cookie(self):
        response = self.client.post("/api/auth/token/refresh/")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class UserListTests(APITestCase):

    def test_active_users_with_roles(self):
        admin = make_user("admin", role="admin")
        make_user("gone", is_active=False)
        make_user("eve")
        self.client.force_authenticate(admin)
        users = self.client.get("/api/users/").json()
        self.assertEqual({u["username"]: u["role"] for u in users}, {"admin": "admin", "eve": "member"})

    def test_global_role_defaults(self):
        self.assertEqual(get_global_role(make_user("plain")), "member")
        self.assertEqual(get_global_role(make_user("root", is_superuser=True)), "admin")
