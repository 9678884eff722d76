"""Tests for the auth blueprint."""

import time
import unittest
from unittest.mock import MagicMock, patch

from firebase_admin import auth as firebase_auth
from mockfirestore import MockFirestore

from shopsquad import create_app
from tests.conftest import patch_firestore

# Mock user payloads
MOCK_USER_ID = "user1"
MOCK_USER_PAYLOAD = {"uid": MOCK_USER_ID, "email": "user1@example.com"}
MOCK_USER_DATA = {"name": "Test User", "email": "user1@example.com", "isAdmin": False}
MOCK_PASSWORD = "Password123"  # nosec


class AuthFirebaseTestCase(unittest.TestCase):
    def setUp(self):
        """Set up a test client and a comprehensive mock environment."""
        self.mock_db = MockFirestore()
        patch_firestore(self, self.mock_db)
        self.mock_auth_service = MagicMock()
        self.mock_auth_service.EmailAlreadyExistsError = firebase_auth.EmailAlreadyExistsError
        self.mock_auth_service.UserNotFoundError = firebase_auth.UserNotFoundError

        patchers = {
            "init_app": patch("firebase_admin.initialize_app"),
            "auth_routes_auth": patch(
                "shopsquad.auth.routes.auth", new=self.mock_auth_service
            ),
            "send_email": patch("shopsquad.auth.routes.send_email"),
        }

        self.mocks = {name: p.start() for name, p in patchers.items()}
        for p in patchers.values():
            self.addCleanup(p.stop)

        self.app = create_app(
            {"TESTING": True, "WTF_CSRF_ENABLED": False, "SERVER_NAME": "localhost"}
        )
        self.client = self.app.test_client()

    def _set_session_user(self):
        self.mock_db.collection("users").document(MOCK_USER_ID).set(MOCK_USER_DATA)
        with self.client.session_transaction() as sess:
            sess["user_id"] = MOCK_USER_ID
            sess["is_admin"] = False

    def test_successful_registration(self):
        """Test user registration with valid data."""
        self.mock_auth_service.create_user.return_value = MagicMock(uid="new_user_uid")

        response = self.client.post(
            "/auth/register",
            json={
                "name": "New User",
                "email": "New@Example.com",
                "password": MOCK_PASSWORD,
                "confirm_password": MOCK_PASSWORD,
            },
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.get_json()["user"]["email"], "new@example.com")
        self.mock_auth_service.create_user.assert_called_once()
        stored = self.mock_db.collection("users").document("new_user_uid").get().to_dict()
        self.assertEqual(stored["name"], "New User")
        self.assertFalse(stored["isAdmin"])

    def test_registration_password_mismatch(self):
        """Test that mismatched passwords are rejected before anything is created."""
        response = self.client.post(
            "/auth/register",
            json={
                "name": "New User",
                "email": "new@example.com",
                "password": MOCK_PASSWORD,
                "confirm_password": "different",
            },
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn("Passwords do not match", response.get_json()["message"])
        self.mock_auth_service.create_user.assert_not_called()

    def test_registration_existing_email(self):
        """Test that a taken email returns a conflict."""
        self.mock_auth_service.create_user.side_effect = (
            firebase_auth.EmailAlreadyExistsError("exists", None, None)
        )

        response = self.client.post(
            "/auth/register",
            json={
                "name": "New User",
                "email": "taken@example.com",
                "password": MOCK_PASSWORD,
                "confirm_password": MOCK_PASSWORD,
            },
        )

        self.assertEqual(response.status_code, 409)

    def test_session_login_creates_profile(self):
        """Test that the first sign-in stores a profile and a session."""
        self.mock_auth_service.verify_id_token.return_value = {
            "uid": "google_user",
            "email": "g@example.com",
            "name": "Gina Google",
        }

        response = self.client.post("/auth/session_login", json={"idToken": "token"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["user"]["name"], "Gina Google")
        stored = self.mock_db.collection("users").document("google_user").get().to_dict()
        self.assertEqual(stored["email"], "g@example.com")
        with self.client.session_transaction() as sess:
            self.assertEqual(sess["user_id"], "google_user")
            self.assertFalse(sess["is_admin"])

    def test_session_login_invalid_token(self):
        """Test that an invalid token is rejected."""
        self.mock_auth_service.verify_id_token.side_effect = ValueError("bad token")
        response = self.client.post("/auth/session_login", json={"idToken": "bad"})
        self.assertEqual(response.status_code, 401)

    def test_session_login_missing_token(self):
        response = self.client.post("/auth/session_login", json={})
        self.assertEqual(response.status_code, 400)

    def test_me_and_logout(self):
        """Test reading the current user and logging out."""
        self._set_session_user()

        response = self.client.get("/auth/me")
        self.assertEqual(response.get_json()["name"], "Test User")

        self.client.post("/auth/logout")
        self.assertEqual(self.client.get("/auth/me").status_code, 401)

    def test_reset_password_always_succeeds(self):
        """Test that unknown emails get the same answer as known ones."""
        self.mock_auth_service.generate_password_reset_link.side_effect = (
            firebase_auth.UserNotFoundError("no user")
        )

        response = self.client.post(
            "/auth/reset_password", json={"email": "nobody@example.com"}
        )

        self.assertEqual(response.status_code, 200)
        self.mocks["send_email"].assert_not_called()

    def test_reset_password_sends_link(self):
        self.mock_auth_service.generate_password_reset_link.return_value = (
            "https://example.com/reset"
        )

        response = self.client.post(
            "/auth/reset_password", json={"email": "user1@example.com"}
        )

        self.assertEqual(response.status_code, 200)
        kwargs = self.mocks["send_email"].call_args.kwargs
        self.assertEqual(kwargs["to"], "user1@example.com")
        self.assertEqual(kwargs["reset_link"], "https://example.com/reset")

    def test_update_profile(self):
        self._set_session_user()

        response = self.client.post(
            "/auth/profile",
            json={"name": "Renamed", "photo_url": "https://example.com/me.png"},
        )

        self.assertEqual(response.status_code, 200)
        stored = self.mock_db.collection("users").document(MOCK_USER_ID).get().to_dict()
        self.assertEqual(stored["name"], "Renamed")
        self.assertEqual(stored["avatar"], "https://example.com/me.png")
        self.mock_auth_service.update_user.assert_called_once()

    def test_change_password_requires_recent_sign_in(self):
        self._set_session_user()
        self.mock_auth_service.verify_id_token.return_value = {
            "uid": MOCK_USER_ID,
            "auth_time": time.time() - 3600,
        }

        response = self.client.post(
            "/auth/change_password",
            json={
                "id_token": "token",
                "new_password": "NewPassword1",
                "confirm_password": "NewPassword1",
            },
        )

        self.assertEqual(response.status_code, 403)
        self.mock_auth_service.update_user.assert_not_called()

    def test_change_password(self):
        self._set_session_user()
        self.mock_auth_service.verify_id_token.return_value = {
            "uid": MOCK_USER_ID,
            "auth_time": time.time(),
        }

        response = self.client.post(
            "/auth/change_password",
            json={
                "id_token": "token",
                "new_password": "NewPassword1",
                "confirm_password": "NewPassword1",
            },
        )

        self.assertEqual(response.status_code, 200)
        self.mock_auth_service.update_user.assert_called_once_with(
            MOCK_USER_ID, password="NewPassword1"
        )


if __name__ == "__main__":
    unittest.main()
