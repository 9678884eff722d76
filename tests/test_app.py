"""Tests for the app factory."""

import os
import unittest
from unittest.mock import patch

# Pre-emptive imports to ensure patch targets exist.
from shopsquad import create_app


class AppFirebaseTestCase(unittest.TestCase):
    """Test case for the app factory."""

    @patch("firebase_admin.initialize_app")
    @patch("firebase_admin.firestore.client")
    def test_404_error_handler(self, mock_firestore_client, mock_init_app):
        """Test the custom 404 error handler."""
        # This test doesn't require authentication, but we still need to mock
        # the Firebase services to prevent real initialization attempts.
        app = create_app({"TESTING": True, "WTF_CSRF_ENABLED": False})

        with app.test_client() as client:
            response = client.get("/non_existent_page")
            self.assertEqual(response.status_code, 404)
            self.assertIn(b"Page Not Found", response.data)

    def test_mail_config_sanitization(self):
        """Test that MAIL_USERNAME and MAIL_PASSWORD are sanitized correctly."""
        # Test case 1: Quotes and spaces in password, quotes in username
        env_vars = {
            "MAIL_USERNAME": '"user@example.com"',
            "MAIL_PASSWORD": '"xxxx xxxx xxxx"',
            "SECRET_KEY": "dev",
            "TESTING": "True",  # To skip firebase init
        }

        with patch.dict(os.environ, env_vars):
            app = create_app({"TESTING": True})

            # Username should have quotes stripped
            self.assertEqual(app.config["MAIL_USERNAME"], "user@example.com")

            # Password should have quotes stripped AND spaces removed
            self.assertEqual(app.config["MAIL_PASSWORD"], "xxxxxxxxxxxx")

    def test_mail_config_sanitization_single_quotes(self):
        """Test that MAIL_USERNAME and MAIL_PASSWORD are sanitized correctly with single quotes."""
        env_vars = {
            "MAIL_USERNAME": "'user@example.com'",
            "MAIL_PASSWORD": "'xxxx xxxx xxxx'",
            "SECRET_KEY": "dev",
            "TESTING": "True",
        }

        with patch.dict(os.environ, env_vars):
            app = create_app({"TESTING": True})

            self.assertEqual(app.config["MAIL_USERNAME"], "user@example.com")
            self.assertEqual(app.config["MAIL_PASSWORD"], "xxxxxxxxxxxx")

    def test_mail_config_sanitization_no_quotes(self):
        """Test that MAIL_USERNAME and MAIL_PASSWORD are sanitized correctly without quotes."""
        env_vars = {
            "MAIL_USERNAME": "user@example.com",
            "MAIL_PASSWORD": "xxxx xxxx xxxx",
            "SECRET_KEY": "dev",
            "TESTING": "True",
        }

        with patch.dict(os.environ, env_vars):
            app = create_app({"TESTING": True})

            self.assertEqual(app.config["MAIL_USERNAME"], "user@example.com")
            self.assertEqual(app.config["MAIL_PASSWORD"], "xxxxxxxxxxxx")

    def test_mail_config_empty_env_vars(self):
        """Test that empty environment variables fall back to default values."""
        env_vars = {
            "MAIL_SERVER": "",
            "MAIL_PORT": "",
            "MAIL_USE_TLS": "",
            "MAIL_USE_SSL": "",
            "SECRET_KEY": "dev",
            "TESTING": "True",
        }

        with patch.dict(os.environ, env_vars):
            app = create_app({"TESTING": True})

            self.assertEqual(app.config["MAIL_SERVER"], "smtp.gmail.com")
            self.assertEqual(app.config["MAIL_PORT"], 587)
            self.assertTrue(app.config["MAIL_USE_TLS"])
            self.assertFalse(app.config["MAIL_USE_SSL"])

    def test_squad_settings_from_environment(self):
        """Test that payment and squad settings are read from the environment."""
        env_vars = {
            "PAYMENT_CURRENCY": "USD",
            "SQUAD_AUTO_COMPLETE": "true",
            "SQUAD_MANUAL_TRANSITIONS": "false",
            "CATALOG_PAGE_SIZE": "20",
        }

        with patch.dict(os.environ, env_vars):
            app = create_app({"TESTING": True})

        self.assertEqual(app.config["PAYMENT_CURRENCY"], "USD")
        self.assertTrue(app.config["SQUAD_AUTO_COMPLETE"])
        self.assertFalse(app.config["SQUAD_MANUAL_TRANSITIONS"])
        self.assertEqual(app.config["CATALOG_PAGE_SIZE"], 20)

    def test_squad_setting_defaults(self):
        """Test the defaults when no squad settings are configured."""
        keys = [
            "PAYMENT_CURRENCY",
            "SQUAD_AUTO_COMPLETE",
            "SQUAD_MANUAL_TRANSITIONS",
            "CATALOG_PAGE_SIZE",
        ]
        with patch.dict(os.environ, {key: "" for key in keys}):
            app = create_app({"TESTING": True})

        self.assertEqual(app.config["PAYMENT_CURRENCY"], "EUR")
        self.assertFalse(app.config["SQUAD_AUTO_COMPLETE"])
        self.assertTrue(app.config["SQUAD_MANUAL_TRANSITIONS"])
        self.assertEqual(app.config["CATALOG_PAGE_SIZE"], 50)

    def test_405_error_handler(self):
        """Test the JSON response for an unsupported method."""
        app = create_app({"TESTING": True})
        response = app.test_client().put("/party/history")
        self.assertEqual(response.status_code, 405)
        self.assertEqual(response.get_json()["status"], "error")

    def test_login_required_returns_401(self):
        """Test that API routes reject anonymous requests."""
        app = create_app({"TESTING": True})
        response = app.test_client().get("/party/")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json()["message"], "Please log in first.")

    def test_https_scheme_with_proxy_headers(self):
        """Test that X-Forwarded-Proto header is respected."""
        app = create_app({"TESTING": True})

        @app.route("/test_scheme")
        def test_scheme():
            from flask import request

            return request.scheme

        response = app.test_client().get(
            "/test_scheme", headers={"X-Forwarded-Proto": "https"}
        )
        self.assertEqual(response.data.decode(), "https")

    def test_template_filters(self):
        """Test that the email template filters are registered."""
        app = create_app({"TESTING": True})
        self.assertEqual(app.jinja_env.filters["currency"](12.5), "€12.50")
        self.assertEqual(app.jinja_env.filters["party_date"](None), "TBD")


if __name__ == "__main__":
    unittest.main()
