"""Tests for email error handling."""

import smtplib
import unittest
from unittest.mock import patch

from shopsquad import create_app
from shopsquad.utils import EmailError, send_email


class TestEmailErrors(unittest.TestCase):
    """Test case for email errors."""

    def setUp(self):
        """Set up the test case."""
        self.app = create_app({"TESTING": True, "MAIL_SUPPRESS_SEND": False})
        self.ctx = self.app.app_context()
        self.ctx.push()

    def tearDown(self):
        """Tear down the test case."""
        self.ctx.pop()

    def _send(self):
        send_email(
            "test@example.com",
            "Subject",
            "email/password_reset.html",
            name="Test",
            reset_link="http://example.com/reset",
        )

    @patch("shopsquad.utils.mail.send")
    def test_send_email_smtp_534(self, mock_send):
        """Test handling of SMTP 534 error."""
        error_msg = b"5.7.9 Please log in with your web browser and then try again..."
        mock_send.side_effect = smtplib.SMTPAuthenticationError(534, error_msg)

        with self.assertRaises(EmailError) as cm:
            self._send()

        self.assertIn("Google requires you to use an App Password", str(cm.exception))

    @patch("shopsquad.utils.mail.send")
    def test_send_email_other_auth_error(self, mock_send):
        """Test handling of other SMTP authentication errors."""
        mock_send.side_effect = smtplib.SMTPAuthenticationError(535, b"Bad credentials")

        with self.assertRaises(EmailError) as cm:
            self._send()

        self.assertIn("SMTP Authentication failed", str(cm.exception))

    @patch("shopsquad.utils.mail.send")
    def test_send_email_generic_error(self, mock_send):
        """Test handling of generic email errors."""
        mock_send.side_effect = Exception("Some other error")

        with self.assertRaises(EmailError) as cm:
            self._send()

        self.assertIn("Failed to send email: Some other error", str(cm.exception))


if __name__ == "__main__":
    unittest.main()
