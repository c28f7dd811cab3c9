import asyncio
import json
import unittest
from unittest.mock import patch

import httpx

from tests.factories import reset_db  # noqa: F401  sets the test environment

from services import notifications


class NotificationTests(unittest.TestCase):
    def test_skipped_without_webhook(self):
        with patch.object(notifications, "EMAIL_WEBHOOK_URL", ""):
            self.assertFalse(asyncio.run(notifications.send_email("a@example.com", "Hi", "<p>x</p>")))

    def test_posts_payload(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(json.loads(request.content))
            return httpx.Response(202)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        with patch.object(notifications, "EMAIL_WEBHOOK_URL", "https://mail.test/send"):
            sent = asyncio.run(notifications.send_email("a@example.com", "Hi", "<p>x</p>", client=client))

        self.assertTrue(sent)
        self.assertEqual(seen["to"], "a@example.com")
        self.assertEqual(seen["subject"], "Hi")

    def test_failure_is_swallowed(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(500)))
        with patch.object(notifications, "EMAIL_WEBHOOK_URL", "https://mail.test/send"):
            self.assertFalse(asyncio.run(notifications.send_email("a@example.com", "Hi", "x", client=client)))

    def test_otp_email_mentions_code(self):
        subject, html = notifications.otp_email("Ada", "123456", "login")
        self.assertIn("login", subject)
        self.assertIn("123456", html)

    def test_reset_email_subject(self):
        subject, html = notifications.otp_email("Ada", "654321", "reset")
        self.assertIn("password", subject)
        self.assertIn("654321", html)


if __name__ == "__main__":
    unittest.main()
