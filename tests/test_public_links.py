from __future__ import annotations

import unittest
from datetime import date, datetime, timedelta, timezone

from tests.support import TestingSessionLocal, reset_database, seed_tenant

from app.core import messages
from app.core.errors import NotFound, ValidationFailed
from app.models.invoice import Invoice
from app.services.invoicing.public_links import (
    disable_public_link,
    enable_public_link,
    find_public_invoice,
    generate_public_token,
    is_publicly_visible,
)

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class PublicTokenTests(unittest.TestCase):
    def test_tokens_are_long_and_distinct(self):
        tokens = {generate_public_token() for _ in range(200)}
        self.assertEqual(len(tokens), 200)
        # 24 random bytes -> 32 base64url characters
        self.assertTrue(all(len(t) == 32 for t in tokens))

    def test_enable_keeps_token_unless_rotated(self):
        invoice = Invoice(status="sent")
        first = enable_public_link(invoice, now=NOW)
        self.assertEqual(enable_public_link(invoice, now=NOW), first)
        self.assertNotEqual(enable_public_link(invoice, rotate=True, now=NOW), first)
        self.assertTrue(invoice.public_enabled)

    def test_past_expiry_rejected(self):
        with self.assertRaises(ValidationFailed):
            enable_public_link(Invoice(status="sent"), expires_at=NOW - timedelta(minutes=1), now=NOW)

    def test_visibility_rules(self):
        invoice = Invoice(status="sent")
        enable_public_link(invoice, expires_at=NOW + timedelta(days=1), now=NOW)
        self.assertTrue(is_publicly_visible(invoice, now=NOW))
        self.assertFalse(is_publicly_visible(invoice, now=NOW + timedelta(days=2)))
        invoice.status = "cancelled"
        self.assertFalse(is_publicly_visible(invoice, now=NOW))

    def test_naive_expiry_treated_as_utc(self):
        invoice = Invoice(status="sent", public_token="abc", public_enabled=True)
        invoice.public_expires_at = datetime(2025, 3, 1, 13, 0)
        self.assertTrue(is_publicly_visible(invoice, now=NOW))


class PublicLookupTests(unittest.TestCase):
    def setUp(self):
        reset_database()
        self.db = TestingSessionLocal()
        _, self.company, self.client = seed_tenant(self.db)
        self.invoice = Invoice(
            company_id=self.company.id,
            client_id=self.client.id,
            invoice_number="INV-2025-0001",
            status="sent",
            issue_date=date(2025, 3, 1),
            due_date=date(2025, 3, 15),
        )
        self.token = enable_public_link(self.invoice, now=NOW)
        self.db.add(self.invoice)
        self.db.commit()

    def tearDown(self):
        self.db.close()

    def _assert_not_found(self, token):
        with self.assertRaises(NotFound) as ctx:
            find_public_invoice(self.db, token, now=NOW)
        self.assertEqual(ctx.exception.message, messages.PUBLIC_INVOICE_NOT_FOUND)

    def test_enabled_token_resolves(self):
        found = find_public_invoice(self.db, self.token, now=NOW)
        self.assertEqual(found.invoice_number, "INV-2025-0001")
        self.assertEqual(found.client.name, "Buyer LLC")

    def test_unknown_disabled_and_expired_look_the_same(self):
        self._assert_not_found("no-such-token")
        self._assert_not_found("")

        disable_public_link(self.invoice)
        self.db.commit()
        self._assert_not_found(self.token)

        enable_public_link(self.invoice, expires_at=NOW + timedelta(hours=1), now=NOW)
        self.db.commit()
        with self.assertRaises(NotFound):
            find_public_invoice(self.db, self.token, now=NOW + timedelta(hours=2))


if __name__ == "__main__":
    unittest.main()
