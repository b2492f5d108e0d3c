from __future__ import annotations

import unittest
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select

from tests.support import TestingSessionLocal, reset_database, seed_tenant

from app.core.config import settings
from app.core.errors import NoCreditsRemaining, ValidationFailed
from app.models.company import Company
from app.models.invoice import Invoice
from app.models.user_credits import UserCredits
from app.schemas.invoice import InvoiceCreate, InvoiceItemCreate
from app.services.invoicing import invoice_service
from app.services.invoicing.credits import (
    PLANS,
    available_credits,
    change_plan,
    check_credits,
    consume_credit,
    ensure_credits,
    plan_allowance,
    refund_credit,
)

TODAY = date(2025, 3, 1)


class CreditGateTests(unittest.TestCase):
    def setUp(self):
        reset_database()
        self.db = TestingSessionLocal()

    def tearDown(self):
        self.db.close()

    def _seed(self, **kwargs):
        self.user, self.company, self.client = seed_tenant(self.db, **kwargs)

    def _credits(self) -> UserCredits:
        row = self.db.execute(select(UserCredits).where(UserCredits.user_id == self.user.id)).scalars().one()
        self.db.refresh(row)
        return row

    def _create(self):
        payload = InvoiceCreate(
            client_id=self.client.id,
            items=[InvoiceItemCreate(description="Design", quantity=Decimal("2"), unit_price=Decimal("50"))],
        )
        return invoice_service.create_invoice(self.db, self.user.id, self.company, payload, today=TODAY)

    def test_exhausted_credits_block_creation_without_side_effects(self):
        self._seed(total_credits=3, used_credits=3)
        with self.assertRaises(NoCreditsRemaining):
            self._create()
        self.db.rollback()
        count = self.db.execute(select(func.count(Invoice.id))).scalar()
        self.assertEqual(count, 0)
        company = self.db.get(Company, self.company.id)
        self.db.refresh(company)
        self.assertEqual(company.invoice_counter, 0)
        self.assertEqual(self._credits().used_credits, 3)

    def test_last_credit_is_consumed(self):
        self._seed(total_credits=1, used_credits=0)
        invoice = self._create()
        self.assertEqual(invoice.status, "draft")
        self.assertEqual(available_credits(self._credits()), 0)
        with self.assertRaises(NoCreditsRemaining):
            self._create()

    def test_unlimited_plan_bypasses_gate(self):
        self._seed(total_credits=0, used_credits=0, plan_type="unlimited")
        self._create()
        self._create()
        row = self._credits()
        self.assertIsNone(available_credits(row))
        self.assertEqual(row.used_credits, 2)

    def test_consume_rechecks_balance(self):
        self._seed(total_credits=1, used_credits=1)
        with self.assertRaises(NoCreditsRemaining):
            consume_credit(self.db, self.user.id)

    def test_refund_is_floored_at_zero(self):
        self._seed(total_credits=5, used_credits=1)
        self.assertTrue(refund_credit(self.db, self.user.id))
        self.assertFalse(refund_credit(self.db, self.user.id))
        self.db.commit()
        self.assertEqual(self._credits().used_credits, 0)

    def test_first_use_provisions_free_plan(self):
        self._seed()
        self.db.delete(self._credits())
        self.db.commit()
        row = check_credits(self.db, self.user.id)
        self.assertEqual(row.plan_type, "free")
        self.assertEqual(row.total_credits, 5)
        self.assertIs(ensure_credits(self.db, self.user.id), row)

    def test_cancelling_draft_refunds_credit(self):
        self._seed(total_credits=1, used_credits=0)
        invoice = self._create()
        self.assertEqual(self._credits().used_credits, 1)
        cancelled = invoice_service.delete_invoice(self.db, self.user.id, self.company, invoice.id)
        self.assertEqual(cancelled.status, "cancelled")
        self.assertEqual(self._credits().used_credits, 0)

    def test_change_plan_grants_allowance(self):
        self._seed(total_credits=5, used_credits=4)
        now = datetime(2025, 3, 1, tzinfo=timezone.utc)
        row = change_plan(self.db, self.user.id, "basic", now=now)
        self.db.commit()
        self.assertEqual(row.plan_type, "basic")
        self.assertEqual(row.total_credits, 50)
        self.assertEqual(row.used_credits, 4)
        self.assertIsNotNone(row.plan_expires_at)

    def test_downgrade_keeps_balance_non_negative(self):
        self._seed(total_credits=0, used_credits=10, plan_type="unlimited")
        change_plan(self.db, self.user.id, "free")
        self.db.commit()
        row = self._credits()
        self.assertEqual(row.plan_type, "free")
        self.assertLessEqual(row.used_credits, row.total_credits)
        self.assertEqual(available_credits(row), 0)
        with self.assertRaises(NoCreditsRemaining):
            check_credits(self.db, self.user.id)

    def test_free_plan_has_a_limit(self):
        self.assertEqual(PLANS["free"].credits, settings.free_plan_credits)
        self.assertEqual(plan_allowance("free"), settings.free_plan_credits)
        self.assertIsNone(plan_allowance("unlimited"))
        no_limit = [key for key, plan in PLANS.items() if plan.credits is None]
        self.assertEqual(no_limit, ["unlimited"])

    def test_change_plan_rejects_unknown(self):
        self._seed()
        with self.assertRaises(ValidationFailed):
            change_plan(self.db, self.user.id, "platinum")


if __name__ == "__main__":
    unittest.main()
