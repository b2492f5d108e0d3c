from __future__ import annotations

import unittest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select

from tests.support import TestingSessionLocal, reset_database, seed_tenant

from app.core.errors import InvalidState, NotFound, ValidationFailed
from app.models.client import Client
from app.models.user_credits import UserCredits
from app.schemas.invoice import InvoiceCreate, InvoiceItemCreate, InvoiceUpdate
from app.services.invoicing import invoice_service

TODAY = date(2025, 3, 1)


def item(description="Design", quantity="2", unit_price="50"):
    return InvoiceItemCreate(description=description, quantity=Decimal(quantity), unit_price=Decimal(unit_price))


class InvoiceServiceTests(unittest.TestCase):
    def setUp(self):
        reset_database()
        self.db = TestingSessionLocal()
        self.user, self.company, self.client = seed_tenant(self.db, total_credits=20)

    def tearDown(self):
        self.db.close()

    def _create(self, **overrides):
        data = {"client_id": self.client.id, "items": [item(), item("Hosting", "1", "25")]}
        data.update(overrides)
        return invoice_service.create_invoice(self.db, self.user.id, self.company, InvoiceCreate(**data), today=TODAY)

    def _used_credits(self):
        row = self.db.execute(select(UserCredits).where(UserCredits.user_id == self.user.id)).scalars().one()
        self.db.refresh(row)
        return row.used_credits

    def test_create_applies_company_defaults(self):
        invoice = self._create()
        self.assertEqual(invoice.status, "draft")
        self.assertEqual(invoice.issue_date, TODAY)
        self.assertEqual(invoice.due_date, TODAY + timedelta(days=14))
        self.assertEqual(invoice.currency, "GEL")
        self.assertEqual(invoice.vat_rate, Decimal("18"))
        self.assertEqual(invoice.subtotal, Decimal("125.00"))
        self.assertEqual(invoice.vat_amount, Decimal("22.50"))
        self.assertEqual(invoice.total, Decimal("147.50"))
        self.assertEqual([i.sort_order for i in invoice.items], [0, 1])
        self.assertEqual(invoice.items[0].line_total, Decimal("100.00"))
        self.assertTrue(invoice.public_enabled)
        self.assertTrue(invoice.public_token)

    def test_create_with_explicit_terms(self):
        invoice = self._create(vat_rate=Decimal("0"), due_days=30, currency="USD", public_link=False)
        self.assertEqual(invoice.total, Decimal("125.00"))
        self.assertEqual(invoice.due_date, TODAY + timedelta(days=30))
        self.assertEqual(invoice.currency, "USD")
        self.assertFalse(invoice.public_enabled)
        self.assertIsNone(invoice.public_token)

    def test_due_date_before_issue_rejected(self):
        with self.assertRaises(ValidationFailed):
            self._create(due_date=TODAY - timedelta(days=1))

    def test_inactive_client_rejected(self):
        client = self.db.get(Client, self.client.id)
        client.is_active = False
        self.db.commit()
        with self.assertRaises(ValidationFailed):
            self._create()

    def test_other_company_client_is_not_found(self):
        _, _, foreign_client = seed_tenant(self.db, email="other@example.ge")
        with self.assertRaises(NotFound):
            self._create(client_id=foreign_client.id)

    def test_update_replaces_items_and_recomputes(self):
        invoice = self._create()
        updated = invoice_service.update_invoice(
            self.db, self.company, invoice.id, InvoiceUpdate(items=[item("Audit", "3", "10")], notes="  thanks  ")
        )
        self.assertEqual(len(updated.items), 1)
        self.assertEqual(updated.subtotal, Decimal("30.00"))
        self.assertEqual(updated.vat_amount, Decimal("5.40"))
        self.assertEqual(updated.total, Decimal("35.40"))
        self.assertEqual(updated.notes, "thanks")
        self.assertEqual(updated.invoice_number, invoice.invoice_number)

    def test_vat_only_update_recomputes_totals(self):
        invoice = self._create()
        updated = invoice_service.update_invoice(self.db, self.company, invoice.id, InvoiceUpdate(vat_rate=Decimal("0")))
        self.assertEqual(updated.vat_amount, Decimal("0.00"))
        self.assertEqual(updated.total, Decimal("125.00"))
        self.assertEqual(len(updated.items), 2)

    def test_paid_invoice_is_not_editable(self):
        invoice = self._create()
        invoice_service.change_status(self.db, self.user.id, self.company, invoice.id, "sent")
        invoice_service.change_status(self.db, self.user.id, self.company, invoice.id, "paid")
        with self.assertRaises(InvalidState):
            invoice_service.update_invoice(self.db, self.company, invoice.id, InvoiceUpdate(notes="late"))

    def test_only_drafts_can_be_deleted(self):
        invoice = self._create()
        invoice_service.change_status(self.db, self.user.id, self.company, invoice.id, "sent")
        with self.assertRaises(InvalidState):
            invoice_service.delete_invoice(self.db, self.user.id, self.company, invoice.id)

    def test_status_transitions(self):
        invoice = self._create()
        sent, old = invoice_service.change_status(self.db, self.user.id, self.company, invoice.id, "sent")
        self.assertEqual((old, sent.status), ("draft", "sent"))
        self.assertIsNotNone(sent.sent_at)
        paid, _ = invoice_service.change_status(self.db, self.user.id, self.company, invoice.id, "paid")
        self.assertIsNotNone(paid.paid_at)
        with self.assertRaises(InvalidState):
            invoice_service.change_status(self.db, self.user.id, self.company, invoice.id, "draft")
        reopened, _ = invoice_service.change_status(self.db, self.user.id, self.company, invoice.id, "sent")
        self.assertIsNone(reopened.paid_at)

    def test_sent_invoice_cannot_return_to_draft(self):
        invoice = self._create()
        invoice_service.change_status(self.db, self.user.id, self.company, invoice.id, "sent")
        with self.assertRaises(InvalidState):
            invoice_service.change_status(self.db, self.user.id, self.company, invoice.id, "draft")
        with self.assertRaises(InvalidState):
            invoice_service.delete_invoice(self.db, self.user.id, self.company, invoice.id)
        self.assertEqual(self._used_credits(), 1)

    def test_deleting_previously_sent_draft_keeps_credit_spent(self):
        invoice = self._create()
        invoice.sent_at = datetime(2025, 3, 1, tzinfo=timezone.utc)
        self.db.commit()
        cancelled = invoice_service.delete_invoice(self.db, self.user.id, self.company, invoice.id)
        self.assertEqual(cancelled.status, "cancelled")
        self.assertEqual(self._used_credits(), 1)

    def test_cancelled_is_final(self):
        invoice = self._create()
        invoice_service.change_status(self.db, self.user.id, self.company, invoice.id, "cancelled")
        with self.assertRaises(InvalidState):
            invoice_service.change_status(self.db, self.user.id, self.company, invoice.id, "sent")

    def test_duplicate_copies_lines_with_new_number(self):
        original = self._create()
        copy = invoice_service.duplicate_invoice(self.db, self.user.id, self.company, original.id, today=TODAY)
        self.assertNotEqual(copy.id, original.id)
        self.assertEqual(copy.invoice_number, "INV-2025-0002")
        self.assertEqual(copy.status, "draft")
        self.assertEqual(copy.total, original.total)
        self.assertEqual([i.description for i in copy.items], ["Design", "Hosting"])

    def test_mark_overdue_and_stats(self):
        late = self._create(due_date=TODAY + timedelta(days=1))
        invoice_service.change_status(self.db, self.user.id, self.company, late.id, "sent")
        paid = self._create()
        invoice_service.change_status(self.db, self.user.id, self.company, paid.id, "sent")
        invoice_service.change_status(self.db, self.user.id, self.company, paid.id, "paid")
        self._create()

        later = TODAY + timedelta(days=5)
        self.assertEqual(invoice_service.mark_overdue(self.db, self.company, today=later), 1)
        self.assertEqual(invoice_service.mark_overdue(self.db, self.company, today=later), 0)

        stats = invoice_service.invoice_stats(self.db, self.company, today=later)
        self.assertEqual(stats.total_invoices, 3)
        self.assertEqual(stats.by_status, {"overdue": 1, "paid": 1, "draft": 1})
        self.assertEqual(stats.paid_revenue, Decimal("147.50"))
        self.assertEqual(stats.outstanding_amount, Decimal("147.50"))
        self.assertEqual(stats.overdue_invoices, 1)

    def test_revenue_trends_group_by_issue_month(self):
        january = self._create(issue_date=date(2025, 1, 15))
        invoice_service.change_status(self.db, self.user.id, self.company, january.id, "sent")
        paid = self._create()
        invoice_service.change_status(self.db, self.user.id, self.company, paid.id, "sent")
        invoice_service.change_status(self.db, self.user.id, self.company, paid.id, "paid")
        self._create()
        dropped = self._create()
        invoice_service.delete_invoice(self.db, self.user.id, self.company, dropped.id)
        self._create(issue_date=date(2024, 11, 20))

        trends = invoice_service.revenue_trends(self.db, self.company, 3, today=TODAY)
        self.assertEqual([m.month for m in trends.months], ["2025-01", "2025-02", "2025-03"])
        jan, feb, mar = trends.months
        self.assertEqual((jan.invoice_count, jan.pending_revenue), (1, Decimal("147.50")))
        self.assertEqual(feb.total_revenue, Decimal("0"))
        self.assertEqual((mar.invoice_count, mar.paid_count), (2, 1))
        self.assertEqual(mar.total_revenue, Decimal("295.00"))
        self.assertEqual(mar.paid_revenue, Decimal("147.50"))

        summary = trends.summary
        self.assertEqual(summary.total_revenue, Decimal("442.50"))
        self.assertEqual(summary.average_monthly_revenue, Decimal("147.50"))
        self.assertEqual(summary.growth_percentage, Decimal("100.00"))
        self.assertEqual(summary.total_invoices, 3)
        self.assertEqual((summary.best_month, summary.worst_month), ("2025-03", "2025-02"))

    def test_revenue_trends_reject_unknown_period(self):
        with self.assertRaises(ValidationFailed):
            invoice_service.revenue_trends(self.db, self.company, 2, today=TODAY)
        trends = invoice_service.revenue_trends(self.db, self.company, 12, today=TODAY)
        self.assertEqual(trends.months[0].month, "2024-04")
        self.assertEqual(trends.summary.growth_percentage, Decimal("0"))


if __name__ == "__main__":
    unittest.main()
