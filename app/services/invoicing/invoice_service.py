"""
Invoice lifecycle: create, edit, cancel, status changes, duplication.

Each public function is one unit of work and commits once. Creation writes the
invoice row, its items, the company counter and the credit balance in a single
transaction; any failure rolls all of it back.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core import messages
from app.core.config import settings
from app.core.errors import InvalidState, NumberAllocationFailed, ValidationFailed
from app.models.company import Company
from app.models.invoice import Invoice
from app.models.invoice_item import InvoiceItem
from app.schemas.invoice import (
    InvoiceCreate,
    InvoiceItemCreate,
    InvoiceStats,
    InvoiceUpdate,
    RevenueMonth,
    RevenueTrends,
    RevenueTrendsSummary,
)
from app.services.common import clean_text
from app.services.invoicing import repository
from app.services.invoicing.credits import check_credits, consume_credit, refund_credit
from app.services.invoicing.numbering import allocate_invoice_number, invoice_number_taken, skip_counter_value
from app.services.invoicing.public_links import enable_public_link
from app.services.invoicing.totals import (
    InvoiceTotals,
    calculate_invoice_totals,
    calculate_line_total,
    round_money,
    to_decimal,
)

invoice_logger = logging.getLogger("app.invoices")

EDITABLE_STATUSES = ("draft", "sent")
OPEN_STATUSES = ("sent", "overdue")

STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    "draft": frozenset({"sent", "cancelled"}),
    "sent": frozenset({"paid", "overdue", "cancelled"}),
    "overdue": frozenset({"sent", "paid", "cancelled"}),
    "paid": frozenset({"sent"}),
    "cancelled": frozenset(),
}


def resolve_vat_rate(requested: Any, company: Company) -> Decimal:
    if requested is not None:
        return to_decimal(requested)
    if company.default_vat_rate is not None:
        return to_decimal(company.default_vat_rate)
    return to_decimal(settings.default_vat_rate)


def resolve_due_date(issue_date: date, due_date: date | None, due_days: int | None, company: Company) -> date:
    if due_date is not None:
        if due_date < issue_date:
            raise ValidationFailed(details="due_date is before issue_date")
        return due_date
    days = due_days or company.default_due_days or settings.default_due_days
    return issue_date + timedelta(days=int(days))


def compute_totals(items: Iterable[Any], vat_rate: Any) -> InvoiceTotals:
    try:
        return calculate_invoice_totals(items, vat_rate)
    except ValueError as e:
        raise ValidationFailed(messages.INVALID_DATA, details=str(e)) from e


def build_items(payload_items: Sequence[InvoiceItemCreate]) -> list[InvoiceItem]:
    rows: list[InvoiceItem] = []
    for index, raw in enumerate(payload_items):
        qty = to_decimal(raw.quantity)
        price = to_decimal(raw.unit_price)
        rows.append(
            InvoiceItem(
                service_id=raw.service_id,
                description=raw.description.strip(),
                quantity=qty,
                unit_price=price,
                line_total=calculate_line_total(qty, price),
                sort_order=raw.sort_order if raw.sort_order is not None else index,
            )
        )
    return rows


def _apply_totals(invoice: Invoice, totals: InvoiceTotals) -> None:
    invoice.subtotal = totals.subtotal
    invoice.vat_amount = totals.vat_amount
    invoice.total = totals.total


def _insert_new_invoice(
    db: Session,
    user_id: UUID,
    company_id: UUID,
    fields: dict[str, Any],
    items: Sequence[InvoiceItemCreate],
    *,
    public_link: bool,
    today: date | None = None,
) -> UUID:
    """
    Credit check, number allocation, invoice + items insert and credit
    consumption, committed together.

    If the allocated number already exists (counter drifted from the data),
    the transaction is rolled back, the counter is moved past the taken value
    and the whole unit of work is retried.
    """
    attempts = max(1, int(settings.invoice_number_attempts))
    totals = compute_totals(items, fields["vat_rate"])
    for attempt in range(1, attempts + 1):
        counter: int | None = None
        number: str | None = None
        try:
            check_credits(db, user_id)
            counter, number = allocate_invoice_number(db, company_id, today=today)
            invoice = Invoice(company_id=company_id, invoice_number=number, status="draft", **fields)
            _apply_totals(invoice, totals)
            if public_link:
                enable_public_link(invoice)
            repository.create_invoice(db, invoice)
            repository.create_items(db, invoice, build_items(items))
            consume_credit(db, user_id)
            invoice_id = invoice.id
            db.commit()
        except IntegrityError:
            db.rollback()
            if number is None or counter is None or not invoice_number_taken(db, company_id, number):
                raise
            invoice_logger.warning(
                "invoice_number_taken company=%s number=%s attempt=%s", company_id, number, attempt
            )
            skip_counter_value(db, company_id, counter)
            continue
        invoice_logger.info(
            "invoice_created id=%s number=%s company=%s total=%s", invoice_id, number, company_id, totals.total
        )
        return invoice_id
    raise NumberAllocationFailed()


def create_invoice(
    db: Session,
    user_id: UUID,
    company: Company,
    payload: InvoiceCreate,
    *,
    today: date | None = None,
) -> Invoice:
    company_id = company.id
    check_credits(db, user_id)
    client = repository.get_client(db, company_id, payload.client_id, active_only=True)
    repository.check_service_ids(db, company_id, {i.service_id for i in payload.items if i.service_id})
    issue_date = payload.issue_date or today or date.today()
    fields = {
        "client_id": client.id,
        "issue_date": issue_date,
        "due_date": resolve_due_date(issue_date, payload.due_date, payload.due_days, company),
        "currency": payload.currency or company.default_currency or settings.default_currency,
        "vat_rate": resolve_vat_rate(payload.vat_rate, company),
        "notes": clean_text(payload.notes),
    }
    public_link = settings.public_links_on_create if payload.public_link is None else payload.public_link
    invoice_id = _insert_new_invoice(
        db, user_id, company_id, fields, payload.items, public_link=public_link, today=today
    )
    return repository.get_invoice(db, company_id, invoice_id)


def update_invoice(db: Session, company: Company, invoice_id: UUID, payload: InvoiceUpdate) -> Invoice:
    invoice = repository.get_invoice(db, company.id, invoice_id)
    if invoice.status not in EDITABLE_STATUSES:
        raise InvalidState(messages.INVOICE_NOT_EDITABLE)

    if payload.client_id is not None:
        invoice.client_id = repository.get_client(db, company.id, payload.client_id, active_only=True).id
    if payload.issue_date is not None:
        invoice.issue_date = payload.issue_date
    if payload.due_date is not None:
        invoice.due_date = payload.due_date
    if invoice.due_date < invoice.issue_date:
        raise ValidationFailed(details="due_date is before issue_date")
    if payload.currency is not None:
        invoice.currency = payload.currency
    if payload.notes is not None:
        invoice.notes = clean_text(payload.notes)

    vat_changed = payload.vat_rate is not None and to_decimal(payload.vat_rate) != to_decimal(invoice.vat_rate)
    if payload.vat_rate is not None:
        invoice.vat_rate = to_decimal(payload.vat_rate)

    if payload.items is not None:
        repository.check_service_ids(db, company.id, {i.service_id for i in payload.items if i.service_id})
        _apply_totals(invoice, compute_totals(payload.items, invoice.vat_rate))
        repository.replace_items(db, invoice, build_items(payload.items))
    elif vat_changed:
        # stored lines, new rate: keeps vat_amount and total consistent with vat_rate
        _apply_totals(invoice, compute_totals(invoice.items, invoice.vat_rate))

    db.commit()
    invoice_logger.info("invoice_updated id=%s items_replaced=%s", invoice_id, payload.items is not None)
    return repository.get_invoice(db, company.id, invoice_id)


def delete_invoice(db: Session, user_id: UUID, company: Company, invoice_id: UUID) -> Invoice:
    """Soft delete: only drafts, which become cancelled and give back the credit unless ever sent."""
    invoice = repository.get_invoice(db, company.id, invoice_id)
    if invoice.status != "draft":
        raise InvalidState(messages.INVOICE_ONLY_DRAFT_DELETABLE)
    invoice.status = "cancelled"
    # a draft that already reached the customer keeps its credit spent
    if invoice.sent_at is None:
        refund_credit(db, user_id)
    db.commit()
    invoice_logger.info("invoice_cancelled id=%s company=%s", invoice_id, company.id)
    return invoice


def change_status(
    db: Session,
    user_id: UUID,
    company: Company,
    invoice_id: UUID,
    new_status: str,
    *,
    now: datetime | None = None,
) -> tuple[Invoice, str]:
    invoice = repository.get_invoice(db, company.id, invoice_id)
    old_status = invoice.status
    if new_status == old_status:
        return invoice, old_status
    if new_status not in STATUS_TRANSITIONS.get(old_status, frozenset()):
        raise InvalidState(messages.INVOICE_STATUS_TRANSITION, details={"from": old_status, "to": new_status})

    moment = now or datetime.now(timezone.utc)
    invoice.status = new_status
    if new_status == "sent" and not invoice.sent_at:
        invoice.sent_at = moment
    if new_status == "paid":
        invoice.paid_at = moment
    elif old_status == "paid":
        invoice.paid_at = None
    if old_status == "draft" and new_status == "cancelled" and invoice.sent_at is None:
        refund_credit(db, user_id)
    db.commit()
    invoice_logger.info("invoice_status id=%s from=%s to=%s", invoice_id, old_status, new_status)
    return repository.get_invoice(db, company.id, invoice_id), old_status


def duplicate_invoice(
    db: Session,
    user_id: UUID,
    company: Company,
    invoice_id: UUID,
    *,
    today: date | None = None,
) -> Invoice:
    original = repository.get_invoice(db, company.id, invoice_id)
    issue_date = today or date.today()
    items = [
        InvoiceItemCreate(
            service_id=item.service_id,
            description=item.description,
            quantity=item.quantity,
            unit_price=item.unit_price,
            sort_order=item.sort_order,
        )
        for item in original.items
    ]
    if not items:
        raise ValidationFailed(messages.INVOICE_ITEMS_REQUIRED)
    fields = {
        "client_id": original.client_id,
        "issue_date": issue_date,
        "due_date": resolve_due_date(issue_date, None, None, company),
        "currency": original.currency,
        "vat_rate": to_decimal(original.vat_rate),
        "notes": original.notes,
    }
    company_id = company.id
    new_id = _insert_new_invoice(
        db, user_id, company_id, fields, items, public_link=settings.public_links_on_create, today=today
    )
    invoice_logger.info("invoice_duplicated source=%s copy=%s", invoice_id, new_id)
    return repository.get_invoice(db, company_id, new_id)


def mark_overdue(db: Session, company: Company, *, today: date | None = None) -> int:
    cutoff = today or date.today()
    result = db.execute(
        update(Invoice)
        .where(Invoice.company_id == company.id, Invoice.status == "sent", Invoice.due_date < cutoff)
        .values(status="overdue")
        .execution_options(synchronize_session=False)
    )
    db.commit()
    invoice_logger.info("invoices_marked_overdue company=%s count=%s", company.id, result.rowcount)
    return int(result.rowcount or 0)


def is_overdue(invoice: Invoice, today: date) -> bool:
    return invoice.status == "overdue" or (invoice.status == "sent" and invoice.due_date < today)


def invoice_stats(db: Session, company: Company, *, today: date | None = None) -> InvoiceStats:
    current = today or date.today()
    stats = InvoiceStats()
    for inv in repository.company_invoices(db, company.id):
        stats.total_invoices += 1
        stats.by_status[inv.status] = stats.by_status.get(inv.status, 0) + 1
        amount = to_decimal(inv.total)
        if inv.status == "paid":
            stats.paid_revenue += amount
        elif inv.status in OPEN_STATUSES:
            stats.outstanding_amount += amount
        if is_overdue(inv, current):
            stats.overdue_invoices += 1
    return stats


REVENUE_TREND_PERIODS = (1, 3, 6, 12)


def _month_start(day: date, months_back: int = 0) -> date:
    index = day.year * 12 + day.month - 1 - months_back
    return date(index // 12, index % 12 + 1, 1)


def revenue_trends(db: Session, company: Company, period: int, *, today: date | None = None) -> RevenueTrends:
    """
    Monthly revenue for the last `period` months, the current month included.
    Invoices fall into the month of their issue date; cancelled ones are ignored.
    """
    if period not in REVENUE_TREND_PERIODS:
        raise ValidationFailed(messages.INVALID_PERIOD, details={"allowed": list(REVENUE_TREND_PERIODS)})
    current = today or date.today()
    starts = [_month_start(current, back) for back in range(period - 1, -1, -1)]
    months = {start: RevenueMonth(month=start.strftime("%Y-%m"), start=start) for start in starts}

    for inv in repository.company_invoices(db, company.id, issued_from=starts[0]):
        bucket = months.get(_month_start(inv.issue_date))
        if bucket is None or inv.status == "cancelled":
            continue
        amount = to_decimal(inv.total)
        bucket.invoice_count += 1
        bucket.total_revenue += amount
        if inv.status == "paid":
            bucket.paid_count += 1
            bucket.paid_revenue += amount
        elif inv.status in OPEN_STATUSES:
            bucket.pending_revenue += amount

    rows = list(months.values())
    total = sum((m.total_revenue for m in rows), Decimal("0"))
    first, last = rows[0].total_revenue, rows[-1].total_revenue
    if first > 0:
        growth = (last - first) / first * 100
    else:
        growth = Decimal("100") if last > 0 else Decimal("0")
    summary = RevenueTrendsSummary(
        total_revenue=round_money(total),
        average_monthly_revenue=round_money(total / len(rows)),
        growth_percentage=round_money(growth),
        total_invoices=sum(m.invoice_count for m in rows),
        best_month=max(rows, key=lambda m: m.total_revenue).month,
        worst_month=min(rows, key=lambda m: m.total_revenue).month,
    )
    return RevenueTrends(period=period, months=rows, summary=summary)
