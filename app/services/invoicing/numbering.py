from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.models.company import Company
from app.models.invoice import Invoice

DEFAULT_PREFIX = "INV"


def _counter():
    return func.coalesce(Company.invoice_counter, 0)


def format_invoice_number(prefix: str | None, counter: int, *, today: date | None = None) -> str:
    """INV-2025-0007 for counter 7. Counter values past 9999 keep all their digits."""
    year = (today or date.today()).year
    clean_prefix = (prefix or "").strip() or DEFAULT_PREFIX
    return f"{clean_prefix}-{year}-{int(counter):04d}"


def next_invoice_number(prefix: str | None, current_counter: int | None, *, today: date | None = None) -> str:
    return format_invoice_number(prefix, int(current_counter or 0) + 1, today=today)


def allocate_invoice_number(db: Session, company_id: UUID, *, today: date | None = None) -> tuple[int, str]:
    """
    Increment the company counter in SQL and read the new value back.

    Must run inside the transaction that inserts the invoice: the UPDATE holds
    the company row lock until commit, so concurrent creators queue up instead
    of reading the same counter.
    """
    db.execute(
        update(Company)
        .where(Company.id == company_id)
        .values(invoice_counter=_counter() + 1)
        .execution_options(synchronize_session=False)
    )
    counter, prefix = db.execute(
        select(Company.invoice_counter, Company.invoice_prefix).where(Company.id == company_id)
    ).one()
    return int(counter), format_invoice_number(prefix, int(counter), today=today)


def invoice_number_taken(db: Session, company_id: UUID, invoice_number: str) -> bool:
    found = db.execute(
        select(Invoice.id).where(Invoice.company_id == company_id, Invoice.invoice_number == invoice_number)
    ).first()
    return found is not None


def skip_counter_value(db: Session, company_id: UUID, taken_counter: int) -> None:
    """Move the counter past a value whose number already exists, and commit that on its own."""
    db.execute(
        update(Company)
        .where(Company.id == company_id, _counter() < taken_counter)
        .values(invoice_counter=taken_counter)
        .execution_options(synchronize_session=False)
    )
    db.commit()
