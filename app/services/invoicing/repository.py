"""
Data access for invoicing. Every query is scoped to one company; a record of
another company behaves exactly like a missing one.
"""
from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from app.core import messages
from app.core.errors import NotFound, ValidationFailed
from app.models.client import Client
from app.models.company import Company
from app.models.invoice import Invoice
from app.models.invoice_item import InvoiceItem
from app.models.service import Service

SORT_COLUMNS = {
    "issue_date": Invoice.issue_date,
    "due_date": Invoice.due_date,
    "total": Invoice.total,
    "status": Invoice.status,
    "client": Client.name,
}


def get_company(db: Session, user_id: UUID) -> Company:
    company = db.execute(select(Company).where(Company.user_id == user_id)).scalars().one_or_none()
    if not company:
        raise NotFound(messages.COMPANY_NOT_FOUND)
    return company


def get_client(db: Session, company_id: UUID, client_id: UUID, *, active_only: bool = False) -> Client:
    client = db.execute(
        select(Client).where(Client.id == client_id, Client.company_id == company_id)
    ).scalars().one_or_none()
    if not client:
        raise NotFound(messages.CLIENT_NOT_FOUND)
    if active_only and not client.is_active:
        raise ValidationFailed(messages.CLIENT_INACTIVE)
    return client


def check_service_ids(db: Session, company_id: UUID, service_ids: set[UUID]) -> None:
    if not service_ids:
        return
    found = set(
        db.execute(select(Service.id).where(Service.company_id == company_id, Service.id.in_(service_ids)))
        .scalars()
        .all()
    )
    if found != service_ids:
        raise NotFound(messages.SERVICE_NOT_FOUND)


def get_invoice(db: Session, company_id: UUID, invoice_id: UUID) -> Invoice:
    invoice = (
        db.execute(
            select(Invoice)
            .where(Invoice.id == invoice_id, Invoice.company_id == company_id)
            .options(selectinload(Invoice.items), selectinload(Invoice.client))
            .execution_options(populate_existing=True)
        )
        .scalars()
        .one_or_none()
    )
    if not invoice:
        raise NotFound(messages.INVOICE_NOT_FOUND)
    return invoice


def create_invoice(db: Session, invoice: Invoice) -> Invoice:
    db.add(invoice)
    db.flush()
    return invoice


def create_items(db: Session, invoice: Invoice, items: list[InvoiceItem]) -> list[InvoiceItem]:
    for item in items:
        item.invoice_id = invoice.id
        db.add(item)
    db.flush()
    return items


def replace_items(db: Session, invoice: Invoice, items: list[InvoiceItem]) -> list[InvoiceItem]:
    # delete-orphan cascade removes the previous lines on flush
    invoice.items = items
    db.flush()
    return items


def list_invoices(
    db: Session,
    company_id: UUID,
    *,
    status: str | None = None,
    client_id: UUID | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    search: str | None = None,
    sort_by: str = "issue_date",
    sort_order: str = "desc",
    limit: int = 10,
    offset: int = 0,
) -> tuple[int, list[Invoice]]:
    conditions = [Invoice.company_id == company_id]
    if status and status != "all":
        conditions.append(Invoice.status == status)
    if client_id:
        conditions.append(Invoice.client_id == client_id)
    if date_from:
        conditions.append(Invoice.issue_date >= date_from)
    if date_to:
        conditions.append(Invoice.issue_date <= date_to)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        conditions.append(or_(Invoice.invoice_number.ilike(pattern), Client.name.ilike(pattern)))

    count_q = select(func.count(Invoice.id)).join(Client, Client.id == Invoice.client_id).where(*conditions)
    total = int(db.execute(count_q).scalar() or 0)

    column = SORT_COLUMNS.get(sort_by, Invoice.issue_date)
    ordering = column.asc() if sort_order == "asc" else column.desc()
    q = (
        select(Invoice)
        .join(Client, Client.id == Invoice.client_id)
        .where(*conditions)
        .options(selectinload(Invoice.items), selectinload(Invoice.client))
        .order_by(ordering, Invoice.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    return total, db.execute(q).scalars().all()


def company_invoices(
    db: Session,
    company_id: UUID,
    *,
    client_ids: list[UUID] | None = None,
    issued_from: date | None = None,
) -> list[Invoice]:
    q = select(Invoice).where(Invoice.company_id == company_id)
    if issued_from is not None:
        q = q.where(Invoice.issue_date >= issued_from)
    if client_ids is not None:
        q = q.where(Invoice.client_id.in_(client_ids))
    return db.execute(q).scalars().all()
