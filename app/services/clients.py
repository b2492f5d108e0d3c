from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from app.core import messages
from app.core.errors import Conflict, ValidationFailed
from app.models.client import Client
from app.models.invoice import Invoice
from app.schemas.client import ClientsOverview, ClientStatistics
from app.services.common import clean_text
from app.services.invoicing.totals import round_money, to_decimal

client_logger = logging.getLogger("app.clients")


def client_statistics(invoices: Iterable[Invoice], *, today: date | None = None) -> ClientStatistics:
    """Cancelled invoices are left out of every figure."""
    current = today or date.today()
    stats = ClientStatistics()
    revenue = Decimal("0")
    for inv in invoices:
        if inv.status == "cancelled":
            continue
        stats.total_invoices += 1
        revenue += to_decimal(inv.total)
        if inv.status == "paid":
            stats.paid_invoices += 1
        elif inv.status == "overdue" or (inv.status == "sent" and inv.due_date < current):
            stats.overdue_invoices += 1
        else:
            stats.pending_invoices += 1
    stats.total_revenue = round_money(revenue)
    if stats.total_invoices:
        stats.average_invoice_value = round_money(revenue / stats.total_invoices)
    return stats


def statistics_by_client(db: Session, company_id: UUID, client_ids: list[UUID]) -> dict[UUID, ClientStatistics]:
    if not client_ids:
        return {}
    grouped: dict[UUID, list[Invoice]] = {cid: [] for cid in client_ids}
    rows = db.execute(
        select(Invoice).where(Invoice.company_id == company_id, Invoice.client_id.in_(client_ids))
    ).scalars()
    for inv in rows:
        grouped.setdefault(inv.client_id, []).append(inv)
    return {cid: client_statistics(invs) for cid, invs in grouped.items()}


def ensure_unique(
    db: Session,
    company_id: UUID,
    *,
    email: str | None,
    tax_id: str | None,
    exclude_id: UUID | None = None,
) -> None:
    """Email and tax id are unique per company (case-insensitive email)."""
    base = [Client.company_id == company_id]
    if exclude_id is not None:
        base.append(Client.id != exclude_id)
    if email:
        taken = db.execute(select(Client.id).where(*base, func.lower(Client.email) == email.lower())).first()
        if taken:
            raise Conflict(messages.CLIENT_EMAIL_TAKEN)
    if tax_id:
        taken = db.execute(select(Client.id).where(*base, Client.tax_id == tax_id)).first()
        if taken:
            raise Conflict(messages.CLIENT_TAX_ID_TAKEN)


def check_client_fields(client_type: str, tax_id: str | None) -> None:
    if client_type == "company" and not tax_id:
        raise ValidationFailed(messages.CLIENT_TAX_ID_REQUIRED)


def normalize_fields(data: dict) -> dict:
    out = {}
    for key, value in data.items():
        if isinstance(value, str):
            value = clean_text(value)
            if key == "email" and value:
                value = value.lower()
        out[key] = value
    return out


def search_clients(
    db: Session,
    company_id: UUID,
    *,
    search: str | None = None,
    client_type: str | None = None,
    status: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[int, list[Client]]:
    conditions = [Client.company_id == company_id]
    if client_type and client_type != "all":
        conditions.append(Client.type == client_type)
    if status == "active":
        conditions.append(Client.is_active.is_(True))
    elif status == "inactive":
        conditions.append(Client.is_active.is_(False))
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        conditions.append(or_(Client.name.ilike(pattern), Client.email.ilike(pattern), Client.tax_id.ilike(pattern)))
    total = int(db.execute(select(func.count(Client.id)).where(*conditions)).scalar() or 0)
    rows = (
        db.execute(select(Client).where(*conditions).order_by(Client.name.asc()).offset(offset).limit(limit))
        .scalars()
        .all()
    )
    return total, rows


def has_invoices(db: Session, client_id: UUID) -> bool:
    return db.execute(select(Invoice.id).where(Invoice.client_id == client_id).limit(1)).first() is not None


NEW_CLIENT_DAYS = 30


def clients_overview(db: Session, company_id: UUID, *, now: datetime | None = None) -> ClientsOverview:
    """Company-wide client counts plus revenue and payment figures; cancelled invoices are left out."""
    moment = now or datetime.now(timezone.utc)
    cutoff = moment - timedelta(days=NEW_CLIENT_DAYS)
    overview = ClientsOverview()
    for row in db.execute(select(Client).where(Client.company_id == company_id)).scalars():
        overview.total_clients += 1
        if row.is_active:
            overview.active_clients += 1
        else:
            overview.inactive_clients += 1
        if row.type == "company":
            overview.companies += 1
        else:
            overview.individuals += 1
        created = row.created_at
        # SQLite hands back naive UTC timestamps
        if created is not None and created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        if created is not None and created > cutoff:
            overview.new_clients_30d += 1

    revenue_by_client: dict[UUID, Decimal] = {}
    payments = overview.payment_stats
    invoices = db.execute(
        select(Invoice).where(Invoice.company_id == company_id, Invoice.status != "cancelled")
    ).scalars()
    for inv in invoices:
        revenue_by_client[inv.client_id] = revenue_by_client.get(inv.client_id, Decimal("0")) + to_decimal(inv.total)
        payments.total_invoices += 1
        if inv.status == "paid":
            payments.paid_invoices += 1

    total_revenue = sum(revenue_by_client.values(), Decimal("0"))
    overview.revenue_stats.total_revenue = round_money(total_revenue)
    overview.revenue_stats.clients_with_revenue = len(revenue_by_client)
    if overview.total_clients:
        overview.revenue_stats.average_per_client = round_money(total_revenue / overview.total_clients)
        overview.growth_percentage = round_money(Decimal(overview.new_clients_30d * 100) / overview.total_clients)
    if payments.total_invoices:
        payments.payment_rate = round_money(Decimal(payments.paid_invoices * 100) / payments.total_invoices)
    return overview
