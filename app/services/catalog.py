from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.models.invoice import Invoice
from app.models.invoice_item import InvoiceItem
from app.models.service import Service
from app.schemas.service import ServiceHighlight, ServiceStatsResponse, ServiceStatsRow, ServiceStatsSummary
from app.services.invoicing.totals import round_money, to_decimal


def search_services(
    db: Session,
    company_id: UUID,
    *,
    q: str | None = None,
    active_only: bool = False,
    limit: int = 10,
) -> list[Service]:
    query = select(Service).where(Service.company_id == company_id)
    if q and q.strip():
        like = f"%{q.strip()}%"
        query = query.where(or_(Service.name.ilike(like), Service.description.ilike(like)))
    if active_only:
        query = query.where(Service.is_active.is_(True))
    return db.execute(query.order_by(Service.name).limit(limit)).scalars().all()


def service_statistics(
    db: Session,
    company_id: UUID,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
    limit: int = 10,
) -> ServiceStatsResponse:
    """
    Usage of active catalog services on invoice lines, busiest earner first.

    Only services that appear on at least one non-cancelled invoice are listed;
    the date range applies to the invoice issue date.
    """
    query = (
        select(Service, InvoiceItem.line_total, Invoice.client_id)
        .join(InvoiceItem, InvoiceItem.service_id == Service.id)
        .join(Invoice, Invoice.id == InvoiceItem.invoice_id)
        .where(
            Service.company_id == company_id,
            Service.is_active.is_(True),
            Invoice.company_id == company_id,
            Invoice.status != "cancelled",
        )
    )
    if date_from is not None:
        query = query.where(Invoice.issue_date >= date_from)
    if date_to is not None:
        query = query.where(Invoice.issue_date <= date_to)

    rows: dict[UUID, ServiceStatsRow] = {}
    clients: dict[UUID, set[UUID]] = {}
    for service, line_total, client_id in db.execute(query):
        row = rows.get(service.id)
        if row is None:
            row = rows[service.id] = ServiceStatsRow.model_validate(service)
            clients[service.id] = set()
        row.statistics.total_usage += 1
        row.statistics.total_revenue += to_decimal(line_total)
        clients[service.id].add(client_id)

    for service_id, row in rows.items():
        usage = row.statistics
        usage.unique_clients = len(clients[service_id])
        usage.total_revenue = round_money(usage.total_revenue)
        usage.average_price = round_money(usage.total_revenue / usage.total_usage)

    ranked = sorted(rows.values(), key=lambda r: r.statistics.total_revenue, reverse=True)
    summary = ServiceStatsSummary(total_services=len(ranked))
    if ranked:
        summary.total_usage = sum(r.statistics.total_usage for r in ranked)
        summary.total_revenue = round_money(sum((r.statistics.total_revenue for r in ranked), Decimal("0")))
        summary.average_price = round_money(summary.total_revenue / summary.total_usage)
        busiest = max(ranked, key=lambda r: r.statistics.total_usage)
        summary.most_used_service = ServiceHighlight(
            id=busiest.id, name=busiest.name, value=Decimal(busiest.statistics.total_usage)
        )
        top = ranked[0]
        summary.highest_revenue_service = ServiceHighlight(id=top.id, name=top.name, value=top.statistics.total_revenue)
    return ServiceStatsResponse(services=ranked[:limit], summary=summary)
