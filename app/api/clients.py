from __future__ import annotations

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_current_company
from app.core import messages
from app.db.session import get_db
from app.models.client import Client
from app.models.company import Company
from app.models.invoice import Invoice
from app.schemas.client import (
    ClientCreate,
    ClientDeleteResponse,
    ClientDetail,
    ClientInvoiceSummary,
    ClientListResponse,
    ClientRead,
    ClientsOverview,
    ClientUpdate,
)
from app.services import clients as client_service
from app.services.common import build_pagination
from app.services.invoicing.repository import get_client

router = APIRouter(prefix="/clients", tags=["clients"])

RECENT_INVOICES = 5


@router.get("", response_model=ClientListResponse)
def list_clients(
    search: str | None = Query(None, description="Name, email or tax id substring"),
    type: Literal["all", "individual", "company"] = Query("all"),
    status: Literal["all", "active", "inactive"] = Query("all"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> ClientListResponse:
    total, rows = client_service.search_clients(
        db, company.id, search=search, client_type=type, status=status, limit=limit, offset=offset
    )
    stats = client_service.statistics_by_client(db, company.id, [c.id for c in rows])
    items = []
    for row in rows:
        data = ClientRead.model_validate(row)
        data.statistics = stats.get(row.id)
        items.append(data)
    return ClientListResponse(clients=items, pagination=build_pagination(total, limit, offset))


@router.post("", response_model=ClientRead, status_code=201)
def create_client(
    payload: ClientCreate,
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> ClientRead:
    data = client_service.normalize_fields(payload.model_dump())
    client_service.check_client_fields(data["type"], data.get("tax_id"))
    client_service.ensure_unique(db, company.id, email=data.get("email"), tax_id=data.get("tax_id"))
    row = Client(company_id=company.id, is_active=True, **data)
    db.add(row)
    db.commit()
    db.refresh(row)
    client_service.client_logger.info("client_created id=%s company=%s", row.id, company.id)
    return ClientRead.model_validate(row)


@router.get("/stats", response_model=ClientsOverview)
def clients_stats(
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> ClientsOverview:
    return client_service.clients_overview(db, company.id)


@router.get("/{client_id}", response_model=ClientDetail)
def get_client_detail(
    client_id: UUID,
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> ClientDetail:
    row = get_client(db, company.id, client_id)
    invoices = (
        db.execute(
            select(Invoice)
            .where(Invoice.company_id == company.id, Invoice.client_id == row.id)
            .order_by(Invoice.issue_date.desc(), Invoice.created_at.desc())
        )
        .scalars()
        .all()
    )
    data = ClientDetail.model_validate(row)
    data.statistics = client_service.client_statistics(invoices)
    data.recent_invoices = [ClientInvoiceSummary.model_validate(i) for i in invoices[:RECENT_INVOICES]]
    return data


@router.put("/{client_id}", response_model=ClientRead)
def update_client(
    client_id: UUID,
    payload: ClientUpdate,
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> ClientRead:
    row = get_client(db, company.id, client_id)
    data = client_service.normalize_fields(payload.model_dump(exclude_unset=True))
    if data.get("name") is None:
        data.pop("name", None)
    if data.get("type") is None:
        data.pop("type", None)
    if data.get("is_active") is None:
        data.pop("is_active", None)
    client_service.check_client_fields(data.get("type", row.type), data.get("tax_id", row.tax_id))
    client_service.ensure_unique(
        db,
        company.id,
        email=data.get("email") if "email" in data else None,
        tax_id=data.get("tax_id") if "tax_id" in data else None,
        exclude_id=row.id,
    )
    for field, value in data.items():
        setattr(row, field, value)
    db.commit()
    db.refresh(row)
    return ClientRead.model_validate(row)


@router.delete("/{client_id}", response_model=ClientDeleteResponse)
def delete_client(
    client_id: UUID,
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> ClientDeleteResponse:
    """Clients referenced by invoices are deactivated instead of removed."""
    row = get_client(db, company.id, client_id)
    if client_service.has_invoices(db, row.id):
        row.is_active = False
        db.commit()
        client_service.client_logger.info("client_deactivated id=%s", row.id)
        return ClientDeleteResponse(deleted=False, deactivated=True, message=messages.CLIENT_DEACTIVATED)
    db.delete(row)
    db.commit()
    client_service.client_logger.info("client_deleted id=%s", client_id)
    return ClientDeleteResponse(deleted=True, deactivated=False, message=messages.CLIENT_DELETED)


@router.post("/{client_id}/toggle-status", response_model=ClientRead)
def toggle_client_status(
    client_id: UUID,
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> ClientRead:
    row = get_client(db, company.id, client_id)
    row.is_active = not row.is_active
    db.commit()
    db.refresh(row)
    return ClientRead.model_validate(row)
