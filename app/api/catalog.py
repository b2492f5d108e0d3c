from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_current_company
from app.core import messages
from app.core.errors import NotFound
from app.db.session import get_db
from app.models.company import Company
from app.models.invoice_item import InvoiceItem
from app.models.service import Service
from app.schemas.service import (
    ServiceCreate,
    ServiceRead,
    ServiceSearchResponse,
    ServiceStatsResponse,
    ServiceUpdate,
)
from app.services import catalog
from app.services.common import clean_text

router = APIRouter(prefix="/services", tags=["services"])


def _get_service(db: Session, company_id: UUID, service_id: UUID) -> Service:
    row = db.execute(
        select(Service).where(Service.id == service_id, Service.company_id == company_id)
    ).scalars().one_or_none()
    if not row:
        raise NotFound(messages.SERVICE_NOT_FOUND)
    return row


@router.get("", response_model=list[ServiceRead])
def list_services(
    search: str | None = Query(None),
    include_inactive: bool = Query(False),
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> list[ServiceRead]:
    q = select(Service).where(Service.company_id == company.id).order_by(Service.name)
    if not include_inactive:
        q = q.where(Service.is_active.is_(True))
    if search and search.strip():
        q = q.where(Service.name.ilike(f"%{search.strip()}%"))
    return [ServiceRead.model_validate(s) for s in db.execute(q).scalars().all()]


@router.post("", response_model=ServiceRead, status_code=201)
def create_service(
    payload: ServiceCreate,
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> ServiceRead:
    row = Service(
        company_id=company.id,
        name=payload.name.strip(),
        description=clean_text(payload.description),
        default_price=payload.default_price,
        unit=payload.unit.strip() or "ცალი",
        is_active=payload.is_active,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return ServiceRead.model_validate(row)


@router.get("/search", response_model=ServiceSearchResponse)
def search_services(
    q: str | None = Query(None, description="Name or description substring"),
    limit: int = Query(10, ge=1, le=50),
    active_only: bool = Query(False),
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> ServiceSearchResponse:
    rows = catalog.search_services(db, company.id, q=q, active_only=active_only, limit=limit)
    return ServiceSearchResponse(services=[ServiceRead.model_validate(s) for s in rows], total=len(rows))


@router.get("/stats", response_model=ServiceStatsResponse)
def service_stats(
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    limit: int = Query(10, ge=1, le=100),
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> ServiceStatsResponse:
    return catalog.service_statistics(db, company.id, date_from=date_from, date_to=date_to, limit=limit)


@router.get("/{service_id}", response_model=ServiceRead)
def get_service(
    service_id: UUID,
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> ServiceRead:
    return ServiceRead.model_validate(_get_service(db, company.id, service_id))


@router.put("/{service_id}", response_model=ServiceRead)
def update_service(
    service_id: UUID,
    payload: ServiceUpdate,
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> ServiceRead:
    row = _get_service(db, company.id, service_id)
    if payload.name is not None:
        row.name = payload.name.strip()
    if payload.description is not None:
        row.description = clean_text(payload.description)
    if payload.default_price is not None:
        row.default_price = payload.default_price
    if payload.unit is not None:
        row.unit = payload.unit.strip() or row.unit
    if payload.is_active is not None:
        row.is_active = payload.is_active
    db.commit()
    db.refresh(row)
    return ServiceRead.model_validate(row)


@router.delete("/{service_id}")
def delete_service(
    service_id: UUID,
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> dict:
    """Services used on invoice lines are only deactivated."""
    row = _get_service(db, company.id, service_id)
    used = db.execute(select(InvoiceItem.id).where(InvoiceItem.service_id == row.id).limit(1)).first()
    if used:
        row.is_active = False
        db.commit()
        return {"deleted": False, "deactivated": True}
    db.delete(row)
    db.commit()
    return {"deleted": True, "deactivated": False}


@router.post("/{service_id}/toggle-status", response_model=ServiceRead)
def toggle_service_status(
    service_id: UUID,
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> ServiceRead:
    row = _get_service(db, company.id, service_id)
    row.is_active = not row.is_active
    db.commit()
    db.refresh(row)
    return ServiceRead.model_validate(row)
