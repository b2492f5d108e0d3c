from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_current_company
from app.db.session import get_db
from app.models.company import Company
from app.schemas.company import CompanyRead, CompanyUpdate
from app.services.common import clean_text

router = APIRouter(prefix="/company", tags=["company"])
company_logger = logging.getLogger("app.company")

REQUIRED_FIELDS = {"name", "invoice_prefix", "default_vat_rate", "default_currency", "default_due_days"}


@router.get("", response_model=CompanyRead)
def get_company(company: Company = Depends(get_current_company)) -> CompanyRead:
    return CompanyRead.model_validate(company)


@router.put("", response_model=CompanyRead)
def update_company(
    payload: CompanyUpdate,
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> CompanyRead:
    """invoice_counter is not part of the payload; it only moves through invoice creation."""
    for field, value in payload.model_dump(exclude_unset=True).items():
        if isinstance(value, str):
            value = clean_text(value)
        if value is None and field in REQUIRED_FIELDS:
            continue
        setattr(company, field, value)
    db.commit()
    db.refresh(company)
    company_logger.info("company_updated id=%s", company.id)
    return CompanyRead.model_validate(company)
