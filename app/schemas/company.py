from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.invoice import Currency


class CompanyBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    tax_id: str | None = None
    email: str | None = None
    phone: str | None = None
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    postal_code: str | None = None
    website: str | None = None
    bank_name: str | None = None
    bank_account: str | None = None
    bank_swift: str | None = None
    invoice_prefix: str = Field(default="INV", min_length=1, max_length=16, pattern=r"^[A-Za-z0-9_]+$")
    default_vat_rate: Decimal = Field(default=Decimal("18"), ge=0, le=100)
    default_currency: Currency = "GEL"
    default_due_days: int = Field(default=14, ge=1, le=365)
    invoice_notes: str | None = None


class CompanyUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    tax_id: str | None = None
    email: str | None = None
    phone: str | None = None
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    postal_code: str | None = None
    website: str | None = None
    bank_name: str | None = None
    bank_account: str | None = None
    bank_swift: str | None = None
    invoice_prefix: str | None = Field(default=None, min_length=1, max_length=16, pattern=r"^[A-Za-z0-9_]+$")
    default_vat_rate: Decimal | None = Field(default=None, ge=0, le=100)
    default_currency: Currency | None = None
    default_due_days: int | None = Field(default=None, ge=1, le=365)
    invoice_notes: str | None = None


class CompanyRead(CompanyBase):
    id: UUID
    invoice_counter: int
    default_currency: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
