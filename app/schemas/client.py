from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.schemas.invoice import Pagination

ClientType = Literal["individual", "company"]


class ClientBase(BaseModel):
    type: ClientType = "individual"
    name: str = Field(..., min_length=2, max_length=255)
    tax_id: str | None = Field(default=None, max_length=64)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=64)
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    postal_code: str | None = None
    contact_person: str | None = None
    notes: str | None = None

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ClientCreate(ClientBase):
    pass


class ClientUpdate(BaseModel):
    type: ClientType | None = None
    name: str | None = Field(default=None, min_length=2, max_length=255)
    tax_id: str | None = Field(default=None, max_length=64)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=64)
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    postal_code: str | None = None
    contact_person: str | None = None
    notes: str | None = None
    is_active: bool | None = None


class ClientStatistics(BaseModel):
    total_invoices: int = 0
    total_revenue: Decimal = Decimal("0")
    paid_invoices: int = 0
    pending_invoices: int = 0
    overdue_invoices: int = 0
    average_invoice_value: Decimal = Decimal("0")


class ClientRead(ClientBase):
    id: UUID
    company_id: UUID
    email: str | None = None
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
    statistics: ClientStatistics | None = None

    model_config = {"from_attributes": True}


class ClientInvoiceSummary(BaseModel):
    id: UUID
    invoice_number: str
    issue_date: date
    due_date: date
    total: Decimal
    status: str
    currency: str

    model_config = {"from_attributes": True}


class ClientDetail(ClientRead):
    recent_invoices: list[ClientInvoiceSummary] = Field(default_factory=list)


class ClientListResponse(BaseModel):
    clients: list[ClientRead]
    pagination: Pagination


class ClientDeleteResponse(BaseModel):
    deleted: bool
    deactivated: bool
    message: str


class ClientRevenueStats(BaseModel):
    total_revenue: Decimal = Decimal("0")
    average_per_client: Decimal = Decimal("0")
    clients_with_revenue: int = 0


class ClientPaymentStats(BaseModel):
    total_invoices: int = 0
    paid_invoices: int = 0
    payment_rate: Decimal = Decimal("0")


class ClientsOverview(BaseModel):
    total_clients: int = 0
    active_clients: int = 0
    inactive_clients: int = 0
    companies: int = 0
    individuals: int = 0
    new_clients_30d: int = 0
    growth_percentage: Decimal = Decimal("0")
    revenue_stats: ClientRevenueStats = Field(default_factory=ClientRevenueStats)
    payment_stats: ClientPaymentStats = Field(default_factory=ClientPaymentStats)
