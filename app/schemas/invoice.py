from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

InvoiceStatus = Literal["draft", "sent", "paid", "overdue", "cancelled"]
Currency = Literal["GEL", "USD", "EUR"]


class InvoiceItemBase(BaseModel):
    service_id: UUID | None = None
    description: str = Field(..., min_length=1, max_length=500)
    quantity: Decimal = Field(default=Decimal("1"), gt=0, le=999999)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0, le=999999999)
    sort_order: int | None = None


class InvoiceItemCreate(InvoiceItemBase):
    pass


class InvoiceItemRead(InvoiceItemBase):
    id: UUID
    line_total: Decimal
    sort_order: int

    model_config = {"from_attributes": True}


class InvoiceCreate(BaseModel):
    client_id: UUID
    issue_date: date | None = None
    due_date: date | None = None
    due_days: int | None = Field(default=None, ge=1, le=365, description="Used when due_date is not given")
    currency: Currency | None = None
    vat_rate: Decimal | None = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None
    items: list[InvoiceItemCreate] = Field(..., min_length=1, max_length=50)
    send_now: bool = False
    public_link: bool | None = Field(default=None, description="Issue a public link; server default when omitted")


class InvoiceUpdate(BaseModel):
    client_id: UUID | None = None
    issue_date: date | None = None
    due_date: date | None = None
    currency: Currency | None = None
    vat_rate: Decimal | None = Field(default=None, ge=0, le=100)
    notes: str | None = None
    items: list[InvoiceItemCreate] | None = Field(default=None, min_length=1, max_length=50)


class InvoiceStatusUpdate(BaseModel):
    status: InvoiceStatus


class InvoiceClientSummary(BaseModel):
    id: UUID
    name: str
    type: str
    tax_id: str | None = None
    email: str | None = None

    model_config = {"from_attributes": True}


class InvoiceRead(BaseModel):
    id: UUID
    company_id: UUID
    client_id: UUID
    invoice_number: str
    status: str
    issue_date: date
    due_date: date
    currency: str
    vat_rate: Decimal
    subtotal: Decimal
    vat_amount: Decimal
    total: Decimal
    notes: str | None = None
    public_token: str | None = None
    public_enabled: bool = False
    public_expires_at: datetime | None = None
    sent_at: datetime | None = None
    paid_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    client: InvoiceClientSummary | None = None
    items: list[InvoiceItemRead] = Field(default_factory=list)
    pdf_url: str | None = None
    public_url: str | None = None

    model_config = {"from_attributes": True}


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    page: int
    total_pages: int


class InvoiceListResponse(BaseModel):
    invoices: list[InvoiceRead]
    pagination: Pagination


class InvoiceStatusResponse(BaseModel):
    invoice: InvoiceRead
    message: str
    old_status: str
    new_status: str


class InvoiceDuplicateResponse(InvoiceRead):
    message: str
    original_invoice_id: UUID


class InvoiceStats(BaseModel):
    total_invoices: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    paid_revenue: Decimal = Decimal("0")
    outstanding_amount: Decimal = Decimal("0")
    overdue_invoices: int = 0


class RevenueMonth(BaseModel):
    month: str
    start: date
    total_revenue: Decimal = Decimal("0")
    paid_revenue: Decimal = Decimal("0")
    pending_revenue: Decimal = Decimal("0")
    invoice_count: int = 0
    paid_count: int = 0


class RevenueTrendsSummary(BaseModel):
    total_revenue: Decimal = Decimal("0")
    average_monthly_revenue: Decimal = Decimal("0")
    growth_percentage: Decimal = Decimal("0")
    total_invoices: int = 0
    best_month: str | None = None
    worst_month: str | None = None


class RevenueTrends(BaseModel):
    period: int
    months: list[RevenueMonth]
    summary: RevenueTrendsSummary


class MarkOverdueResponse(BaseModel):
    updated: int


class PublicLinkRequest(BaseModel):
    rotate: bool = False
    expires_at: datetime | None = None


class PublicLinkResponse(BaseModel):
    token: str
    url: str
    enabled: bool = True
    expires_at: datetime | None = None


class SendInvoiceRequest(BaseModel):
    to: list[EmailStr] | None = None
    cc: list[EmailStr] | None = None
    bcc: list[EmailStr] | None = None
    subject: str | None = Field(default=None, max_length=200)
    message: str | None = Field(default=None, max_length=1000)
    attach_pdf: bool = True


class SendInvoiceResponse(BaseModel):
    success: bool
    message: str
    status: str
    recipients: dict[str, list[str]]


class PublicCompany(BaseModel):
    name: str
    tax_id: str | None = None
    email: str | None = None
    phone: str | None = None
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    postal_code: str | None = None
    bank_name: str | None = None
    bank_account: str | None = None
    bank_swift: str | None = None

    model_config = {"from_attributes": True}


class PublicClient(BaseModel):
    name: str
    type: str
    tax_id: str | None = None

    model_config = {"from_attributes": True}


class PublicInvoiceItem(BaseModel):
    description: str
    quantity: Decimal
    unit_price: Decimal
    line_total: Decimal

    model_config = {"from_attributes": True}


class PublicInvoiceRead(BaseModel):
    """What an unauthenticated holder of a public link may see."""

    invoice_number: str
    status: str
    issue_date: date
    due_date: date
    currency: str
    vat_rate: Decimal
    subtotal: Decimal
    vat_amount: Decimal
    total: Decimal
    notes: str | None = None
    company: PublicCompany
    client: PublicClient
    items: list[PublicInvoiceItem] = Field(default_factory=list)
    pdf_url: str | None = None
