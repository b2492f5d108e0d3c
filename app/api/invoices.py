from __future__ import annotations

from datetime import date
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.api.deps import current_user_id, get_current_company
from app.core import messages
from app.core.errors import AppError, InvalidState
from app.db.session import get_db
from app.models.company import Company
from app.models.invoice import Invoice
from app.schemas.invoice import (
    InvoiceCreate,
    InvoiceDuplicateResponse,
    InvoiceListResponse,
    InvoiceRead,
    InvoiceStats,
    InvoiceStatusResponse,
    InvoiceStatusUpdate,
    InvoiceUpdate,
    MarkOverdueResponse,
    PublicLinkRequest,
    PublicLinkResponse,
    RevenueTrends,
    SendInvoiceRequest,
    SendInvoiceResponse,
)
from app.services.common import build_pagination
from app.services.invoicing import invoice_service, repository
from app.services.invoicing.mailer import mail_logger, send_invoice_email
from app.services.invoicing.pdf import pdf_filename, render_invoice_pdf
from app.services.invoicing.public_links import disable_public_link, enable_public_link, public_url

router = APIRouter(prefix="/invoices", tags=["invoices"])


def _to_read(row: Invoice) -> InvoiceRead:
    data = InvoiceRead.model_validate(row)
    data.pdf_url = f"/invoices/{row.id}/pdf"
    if row.public_enabled and row.public_token:
        data.public_url = public_url(row.public_token)
    return data


@router.get("", response_model=InvoiceListResponse)
def list_invoices(
    status: Literal["all", "draft", "sent", "paid", "overdue", "cancelled"] = Query("all"),
    client_id: UUID | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    search: str | None = Query(None, description="Invoice number or client name substring"),
    sort_by: Literal["issue_date", "due_date", "total", "status", "client"] = Query("issue_date"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> InvoiceListResponse:
    total, rows = repository.list_invoices(
        db,
        company.id,
        status=status,
        client_id=client_id,
        date_from=date_from,
        date_to=date_to,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    return InvoiceListResponse(
        invoices=[_to_read(r) for r in rows],
        pagination=build_pagination(total, limit, offset),
    )


@router.post("", response_model=InvoiceRead, status_code=201)
def create_invoice(
    payload: InvoiceCreate,
    user_id: UUID = Depends(current_user_id),
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> InvoiceRead:
    invoice = invoice_service.create_invoice(db, user_id, company, payload)
    if payload.send_now:
        # the invoice is already committed; a failed send leaves it as a draft
        try:
            send_invoice_email(db, invoice, company)
        except AppError as e:
            mail_logger.warning("send_now_failed invoice=%s error=%s", invoice.id, e.message)
        invoice = repository.get_invoice(db, company.id, invoice.id)
    return _to_read(invoice)


@router.get("/stats", response_model=InvoiceStats)
def invoice_stats(
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> InvoiceStats:
    return invoice_service.invoice_stats(db, company)


@router.get("/revenue-trends", response_model=RevenueTrends)
def revenue_trends(
    period: int = Query(12, description="Months to cover: 1, 3, 6 or 12"),
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> RevenueTrends:
    return invoice_service.revenue_trends(db, company, period)


@router.post("/mark-overdue", response_model=MarkOverdueResponse)
def mark_overdue(
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> MarkOverdueResponse:
    return MarkOverdueResponse(updated=invoice_service.mark_overdue(db, company))


@router.get("/{invoice_id}", response_model=InvoiceRead)
def get_invoice(
    invoice_id: UUID,
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> InvoiceRead:
    return _to_read(repository.get_invoice(db, company.id, invoice_id))


@router.put("/{invoice_id}", response_model=InvoiceRead)
def update_invoice(
    invoice_id: UUID,
    payload: InvoiceUpdate,
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> InvoiceRead:
    return _to_read(invoice_service.update_invoice(db, company, invoice_id, payload))


@router.delete("/{invoice_id}")
def delete_invoice(
    invoice_id: UUID,
    user_id: UUID = Depends(current_user_id),
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> dict:
    invoice_service.delete_invoice(db, user_id, company, invoice_id)
    invoice = repository.get_invoice(db, company.id, invoice_id)
    return {"message": messages.INVOICE_DELETED, "invoice": _to_read(invoice).model_dump(mode="json")}


@router.patch("/{invoice_id}/status", response_model=InvoiceStatusResponse)
def change_status(
    invoice_id: UUID,
    payload: InvoiceStatusUpdate,
    user_id: UUID = Depends(current_user_id),
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> InvoiceStatusResponse:
    invoice, old_status = invoice_service.change_status(db, user_id, company, invoice_id, payload.status)
    return InvoiceStatusResponse(
        invoice=_to_read(invoice),
        message=messages.STATUS_MESSAGES[payload.status],
        old_status=old_status,
        new_status=invoice.status,
    )


@router.post("/{invoice_id}/send", response_model=SendInvoiceResponse)
def send_invoice(
    invoice_id: UUID,
    payload: SendInvoiceRequest | None = None,
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> SendInvoiceResponse:
    body = payload or SendInvoiceRequest()
    invoice = repository.get_invoice(db, company.id, invoice_id)
    if invoice.status == "cancelled":
        raise InvalidState(messages.INVOICE_NOT_EDITABLE)
    recipients = send_invoice_email(
        db,
        invoice,
        company,
        to=body.to,
        cc=body.cc,
        bcc=body.bcc,
        subject=body.subject,
        message=body.message,
        attach_pdf=body.attach_pdf,
    )
    invoice = repository.get_invoice(db, company.id, invoice_id)
    return SendInvoiceResponse(success=True, message=messages.EMAIL_SENT, status=invoice.status, recipients=recipients)


@router.post("/{invoice_id}/duplicate", response_model=InvoiceDuplicateResponse, status_code=201)
def duplicate_invoice(
    invoice_id: UUID,
    user_id: UUID = Depends(current_user_id),
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> InvoiceDuplicateResponse:
    copy = invoice_service.duplicate_invoice(db, user_id, company, invoice_id)
    return InvoiceDuplicateResponse(
        **_to_read(copy).model_dump(),
        message=messages.INVOICE_DUPLICATED,
        original_invoice_id=invoice_id,
    )


@router.post("/{invoice_id}/public-link", response_model=PublicLinkResponse)
def create_public_link(
    invoice_id: UUID,
    payload: PublicLinkRequest | None = None,
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> PublicLinkResponse:
    body = payload or PublicLinkRequest()
    invoice = repository.get_invoice(db, company.id, invoice_id)
    token = enable_public_link(invoice, rotate=body.rotate, expires_at=body.expires_at)
    db.commit()
    return PublicLinkResponse(token=token, url=public_url(token), enabled=True, expires_at=body.expires_at)


@router.delete("/{invoice_id}/public-link", response_model=PublicLinkResponse)
def revoke_public_link(
    invoice_id: UUID,
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> PublicLinkResponse:
    invoice = repository.get_invoice(db, company.id, invoice_id)
    disable_public_link(invoice)
    db.commit()
    token = invoice.public_token or ""
    return PublicLinkResponse(token=token, url=public_url(token) if token else "", enabled=False)


@router.get("/{invoice_id}/pdf")
def invoice_pdf(
    invoice_id: UUID,
    company: Company = Depends(get_current_company),
    db: Session = Depends(get_db),
) -> Response:
    invoice = repository.get_invoice(db, company.id, invoice_id)
    headers = {"Content-Disposition": f'inline; filename="{pdf_filename(invoice)}"'}
    return Response(content=render_invoice_pdf(invoice, company), media_type="application/pdf", headers=headers)
