from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.company import Company
from app.schemas.invoice import PublicClient, PublicCompany, PublicInvoiceItem, PublicInvoiceRead
from app.services.invoicing.pdf import pdf_filename, render_invoice_pdf
from app.services.invoicing.public_links import find_public_invoice

router = APIRouter(prefix="/i", tags=["public"])


@router.get("/{token}", response_model=PublicInvoiceRead)
def public_invoice(token: str, db: Session = Depends(get_db)) -> PublicInvoiceRead:
    """Read-only view for anyone holding the link. No session required."""
    invoice = find_public_invoice(db, token)
    company = db.get(Company, invoice.company_id)
    return PublicInvoiceRead(
        invoice_number=invoice.invoice_number,
        status=invoice.status,
        issue_date=invoice.issue_date,
        due_date=invoice.due_date,
        currency=invoice.currency,
        vat_rate=invoice.vat_rate,
        subtotal=invoice.subtotal,
        vat_amount=invoice.vat_amount,
        total=invoice.total,
        notes=invoice.notes,
        company=PublicCompany.model_validate(company),
        client=PublicClient.model_validate(invoice.client),
        items=[PublicInvoiceItem.model_validate(i) for i in invoice.items],
        pdf_url=f"/i/{invoice.public_token}/pdf",
    )


@router.get("/{token}/pdf")
def public_invoice_pdf(token: str, db: Session = Depends(get_db)) -> Response:
    invoice = find_public_invoice(db, token)
    company = db.get(Company, invoice.company_id)
    headers = {"Content-Disposition": f'inline; filename="{pdf_filename(invoice)}"'}
    return Response(content=render_invoice_pdf(invoice, company), media_type="application/pdf", headers=headers)
