from __future__ import annotations

import io
import logging
from decimal import Decimal

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from app.core.config import settings
from app.core.messages import STATUS_LABELS
from app.models.company import Company
from app.models.invoice import Invoice

pdf_logger = logging.getLogger("app.pdf")

MAX_TABLE_ROWS = 14
_registered_font: str | None = None


def _fonts() -> tuple[str, str]:
    """Regular and bold font names. Helvetica has no Georgian glyphs, so a TTF can be configured."""
    global _registered_font
    if settings.pdf_font_path:
        if _registered_font is None:
            try:
                pdfmetrics.registerFont(TTFont("InvoiceFont", settings.pdf_font_path))
                _registered_font = "InvoiceFont"
            except Exception:
                pdf_logger.exception("pdf_font_failed path=%s", settings.pdf_font_path)
                _registered_font = ""
        if _registered_font:
            return _registered_font, _registered_font
    return "Helvetica", "Helvetica-Bold"


def _money(value, currency: str) -> str:
    amount = Decimal(str(value or 0)).quantize(Decimal("0.01"))
    return f"{amount:,.2f} {currency}"


def _qty(value) -> str:
    return f"{Decimal(str(value or 0)):f}".rstrip("0").rstrip(".") or "0"


def pdf_filename(invoice: Invoice) -> str:
    return f"invoice-{invoice.invoice_number}.pdf"


def render_invoice_pdf(invoice: Invoice, company: Company) -> bytes:
    regular, bold = _fonts()
    client = invoice.client
    currency = invoice.currency or settings.default_currency

    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle(f"Invoice {invoice.invoice_number}")
    page_w, page_h = A4
    margin = 16 * mm
    primary = colors.HexColor("#1d4ed8")
    ink = colors.HexColor("#0f172a")
    muted = colors.HexColor("#475569")
    soft = colors.HexColor("#e2e8f0")

    # Header band
    c.setFillColor(primary)
    c.roundRect(margin, page_h - 50 * mm, page_w - (2 * margin), 34 * mm, 7, fill=1, stroke=0)
    c.setFillColor(colors.white)
    c.setFont(bold, 22)
    c.drawString(margin + 8 * mm, page_h - 31 * mm, "INVOICE")
    c.setFont(regular, 10)
    c.drawString(margin + 8 * mm, page_h - 37 * mm, (company.name or "")[:60])
    if company.tax_id:
        c.drawString(margin + 8 * mm, page_h - 43 * mm, f"Tax ID: {company.tax_id}")

    c.setFont(bold, 12)
    c.drawRightString(page_w - margin - 8 * mm, page_h - 28 * mm, f"No. {invoice.invoice_number}")
    c.setFont(regular, 10)
    c.drawRightString(
        page_w - margin - 8 * mm,
        page_h - 34 * mm,
        f"Status: {STATUS_LABELS.get(invoice.status, invoice.status) if _registered_font else invoice.status}",
    )

    # Bill-to and dates cards
    card_y = page_h - 90 * mm
    card_h = 32 * mm
    card_w = (page_w - (2 * margin) - 8 * mm) / 2
    c.setFillColor(colors.white)
    c.setStrokeColor(soft)
    c.roundRect(margin, card_y, card_w, card_h, 6, fill=1, stroke=1)
    c.roundRect(margin + card_w + 8 * mm, card_y, card_w, card_h, 6, fill=1, stroke=1)

    c.setFillColor(muted)
    c.setFont(bold, 10)
    c.drawString(margin + 5 * mm, card_y + card_h - 8 * mm, "Bill To")
    c.setFillColor(ink)
    c.setFont(regular, 11)
    c.drawString(margin + 5 * mm, card_y + card_h - 15 * mm, (client.name if client else "-")[:50])
    c.setFont(regular, 9)
    c.setFillColor(muted)
    if client and client.tax_id:
        c.drawString(margin + 5 * mm, card_y + card_h - 21 * mm, f"Tax ID: {client.tax_id}")
    if client and client.email:
        c.drawString(margin + 5 * mm, card_y + card_h - 27 * mm, client.email[:60])

    rx = margin + card_w + 8 * mm
    c.setFillColor(muted)
    c.setFont(bold, 10)
    c.drawString(rx + 5 * mm, card_y + card_h - 8 * mm, "Dates")
    c.setFillColor(ink)
    c.setFont(regular, 10)
    c.drawString(rx + 5 * mm, card_y + card_h - 15 * mm, f"Issue: {invoice.issue_date.isoformat()}")
    c.drawString(rx + 5 * mm, card_y + card_h - 21 * mm, f"Due: {invoice.due_date.isoformat()}")

    # Line items
    item_rows = list(invoice.items or [])
    visible_rows = item_rows[:MAX_TABLE_ROWS]
    row_h = 8 * mm
    table_h = (10 * mm) + (len(visible_rows) * row_h) + (4 * mm)
    table_y = card_y - 8 * mm - table_h
    c.setStrokeColor(soft)
    c.roundRect(margin, table_y, page_w - (2 * margin), table_h, 6, fill=0, stroke=1)
    c.setFillColor(colors.HexColor("#f8fafc"))
    c.roundRect(margin, table_y + table_h - 10 * mm, page_w - (2 * margin), 10 * mm, 6, fill=1, stroke=0)
    table_left = margin + 5 * mm
    qty_right = margin + 112 * mm
    unit_right = margin + 146 * mm
    line_total_right = page_w - margin - 5 * mm
    c.setFillColor(ink)
    c.setFont(bold, 10)
    header_y = table_y + table_h - 6.8 * mm
    c.drawString(table_left, header_y, "Description")
    c.drawRightString(qty_right, header_y, "Qty")
    c.drawRightString(unit_right, header_y, "Unit Price")
    c.drawRightString(line_total_right, header_y, "Line Total")

    c.setFont(regular, 9.5)
    y = table_y + table_h - 15 * mm
    for row in visible_rows:
        c.drawString(table_left, y, (row.description or "")[:60])
        c.drawRightString(qty_right, y, _qty(row.quantity))
        c.drawRightString(unit_right, y, _money(row.unit_price, "").strip())
        c.drawRightString(line_total_right, y, _money(row.line_total, currency))
        y -= row_h
    if len(item_rows) > len(visible_rows):
        c.setFont(regular, 8.5)
        c.setFillColor(muted)
        c.drawString(table_left, table_y + 2.5 * mm, f"+ {len(item_rows) - len(visible_rows)} more lines")

    # Totals box
    total_w = 74 * mm
    total_h = 26 * mm
    total_y = table_y - 6 * mm - total_h
    total_x = page_w - margin - total_w
    c.setFillColor(colors.HexColor("#eff6ff"))
    c.setStrokeColor(soft)
    c.roundRect(total_x, total_y, total_w, total_h, 6, fill=1, stroke=1)
    c.setFillColor(muted)
    c.setFont(regular, 9.5)
    c.drawString(total_x + 5 * mm, total_y + 19 * mm, "Subtotal")
    c.drawRightString(total_x + total_w - 5 * mm, total_y + 19 * mm, _money(invoice.subtotal, currency))
    c.drawString(total_x + 5 * mm, total_y + 13 * mm, f"VAT {_qty(invoice.vat_rate)}%")
    c.drawRightString(total_x + total_w - 5 * mm, total_y + 13 * mm, _money(invoice.vat_amount, currency))
    c.setFont(bold, 10)
    c.drawString(total_x + 5 * mm, total_y + 5 * mm, "TOTAL DUE")
    c.setFillColor(primary)
    c.setFont(bold, 13)
    c.drawRightString(total_x + total_w - 5 * mm, total_y + 5 * mm, _money(invoice.total, currency))

    # Payment details
    if company.bank_account:
        c.setFillColor(ink)
        c.setFont(bold, 10)
        c.drawString(margin, total_y + 19 * mm, "Payment details")
        c.setFont(regular, 9)
        c.setFillColor(muted)
        lines = [company.bank_name, company.bank_account, f"SWIFT: {company.bank_swift}" if company.bank_swift else None]
        py = total_y + 13 * mm
        for line in lines:
            if line:
                c.drawString(margin, py, line[:60])
                py -= 5 * mm

    if invoice.notes:
        c.setFillColor(muted)
        c.setFont(regular, 9)
        c.drawString(margin, total_y - 10 * mm, invoice.notes[:110])

    # Footer
    c.setFillColor(muted)
    c.setFont(regular, 8.5)
    c.drawString(margin, 15 * mm, company.email or company.name or "")
    c.drawRightString(page_w - margin, 15 * mm, f"Invoice {invoice.invoice_number}")
    c.showPage()
    c.save()
    return buf.getvalue()
