"""
Invoice delivery by email.

Every attempt is written to email_history. A successful send moves a draft
invoice to `sent`.
"""
from __future__ import annotations

import logging
import smtplib
from datetime import datetime, timezone
from email.message import EmailMessage

from sqlalchemy.orm import Session

from app.core import messages
from app.core.config import settings
from app.core.errors import DeliveryFailed, ValidationFailed
from app.models.company import Company
from app.models.email_history import EmailHistory
from app.models.invoice import Invoice
from app.services.invoicing.pdf import pdf_filename, render_invoice_pdf
from app.services.invoicing.public_links import is_publicly_visible, public_url
from app.services.invoicing.totals import round_money

mail_logger = logging.getLogger("app.mail")


def smtp_configured() -> bool:
    return bool(settings.smtp_host and (settings.smtp_from or settings.smtp_user))


def deliver(msg: EmailMessage) -> None:
    if not smtp_configured():
        raise DeliveryFailed(details="SMTP is not configured")
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=15) as s:
            s.starttls()
            if settings.smtp_user and settings.smtp_password:
                s.login(settings.smtp_user, settings.smtp_password)
            s.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        raise DeliveryFailed(details=str(e)) from e


def default_subject(invoice: Invoice, company: Company) -> str:
    return f"ინვოისი {invoice.invoice_number} - {company.name}"


def build_body(invoice: Invoice, company: Company, message: str | None) -> str:
    lines = []
    if message:
        lines += [message.strip(), ""]
    lines += [
        f"ინვოისი: {invoice.invoice_number}",
        f"თანხა: {round_money(invoice.total)} {invoice.currency}",
        f"გადახდის ვადა: {invoice.due_date.isoformat()}",
    ]
    if is_publicly_visible(invoice):
        lines.append(f"ნახვა: {public_url(invoice.public_token)}")
    if company.bank_account:
        lines += ["", f"{company.bank_name or ''} {company.bank_account}".strip()]
    lines += ["", company.name]
    return "\n".join(lines)


def build_message(
    invoice: Invoice,
    company: Company,
    *,
    to: list[str],
    cc: list[str] | None = None,
    bcc: list[str] | None = None,
    subject: str | None = None,
    message: str | None = None,
    attach_pdf: bool = True,
) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = subject or default_subject(invoice, company)
    msg["From"] = settings.smtp_from or settings.smtp_user or company.email or ""
    msg["To"] = ", ".join(to)
    if cc:
        msg["Cc"] = ", ".join(cc)
    if bcc:
        msg["Bcc"] = ", ".join(bcc)
    if company.email:
        msg["Reply-To"] = company.email
    msg.set_content(build_body(invoice, company, message))
    if attach_pdf:
        msg.add_attachment(
            render_invoice_pdf(invoice, company),
            maintype="application",
            subtype="pdf",
            filename=pdf_filename(invoice),
        )
    return msg


def send_invoice_email(
    db: Session,
    invoice: Invoice,
    company: Company,
    *,
    to: list[str] | None = None,
    cc: list[str] | None = None,
    bcc: list[str] | None = None,
    subject: str | None = None,
    message: str | None = None,
    attach_pdf: bool = True,
    now: datetime | None = None,
) -> dict[str, list[str]]:
    recipients = [str(r) for r in (to or [])]
    if not recipients and invoice.client and invoice.client.email:
        recipients = [invoice.client.email]
    if not recipients:
        raise ValidationFailed(messages.RECIPIENT_MISSING)
    cc_list = [str(r) for r in (cc or [])]
    bcc_list = [str(r) for r in (bcc or [])]

    msg = build_message(
        invoice,
        company,
        to=recipients,
        cc=cc_list,
        bcc=bcc_list,
        subject=subject,
        message=message,
        attach_pdf=attach_pdf,
    )
    history = EmailHistory(
        invoice_id=invoice.id,
        recipient=", ".join(recipients + cc_list + bcc_list),
        subject=str(msg["Subject"])[:255],
        status="sent",
    )
    try:
        deliver(msg)
    except DeliveryFailed as e:
        history.status = "failed"
        history.error_message = str(e.details or e.message)
        db.add(history)
        db.commit()
        mail_logger.warning("invoice_mail_failed invoice=%s error=%s", invoice.id, history.error_message)
        raise

    db.add(history)
    if invoice.status == "draft":
        invoice.status = "sent"
        invoice.sent_at = now or datetime.now(timezone.utc)
    db.commit()
    mail_logger.info("invoice_mailed invoice=%s recipients=%s", invoice.id, len(recipients) + len(cc_list) + len(bcc_list))
    return {"to": recipients, "cc": cc_list, "bcc": bcc_list}
