"""
Shareable read-only invoice links.

A link is an opaque random token stored on the invoice. Lookups answer with one
NotFound for every failure (unknown, disabled, expired, cancelled) so a caller
cannot tell which tokens exist.
"""
from __future__ import annotations

import secrets
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.core import messages
from app.core.config import settings
from app.core.errors import NotFound, ValidationFailed
from app.models.invoice import Invoice

TOKEN_BYTES = 24


def generate_public_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def _utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def public_url(token: str) -> str:
    return f"{settings.public_base_url.rstrip('/')}/i/{token}"


def enable_public_link(
    invoice: Invoice,
    *,
    rotate: bool = False,
    expires_at: datetime | None = None,
    now: datetime | None = None,
) -> str:
    moment = now or datetime.now(timezone.utc)
    if expires_at is not None and _utc(expires_at) <= moment:
        raise ValidationFailed(messages.PUBLIC_LINK_EXPIRY_PAST)
    if rotate or not invoice.public_token:
        invoice.public_token = generate_public_token()
    invoice.public_enabled = True
    invoice.public_expires_at = _utc(expires_at) if expires_at is not None else None
    return invoice.public_token


def disable_public_link(invoice: Invoice) -> None:
    invoice.public_enabled = False


def is_publicly_visible(invoice: Invoice, *, now: datetime | None = None) -> bool:
    if not invoice.public_enabled or not invoice.public_token:
        return False
    if invoice.status == "cancelled":
        return False
    if invoice.public_expires_at is None:
        return True
    moment = now or datetime.now(timezone.utc)
    return _utc(invoice.public_expires_at) > moment


def find_public_invoice(db: Session, token: str, *, now: datetime | None = None) -> Invoice:
    clean = (token or "").strip()
    invoice = None
    if clean:
        invoice = (
            db.execute(
                select(Invoice)
                .where(Invoice.public_token == clean)
                .options(selectinload(Invoice.items), selectinload(Invoice.client))
            )
            .scalars()
            .one_or_none()
        )
    if invoice is None or not is_publicly_visible(invoice, now=now):
        raise NotFound(messages.PUBLIC_INVOICE_NOT_FOUND)
    return invoice
