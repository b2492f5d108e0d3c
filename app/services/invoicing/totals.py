"""
Invoice money arithmetic.

All amounts are Decimal. Rounding is half-up to cents and happens on the three
invoice outputs (subtotal, VAT, total); line products are summed unrounded.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    vat_amount: Decimal
    total: Decimal


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    # str() keeps 0.1 as 0.1 instead of its binary float expansion
    return Decimal(str(value))


def round_money(value: Decimal) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _check_line(quantity: Decimal, unit_price: Decimal) -> None:
    if quantity <= 0:
        raise ValueError("Item quantity must be greater than zero")
    if unit_price < 0:
        raise ValueError("Item unit price cannot be negative")


def calculate_line_total(quantity: Any, unit_price: Any) -> Decimal:
    qty = to_decimal(quantity)
    price = to_decimal(unit_price)
    _check_line(qty, price)
    return round_money(qty * price)


def calculate_invoice_totals(items: Iterable[Any], vat_rate: Any) -> InvoiceTotals:
    """
    items: objects exposing `quantity` and `unit_price` (schemas, ORM rows, ...).
    vat_rate: percentage, 0..100.
    """
    rate = to_decimal(vat_rate)
    if rate < 0 or rate > HUNDRED:
        raise ValueError("VAT rate must be between 0 and 100")
    raw_subtotal = Decimal("0")
    count = 0
    for item in items:
        qty = to_decimal(item.quantity)
        price = to_decimal(item.unit_price)
        _check_line(qty, price)
        raw_subtotal += qty * price
        count += 1
    if count == 0:
        raise ValueError("Invoice needs at least one item")
    subtotal = round_money(raw_subtotal)
    vat_amount = round_money(subtotal * rate / HUNDRED)
    return InvoiceTotals(subtotal=subtotal, vat_amount=vat_amount, total=round_money(subtotal + vat_amount))
