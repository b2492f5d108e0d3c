from app.services.invoicing.totals import InvoiceTotals, calculate_invoice_totals, calculate_line_total

__all__ = [
    "InvoiceTotals",
    "calculate_invoice_totals",
    "calculate_line_total",
]
