from app.models.client import Client
from app.models.company import Company
from app.models.email_history import EmailHistory
from app.models.invoice import Invoice
from app.models.invoice_item import InvoiceItem
from app.models.service import Service
from app.models.user import User
from app.models.user_credits import UserCredits

__all__ = [
    "Client",
    "Company",
    "EmailHistory",
    "Invoice",
    "InvoiceItem",
    "Service",
    "User",
    "UserCredits",
]
