from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class CreditsRead(BaseModel):
    total_credits: int
    used_credits: int
    available_credits: int | None
    plan_type: str
    plan_expires_at: datetime | None = None
    unlimited: bool = False


class PlanRead(BaseModel):
    key: str
    name: str
    credits: int | None
    price_monthly: Decimal


class PlanChangeRequest(BaseModel):
    plan_type: str
