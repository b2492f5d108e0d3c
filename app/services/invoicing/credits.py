from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from app.core import messages
from app.core.config import settings
from app.core.errors import NoCreditsRemaining, ValidationFailed
from app.models.user_credits import UserCredits

credits_logger = logging.getLogger("app.credits")

UNLIMITED = "unlimited"
PAID_PERIOD_DAYS = 30


@dataclass(frozen=True)
class Plan:
    key: str
    name: str
    credits: int | None  # None means no limit
    price_monthly: Decimal


PLANS: dict[str, Plan] = {
    "free": Plan("free", "უფასო", settings.free_plan_credits, Decimal("0")),
    "basic": Plan("basic", "საბაზისო", 50, Decimal("19")),
    "pro": Plan("pro", "პროფესიონალური", 200, Decimal("49")),
    UNLIMITED: Plan(UNLIMITED, "ულიმიტო", None, Decimal("99")),
}


def plan_allowance(plan_type: str) -> int | None:
    plan = PLANS.get(plan_type)
    return plan.credits if plan else None


def is_unlimited(credits: UserCredits) -> bool:
    return (credits.plan_type or "").strip().lower() == UNLIMITED


def available_credits(credits: UserCredits) -> int | None:
    """Remaining credits, or None when the plan has no limit."""
    if is_unlimited(credits):
        return None
    return int(credits.total_credits or 0) - int(credits.used_credits or 0)


def get_credits(db: Session, user_id: UUID) -> UserCredits | None:
    return db.execute(select(UserCredits).where(UserCredits.user_id == user_id)).scalars().one_or_none()


def ensure_credits(db: Session, user_id: UUID) -> UserCredits:
    """Fetch the user's credit row, provisioning a free-plan row on first use."""
    row = get_credits(db, user_id)
    if row:
        return row
    row = UserCredits(
        user_id=user_id,
        total_credits=settings.free_plan_credits,
        used_credits=0,
        plan_type="free",
    )
    db.add(row)
    db.flush()
    credits_logger.info("credits_provisioned user=%s total=%s", user_id, row.total_credits)
    return row


def check_credits(db: Session, user_id: UUID) -> UserCredits:
    """Reject when nothing is left. No writes besides first-use provisioning."""
    row = ensure_credits(db, user_id)
    available = available_credits(row)
    if available is not None and available <= 0:
        credits_logger.info("credits_exhausted user=%s used=%s total=%s", user_id, row.used_credits, row.total_credits)
        raise NoCreditsRemaining()
    return row


def consume_credit(db: Session, user_id: UUID) -> None:
    """
    Take one credit inside the caller's transaction.

    The WHERE clause re-checks the balance so two concurrent creations cannot
    both spend the last credit.
    """
    result = db.execute(
        update(UserCredits)
        .where(
            UserCredits.user_id == user_id,
            or_(UserCredits.used_credits < UserCredits.total_credits, UserCredits.plan_type == UNLIMITED),
        )
        .values(used_credits=UserCredits.used_credits + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NoCreditsRemaining()


def refund_credit(db: Session, user_id: UUID) -> bool:
    """Give one credit back, never taking used_credits below zero."""
    result = db.execute(
        update(UserCredits)
        .where(UserCredits.user_id == user_id, UserCredits.used_credits > 0)
        .values(used_credits=UserCredits.used_credits - 1)
        .execution_options(synchronize_session=False)
    )
    refunded = result.rowcount > 0
    credits_logger.info("credit_refund user=%s refunded=%s", user_id, refunded)
    return refunded


def change_plan(db: Session, user_id: UUID, plan_type: str, *, now: datetime | None = None) -> UserCredits:
    """
    Switch plan. Billing is not wired to a payment provider: the switch is
    recorded immediately and the plan allowance is granted.
    """
    key = (plan_type or "").strip().lower()
    if key not in PLANS:
        raise ValidationFailed(messages.UNKNOWN_PLAN)
    row = ensure_credits(db, user_id)
    moment = now or datetime.now(timezone.utc)
    allowance = plan_allowance(key)
    row.plan_type = key
    if allowance is not None:
        # a limited plan never starts over-spent
        row.total_credits = max(int(row.total_credits or 0), allowance, int(row.used_credits or 0))
    row.plan_expires_at = moment + timedelta(days=PAID_PERIOD_DAYS) if PLANS[key].price_monthly > 0 else None
    db.flush()
    credits_logger.info("plan_changed user=%s plan=%s total=%s", user_id, key, row.total_credits)
    return row
