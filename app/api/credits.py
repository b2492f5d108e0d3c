from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import current_user_id
from app.db.session import get_db
from app.models.user_credits import UserCredits
from app.schemas.credits import CreditsRead, PlanChangeRequest, PlanRead
from app.services.invoicing.credits import PLANS, available_credits, change_plan, ensure_credits, is_unlimited, plan_allowance

router = APIRouter(prefix="/user", tags=["credits"])


def _to_read(row: UserCredits) -> CreditsRead:
    return CreditsRead(
        total_credits=int(row.total_credits or 0),
        used_credits=int(row.used_credits or 0),
        available_credits=available_credits(row),
        plan_type=row.plan_type,
        plan_expires_at=row.plan_expires_at,
        unlimited=is_unlimited(row),
    )


@router.get("/credits", response_model=CreditsRead)
def get_credits(user_id: UUID = Depends(current_user_id), db: Session = Depends(get_db)) -> CreditsRead:
    row = ensure_credits(db, user_id)
    db.commit()
    return _to_read(row)


@router.get("/plans", response_model=list[PlanRead])
def list_plans() -> list[PlanRead]:
    return [
        PlanRead(key=p.key, name=p.name, credits=plan_allowance(p.key), price_monthly=p.price_monthly)
        for p in PLANS.values()
    ]


@router.post("/plan", response_model=CreditsRead)
def set_plan(
    payload: PlanChangeRequest,
    user_id: UUID = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> CreditsRead:
    row = change_plan(db, user_id, payload.plan_type)
    db.commit()
    db.refresh(row)
    return _to_read(row)
