from __future__ import annotations

from uuid import UUID

from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.auth import SessionUser, get_current_user
from app.core.errors import Unauthorized
from app.db.session import get_db
from app.models.company import Company
from app.services.invoicing.repository import get_company


def current_user_id(current: SessionUser = Depends(get_current_user)) -> UUID:
    try:
        return UUID(current.user_id)
    except ValueError as e:
        raise Unauthorized() from e


def get_current_company(user_id: UUID = Depends(current_user_id), db: Session = Depends(get_db)) -> Company:
    return get_company(db, user_id)
