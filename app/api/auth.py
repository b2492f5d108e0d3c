from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.api.deps import current_user_id
from app.core import messages
from app.core.auth import create_session_token, hash_password, verify_password
from app.core.config import settings
from app.core.errors import Conflict, Unauthorized
from app.db.session import get_db
from app.models.company import Company
from app.models.user import User
from app.schemas.auth import AuthResponse, AuthUser, LoginRequest, RegisterRequest
from app.services.common import clean_text
from app.services.invoicing.credits import ensure_credits

router = APIRouter(prefix="/auth", tags=["auth"])
auth_logger = logging.getLogger("app.auth")


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.app_env.lower() == "prod",
        max_age=int(settings.auth_session_hours * 3600),
        path="/",
    )


def _auth_user(db: Session, user: User) -> AuthUser:
    company_id = db.execute(select(Company.id).where(Company.user_id == user.id)).scalar()
    return AuthUser(id=user.id, email=user.email, full_name=user.full_name, company_id=company_id)


@router.post("/register", response_model=AuthResponse, status_code=201)
def register(payload: RegisterRequest, response: Response, db: Session = Depends(get_db)) -> AuthResponse:
    email = str(payload.email).strip().lower()
    if db.execute(select(User.id).where(func.lower(User.email) == email)).first():
        raise Conflict(messages.EMAIL_TAKEN)
    pw_hash, salt = hash_password(payload.password)
    user = User(email=email, full_name=clean_text(payload.full_name), password_hash=pw_hash, password_salt=salt)
    db.add(user)
    try:
        db.flush()
        db.add(
            Company(
                user_id=user.id,
                name=payload.company_name.strip(),
                tax_id=clean_text(payload.company_tax_id),
                email=email,
                invoice_prefix=settings.default_invoice_prefix,
                default_vat_rate=settings.default_vat_rate,
                default_currency=settings.default_currency,
                default_due_days=settings.default_due_days,
            )
        )
        ensure_credits(db, user.id)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise Conflict(messages.EMAIL_TAKEN) from e
    db.refresh(user)
    auth_logger.info("user_registered id=%s", user.id)

    token = create_session_token(user_id=str(user.id), email=user.email)
    _set_session_cookie(response, token)
    return AuthResponse(user=_auth_user(db, user), token=token)


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, response: Response, db: Session = Depends(get_db)) -> AuthResponse:
    email = str(payload.email).strip().lower()
    user = db.execute(select(User).where(func.lower(User.email) == email)).scalars().first()
    if not user or not user.is_active or not verify_password(payload.password, user.password_hash, user.password_salt):
        raise Unauthorized(messages.INVALID_CREDENTIALS)

    token = create_session_token(user_id=str(user.id), email=user.email)
    _set_session_cookie(response, token)
    return AuthResponse(user=_auth_user(db, user), token=token)


@router.post("/logout")
def logout(response: Response) -> dict:
    response.delete_cookie(key=settings.auth_cookie_name, path="/")
    return {"ok": True}


@router.get("/me", response_model=AuthResponse)
def me(user_id: UUID = Depends(current_user_id), db: Session = Depends(get_db)) -> AuthResponse:
    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise Unauthorized()
    return AuthResponse(user=_auth_user(db, user))
