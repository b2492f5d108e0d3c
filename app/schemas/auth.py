from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    full_name: str | None = Field(default=None, max_length=255)
    company_name: str = Field(..., min_length=1, max_length=255)
    company_tax_id: str | None = Field(default=None, max_length=64)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class AuthUser(BaseModel):
    id: UUID
    email: str
    full_name: str | None = None
    company_id: UUID | None = None


class AuthResponse(BaseModel):
    ok: bool = True
    user: AuthUser
    token: str | None = None
