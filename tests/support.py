"""Shared fixtures: in-memory SQLite database and seeded tenants."""
from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("PUBLIC_BASE_URL", "http://testserver")

from decimal import Decimal  # noqa: E402

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.models  # noqa: E402,F401
from app.core.auth import hash_password  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.session import get_db  # noqa: E402
from app.models.client import Client  # noqa: E402
from app.models.company import Company  # noqa: E402
from app.models.user import User  # noqa: E402
from app.models.user_credits import UserCredits  # noqa: E402

engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def reset_database() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


def seed_tenant(
    db: Session,
    *,
    email: str = "owner@example.ge",
    total_credits: int = 5,
    used_credits: int = 0,
    plan_type: str = "free",
    prefix: str = "INV",
    counter: int = 0,
) -> tuple[User, Company, Client]:
    pw_hash, salt = hash_password("secret-pass")
    user = User(email=email, full_name="Owner", password_hash=pw_hash, password_salt=salt)
    db.add(user)
    db.flush()
    company = Company(
        user_id=user.id,
        name="შპს ტესტი",
        tax_id="404040404",
        email=email,
        invoice_prefix=prefix,
        invoice_counter=counter,
        default_vat_rate=Decimal("18"),
        default_currency="GEL",
        default_due_days=14,
    )
    db.add(company)
    db.flush()
    client = Client(company_id=company.id, type="company", name="Buyer LLC", tax_id="205000000", email="buyer@example.ge")
    db.add(client)
    db.add(
        UserCredits(
            user_id=user.id,
            total_credits=total_credits,
            used_credits=used_credits,
            plan_type=plan_type,
        )
    )
    db.commit()
    return user, company, client


def api_client() -> TestClient:
    from app.main import app

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


def register(email: str = "owner@example.ge", company_name: str = "შპს ტესტი") -> TestClient:
    """A TestClient carrying the new user's session cookie."""
    client = api_client()
    res = client.post(
        "/auth/register",
        json={"email": email, "password": "secret-pass", "full_name": "Owner", "company_name": company_name},
    )
    assert res.status_code == 201, res.text
    client.headers["Authorization"] = f"Bearer {res.json()['token']}"
    return client
