from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "postgresql+psycopg://postgres:postgres@db:5432/invoices"
    app_env: str = "dev"
    app_cors_origins: str = "*"
    # Session cookies
    auth_secret: str = "change-me-in-production"
    auth_cookie_name: str = "invoice_session"
    auth_session_hours: float = 24 * 7
    # Invoicing defaults, used when the company profile leaves them empty
    default_vat_rate: float = 18
    default_invoice_prefix: str = "INV"
    default_currency: str = "GEL"
    default_due_days: int = 14
    invoice_number_attempts: int = 5
    # Credits granted to a freshly registered user (free plan)
    free_plan_credits: int = 5
    # Public invoice links
    public_links_on_create: bool = True
    public_base_url: str = "http://localhost:8000"
    # Outgoing invoice mail
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_from: str | None = None
    # TTF font with Georgian glyphs for PDFs (e.g. DejaVuSans.ttf); Helvetica otherwise
    pdf_font_path: str | None = None


settings = Settings()
