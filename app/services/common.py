from __future__ import annotations

import math

from app.schemas.invoice import Pagination


def clean_text(value: str | None) -> str | None:
    """Strip; empty strings become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def build_pagination(total: int, limit: int, offset: int) -> Pagination:
    return Pagination(
        total=total,
        limit=limit,
        offset=offset,
        page=offset // limit + 1 if limit else 1,
        total_pages=math.ceil(total / limit) if limit else 0,
    )
