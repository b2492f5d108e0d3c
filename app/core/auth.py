from __future__ import annotations

import base64
import hashlib
import hmac
import json
import secrets
import time
from dataclasses import dataclass

from fastapi import Request

from app.core.config import settings
from app.core.errors import Unauthorized


@dataclass
class SessionUser:
    user_id: str
    email: str


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(token: str) -> bytes:
    padding = "=" * (-len(token) % 4)
    return base64.urlsafe_b64decode((token + padding).encode("ascii"))


def _sign(payload_b64: str) -> str:
    return hmac.new(settings.auth_secret.encode("utf-8"), payload_b64.encode("utf-8"), hashlib.sha256).hexdigest()


def hash_password(password: str, salt: str | None = None) -> tuple[str, str]:
    password = (password or "").strip()
    if not password:
        raise ValueError("Password cannot be empty")
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), 120_000)
    return digest.hex(), salt


def verify_password(password: str, expected_hash: str, salt: str) -> bool:
    try:
        calculated, _ = hash_password(password, salt=salt)
    except ValueError:
        return False
    return hmac.compare_digest(calculated, expected_hash)


def create_session_token(*, user_id: str, email: str, now: int | None = None) -> str:
    issued = int(now if now is not None else time.time())
    payload = {
        "uid": user_id,
        "eml": email,
        "iat": issued,
        "exp": issued + int(settings.auth_session_hours * 3600),
    }
    payload_json = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    payload_b64 = _b64url_encode(payload_json)
    return payload_b64 + "." + _sign(payload_b64)


def parse_session_token(token: str | None) -> SessionUser | None:
    if not token or "." not in token:
        return None
    payload_b64, sig = token.split(".", 1)
    if not hmac.compare_digest(sig, _sign(payload_b64)):
        return None
    try:
        payload = json.loads(_b64url_decode(payload_b64).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None
    if int(payload.get("exp", 0)) <= int(time.time()):
        return None
    uid = str(payload.get("uid", "")).strip()
    email = str(payload.get("eml", "")).strip()
    if not uid or not email:
        return None
    return SessionUser(user_id=uid, email=email)


def token_from_request(request: Request) -> str | None:
    """Session cookie first, then an `Authorization: Bearer` header."""
    token = request.cookies.get(settings.auth_cookie_name)
    if token:
        return token
    header = request.headers.get("authorization") or ""
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return None


def get_current_user(request: Request) -> SessionUser:
    user = getattr(request.state, "user", None)
    if not user:
        raise Unauthorized()
    return user
