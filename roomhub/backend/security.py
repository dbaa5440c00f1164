"""Security helpers for credentials, session ids and room passwords."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import secrets
import time
from typing import Any


TOKEN_BYTES = 12
CREDENTIAL_TTL_MS = 7 * 24 * 60 * 60 * 1000


def generate_token() -> str:
    """Generate a URL-safe token used as a session id."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def hash_token(token: str, server_salt: str) -> str:
    """Create deterministic token hash via sha256(token + server_salt)."""
    payload = f"{token}{server_salt}".encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


def verify_token(raw_token: str, expected_hash: str, server_salt: str) -> bool:
    """Compare raw token against a stored hash."""
    return hmac.compare_digest(hash_token(raw_token, server_salt), expected_hash)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _sign(body: str, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), body.encode("ascii"), hashlib.sha256).hexdigest()


def issue_credential(user_id: str, secret: str, ttl_ms: int = CREDENTIAL_TTL_MS, now_ms: int | None = None) -> str:
    """Issue a signed bearer credential for ``user_id``."""
    issued = _now_ms() if now_ms is None else now_ms
    payload = {"userId": user_id, "iat": issued, "exp": issued + ttl_ms}
    body = base64.urlsafe_b64encode(json.dumps(payload, separators=(",", ":")).encode("utf-8")).decode("ascii")
    return f"{body}.{_sign(body, secret)}"


def decode_credential(credential: str, secret: str, now_ms: int | None = None) -> dict[str, Any] | None:
    """Return the credential payload, or None when malformed, forged or expired."""
    body, separator, signature = credential.partition(".")
    if not separator or not body or not signature:
        return None
    if not body.isascii() or not signature.isascii():
        return None
    if not hmac.compare_digest(_sign(body, secret), signature):
        return None
    try:
        payload = json.loads(base64.urlsafe_b64decode(body.encode("ascii")))
    except (binascii.Error, UnicodeError, ValueError):
        return None
    if not isinstance(payload, dict):
        return None

    user_id = payload.get("userId")
    expires = payload.get("exp")
    if not isinstance(user_id, str) or user_id == "" or not isinstance(expires, int):
        return None
    current = _now_ms() if now_ms is None else now_ms
    if expires < current:
        return None
    return payload
