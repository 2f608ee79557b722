"""
Pending sign-in state carried between the two halves of a phone or redirect sign-in.

The provider's continuation handle is signed so a client can't splice in someone else's,
and it expires with the cookie.
"""

from __future__ import annotations

from typing import Optional

from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer

from taskboard.auth.config import AuthConfig

PENDING_SALT = "taskboard-pending-signin-v1"
PENDING_COOKIE_PATH = "/api/auth"
PENDING_TTL_SECONDS = 10 * 60

PHONE_COOKIE = "taskboard_phone_session"
OAUTH_COOKIE = "taskboard_oauth_session"


def _serializer(cfg: AuthConfig) -> Optional[URLSafeTimedSerializer]:
    if not cfg.session_secret:
        return None
    return URLSafeTimedSerializer(secret_key=cfg.session_secret, salt=PENDING_SALT)


def encode_pending(cfg: AuthConfig, handle: str) -> Optional[str]:
    s = _serializer(cfg)
    if s is None:
        return None
    return s.dumps(handle)


def decode_pending(cfg: AuthConfig, value: str | None) -> Optional[str]:
    if not value:
        return None
    s = _serializer(cfg)
    if s is None:
        return None
    try:
        raw = s.loads(value, max_age=PENDING_TTL_SECONDS)
    except (BadSignature, BadTimeSignature, ValueError):
        return None
    handle = str(raw or "").strip()
    return handle or None


def pending_cookie_kwargs(cfg: AuthConfig, *, key: str, value: str) -> dict:
    return {
        "key": key,
        "value": value,
        "max_age": PENDING_TTL_SECONDS,
        "httponly": True,
        "secure": cfg.cookie_secure,
        "samesite": "lax",
        "path": PENDING_COOKIE_PATH,
    }


def clear_pending_cookie_kwargs(cfg: AuthConfig, *, key: str) -> dict:
    kwargs = pending_cookie_kwargs(cfg, key=key, value="")
    kwargs["max_age"] = 0
    return kwargs
