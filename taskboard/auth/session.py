from __future__ import annotations

import logging
from typing import Optional

from starlette.requests import HTTPConnection
from starlette.responses import RedirectResponse, Response

from taskboard.auth.config import AuthConfig, load_auth_config
from taskboard.auth.errors import StorageError
from taskboard.auth.gate import LOGIN_PATH

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "firebase-session"
SESSION_MAX_AGE_SECONDS = 60 * 60 * 24 * 5  # 5 days


def session_cookie_kwargs(cfg: AuthConfig, value: str) -> dict:
    return {
        "key": SESSION_COOKIE_NAME,
        "value": value,
        "max_age": SESSION_MAX_AGE_SECONDS,
        "httponly": True,
        "secure": cfg.cookie_secure,
        "samesite": "lax",
        "path": "/",
    }


def clear_session_cookie_kwargs(cfg: AuthConfig) -> dict:
    # Must match the attributes the cookie was set with or browsers keep the old one.
    return {
        "key": SESSION_COOKIE_NAME,
        "httponly": True,
        "secure": cfg.cookie_secure,
        "samesite": "lax",
        "path": "/",
    }


def session_token(conn: HTTPConnection) -> Optional[str]:
    """Return the raw session token, or None when there is no session. The token is never inspected."""
    value = conn.cookies.get(SESSION_COOKIE_NAME)
    return value or None


def has_session(conn: HTTPConnection) -> bool:
    return session_token(conn) is not None


def _drop_session_cookie_headers(response: Response) -> None:
    # One Set-Cookie per response for the session, so re-establishing replaces rather than stacks.
    prefix = f"{SESSION_COOKIE_NAME}=".encode("latin-1")
    # In place: response.headers is a view over this same list.
    response.raw_headers[:] = [
        (k, v) for (k, v) in response.raw_headers if not (k.lower() == b"set-cookie" and v.startswith(prefix))
    ]


def establish_session(response: Response, token: str, cfg: Optional[AuthConfig] = None) -> None:
    """
    Store the identity token as the session cookie on `response`.

    Overwrites any previous value. Raises StorageError when the cookie cannot be written;
    callers must not send the user on to a protected page in that case.
    """
    if not (token or "").strip():
        raise ValueError("Session token must not be empty")
    cfg = cfg or load_auth_config()
    try:
        _drop_session_cookie_headers(response)
        response.set_cookie(**session_cookie_kwargs(cfg, token))
    except Exception as e:
        logger.error("Failed to create session: %s", str(e))
        raise StorageError("Could not create session.") from e


def clear_session(response: Response, cfg: Optional[AuthConfig] = None) -> None:
    """Delete the session cookie. Deleting a cookie that was never set is fine."""
    cfg = cfg or load_auth_config()
    try:
        _drop_session_cookie_headers(response)
        response.delete_cookie(**clear_session_cookie_kwargs(cfg))
    except Exception as e:
        logger.error("Failed to clear session: %s", str(e))
        raise StorageError("Could not clear session.") from e


def terminate_session(cfg: Optional[AuthConfig] = None) -> RedirectResponse:
    """Clear the session and send the browser to the login page."""
    resp = RedirectResponse(url=LOGIN_PATH, status_code=303)
    resp.headers["Cache-Control"] = "no-store"
    # StorageError propagates before any navigation is handed back.
    clear_session(resp, cfg)
    return resp
