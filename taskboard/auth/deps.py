from __future__ import annotations

from fastapi import HTTPException, Request

from taskboard.auth.config import load_auth_config
from taskboard.auth.provider import IdentityProvider
from taskboard.auth.session import session_token


def require_session(request: Request) -> str:
    """
    Dependency for API routes: return the session token or fail with 401.

    No WWW-Authenticate header, so browsers don't pop a credentials dialog.
    """
    token = session_token(request)
    if token is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return token


def get_identity_provider(request: Request) -> IdentityProvider:
    """Return the app's provider client, creating it on first use."""
    provider = getattr(request.app.state, "identity_provider", None)
    if provider is None:
        provider = IdentityProvider(load_auth_config())
        request.app.state.identity_provider = provider
    return provider
