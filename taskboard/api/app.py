"""
Task board web server.

Serves the login page, the Kanban board page and the JSON endpoints behind them.
Every request passes the access gate before a page is rendered.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from taskboard.auth.config import load_auth_config
from taskboard.auth.deps import get_identity_provider, require_session
from taskboard.auth.errors import ProviderError, ProviderErrorKind, StorageError, describe_provider_error
from taskboard.auth.gate import DASHBOARD_PATH, LOGIN_PATH, decide
from taskboard.auth.models import PasswordSignInRequest, PhoneStartRequest, PhoneVerifyRequest, SessionCreateRequest
from taskboard.auth.pending import (
    OAUTH_COOKIE,
    PHONE_COOKIE,
    clear_pending_cookie_kwargs,
    decode_pending,
    encode_pending,
    pending_cookie_kwargs,
)
from taskboard.auth.provider import IdentityProvider, PhoneChallenge, SignInMethod
from taskboard.auth.session import establish_session, has_session, terminate_session
from taskboard.board.config import load_board_config
from taskboard.board.models import AddTaskRequest
from taskboard.board.views import BoardViews

logger = logging.getLogger(__name__)

app = FastAPI(title="Taco's Task Manager")

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parents[1] / "templates"))

STORAGE_ERROR_MESSAGE = "Could not create session. Please try again."

_REDIRECT_PROVIDERS = {"google": SignInMethod.OAUTH, "oidc": SignInMethod.OIDC}


def _public_base_url(cfg) -> str:
    base = (getattr(cfg, "public_base_url", None) or "").strip().rstrip("/")
    if not base:
        raise HTTPException(status_code=500, detail="AUTH_PUBLIC_BASE_URL is required for redirect sign-in")
    return base


def _board_views(request: Request) -> BoardViews:
    views = getattr(request.app.state, "board_views", None)
    if views is None:
        views = BoardViews(max_views=load_board_config().max_views)
        request.app.state.board_views = views
    return views


def _provider_status(err: ProviderError) -> int:
    if err.kind in (ProviderErrorKind.UNSUPPORTED_METHOD, ProviderErrorKind.UNCONFIGURED_PROVIDER):
        return 400
    if err.kind == ProviderErrorKind.TOO_MANY_ATTEMPTS:
        return 429
    return 401


def _signed_in(token: str) -> JSONResponse:
    """Answer a successful sign-in. The session cookie is written before the client is told to move on."""
    resp = JSONResponse(content={"ok": True, "redirect": DASHBOARD_PATH})
    resp.headers["Cache-Control"] = "no-store"
    establish_session(resp, token, load_auth_config())
    return resp


def _login_redirect(error: str) -> RedirectResponse:
    resp = RedirectResponse(url=f"{LOGIN_PATH}?error={error}", status_code=303)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@app.exception_handler(ProviderError)
async def _provider_error_handler(request: Request, exc: ProviderError) -> JSONResponse:
    return JSONResponse(
        status_code=_provider_status(exc),
        content={
            "ok": False,
            "error": exc.kind.value,
            "title": "Authentication Error",
            "detail": describe_provider_error(exc),
        },
    )


@app.exception_handler(StorageError)
async def _storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"ok": False, "error": "session-storage", "title": "Session Error", "detail": str(exc)},
    )


@app.on_event("shutdown")
def _shutdown_close_provider() -> None:
    provider = getattr(app.state, "identity_provider", None)
    if provider is not None:
        provider.close()


@app.middleware("http")
async def access_gate(request: Request, call_next):
    """Apply the route access rules, then log the request."""
    start_time = time.time()
    path = request.url.path or ""
    try:
        decision = decide(has_session(request), path)
        if not decision.passes:
            logger.debug("%s %s - redirect to %s", request.method, path, decision.redirect_to)
            resp = RedirectResponse(url=decision.redirect_to, status_code=307)
            resp.headers["Cache-Control"] = "no-store"
            return resp

        response = await call_next(request)
        process_time = time.time() - start_time
        logger.debug("%s %s - %d (%.3fs)", request.method, path, response.status_code, process_time)
        return response
    except Exception as e:
        process_time = time.time() - start_time
        logger.exception("%s %s - ERROR after %.3fs: %s", request.method, path, process_time, str(e))
        raise


@app.get("/healthz")
def healthz() -> Dict[str, Any]:
    return {"ok": True}


# ---- Pages ----


@app.get("/login", response_class=HTMLResponse)
def login_page(request: Request, error: Optional[str] = Query(None)):
    cfg = load_auth_config()
    message = None
    if error == "session-storage":
        message = STORAGE_ERROR_MESSAGE
    elif error:
        try:
            kind = ProviderErrorKind(error)
        except ValueError:
            kind = ProviderErrorKind.UNKNOWN
        message = describe_provider_error(ProviderError(kind))
    return templates.TemplateResponse(
        request,
        "login.html",
        {
            "provider_enabled": cfg.provider_enabled,
            "phone_enabled": cfg.phone_enabled,
            "recaptcha_site_key": cfg.recaptcha_site_key,
            "google_enabled": cfg.redirect_enabled and cfg.google_enabled,
            "oidc_enabled": cfg.redirect_enabled,
            "oidc_provider_name": cfg.oidc_provider_name,
            "error_message": message,
        },
    )


@app.get("/dashboard", response_class=HTMLResponse)
def dashboard_page(request: Request):
    view_id, board = _board_views(request).open()
    resp = templates.TemplateResponse(request, "dashboard.html", {"view_id": view_id, "columns": board.columns()})
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---- Session ----


@app.post("/api/auth/session")
def auth_create_session(body: SessionCreateRequest) -> JSONResponse:
    """Establish a session for a token the browser obtained from the provider itself."""
    return _signed_in(body.id_token)


@app.post("/api/auth/logout")
def auth_logout():
    return terminate_session(load_auth_config())


@app.get("/api/auth/mode")
def auth_mode() -> Dict[str, Any]:
    """Which sign-in methods the login page should offer. Public; returns no secrets."""
    cfg = load_auth_config()
    return {
        "ok": True,
        "methods": {
            SignInMethod.PASSWORD.value: cfg.provider_enabled,
            SignInMethod.ANONYMOUS.value: cfg.provider_enabled,
            SignInMethod.PHONE.value: cfg.phone_enabled,
            SignInMethod.OAUTH.value: cfg.redirect_enabled and cfg.google_enabled,
            SignInMethod.OIDC.value: cfg.redirect_enabled,
            SignInMethod.PASSKEY.value: False,
        },
        "oidcProvider": {"name": cfg.oidc_provider_name, "loginUrl": "/api/auth/login/oauth/oidc"},
    }


# ---- Sign-in ----


@app.post("/api/auth/login/password")
def auth_login_password(
    body: PasswordSignInRequest, provider: IdentityProvider = Depends(get_identity_provider)
) -> JSONResponse:
    token = provider.authenticate(
        SignInMethod.PASSWORD, {"email": body.email, "password": body.password, "sign_up": body.sign_up}
    )
    return _signed_in(token)


@app.post("/api/auth/login/anonymous")
def auth_login_anonymous(provider: IdentityProvider = Depends(get_identity_provider)) -> JSONResponse:
    return _signed_in(provider.authenticate(SignInMethod.ANONYMOUS))


@app.post("/api/auth/login/passkey")
def auth_login_passkey(provider: IdentityProvider = Depends(get_identity_provider)) -> JSONResponse:
    return _signed_in(provider.authenticate(SignInMethod.PASSKEY, {}))


def _require_pending_signing(cfg) -> None:
    # Checked before the provider is called, so no code is sent that could never be verified.
    if not cfg.session_secret:
        raise HTTPException(status_code=500, detail="Sign-in state signing is not configured (AUTH_SESSION_SECRET)")


@app.post("/api/auth/login/phone/start")
def auth_login_phone_start(
    body: PhoneStartRequest, provider: IdentityProvider = Depends(get_identity_provider)
) -> JSONResponse:
    cfg = load_auth_config()
    _require_pending_signing(cfg)

    challenge = provider.start_phone_sign_in(body.phone, body.recaptcha_token)
    resp = JSONResponse(content={"ok": True, "title": "Verification code sent", "detail": "Please check your phone."})
    resp.headers["Cache-Control"] = "no-store"
    resp.set_cookie(**pending_cookie_kwargs(cfg, key=PHONE_COOKIE, value=encode_pending(cfg, challenge.session_info)))
    return resp


@app.post("/api/auth/login/phone/verify")
def auth_login_phone_verify(
    request: Request, body: PhoneVerifyRequest, provider: IdentityProvider = Depends(get_identity_provider)
) -> JSONResponse:
    cfg = load_auth_config()
    session_info = decode_pending(cfg, request.cookies.get(PHONE_COOKIE))
    if not session_info:
        raise HTTPException(status_code=400, detail="No verification in progress. Please request a new code.")

    token = provider.finish_phone_sign_in(PhoneChallenge(session_info=session_info), body.code or "")
    resp = _signed_in(token)
    resp.set_cookie(**clear_pending_cookie_kwargs(cfg, key=PHONE_COOKIE))
    return resp


@app.get("/api/auth/login/oauth/{provider_name}")
def auth_login_redirect(provider_name: str, provider: IdentityProvider = Depends(get_identity_provider)):
    """Send the browser to Google or the enterprise OIDC provider."""
    cfg = load_auth_config()
    method = _REDIRECT_PROVIDERS.get(provider_name)
    if method is None:
        raise HTTPException(status_code=404, detail="Unknown sign-in provider")
    if not cfg.redirect_enabled:
        raise HTTPException(status_code=403, detail="Redirect sign-in is not enabled")

    base = _public_base_url(cfg)
    try:
        challenge = provider.start_redirect_sign_in(
            provider.provider_id_for(method), continue_uri=f"{base}/api/auth/callback/oauth"
        )
    except ProviderError as e:
        logger.warning("Redirect sign-in via %s could not start: %s", provider_name, e.kind.value)
        return _login_redirect(e.kind.value)

    resp = RedirectResponse(url=challenge.auth_uri, status_code=302)
    resp.headers["Cache-Control"] = "no-store"
    resp.set_cookie(**pending_cookie_kwargs(cfg, key=OAUTH_COOKIE, value=encode_pending(cfg, challenge.session_id)))
    return resp


@app.get("/api/auth/callback/oauth")
def auth_callback_redirect(request: Request, provider: IdentityProvider = Depends(get_identity_provider)):
    """Finish a redirect sign-in; errors go back to the login page rather than to JSON."""
    cfg = load_auth_config()
    base = _public_base_url(cfg)
    session_id = decode_pending(cfg, request.cookies.get(OAUTH_COOKIE))

    query = dict(request.query_params)
    # The provider matches this against the continue URI it was given, so rebuild it from the public base.
    request_uri = f"{base}{request.url.path}"
    if request.url.query:
        request_uri = f"{request_uri}?{request.url.query}"

    resp: RedirectResponse
    if not session_id:
        resp = _login_redirect(ProviderErrorKind.POPUP_CLOSED.value)
    else:
        try:
            token = provider.authenticate(
                SignInMethod.OAUTH, {"session_id": session_id, "request_uri": request_uri, "query": query}
            )
            resp = RedirectResponse(url=DASHBOARD_PATH, status_code=303)
            resp.headers["Cache-Control"] = "no-store"
            establish_session(resp, token, cfg)
        except ProviderError as e:
            resp = _login_redirect(e.kind.value)
        except StorageError:
            resp = _login_redirect("session-storage")

    resp.set_cookie(**clear_pending_cookie_kwargs(cfg, key=OAUTH_COOKIE))
    return resp


# ---- Board ----


@app.get("/api/board/{view_id}")
def board_get(view_id: str, request: Request, _token: str = Depends(require_session)) -> Dict[str, Any]:
    board = _board_views(request).get(view_id)
    if board is None:
        raise HTTPException(status_code=404, detail="Board view not found")
    return {"ok": True, "viewId": view_id, "columns": board.snapshot()}


@app.post("/api/board/{view_id}/columns/{column_id}/tasks", status_code=201)
def board_add_task(
    view_id: str,
    column_id: str,
    body: AddTaskRequest,
    request: Request,
    _token: str = Depends(require_session),
) -> Dict[str, Any]:
    board = _board_views(request).get(view_id)
    if board is None:
        raise HTTPException(status_code=404, detail="Board view not found")

    result = board.add_task(column_id, body.title, body.description)
    if result.error == "not_found":
        raise HTTPException(status_code=404, detail=f"Column not found: {column_id}")
    if result.error == "empty_title":
        raise HTTPException(status_code=422, detail="Task title must not be empty")
    return {"ok": True, "task": result.task.model_dump() if result.task else None}


def run(host: str = "0.0.0.0", port: int = 8080) -> None:
    import uvicorn

    log_level = os.getenv("LOG_LEVEL", "info").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.setLevel(getattr(logging, log_level, logging.INFO))

    # Map Python logging levels to uvicorn log levels
    uvicorn_log_level = (
        log_level.lower() if log_level.lower() in ["critical", "error", "warning", "info", "debug", "trace"] else "info"
    )

    logger.info("Starting task board on %s:%d (log_level=%s)", host, port, log_level)
    uvicorn.run(app, host=host, port=port, log_level=uvicorn_log_level)
