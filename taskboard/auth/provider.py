"""
Identity provider adapter (Firebase Authentication REST API).

Every sign-in method ends the same way: the provider hands back an ID token, which we
store as the session cookie without looking inside it. Provider error strings are
translated into ProviderErrorKind here and nowhere else.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

import requests

from taskboard.auth.config import AuthConfig
from taskboard.auth.errors import ProviderError, ProviderErrorKind

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
GOOGLE_PROVIDER_ID = "google.com"
REQUEST_TIMEOUT_SECONDS = 10


class SignInMethod(str, Enum):
    PASSWORD = "password"
    ANONYMOUS = "anonymous"
    PHONE = "phone"
    OAUTH = "oauth"
    OIDC = "oidc"
    PASSKEY = "passkey"


# Provider message prefix -> kind. Messages look like "EMAIL_EXISTS" or
# "TOO_MANY_ATTEMPTS_TRY_LATER : Access to this account has been temporarily disabled...".
_ERROR_KINDS: Dict[str, ProviderErrorKind] = {
    "INVALID_LOGIN_CREDENTIALS": ProviderErrorKind.INVALID_CREDENTIAL,
    "INVALID_PASSWORD": ProviderErrorKind.INVALID_CREDENTIAL,
    "EMAIL_NOT_FOUND": ProviderErrorKind.INVALID_CREDENTIAL,
    "USER_DISABLED": ProviderErrorKind.INVALID_CREDENTIAL,
    "INVALID_IDP_RESPONSE": ProviderErrorKind.INVALID_CREDENTIAL,
    "INVALID_EMAIL": ProviderErrorKind.INVALID_CREDENTIAL,
    "EMAIL_EXISTS": ProviderErrorKind.ALREADY_IN_USE,
    "FEDERATED_USER_ID_ALREADY_LINKED": ProviderErrorKind.ALREADY_IN_USE,
    "CREDENTIAL_TOO_OLD_LOGIN_AGAIN": ProviderErrorKind.INVALID_CREDENTIAL,
    "OPERATION_NOT_ALLOWED": ProviderErrorKind.UNCONFIGURED_PROVIDER,
    "CONFIGURATION_NOT_FOUND": ProviderErrorKind.UNCONFIGURED_PROVIDER,
    "INVALID_PROVIDER_ID": ProviderErrorKind.UNCONFIGURED_PROVIDER,
    "INVALID_CODE": ProviderErrorKind.INVALID_CODE,
    "MISSING_CODE": ProviderErrorKind.INVALID_CODE,
    "SESSION_EXPIRED": ProviderErrorKind.INVALID_CODE,
    "INVALID_SESSION_INFO": ProviderErrorKind.INVALID_CODE,
    "TOO_MANY_ATTEMPTS_TRY_LATER": ProviderErrorKind.TOO_MANY_ATTEMPTS,
    "QUOTA_EXCEEDED": ProviderErrorKind.TOO_MANY_ATTEMPTS,
}

# OAuth `error` query values that mean the user backed out of the provider's window.
_CANCELLED_IDP_ERRORS = ("access_denied", "user_cancelled", "consent_required")


def classify_provider_message(message: str) -> ProviderErrorKind:
    key = (message or "").split(":", 1)[0].strip().upper()
    if key.startswith("API KEY NOT VALID"):
        return ProviderErrorKind.UNCONFIGURED_PROVIDER
    return _ERROR_KINDS.get(key, ProviderErrorKind.UNKNOWN)


@dataclass(frozen=True)
class PhoneChallenge:
    """Continuation handle between sending a one-time code and verifying it."""

    session_info: str


@dataclass(frozen=True)
class RedirectChallenge:
    """Where to send the browser, and the handle needed to finish when it comes back."""

    auth_uri: str
    session_id: str


class IdentityProvider:
    """
    Thin client over the provider's REST endpoints.

    The HTTP session is created on first use and owned by this instance; the app keeps
    exactly one instance and hands it to request handlers.
    """

    def __init__(self, cfg: AuthConfig, *, http: Optional[requests.Session] = None):
        self._cfg = cfg
        self._http = http
        self._lock = threading.Lock()

    @property
    def http(self) -> requests.Session:
        if self._http is None:
            with self._lock:
                if self._http is None:
                    self._http = requests.Session()
        return self._http

    def close(self) -> None:
        if self._http is not None:
            self._http.close()
            self._http = None

    def _base_url(self) -> str:
        host = self._cfg.firebase_emulator_host
        if host:
            return f"http://{host}/identitytoolkit.googleapis.com/v1"
        return IDENTITY_TOOLKIT_URL

    def _call(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self._cfg.firebase_api_key:
            raise ProviderError(ProviderErrorKind.UNCONFIGURED_PROVIDER, "missing-api-key")

        url = f"{self._base_url()}/accounts:{endpoint}"
        try:
            r = self.http.post(
                url, params={"key": self._cfg.firebase_api_key}, json=payload, timeout=REQUEST_TIMEOUT_SECONDS
            )
        except requests.RequestException as e:
            logger.warning("Identity provider call %s failed: %s", endpoint, str(e))
            raise ProviderError(ProviderErrorKind.UNKNOWN, "network-request-failed") from e

        try:
            data = r.json()
        except ValueError:
            data = None

        if r.status_code >= 400:
            message = ""
            if isinstance(data, dict) and isinstance(data.get("error"), dict):
                message = str(data["error"].get("message") or "")
            kind = classify_provider_message(message)
            # Never log the payload: it carries passwords and one-time codes.
            logger.warning("Identity provider rejected %s (status=%d, kind=%s)", endpoint, r.status_code, kind.value)
            raise ProviderError(kind, message or f"http-{r.status_code}")

        if not isinstance(data, dict):
            raise ProviderError(ProviderErrorKind.UNKNOWN, "invalid-response")
        return data

    def _token(self, data: Dict[str, Any]) -> str:
        token = str(data.get("idToken") or "").strip()
        if not token:
            raise ProviderError(ProviderErrorKind.UNKNOWN, "missing-id-token")
        return token

    # ---- individual methods ----

    def sign_in_with_password(self, email: str, password: str, *, sign_up: bool = False) -> str:
        endpoint = "signUp" if sign_up else "signInWithPassword"
        data = self._call(endpoint, {"email": email, "password": password, "returnSecureToken": True})
        return self._token(data)

    def sign_in_anonymously(self) -> str:
        return self._token(self._call("signUp", {"returnSecureToken": True}))

    def start_phone_sign_in(self, phone_number: str, recaptcha_token: str) -> PhoneChallenge:
        data = self._call("sendVerificationCode", {"phoneNumber": phone_number, "recaptchaToken": recaptcha_token})
        session_info = str(data.get("sessionInfo") or "").strip()
        if not session_info:
            raise ProviderError(ProviderErrorKind.UNKNOWN, "missing-session-info")
        return PhoneChallenge(session_info=session_info)

    def finish_phone_sign_in(self, challenge: PhoneChallenge, code: str) -> str:
        data = self._call("signInWithPhoneNumber", {"sessionInfo": challenge.session_info, "code": code})
        return self._token(data)

    def provider_id_for(self, method: SignInMethod) -> str:
        if method == SignInMethod.OIDC:
            return self._cfg.oidc_provider_id
        if method == SignInMethod.OAUTH:
            if not self._cfg.google_enabled:
                raise ProviderError(ProviderErrorKind.UNCONFIGURED_PROVIDER, "google-disabled")
            return GOOGLE_PROVIDER_ID
        raise ProviderError(ProviderErrorKind.UNSUPPORTED_METHOD, f"no-redirect-flow-for-{method.value}")

    def start_redirect_sign_in(self, provider_id: str, continue_uri: str) -> RedirectChallenge:
        data = self._call("createAuthUri", {"providerId": provider_id, "continueUri": continue_uri})
        auth_uri = str(data.get("authUri") or "").strip()
        session_id = str(data.get("sessionId") or "").strip()
        if not auth_uri or not session_id:
            raise ProviderError(ProviderErrorKind.UNCONFIGURED_PROVIDER, "missing-auth-uri")
        return RedirectChallenge(auth_uri=auth_uri, session_id=session_id)

    def finish_redirect_sign_in(self, session_id: str, request_uri: str, query: Mapping[str, str]) -> str:
        """
        Complete a redirect sign-in. `request_uri` is the full callback URL the provider
        sent the browser to, query string included.
        """
        idp_error = (query.get("error") or "").strip()
        if idp_error:
            kind = ProviderErrorKind.POPUP_CLOSED if idp_error in _CANCELLED_IDP_ERRORS else ProviderErrorKind.UNKNOWN
            raise ProviderError(kind, idp_error)
        data = self._call(
            "signInWithIdp",
            {
                "requestUri": request_uri,
                "sessionId": session_id,
                "returnSecureToken": True,
                "returnIdpCredential": True,
            },
        )
        return self._token(data)

    def sign_in_with_passkey(self) -> str:
        # The provider offers no passkey ceremony over REST yet.
        raise ProviderError(ProviderErrorKind.UNSUPPORTED_METHOD, "passkey")

    # ---- single entry point ----

    def authenticate(self, method: SignInMethod, credentials: Optional[Mapping[str, Any]] = None) -> str:
        """
        Authenticate with `method` and return the provider's ID token.

        Two-step methods (phone, redirect) are completed here; their first step is
        exposed separately (start_phone_sign_in, start_redirect_sign_in).
        """
        creds = dict(credentials or {})
        if method == SignInMethod.PASSWORD:
            return self.sign_in_with_password(
                str(creds.get("email") or ""), str(creds.get("password") or ""), sign_up=bool(creds.get("sign_up"))
            )
        if method == SignInMethod.ANONYMOUS:
            return self.sign_in_anonymously()
        if method == SignInMethod.PHONE:
            challenge = PhoneChallenge(session_info=str(creds.get("session_info") or ""))
            return self.finish_phone_sign_in(challenge, str(creds.get("code") or ""))
        if method in (SignInMethod.OAUTH, SignInMethod.OIDC):
            return self.finish_redirect_sign_in(
                str(creds.get("session_id") or ""), str(creds.get("request_uri") or ""), creds.get("query") or {}
            )
        if method == SignInMethod.PASSKEY:
            return self.sign_in_with_passkey()
        raise ProviderError(ProviderErrorKind.UNSUPPORTED_METHOD, str(method))
