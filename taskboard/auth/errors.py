from __future__ import annotations

from enum import Enum
from typing import Dict, Optional


class StorageError(Exception):
    """The session cookie could not be written or deleted."""


class ProviderErrorKind(str, Enum):
    INVALID_CREDENTIAL = "invalid-credential"
    ALREADY_IN_USE = "already-in-use"
    POPUP_CLOSED = "popup-closed"
    UNCONFIGURED_PROVIDER = "unconfigured-provider"
    INVALID_CODE = "invalid-code"
    TOO_MANY_ATTEMPTS = "too-many-attempts"
    UNSUPPORTED_METHOD = "unsupported-method"
    UNKNOWN = "unknown"


class ProviderError(Exception):
    """
    Authentication with the identity provider failed or was cancelled.

    `code` keeps the provider's raw error string (when there was one) for logs and
    for describing errors we have no dedicated message for.
    """

    def __init__(self, kind: ProviderErrorKind, code: Optional[str] = None):
        self.kind = kind
        self.code = code
        super().__init__(f"{kind.value}: {code}" if code else kind.value)


_MESSAGES: Dict[ProviderErrorKind, str] = {
    ProviderErrorKind.INVALID_CREDENTIAL: "Invalid credentials. Please check your email and password.",
    ProviderErrorKind.ALREADY_IN_USE: "This email is already in use. Please sign in or use a different email.",
    ProviderErrorKind.POPUP_CLOSED: (
        "The sign-in popup was closed. This may be due to a configuration issue. "
        "Please ensure your domain is authorized in Firebase."
    ),
    ProviderErrorKind.UNCONFIGURED_PROVIDER: "This sign-in method is not enabled. Please choose a different method.",
    ProviderErrorKind.INVALID_CODE: "The verification code is invalid or has expired.",
    ProviderErrorKind.TOO_MANY_ATTEMPTS: "Too many attempts. Please try again later.",
    ProviderErrorKind.UNSUPPORTED_METHOD: "Passkey sign-in is not yet available.",
}

GENERIC_MESSAGE = "An unexpected error occurred. Please try again."


def _humanize(code: str) -> str:
    # "auth/network-request-failed" / "NETWORK_REQUEST_FAILED" -> "network request failed"
    text = code.split(":", 1)[0].strip()
    if text.startswith("auth/"):
        text = text[len("auth/") :]
    return text.replace("-", " ").replace("_", " ").strip().lower()


def describe_provider_error(err: ProviderError) -> str:
    """Map a provider error to the text shown to the user."""
    msg = _MESSAGES.get(err.kind)
    if msg:
        return msg
    if err.code:
        return _humanize(err.code) or GENERIC_MESSAGE
    return GENERIC_MESSAGE
