from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

DEFAULT_OIDC_PROVIDER_ID = "oidc.fusionauth"
DEFAULT_OIDC_PROVIDER_NAME = "FusionAuth"


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "y", "on")


@dataclass(frozen=True)
class AuthConfig:
    # Identity provider (Firebase Authentication REST API)
    firebase_api_key: Optional[str]
    firebase_emulator_host: Optional[str]  # e.g. "localhost:9099"

    # Redirect-based sign-in (Google, enterprise OIDC)
    public_base_url: Optional[str]
    google_enabled: bool
    oidc_provider_id: str
    oidc_provider_name: str

    # Cookies
    cookie_secure: bool
    session_secret: Optional[str]  # signs pending sign-in state (phone, redirect)

    # reCAPTCHA site key for phone sign-in (the emulator accepts any token)
    recaptcha_site_key: Optional[str] = None

    @property
    def provider_enabled(self) -> bool:
        """Provider-backed sign-in needs an API key (the emulator accepts any key)."""
        return bool(self.firebase_api_key)

    @property
    def two_step_enabled(self) -> bool:
        """Phone and redirect sign-in carry signed state between their two requests."""
        return self.provider_enabled and bool(self.session_secret)

    @property
    def phone_enabled(self) -> bool:
        return self.two_step_enabled and bool(self.recaptcha_site_key or self.firebase_emulator_host)

    @property
    def redirect_enabled(self) -> bool:
        return self.two_step_enabled and bool(self.public_base_url)


@lru_cache(maxsize=1)
def load_auth_config() -> AuthConfig:
    """
    Load authentication configuration from environment variables.

    Sign-in methods backed by the identity provider are enabled when FIREBASE_API_KEY is set.
    Phone sign-in also needs AUTH_SESSION_SECRET and FIREBASE_RECAPTCHA_SITE_KEY (not with the emulator); Google and enterprise OIDC additionally need
    AUTH_PUBLIC_BASE_URL for the callback URI.
    """
    public_base_url = (os.getenv("AUTH_PUBLIC_BASE_URL", "") or "").strip().rstrip("/") or None

    return AuthConfig(
        firebase_api_key=(os.getenv("FIREBASE_API_KEY", "") or "").strip() or None,
        firebase_emulator_host=(os.getenv("FIREBASE_AUTH_EMULATOR_HOST", "") or "").strip() or None,
        public_base_url=public_base_url,
        google_enabled=_env_bool("AUTH_GOOGLE_ENABLED", True),
        oidc_provider_id=(os.getenv("AUTH_OIDC_PROVIDER_ID", "") or "").strip() or DEFAULT_OIDC_PROVIDER_ID,
        oidc_provider_name=(os.getenv("AUTH_OIDC_PROVIDER_NAME", "") or "").strip() or DEFAULT_OIDC_PROVIDER_NAME,
        # Secure by default; plain-HTTP local dev can opt out.
        cookie_secure=_env_bool("AUTH_COOKIE_SECURE", True),
        session_secret=(os.getenv("AUTH_SESSION_SECRET", "") or "").strip() or None,
        recaptcha_site_key=(os.getenv("FIREBASE_RECAPTCHA_SITE_KEY", "") or "").strip() or None,
    )
