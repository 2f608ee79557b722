from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from taskboard.auth.config import AuthConfig
from taskboard.auth.errors import ProviderError, ProviderErrorKind, describe_provider_error
from taskboard.auth.provider import (
    GOOGLE_PROVIDER_ID,
    IdentityProvider,
    PhoneChallenge,
    SignInMethod,
    classify_provider_message,
)


def _cfg(**overrides) -> AuthConfig:
    values = dict(
        firebase_api_key="test-api-key",
        firebase_emulator_host=None,
        public_base_url="https://tasks.example.com",
        google_enabled=True,
        oidc_provider_id="oidc.fusionauth",
        oidc_provider_name="FusionAuth",
        cookie_secure=True,
        session_secret="test-secret",
    )
    values.update(overrides)
    return AuthConfig(**values)


def _response(status: int, body) -> MagicMock:
    r = MagicMock()
    r.status_code = status
    r.json.return_value = body
    return r


def _provider(*responses, **cfg_overrides):
    http = MagicMock()
    http.post.side_effect = list(responses)
    return IdentityProvider(_cfg(**cfg_overrides), http=http), http


def test_password_sign_in_returns_id_token() -> None:
    provider, http = _provider(_response(200, {"idToken": "id-tok", "refreshToken": "r"}))

    token = provider.authenticate(SignInMethod.PASSWORD, {"email": "a@b.co", "password": "secret1"})

    assert token == "id-tok"
    args, kwargs = http.post.call_args
    assert args[0] == "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"
    assert kwargs["params"] == {"key": "test-api-key"}
    assert kwargs["json"] == {"email": "a@b.co", "password": "secret1", "returnSecureToken": True}
    assert kwargs["timeout"] == 10


def test_password_sign_up_uses_sign_up_endpoint() -> None:
    provider, http = _provider(_response(200, {"idToken": "new-user"}))
    assert provider.authenticate(SignInMethod.PASSWORD, {"email": "a@b.co", "password": "x" * 6, "sign_up": True})
    assert http.post.call_args[0][0].endswith("accounts:signUp")


def test_anonymous_sign_in() -> None:
    provider, http = _provider(_response(200, {"idToken": "anon"}))
    assert provider.authenticate(SignInMethod.ANONYMOUS) == "anon"
    assert http.post.call_args.kwargs["json"] == {"returnSecureToken": True}


def test_emulator_host_changes_base_url() -> None:
    provider, http = _provider(_response(200, {"idToken": "t"}), firebase_emulator_host="localhost:9099")
    provider.sign_in_anonymously()
    assert http.post.call_args[0][0] == "http://localhost:9099/identitytoolkit.googleapis.com/v1/accounts:signUp"


@pytest.mark.parametrize(
    "message,kind",
    [
        ("INVALID_LOGIN_CREDENTIALS", ProviderErrorKind.INVALID_CREDENTIAL),
        ("EMAIL_EXISTS", ProviderErrorKind.ALREADY_IN_USE),
        ("OPERATION_NOT_ALLOWED", ProviderErrorKind.UNCONFIGURED_PROVIDER),
        ("TOO_MANY_ATTEMPTS_TRY_LATER : Access disabled", ProviderErrorKind.TOO_MANY_ATTEMPTS),
        ("INVALID_CODE", ProviderErrorKind.INVALID_CODE),
        ("WEAK_PASSWORD : Password should be at least 6 characters", ProviderErrorKind.UNKNOWN),
    ],
)
def test_provider_errors_are_classified(message: str, kind: ProviderErrorKind) -> None:
    provider, _ = _provider(_response(400, {"error": {"code": 400, "message": message}}))
    with pytest.raises(ProviderError) as ei:
        provider.sign_in_with_password("a@b.co", "secret1")
    assert ei.value.kind == kind
    assert ei.value.code == message


def test_unknown_error_is_humanized() -> None:
    err = ProviderError(classify_provider_message("WEAK_PASSWORD : too short"), "WEAK_PASSWORD : too short")
    assert describe_provider_error(err) == "weak password"
    assert describe_provider_error(ProviderError(ProviderErrorKind.UNKNOWN)) == (
        "An unexpected error occurred. Please try again."
    )


def test_known_error_messages() -> None:
    assert describe_provider_error(ProviderError(ProviderErrorKind.INVALID_CREDENTIAL)).startswith(
        "Invalid credentials."
    )
    assert "already in use" in describe_provider_error(ProviderError(ProviderErrorKind.ALREADY_IN_USE))
    assert "popup was closed" in describe_provider_error(ProviderError(ProviderErrorKind.POPUP_CLOSED))


def test_network_failure_is_provider_error() -> None:
    http = MagicMock()
    http.post.side_effect = requests.ConnectionError("down")
    provider = IdentityProvider(_cfg(), http=http)
    with pytest.raises(ProviderError) as ei:
        provider.sign_in_anonymously()
    assert ei.value.kind == ProviderErrorKind.UNKNOWN
    assert describe_provider_error(ei.value) == "network request failed"


def test_missing_api_key_is_unconfigured() -> None:
    http = MagicMock()
    provider = IdentityProvider(_cfg(firebase_api_key=None), http=http)
    with pytest.raises(ProviderError) as ei:
        provider.sign_in_anonymously()
    assert ei.value.kind == ProviderErrorKind.UNCONFIGURED_PROVIDER
    http.post.assert_not_called()


def test_success_without_token_is_an_error() -> None:
    provider, _ = _provider(_response(200, {"localId": "u1"}))
    with pytest.raises(ProviderError):
        provider.sign_in_anonymously()


def test_phone_flow() -> None:
    provider, http = _provider(
        _response(200, {"sessionInfo": "sess-info"}),
        _response(200, {"idToken": "phone-tok"}),
    )
    challenge = provider.start_phone_sign_in("+15551234567", "captcha")
    assert challenge == PhoneChallenge(session_info="sess-info")
    assert http.post.call_args.kwargs["json"] == {"phoneNumber": "+15551234567", "recaptchaToken": "captcha"}

    token = provider.authenticate(SignInMethod.PHONE, {"session_info": challenge.session_info, "code": "123456"})
    assert token == "phone-tok"
    assert http.post.call_args[0][0].endswith("accounts:signInWithPhoneNumber")
    assert http.post.call_args.kwargs["json"] == {"sessionInfo": "sess-info", "code": "123456"}


def test_redirect_flow() -> None:
    provider, http = _provider(
        _response(200, {"authUri": "https://accounts.google.com/o/oauth2/auth?x=1", "sessionId": "sid"}),
        _response(200, {"idToken": "google-tok"}),
    )
    challenge = provider.start_redirect_sign_in(
        provider.provider_id_for(SignInMethod.OAUTH), "https://tasks.example.com/api/auth/callback/oauth"
    )
    assert challenge.session_id == "sid"
    assert http.post.call_args.kwargs["json"]["providerId"] == GOOGLE_PROVIDER_ID

    token = provider.authenticate(
        SignInMethod.OAUTH,
        {
            "session_id": "sid",
            "request_uri": "https://tasks.example.com/api/auth/callback/oauth?code=abc&state=s",
            "query": {"code": "abc", "state": "s"},
        },
    )
    assert token == "google-tok"
    body = http.post.call_args.kwargs["json"]
    assert body["sessionId"] == "sid"
    assert body["requestUri"].endswith("?code=abc&state=s")


def test_cancelled_redirect_is_popup_closed() -> None:
    provider, http = _provider()
    with pytest.raises(ProviderError) as ei:
        provider.finish_redirect_sign_in("sid", "https://x/cb?error=access_denied", {"error": "access_denied"})
    assert ei.value.kind == ProviderErrorKind.POPUP_CLOSED
    http.post.assert_not_called()


def test_oidc_uses_configured_provider_id() -> None:
    provider, _ = _provider(oidc_provider_id="oidc.acme")
    assert provider.provider_id_for(SignInMethod.OIDC) == "oidc.acme"


def test_google_disabled() -> None:
    provider, _ = _provider(google_enabled=False)
    with pytest.raises(ProviderError) as ei:
        provider.provider_id_for(SignInMethod.OAUTH)
    assert ei.value.kind == ProviderErrorKind.UNCONFIGURED_PROVIDER


def test_passkey_is_unsupported() -> None:
    provider, http = _provider()
    with pytest.raises(ProviderError) as ei:
        provider.authenticate(SignInMethod.PASSKEY, {})
    assert ei.value.kind == ProviderErrorKind.UNSUPPORTED_METHOD
    assert describe_provider_error(ei.value) == "Passkey sign-in is not yet available."
    http.post.assert_not_called()


def test_http_session_is_created_lazily_and_closed() -> None:
    provider = IdentityProvider(_cfg())
    assert provider._http is None
    session = provider.http
    assert isinstance(session, requests.Session)
    assert provider.http is session
    provider.close()
    assert provider._http is None
