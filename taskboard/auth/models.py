from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class SessionCreateRequest(BaseModel):
    """A token the browser obtained from the provider directly."""

    model_config = ConfigDict(populate_by_name=True)

    id_token: str = Field(alias="idToken", min_length=1)

    @field_validator("id_token")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("idToken must not be empty")
        return v


class PasswordSignInRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str
    password: str
    sign_up: bool = Field(default=False, alias="signUp")

    @field_validator("email")
    @classmethod
    def _valid_email(cls, v: str) -> str:
        v = (v or "").strip()
        if not _EMAIL_RE.match(v):
            raise ValueError("Invalid email address.")
        return v

    @field_validator("password")
    @classmethod
    def _long_enough(cls, v: str) -> str:
        if len(v or "") < 6:
            raise ValueError("Password must be at least 6 characters.")
        return v


class PhoneStartRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone: str
    recaptcha_token: Optional[str] = Field(default=None, alias="recaptchaToken", validate_default=True)

    @field_validator("phone")
    @classmethod
    def _has_country_code(cls, v: str) -> str:
        v = (v or "").strip()
        if len(v) < 10:
            raise ValueError("Please enter a valid phone number with country code.")
        return v

    @field_validator("recaptcha_token")
    @classmethod
    def _recaptcha_done(cls, v: Optional[str]) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Please complete the reCAPTCHA check.")
        return v


class PhoneVerifyRequest(BaseModel):
    code: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("code")
    @classmethod
    def _present(cls, v: Optional[str]) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Please enter verification code.")
        return v
