"""
Request-time access gate.

Decides, from session presence and the requested path alone, whether a request may
continue or must be redirected. Evaluated once per request before any page renders.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

ROOT_PATH = "/"
LOGIN_PATH = "/login"
DASHBOARD_PATH = "/dashboard"

RouteClass = Literal["public-entry", "auth-page", "protected", "unclassified"]


@dataclass(frozen=True)
class GateDecision:
    redirect_to: Optional[str] = None

    @property
    def passes(self) -> bool:
        return self.redirect_to is None


PASS = GateDecision()


def classify(path: str) -> RouteClass:
    if path == ROOT_PATH:
        return "public-entry"
    if path == LOGIN_PATH:
        return "auth-page"
    if path.startswith(DASHBOARD_PATH):
        return "protected"
    return "unclassified"


def decide(has_session: bool, path: str) -> GateDecision:
    """
    Route access rules, first match wins:

    1. signed in and on the login page -> board
    2. signed out and under /dashboard -> login page
    3. the root -> board or login page depending on the session
    4. anything else passes through
    """
    if has_session and path == LOGIN_PATH:
        return GateDecision(redirect_to=DASHBOARD_PATH)
    if not has_session and path.startswith(DASHBOARD_PATH):
        return GateDecision(redirect_to=LOGIN_PATH)
    if path == ROOT_PATH:
        return GateDecision(redirect_to=DASHBOARD_PATH if has_session else LOGIN_PATH)
    return PASS
