"""
cms/access.py
-----------------------------------------------------------------------------
Session-level access policy.

A fixed set of *safe routes* is reachable without signing in; every other
path needs a session that holds a username.  Both functions here are pure:
they decide, and the HTTP layer performs the redirect.
"""

from __future__ import annotations

from dataclasses import dataclass

from cms.diagnostics import DiagnosticCode

INDEX = "/"
FILE_VIEW = "/file"
FILE_EDIT = "/file/edit"
FILE_NEW = "/file/new"
FILE_DELETE = "/file/delete"
FILE_DUPLICATE = "/file/duplicate"
USERS_SIGNIN = "/users/signin"
USERS_SIGNOUT = "/users/signout"
USERS_SIGNUP = "/users/signup"

SAFE_ROUTES: frozenset[str] = frozenset(
    {INDEX, FILE_VIEW, USERS_SIGNIN, USERS_SIGNOUT, USERS_SIGNUP}
)


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    redirect_to: str | None = None
    diagnostic: DiagnosticCode | None = None


def is_authorized(
    session_has_user: bool,
    requested_path: str,
    safe_routes: frozenset[str] = SAFE_ROUTES,
) -> bool:
    """Return True when *requested_path* may be served to this session."""
    return session_has_user or requested_path in safe_routes


def check_access(
    session_has_user: bool,
    requested_path: str,
    safe_routes: frozenset[str] = SAFE_ROUTES,
) -> AccessDecision:
    """
    Decide whether to serve *requested_path*.

    Denied requests are sent back to the index with ``must_be_signed_in``.
    """
    if is_authorized(session_has_user, requested_path, safe_routes):
        return AccessDecision(allowed=True)
    return AccessDecision(
        allowed=False,
        redirect_to=INDEX,
        diagnostic=DiagnosticCode.MUST_BE_SIGNED_IN,
    )
