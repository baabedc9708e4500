"""
cms/diagnostics.py
-----------------------------------------------------------------------------
Symbolic diagnostic codes and the human-readable message catalogue.

Every failure the core can report is one of the :class:`DiagnosticCode`
members below.  File operations return a :class:`Diagnostic` (code plus the
root-relative file name and, for raw OS failures, the cleaned error text);
the HTTP layer turns that into text with :func:`format_message`.

Exports
-------
DiagnosticCode : enum.Enum
    Closed set of failure identifiers.

Notice : enum.Enum
    Success notices shown after a completed action.

Diagnostic : frozen dataclass
    A code plus the context needed to render its message.

format_message(diagnostic) -> str
    Render a single diagnostic as user-facing text.

format_all(codes) -> list[str]
    Render several context-free codes (used by signup).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# -----------------------------------------------------------------------------
# Codes
# -----------------------------------------------------------------------------


class DiagnosticCode(str, Enum):
    """Closed set of failure identifiers returned by the core."""

    MISSING_FILE_NAME = "missing_file_name"
    UNKNOWN_FILE_TYPE = "unknown_file_type"
    INVALID_FILE_NAME = "invalid_file_name"
    DOES_NOT_EXIST = "does_not_exist"
    FILE_EXISTS = "file_exists"
    COULD_NOT_CREATE = "could_not_create"
    OS_ERROR = "os_error"
    MISSING_USERNAME = "missing_username"
    USERNAME_IN_USE = "username_in_use"
    MISSING_PASSWORD = "missing_password"
    PASSWORD_TOO_SHORT = "password_too_short"
    PASSWORD_TOO_LONG = "password_too_long"
    INVALID_CREDENTIALS = "invalid_credentials"
    MUST_BE_SIGNED_IN = "must_be_signed_in"


class Notice(str, Enum):
    """Success notices shown after a completed action."""

    CREATED_FILE = "created_file"
    FILE_UPDATED = "file_updated"
    FILE_DELETED = "file_deleted"
    DUPLICATE_CREATED = "duplicate_created"
    WELCOME = "welcome"
    SIGNED_OUT = "signed_out"
    ACCOUNT_CREATED = "account_created"


@dataclass(frozen=True)
class Diagnostic:
    """
    A failure code together with its message context.

    Fields
    ------
    code      – the symbolic identifier.
    file_name – root-relative logical name the failure refers to ("" when the
                failure is not about a file).
    detail    – cleaned OS error text; only set for ``OS_ERROR``.
    """

    code: DiagnosticCode
    file_name: str = ""
    detail: str = ""


# -----------------------------------------------------------------------------
# Message catalogue
# -----------------------------------------------------------------------------

MESSAGES: dict[DiagnosticCode, str] = {
    DiagnosticCode.MISSING_FILE_NAME: "A file name is required.",
    DiagnosticCode.UNKNOWN_FILE_TYPE: (
        "{file_name}: unknown file type; use a .md or .txt extension."
    ),
    DiagnosticCode.INVALID_FILE_NAME: "{file_name}: invalid file name.",
    DiagnosticCode.DOES_NOT_EXIST: "{file_name} does not exist.",
    DiagnosticCode.FILE_EXISTS: "{file_name} already exists.",
    DiagnosticCode.COULD_NOT_CREATE: "{file_name} could not be created.",
    DiagnosticCode.OS_ERROR: "{file_name}: {detail}.",
    DiagnosticCode.MISSING_USERNAME: "A username is required.",
    DiagnosticCode.USERNAME_IN_USE: "That username is already in use.",
    DiagnosticCode.MISSING_PASSWORD: "A password is required.",
    DiagnosticCode.PASSWORD_TOO_SHORT: "Passwords must be at least 8 characters long.",
    DiagnosticCode.PASSWORD_TOO_LONG: "Passwords must be at most 72 bytes long.",
    DiagnosticCode.INVALID_CREDENTIALS: "Invalid credentials.",
    DiagnosticCode.MUST_BE_SIGNED_IN: "You must be signed in to do that.",
}

NOTICES: dict[Notice, str] = {
    Notice.CREATED_FILE: "{file_name} has been created.",
    Notice.FILE_UPDATED: "{file_name} has been updated.",
    Notice.FILE_DELETED: "{file_name} has been deleted.",
    Notice.DUPLICATE_CREATED: "{file_name} has been created as a copy.",
    Notice.WELCOME: "Welcome, {username}!",
    Notice.SIGNED_OUT: "You have been signed out.",
    Notice.ACCOUNT_CREATED: "Your account has been created; please sign in.",
}


def format_message(diagnostic: Diagnostic) -> str:
    """
    Render a diagnostic as user-facing text.

    ``could_not_create`` appends the OS detail when one was recorded.
    """
    text = MESSAGES[diagnostic.code].format(
        file_name=diagnostic.file_name, detail=diagnostic.detail
    )
    if diagnostic.code is DiagnosticCode.COULD_NOT_CREATE and diagnostic.detail:
        text = f"{text[:-1]}: {diagnostic.detail}."
    return text


def format_all(codes: list[DiagnosticCode]) -> list[str]:
    """Render context-free codes (signup validation) in the given order."""
    return [format_message(Diagnostic(code)) for code in codes]


def format_notice(notice: Notice, **context: str) -> str:
    return NOTICES[notice].format(**context)
