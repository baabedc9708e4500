"""
cms/paths.py
-----------------------------------------------------------------------------
Logical-name resolution and file classification.

A *logical name* is the untrusted, user-supplied file identifier.
:func:`resolve` turns it into a :class:`ResolvedPath` confined to the storage
root, or returns a :class:`~cms.diagnostics.Diagnostic` explaining why it
cannot.  No filesystem state is consulted beyond normalising the joined path,
so every check here happens before any real I/O.

Validation order
----------------
1. empty name (after stripping the storage-root prefix) → ``missing_file_name``
2. suffix not in ``{.md, .txt}``                       → ``unknown_file_type``
3. NUL byte, unnormalisable, or escapes the root      → ``invalid_file_name``

The order is fixed so that callers always see the same diagnostic for the
same input.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from cms.diagnostics import Diagnostic, DiagnosticCode

logger = logging.getLogger(__name__)


class FileKind(Enum):
    """Classification of a stored file, derived from its extension."""

    MARKDOWN = "markdown"
    TEXT = "text"


# Suffix → kind.  Anything not listed here is rejected.
EXTENSION_KINDS: dict[str, FileKind] = {
    ".md": FileKind.MARKDOWN,
    ".txt": FileKind.TEXT,
}


@dataclass(frozen=True)
class ResolvedPath:
    """A logical name joined to, and confined within, the storage root."""

    name: str
    path: Path
    kind: FileKind


def classify(name: str | Path) -> FileKind | None:
    """Return the kind for *name*'s suffix, or ``None`` when not allowed."""
    return EXTENSION_KINDS.get(Path(name).suffix)


def strip_root(root: Path, path: str | Path) -> str:
    """
    Return *path* relative to *root* as a display string.

    Paths that do not start with the root are returned unchanged (minus any
    leading separators), which keeps messages free of server-side directory
    names.
    """
    text = str(path)
    prefix = str(root).rstrip("/") + "/"
    if text.startswith(prefix):
        text = text[len(prefix):]
    elif text == str(root):
        text = ""
    return text.lstrip("/")


def resolve(root: Path, logical_name: str) -> ResolvedPath | Diagnostic:
    """
    Resolve *logical_name* inside *root*.

    Parameters
    ----------
    root         : Storage root directory.
    logical_name : User-supplied name, e.g. ``"notes.md"``.  May be empty.

    Returns
    -------
    ResolvedPath on success, otherwise a Diagnostic carrying the
    root-relative name.
    """
    name = strip_root(root, logical_name or "")
    if not name:
        return Diagnostic(DiagnosticCode.MISSING_FILE_NAME)

    kind = classify(name)
    if kind is None:
        return Diagnostic(DiagnosticCode.UNKNOWN_FILE_TYPE, file_name=name)

    if "\x00" in name:
        logger.warning("Rejected file name containing a NUL byte: %r", name)
        return Diagnostic(DiagnosticCode.INVALID_FILE_NAME, file_name=name)

    try:
        base = root.resolve()
        candidate = (base / name).resolve()
    except (OSError, RuntimeError, ValueError) as exc:
        logger.warning("Could not normalise file name %r: %s", name, exc)
        return Diagnostic(DiagnosticCode.INVALID_FILE_NAME, file_name=name)
    if candidate == base or base not in candidate.parents:
        logger.warning("Rejected file name outside the storage root: %r", name)
        return Diagnostic(DiagnosticCode.INVALID_FILE_NAME, file_name=name)

    return ResolvedPath(name=name, path=candidate, kind=kind)
