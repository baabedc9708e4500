"""
cms/error_mapper.py
-----------------------------------------------------------------------------
Translate low-level filesystem failures into diagnostics.

The mapping is total: every exception a file operation can raise at the OS
level becomes a displayable :class:`~cms.diagnostics.Diagnostic`.

- ``FileExistsError``   → ``file_exists``
- ``FileNotFoundError`` → ``could_not_create`` (raised during a write; the
  repository's own existence pre-check reports ``does_not_exist`` first)
- anything else         → ``os_error`` with the root-relative name and the
  OS error text stripped of its ``[Errno N]`` prefix and path suffix, or
  ``could_not_create`` carrying that text when the failing operation was a
  create
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from cms.diagnostics import Diagnostic, DiagnosticCode
from cms.paths import strip_root

logger = logging.getLogger(__name__)

# "[Errno 13] Permission denied: '/srv/data/a.md'" → "Permission denied"
_ERRNO_PREFIX = re.compile(r"^\[Errno \d+\]\s*")
_PATH_SUFFIX = re.compile(r":\s*'[^']*'(?:\s*->\s*'[^']*')?$")


def clean_error_text(exc: BaseException) -> str:
    """Return the human part of an OS error message."""
    strerror = getattr(exc, "strerror", None)
    if strerror:
        return str(strerror)
    text = _ERRNO_PREFIX.sub("", str(exc))
    return _PATH_SUFFIX.sub("", text).strip() or type(exc).__name__


def translate_os_error(
    root: Path,
    path: str | Path,
    exc: OSError | UnicodeDecodeError,
    *,
    creating: bool = False,
) -> Diagnostic:
    """
    Map *exc*, raised while operating on *path*, to a diagnostic.

    Parameters
    ----------
    root     : Storage root, stripped from *path* before display.
    path     : The path the failing operation targeted.
    exc      : The caught exception.
    creating : True when the failing operation was an exclusive create.
    """
    resolved_root = root.resolve()
    display_root = resolved_root if str(path).startswith(str(resolved_root)) else root
    file_name = strip_root(display_root, path)
    if isinstance(exc, FileExistsError):
        return Diagnostic(DiagnosticCode.FILE_EXISTS, file_name=file_name)
    if isinstance(exc, FileNotFoundError):
        return Diagnostic(DiagnosticCode.COULD_NOT_CREATE, file_name=file_name)

    detail = clean_error_text(exc)
    logger.warning("Filesystem error on %s: %s", file_name, detail)
    code = DiagnosticCode.COULD_NOT_CREATE if creating else DiagnosticCode.OS_ERROR
    return Diagnostic(code, file_name=file_name, detail=detail)
